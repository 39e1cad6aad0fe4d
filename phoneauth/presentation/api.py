from fastapi import APIRouter

from phoneauth.presentation.routers.v1.dispatchers import router as dispatchers_router
from phoneauth.presentation.routers.v1.drivers import router as drivers_router
from phoneauth.presentation.routes.health import router as health_router

api = APIRouter()

# Add all v1 routers here
routers = (drivers_router, dispatchers_router)
for router in routers:
    api.include_router(router, prefix="/v1")

api.include_router(health_router)
