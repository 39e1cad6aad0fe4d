from contextlib import asynccontextmanager

from fastapi import FastAPI

from phoneauth.infrastructure.db.pool import close_pool, get_pool
from phoneauth.infrastructure.gateway.telegram_gateway import TelegramGatewayAdapter
from phoneauth.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from phoneauth.infrastructure.redis_cache.pool import close_redis, get_redis
from phoneauth.logging import setup_logging
from phoneauth.presentation.api import api
from phoneauth.presentation.errors import register_exception_handlers
from phoneauth.settings import get_settings

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    settings.check_production_ready()

    pool = get_pool()
    if not getattr(pool, "is_open", False):
        await pool.open()

    await open_http_client(timeout=settings.gateway_timeout_seconds)

    get_redis()

    # ONE shared gateway adapter, on the shared HTTP client
    gateway = TelegramGatewayAdapter(
        settings.telegram_gateway_base_url,
        settings.telegram_gateway_token,
        sender=settings.telegram_gateway_sender,
        client=get_http_client(),
        timeout=settings.gateway_timeout_seconds,
    )
    app.state.delivery_gateway = gateway  # exposed to dependencies

    try:
        yield
    finally:
        # shutdown
        await gateway.aclose()  # it won't close the shared client
        await close_http_client()
        await close_redis()
        await close_pool()


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Phone Auth API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    register_exception_handlers(app)
    app.include_router(api)
    return app


app = create_app()
