from fastapi import APIRouter

from phoneauth.schemas.responses import HealthOut

router = APIRouter()


@router.get("/healthz", response_model=HealthOut)
async def healthz() -> dict:
    return {"status": "ok"}
