from fastapi import APIRouter

from unipilot.core.settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "unipilot-api",
        "env": settings.app_env,
    }
