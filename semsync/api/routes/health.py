from fastapi import APIRouter

from ...config import Config

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    missing = Config.validate()
    return {
        "status": "ok" if not missing else "degraded",
        "missing_config": missing,
    }
