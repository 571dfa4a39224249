import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter()

_registry = None
_catalogue = None


def set_health_deps(registry=None, catalogue=None) -> None:
    global _registry, _catalogue
    _registry = registry
    _catalogue = catalogue


@router.get("/health")
async def health():
    healthy = _catalogue is not None and len(_catalogue) > 0
    if not healthy:
        logger.warning("Health check: ability catalogue not loaded")

    body = {
        "status": "ok" if healthy else "degraded",
        "version": "0.1.0",
        "sessions": len(_registry) if _registry is not None else 0,
        "abilities": len(_catalogue) if _catalogue is not None else 0,
    }
    status_code = 200 if healthy else 503
    return JSONResponse(content=body, status_code=status_code)
