import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mitplan.api.deps import set_dependencies, verify_api_key
from mitplan.api.routes.health import set_health_deps
from mitplan.config import get_settings
from mitplan.cooldown.catalogue import load_catalogue
from mitplan.session import SessionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    settings = get_settings()
    logging.getLogger("mitplan").setLevel(settings.log_level.upper())

    catalogue = load_catalogue(settings.catalogue.path)
    logger.info(
        "Ability catalogue loaded: %d abilities from %s",
        len(catalogue), settings.catalogue.path or "built-in defaults",
    )

    registry = SessionRegistry()
    set_dependencies(registry=registry, catalogue=catalogue)
    set_health_deps(registry=registry, catalogue=catalogue)

    yield

    logger.info("Shutting down with %d open planning sessions", len(registry))


def create_app() -> FastAPI:
    app = FastAPI(
        title="Mitigation Planner",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:8000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["X-API-Key", "Content-Type"],
    )

    from mitplan.api.routes.health import router as health_router
    from mitplan.api.routes.plans import router as plans_router

    # Health router has no auth
    app.include_router(health_router)
    # Protected routers require API key (when configured)
    app.include_router(plans_router, dependencies=[Depends(verify_api_key)])

    return app
