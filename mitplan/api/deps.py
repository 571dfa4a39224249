"""FastAPI dependency injection providers."""

import hmac

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader, APIKeyQuery

from mitplan.config import get_settings
from mitplan.cooldown.catalogue import AbilityCatalogue
from mitplan.session import PlanningSession, SessionRegistry

# Set during lifespan, read by Depends()
_registry: SessionRegistry | None = None
_catalogue: AbilityCatalogue | None = None


def set_dependencies(registry: SessionRegistry, catalogue: AbilityCatalogue) -> None:
    """Called once during app lifespan startup."""
    global _registry, _catalogue
    _registry = registry
    _catalogue = catalogue


def get_registry() -> SessionRegistry:
    """FastAPI dependency -- returns the process-wide session registry."""
    if _registry is None:
        raise RuntimeError("Session registry not initialized")
    return _registry


def get_catalogue() -> AbilityCatalogue:
    if _catalogue is None:
        raise RuntimeError("Ability catalogue not initialized")
    return _catalogue


def get_plan(
    plan_id: str, registry: SessionRegistry = Depends(get_registry),
) -> PlanningSession:
    """FastAPI dependency -- resolves ``plan_id`` or answers 404."""
    session = registry.get(plan_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Plan {plan_id} not found")
    return session


# Auth dependencies
_header_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)
_query_scheme = APIKeyQuery(name="api_key", auto_error=False)


async def verify_api_key(
    header_key: str | None = Depends(_header_scheme),
    query_key: str | None = Depends(_query_scheme),
) -> None:
    """Rejects requests when API key is configured but not provided."""
    configured_key = get_settings().api_key
    if not configured_key:
        return  # auth disabled when key not set
    provided = header_key or query_key
    if not provided or not hmac.compare_digest(provided, configured_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
