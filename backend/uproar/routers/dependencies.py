"""
Router Dependencies
====================

Shared FastAPI dependencies for router authentication and authorization.
"""

from fastapi import Depends, HTTPException

from uproar.auth_middleware import Actor, get_current_actor
from uproar.config import get_settings
from uproar.services.inventory import InventoryService
from uproar.services.permissions import Action, Resource, can_access_admin_section, has_permission


def require_permission(resource: Resource, action: Action = Action.READ):
    """
    Dependency factory: the caller must hold `action` on `resource`.

    Usage:
        @router.post("/reserve")
        async def reserve(actor: Actor = Depends(require_permission(Resource.PRODUCTS_INVENTORY, Action.UPDATE))):
            ...

    Raises:
        HTTPException(401): If JWT is invalid.
        HTTPException(403): If no role grants the permission.
    """
    async def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_permission(actor.roles, resource, action, actor.email):
            raise HTTPException(
                status_code=403,
                detail=f"Missing permission {resource.value}:{action.value}",
            )
        return actor

    return _check


def require_admin_section(section: str):
    """Dependency factory: the caller must be able to open admin `section`."""
    async def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not can_access_admin_section(actor.roles, section, actor.email):
            raise HTTPException(status_code=403, detail=f"No access to admin section '{section}'")
        return actor

    return _check


def get_inventory_service() -> InventoryService:
    """Inventory engine over the application's session factory."""
    from uproar.database import async_session_maker
    return InventoryService.from_settings(async_session_maker, get_settings())
