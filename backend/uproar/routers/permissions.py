"""
Permissions API Router.

Lets the admin frontend ask what the current user may do, and lets
role managers grant or revoke additional roles.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from uproar.auth_middleware import Actor, get_current_actor
from uproar.database import get_db
from uproar.routers.dependencies import require_permission
from uproar.services.permissions import (
    Action,
    Resource,
    Role,
    can_access_admin_section,
    get_permissions_for_roles,
    has_permission,
)
from uproar.services.roles import (
    RoleAlreadyAssignedError,
    RoleAssignmentError,
    UserNotFoundError,
    assign_role,
    remove_role,
)

router = APIRouter()


class PermissionOut(BaseModel):
    resource: str
    action: str


class MyPermissionsResponse(BaseModel):
    user_id: str
    email: Optional[str]
    roles: List[str]
    permissions: List[PermissionOut]


class AllowedResponse(BaseModel):
    allowed: bool


class AssignRoleRequest(BaseModel):
    role: Role
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None


def _raise_for(exc: RoleAssignmentError) -> None:
    """Translate refused role changes into HTTP errors."""
    if isinstance(exc, UserNotFoundError):
        raise HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, RoleAlreadyAssignedError):
        raise HTTPException(status_code=400, detail=exc.message)
    raise HTTPException(status_code=403, detail=exc.message)


@router.get("/me", response_model=MyPermissionsResponse)
async def my_permissions(actor: Actor = Depends(get_current_actor)):
    """Roles and flattened grants of the caller."""
    return MyPermissionsResponse(
        user_id=actor.user_id,
        email=actor.email,
        roles=[role.value for role in actor.roles],
        permissions=[
            PermissionOut(resource=p.resource.value, action=p.action.value)
            for p in get_permissions_for_roles(actor.roles)
        ],
    )


@router.get("/check", response_model=AllowedResponse)
async def check_permission(
    resource: str,
    action: str = Action.READ.value,
    actor: Actor = Depends(get_current_actor),
):
    """Unknown resources or actions are simply not allowed."""
    return AllowedResponse(allowed=has_permission(actor.roles, resource, action, actor.email))


@router.get("/sections/{section:path}", response_model=AllowedResponse)
async def check_section(section: str, actor: Actor = Depends(get_current_actor)):
    return AllowedResponse(allowed=can_access_admin_section(actor.roles, section, actor.email))


@router.post("/users/{user_id}/roles", status_code=201)
async def grant_role(
    user_id: str,
    body: AssignRoleRequest,
    actor: Actor = Depends(require_permission(Resource.USERS_ROLES, Action.UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """Grant an additional role to a user."""
    try:
        assignment = await assign_role(
            db,
            user_id,
            body.role,
            assigned_by=actor.user_id,
            expires_at=body.expires_at,
            notes=body.notes,
        )
    except RoleAssignmentError as e:
        _raise_for(e)

    return {
        "id": assignment.id,
        "user_id": user_id,
        "role": assignment.role,
        "expires_at": assignment.expires_at,
    }


@router.delete("/users/{user_id}/roles/{role}")
async def revoke_role(
    user_id: str,
    role: Role,
    actor: Actor = Depends(require_permission(Resource.USERS_ROLES, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
):
    try:
        removed = await remove_role(db, user_id, role, removed_by=actor.user_id)
    except RoleAssignmentError as e:
        _raise_for(e)
    if not removed:
        raise HTTPException(status_code=404, detail="Role assignment not found")
    return {"user_id": user_id, "role": role.value, "removed": removed}
