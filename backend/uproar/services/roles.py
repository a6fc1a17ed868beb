"""
Role resolution for users: the primary role on the account plus any
additional, optionally expiring role assignments.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from uproar.models import User, UserRoleAssignment
from uproar.models.base import utcnow
from uproar.services.permissions import GOD_EMAIL, Action, Resource, Role, has_permission
from uproar.services.system_logger import SystemLogger

logger = logging.getLogger(__name__)
system_logger = SystemLogger("roles")


class RoleAssignmentError(Exception):
    """A role change was refused."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RoleAssignmentForbiddenError(RoleAssignmentError):
    """The caller may not make this role change."""

    def __init__(self, message: str = "Forbidden: Cannot assign roles"):
        super().__init__(message)


class UserNotFoundError(RoleAssignmentError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("User not found")


class RoleAlreadyAssignedError(RoleAssignmentError):
    def __init__(self, role: Role):
        self.role = role
        super().__init__("Role already assigned")


async def get_user_roles(session: AsyncSession, user_id: str) -> List[Role]:
    """
    Effective roles of a user, primary role first.

    Unknown users have no roles. Unrecognized role strings are skipped.
    """
    user = (await session.execute(
        select(User).where(User.id == user_id)
    )).scalar_one_or_none()

    if user is None:
        return []

    if user.email == GOD_EMAIL:
        return [Role.GOD]

    assignments = (await session.execute(
        select(UserRoleAssignment)
        .where(UserRoleAssignment.user_id == user_id)
        .order_by(UserRoleAssignment.created_at)
    )).scalars().all()

    candidates = ([user.role] if user.role else []) + [
        a.role for a in assignments if not a.is_expired
    ]

    roles: List[Role] = []
    for value in candidates:
        try:
            role = Role(value)
        except ValueError:
            logger.warning(f"Ignoring unknown role '{value}' for user {user_id}")
            continue
        if role not in roles:
            roles.append(role)
    return roles


async def assign_role(
    session: AsyncSession,
    user_id: str,
    role: Role,
    assigned_by: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> UserRoleAssignment:
    """
    Grant `role` to a user.

    Raises:
        RoleAssignmentForbiddenError: `assigned_by` may not manage roles, is
            changing their own roles, or is changing the god user
        UserNotFoundError: no such user
        RoleAlreadyAssignedError: the user already has an assignment of `role`
    """
    if assigned_by is not None:
        assigner_email = (await session.execute(
            select(User.email).where(User.id == assigned_by)
        )).scalar_one_or_none()
        assigner_roles = await get_user_roles(session, assigned_by)
        if not has_permission(assigner_roles, Resource.USERS_ROLES, Action.UPDATE, assigner_email):
            raise RoleAssignmentForbiddenError()

    await _check_target(session, user_id, assigned_by)

    existing = (await session.execute(
        select(UserRoleAssignment.id).where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.role == Role(role).value,
        ).limit(1)
    )).scalar_one_or_none()
    if existing is not None:
        raise RoleAlreadyAssignedError(Role(role))

    assignment = UserRoleAssignment(
        user_id=user_id,
        role=Role(role).value,
        assigned_by=assigned_by,
        expires_at=expires_at,
        notes=notes,
        created_at=utcnow(),
    )
    session.add(assignment)
    await session.flush()

    system_logger.info("Role assigned", {
        "user_id": user_id,
        "role": assignment.role,
        "assigned_by": assigned_by,
        "action": "role_assigned",
    })
    return assignment


async def remove_role(
    session: AsyncSession,
    user_id: str,
    role: Role,
    removed_by: Optional[str] = None,
) -> int:
    """
    Delete the user's assignments of `role`. Returns how many were removed.

    Raises:
        RoleAssignmentForbiddenError: `removed_by` is changing their own roles
            or the god user's
        UserNotFoundError: no such user
    """
    await _check_target(session, user_id, removed_by)

    result = await session.execute(
        delete(UserRoleAssignment)
        .where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.role == Role(role).value,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount:
        system_logger.info("Role removed", {
            "user_id": user_id,
            "role": Role(role).value,
            "removed": result.rowcount,
            "action": "role_removed",
        })
    return result.rowcount


async def _check_target(session: AsyncSession, user_id: str, changed_by: Optional[str]) -> None:
    """
    The target must exist. Nobody but the god user may change their own
    roles or the god user's roles.
    """
    target_email = (await session.execute(
        select(User.email).where(User.id == user_id)
    )).scalar_one_or_none()
    if target_email is None:
        raise UserNotFoundError(user_id)

    if changed_by is None:
        return

    changer_email = (await session.execute(
        select(User.email).where(User.id == changed_by)
    )).scalar_one_or_none()
    if changer_email == GOD_EMAIL:
        return

    if changed_by == user_id:
        raise RoleAssignmentForbiddenError("Cannot modify your own roles")
    if target_email == GOD_EMAIL:
        raise RoleAssignmentForbiddenError("Cannot modify God user roles")
