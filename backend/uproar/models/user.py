"""
User models - identity and role membership for permission checks.
"""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from uproar.models.base import Base, UUIDMixin, TimestampMixin, utcnow


class User(Base, UUIDMixin, TimestampMixin):
    """An account; `role` is the primary role, assignments add more."""
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[Optional[str]] = mapped_column(String(50), default="USER")

    role_assignments: Mapped[List["UserRoleAssignment"]] = relationship(
        "UserRoleAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="UserRoleAssignment.user_id",
    )


class UserRoleAssignment(Base, UUIDMixin, TimestampMixin):
    """An additional, optionally expiring role granted to a user."""
    __tablename__ = "user_role_assignments"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    assigned_by: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    user: Mapped["User"] = relationship("User", back_populates="role_assignments", foreign_keys=[user_id])

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= utcnow()

    __table_args__ = (
        Index("idx_role_assignment_user", "user_id"),
    )
