"""
SQLAlchemy Models for the Full Uproar commerce core.

This package is organized by domain:
- base.py: Base class and mixins
- product.py: Game and merch display subjects
- inventory.py: Stock records for games and merch sizes
- user.py: Users and role assignments

All models are re-exported from this module.
"""

# Base
from uproar.models.base import Base, UUIDMixin, TimestampMixin

# Catalog subjects
from uproar.models.product import Game, Merch

# Stock records
from uproar.models.inventory import GameInventory, MerchInventory, DEFAULT_VARIANT

# Users and roles
from uproar.models.user import User, UserRoleAssignment


__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    "TimestampMixin",

    # Catalog
    "Game",
    "Merch",

    # Inventory
    "GameInventory",
    "MerchInventory",
    "DEFAULT_VARIANT",

    # Users
    "User",
    "UserRoleAssignment",
]
