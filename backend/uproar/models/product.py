"""
Product models - the display subjects that stock records count.

Catalog editing lives outside this service; only the fields the
inventory reports need are mapped here.
"""

from typing import List

from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from uproar.models.base import Base, TimestampMixin


class Game(Base, TimestampMixin):
    """A board game sold as a single SKU."""
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    inventory: Mapped["GameInventory"] = relationship("GameInventory", back_populates="game", uselist=False)


class Merch(Base, TimestampMixin):
    """A merchandise item, stocked per size."""
    __tablename__ = "merch"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    inventory: Mapped[List["MerchInventory"]] = relationship("MerchInventory", back_populates="merch")
