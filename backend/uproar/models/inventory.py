"""
Inventory models - one stock record per game, one per merch x size.

Stock counters are only mutated through InventoryService's atomic,
conditionally guarded updates. The CHECK constraints keep
0 <= reserved <= quantity at the storage layer as well.
"""

from sqlalchemy import String, Integer, ForeignKey, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from uproar.models.base import Base, TimestampMixin

DEFAULT_VARIANT = "default"


class GameInventory(Base, TimestampMixin):
    """Single-SKU stock record for a game."""
    __tablename__ = "game_inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id", ondelete="CASCADE"), unique=True, nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    game: Mapped["Game"] = relationship("Game", back_populates="inventory")

    @property
    def available(self) -> int:
        return self.quantity - self.reserved

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_game_inventory_quantity_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_game_inventory_reserved_non_negative"),
        CheckConstraint("reserved <= quantity", name="ck_game_inventory_reserved_within_quantity"),
        Index("idx_game_inventory_quantity", "quantity"),
    )


class MerchInventory(Base, TimestampMixin):
    """Stock record for one size of a merch item."""
    __tablename__ = "merch_inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    merch_id: Mapped[int] = mapped_column(ForeignKey("merch.id", ondelete="CASCADE"), nullable=False)
    size: Mapped[str] = mapped_column(String(20), nullable=False, default=DEFAULT_VARIANT)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    merch: Mapped["Merch"] = relationship("Merch", back_populates="inventory")

    @property
    def available(self) -> int:
        return self.quantity - self.reserved

    __table_args__ = (
        UniqueConstraint("merch_id", "size", name="uq_merch_inventory_merch_size"),
        CheckConstraint("quantity >= 0", name="ck_merch_inventory_quantity_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_merch_inventory_reserved_non_negative"),
        CheckConstraint("reserved <= quantity", name="ck_merch_inventory_reserved_within_quantity"),
        Index("idx_merch_inventory_quantity", "quantity"),
    )
