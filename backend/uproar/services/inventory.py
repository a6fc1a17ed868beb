# uproar/services/inventory.py
"""
Inventory Reservation Service
=============================
Prevents overselling when many orders race for the last units of a game
or a merch size.

Every mutation is a single conditional UPDATE evaluated by the database,
so correctness holds across any number of server processes:

    reserve: reserved += n  WHERE quantity - reserved >= n   (0 rows -> out of stock)
    release: reserved  = max(reserved - n, 0)
    commit:  quantity -= n, reserved = max(reserved - n, 0)

Reservations run at SERIALIZABLE isolation, one transaction per order,
all-or-nothing across the order's line items.

Lifecycle of one line item's units:
    Unreserved -> Reserved -> Committed
    Unreserved -> Reserved -> Released (same as Unreserved)
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field
from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uproar.models import Game, GameInventory, Merch, MerchInventory, DEFAULT_VARIANT
from uproar.services.system_logger import SystemLogger
from uproar.services.transactions import (
    SERIALIZABLE,
    TransactionConflictError,
    is_unique_violation,
    retrying_conflicts,
    run_in_transaction,
)

logger = logging.getLogger(__name__)
system_logger = SystemLogger("inventory")


class ItemKind(str, Enum):
    """The two stocked item families."""
    GAME = "game"
    MERCH = "merch"


class InventoryItem(BaseModel):
    """One order line item as seen by the inventory engine."""
    kind: ItemKind
    subject_id: int
    quantity: int = Field(..., gt=0)
    variant: Optional[str] = None  # apparel size for merch


class LowStockItem(BaseModel):
    """Row of the low stock report."""
    kind: ItemKind
    subject_id: int
    variant: Optional[str] = None
    name: str
    stock: int
    reserved_stock: int


class InventoryError(Exception):
    """Semantic inventory failure with a stable machine-readable code."""

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)


class InsufficientStockError(InventoryError):
    """Requested quantity exceeds what is currently available."""

    def __init__(
        self,
        message: str,
        kind: ItemKind,
        subject_id: int,
        requested: int,
        available: int,
        variant: Optional[str] = None,
    ):
        self.kind = kind
        self.subject_id = subject_id
        self.variant = variant
        self.requested = requested
        self.available = available
        super().__init__(message, "INSUFFICIENT_STOCK")


class InvalidInventoryRequestError(InventoryError):
    """The request itself is malformed (e.g. no line items)."""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_REQUEST")


class StockInvariantError(InventoryError):
    """The store refused a write that would break 0 <= reserved <= quantity."""

    def __init__(self, message: str):
        super().__init__(message, "STOCK_INVARIANT_VIOLATION")


def stock_key(item: InventoryItem) -> str:
    """Deterministic composite key used by get_stock_levels."""
    if item.kind == ItemKind.GAME:
        return f"game_{item.subject_id}"
    return f"merch_{item.subject_id}_{item.variant or DEFAULT_VARIANT}"


class InventoryService:
    """
    Stock reservation engine for games and size-variant merch.

    Usage:
        service = InventoryService(async_session_maker)
        await service.reserve_inventory(items, order_id="ord_123")
        ...
        await service.commit_inventory(items, order_id="ord_123")   # payment captured
        # or
        await service.release_inventory(items, order_id="ord_123")  # cancelled
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_wait_seconds: float = 5.0,
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        retry_wait_min: float = 0.05,
        retry_wait_max: float = 1.0,
    ):
        self.session_factory = session_factory
        self.max_wait_seconds = max_wait_seconds
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max

    @classmethod
    def from_settings(cls, session_factory: async_sessionmaker, settings) -> "InventoryService":
        return cls(
            session_factory,
            max_wait_seconds=settings.INVENTORY_TX_MAX_WAIT_SECONDS,
            timeout_seconds=settings.INVENTORY_TX_TIMEOUT_SECONDS,
            retry_attempts=settings.INVENTORY_RETRY_ATTEMPTS,
            retry_wait_min=settings.INVENTORY_RETRY_WAIT_MIN_SECONDS,
            retry_wait_max=settings.INVENTORY_RETRY_WAIT_MAX_SECONDS,
        )

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def reserve_inventory(self, items: Sequence[InventoryItem], order_id: str) -> None:
        """
        Reserve every line item of an order, or none of them.

        Raises:
            InsufficientStockError: an item is out of stock; nothing stays reserved
            InvalidInventoryRequestError: `items` is empty
            TransactionConflictError: conflicts persisted past the retry budget
            TransactionTimeoutError: the transaction was rolled back on timeout
        """
        self._require_items(items)

        async def _work(session: AsyncSession) -> None:
            for item in items:
                await self._reserve_item(session, item, order_id)

        await self._run(_work, isolation_level=SERIALIZABLE)

        # Audit only what actually committed.
        for item in items:
            system_logger.info(
                f"{item.kind.value.capitalize()} inventory reserved",
                self._audit_context(item, order_id, "inventory_reserved"),
            )

    async def release_inventory(self, items: Sequence[InventoryItem], order_id: str) -> None:
        """Undo a reservation. `reserved` never drops below zero."""
        self._require_items(items)

        async def _work(session: AsyncSession) -> None:
            for item in items:
                await self._release_item(session, item, order_id)

        # Engine default isolation: release only relaxes the availability guard.
        await self._run(_work, isolation_level=None)

        for item in items:
            system_logger.info(
                f"{item.kind.value.capitalize()} inventory released",
                self._audit_context(item, order_id, "inventory_released"),
            )

    async def commit_inventory(self, items: Sequence[InventoryItem], order_id: str) -> None:
        """
        Convert a reservation into a sale: quantity and reserved drop together.

        Availability is not re-validated; the prior reservation already did.
        """
        self._require_items(items)

        async def _work(session: AsyncSession) -> None:
            for item in items:
                await self._commit_item(session, item, order_id)

        await self._run(_work, isolation_level=SERIALIZABLE)

        system_logger.info("Inventory committed", {
            "order_id": order_id,
            "item_count": len(items),
            "action": "inventory_committed",
        })

    async def set_stock(
        self,
        kind: ItemKind,
        subject_id: int,
        quantity: int,
        variant: Optional[str] = None,
    ) -> None:
        """
        Stock a game or merch size: create the record (reserved = 0) or set its quantity.

        Raises:
            StockInvariantError: quantity is negative or below the units already reserved
        """
        if quantity < 0:
            raise StockInvariantError(f"Stock quantity cannot be negative: {quantity}")

        async def _work(session: AsyncSession) -> None:
            model, match = self._record_clause(kind, subject_id, variant)
            existing = await self._find_record_id(session, model, match)

            if existing is None:
                if kind == ItemKind.GAME:
                    session.add(GameInventory(game_id=subject_id, quantity=quantity, reserved=0))
                else:
                    session.add(MerchInventory(
                        merch_id=subject_id,
                        size=variant or DEFAULT_VARIANT,
                        quantity=quantity,
                        reserved=0,
                    ))
                try:
                    await session.flush()
                except IntegrityError as e:
                    if not is_unique_violation(e):
                        raise
                    # Created concurrently; the retry takes the update path
                    raise TransactionConflictError(
                        f"Stock record for {kind.value} {subject_id} was created concurrently"
                    ) from e
                return

            result = await session.execute(
                update(model)
                .where(*match, model.reserved <= quantity)
                .values(quantity=quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise StockInvariantError(
                    f"Cannot set stock for {kind.value} {subject_id} to {quantity}: "
                    f"more units are currently reserved"
                )

        await self._run(_work, isolation_level=SERIALIZABLE)

        system_logger.info("Inventory stocked", {
            f"{kind.value}_id": subject_id,
            "size": variant,
            "quantity": quantity,
            "action": "inventory_stocked",
        })

    # =========================================================================
    # READ OPERATIONS (advisory: stale as soon as they return)
    # =========================================================================

    async def check_availability(self, items: Sequence[InventoryItem]) -> bool:
        """True only if every item is currently available. Fails closed, never raises."""
        try:
            async with self.session_factory() as session:
                for item in items:
                    record = await self._load_record(session, item.kind, item.subject_id, item.variant)
                    if record is None:
                        return False
                    quantity, reserved = record
                    if quantity - reserved < item.quantity:
                        return False
            return True
        except Exception as e:
            system_logger.error("Error checking inventory availability", e, {"item_count": len(items)})
            return False

    async def get_stock_levels(self, items: Sequence[InventoryItem]) -> Dict[str, int]:
        """Available units per item key; missing records count as 0, errors yield {}."""
        levels: Dict[str, int] = {}
        try:
            async with self.session_factory() as session:
                for item in items:
                    record = await self._load_record(session, item.kind, item.subject_id, item.variant)
                    quantity, reserved = record if record is not None else (0, 0)
                    levels[stock_key(item)] = quantity - reserved
        except Exception as e:
            system_logger.error("Error reading stock levels", e, {"item_count": len(items)})
            return {}
        return levels

    async def get_low_stock_items(self, threshold: int = 10) -> List[LowStockItem]:
        """Every stock record with quantity <= threshold, games first."""
        async with self.session_factory() as session:
            games = await session.execute(
                select(Game.id, Game.name, GameInventory.quantity, GameInventory.reserved)
                .join(GameInventory, GameInventory.game_id == Game.id)
                .where(GameInventory.quantity <= threshold)
                .order_by(GameInventory.quantity, Game.id)
            )
            merch = await session.execute(
                select(Merch.id, Merch.name, MerchInventory.size, MerchInventory.quantity, MerchInventory.reserved)
                .join(MerchInventory, MerchInventory.merch_id == Merch.id)
                .where(MerchInventory.quantity <= threshold)
                .order_by(MerchInventory.quantity, Merch.id, MerchInventory.size)
            )

            return [
                LowStockItem(
                    kind=ItemKind.GAME,
                    subject_id=row.id,
                    name=row.name,
                    stock=row.quantity,
                    reserved_stock=row.reserved,
                )
                for row in games
            ] + [
                LowStockItem(
                    kind=ItemKind.MERCH,
                    subject_id=row.id,
                    variant=row.size,
                    name=row.name,
                    stock=row.quantity,
                    reserved_stock=row.reserved,
                )
                for row in merch
            ]

    # =========================================================================
    # PER-ITEM STATEMENTS
    # =========================================================================

    async def _reserve_item(self, session: AsyncSession, item: InventoryItem, order_id: str) -> None:
        model, match = self._record_clause(item.kind, item.subject_id, item.variant)
        result = await session.execute(
            update(model)
            .where(*match, (model.quantity - model.reserved) >= item.quantity)
            .values(reserved=model.reserved + item.quantity)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            name, available = await self._describe(session, item)
            size = f" (Size: {item.variant})" if item.kind == ItemKind.MERCH and item.variant else ""
            logger.warning(
                f"Reservation refused for order {order_id}: {item.kind.value} {item.subject_id}"
                f" requested {item.quantity}, available {available}"
            )
            raise InsufficientStockError(
                f"Insufficient stock for {item.kind.value}: {name}{size}. Available: {available}",
                kind=item.kind,
                subject_id=item.subject_id,
                variant=item.variant,
                requested=item.quantity,
                available=available,
            )

    async def _release_item(self, session: AsyncSession, item: InventoryItem, order_id: str) -> None:
        model, match = self._record_clause(item.kind, item.subject_id, item.variant)

        exact = await session.execute(
            update(model)
            .where(*match, model.reserved >= item.quantity)
            .values(reserved=model.reserved - item.quantity)
            .execution_options(synchronize_session=False)
        )
        if exact.rowcount:
            return

        clamped = await session.execute(
            update(model)
            .where(*match)
            .values(reserved=self._floored(model.reserved, item.quantity))
            .execution_options(synchronize_session=False)
        )
        if clamped.rowcount:
            system_logger.warning(
                "Release exceeded reserved units; clamped at zero",
                self._audit_context(item, order_id, "inventory_over_release"),
            )

    async def _commit_item(self, session: AsyncSession, item: InventoryItem, order_id: str) -> None:
        model, match = self._record_clause(item.kind, item.subject_id, item.variant)

        exact = await session.execute(
            update(model)
            .where(*match, model.reserved >= item.quantity)
            .values(
                quantity=model.quantity - item.quantity,
                reserved=model.reserved - item.quantity,
            )
            .execution_options(synchronize_session=False)
        )
        if exact.rowcount:
            return

        clamped = await session.execute(
            update(model)
            .where(*match)
            .values(
                quantity=model.quantity - item.quantity,
                reserved=self._floored(model.reserved, item.quantity),
            )
            .execution_options(synchronize_session=False)
        )
        if clamped.rowcount:
            system_logger.warning(
                "Commit exceeded reserved units; reserved clamped at zero",
                self._audit_context(item, order_id, "inventory_over_release"),
            )
        else:
            system_logger.warning(
                "Commit found no stock record",
                self._audit_context(item, order_id, "inventory_commit_missing_record"),
            )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _run(self, work, isolation_level: Optional[str]) -> None:
        """Run one unit of work, retrying only transaction conflicts."""
        async for attempt in retrying_conflicts(
            self.retry_attempts, self.retry_wait_min, self.retry_wait_max
        ):
            with attempt:
                await self._run_once(work, isolation_level)

    async def _run_once(self, work, isolation_level: Optional[str]) -> None:
        try:
            await run_in_transaction(
                self.session_factory,
                work,
                isolation_level=isolation_level,
                max_wait=self.max_wait_seconds,
                timeout=self.timeout_seconds,
            )
        except IntegrityError as e:
            raise StockInvariantError(f"Stock update rejected by the database: {e.orig}") from e

    @staticmethod
    def _require_items(items: Sequence[InventoryItem]) -> None:
        if not items:
            raise InvalidInventoryRequestError("At least one inventory item is required")

    @staticmethod
    def _floored(column, amount: int):
        """SQL expression for max(column - amount, 0), portable across dialects."""
        return case((column - amount > 0, column - amount), else_=0)

    @staticmethod
    def _record_clause(kind: ItemKind, subject_id: int, variant: Optional[str]):
        """Model and WHERE criteria identifying one stock record."""
        if kind == ItemKind.GAME:
            return GameInventory, (GameInventory.game_id == subject_id,)
        return MerchInventory, (
            MerchInventory.merch_id == subject_id,
            MerchInventory.size == (variant or DEFAULT_VARIANT),
        )

    @staticmethod
    async def _find_record_id(session: AsyncSession, model, match) -> Optional[int]:
        return (await session.execute(select(model.id).where(*match))).scalar_one_or_none()

    async def _load_record(
        self,
        session: AsyncSession,
        kind: ItemKind,
        subject_id: int,
        variant: Optional[str],
    ) -> Optional[tuple]:
        model, match = self._record_clause(kind, subject_id, variant)
        row = (await session.execute(
            select(model.quantity, model.reserved).where(*match)
        )).one_or_none()
        return (row.quantity, row.reserved) if row is not None else None

    async def _describe(self, session: AsyncSession, item: InventoryItem) -> tuple:
        """Display name and current availability, for error messages."""
        subject = Game if item.kind == ItemKind.GAME else Merch
        name = (await session.execute(
            select(subject.name).where(subject.id == item.subject_id)
        )).scalar_one_or_none()
        record = await self._load_record(session, item.kind, item.subject_id, item.variant)
        available = record[0] - record[1] if record is not None else 0
        return name or "unknown", available

    @staticmethod
    def _audit_context(item: InventoryItem, order_id: str, action: str) -> dict:
        context = {
            f"{item.kind.value}_id": item.subject_id,
            "quantity": item.quantity,
            "order_id": order_id,
            "action": action,
        }
        if item.kind == ItemKind.MERCH:
            context["size"] = item.variant
        return context
