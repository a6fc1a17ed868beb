"""
Shared fixtures.

Stock tests run against a real SQLite file database through aiosqlite so the
conditional updates, CHECK constraints and lock contention are exercised for
real. A file (not :memory:) lets concurrent sessions use separate connections.
"""

import os
import tempfile

os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(tempfile.gettempdir(), "uproar-tests.db")
os.environ["DEBUG"] = "false"

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from uproar.models import Base, Game, GameInventory, Merch, MerchInventory
from uproar.services.inventory import InventoryService, ItemKind


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh schema per test."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'inventory.db'}",
        connect_args={"timeout": 10},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def inventory_service(session_factory):
    """Engine with a generous retry budget; SQLite reports contention as 'database is locked'."""
    return InventoryService(
        session_factory,
        max_wait_seconds=10.0,
        timeout_seconds=20.0,
        retry_attempts=10,
        retry_wait_min=0.01,
        retry_wait_max=0.2,
    )


@pytest.fixture
def seed(session_factory):
    """Persist model instances in one transaction."""
    async def _seed(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
    return _seed


@pytest.fixture
def seed_game(seed):
    async def _seed_game(game_id: int, quantity: int, reserved: int = 0, name: str = "Hack Your Deck"):
        await seed(
            Game(id=game_id, name=name),
            GameInventory(game_id=game_id, quantity=quantity, reserved=reserved),
        )
    return _seed_game


@pytest.fixture
def seed_merch(seed):
    async def _seed_merch(merch_id: int, sizes: dict, name: str = "Chaos Hoodie"):
        """sizes: {size: (quantity, reserved)}"""
        await seed(
            Merch(id=merch_id, name=name),
            *[
                MerchInventory(merch_id=merch_id, size=size, quantity=quantity, reserved=reserved)
                for size, (quantity, reserved) in sizes.items()
            ],
        )
    return _seed_merch


@pytest.fixture
def stock_of(session_factory):
    """Read (quantity, reserved) straight from the database."""
    async def _stock_of(kind: ItemKind, subject_id: int, size: str = "default"):
        async with session_factory() as session:
            if kind == ItemKind.GAME:
                query = select(GameInventory.quantity, GameInventory.reserved).where(
                    GameInventory.game_id == subject_id
                )
            else:
                query = select(MerchInventory.quantity, MerchInventory.reserved).where(
                    MerchInventory.merch_id == subject_id,
                    MerchInventory.size == size,
                )
            row = (await session.execute(query)).one()
            return row.quantity, row.reserved
    return _stock_of

