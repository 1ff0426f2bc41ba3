"""Shared fixtures for vaultkeeper tests."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from tests.helpers import StubMetricsSource
from vaultkeeper.market.refresher import BalanceRefresher
from vaultkeeper.persistence import DatabaseManager
from vaultkeeper.wallet.manager import WalletLifecycleManager


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncIterator[DatabaseManager]:
    """Connected database in a temporary directory."""
    async with DatabaseManager(tmp_path / "test.db") as database:
        yield database


@pytest.fixture
def source() -> StubMetricsSource:
    """Market feed that prices both symbols."""
    return StubMetricsSource()


@pytest.fixture
def refresher(db: DatabaseManager, source: StubMetricsSource) -> BalanceRefresher:
    """Balance refresher over the test database and stub feed."""
    return BalanceRefresher(repository=db, source=source)


@pytest.fixture
def manager(db: DatabaseManager, refresher: BalanceRefresher) -> WalletLifecycleManager:
    """Lifecycle manager over the test database."""
    return WalletLifecycleManager(repository=db, refresher=refresher)
