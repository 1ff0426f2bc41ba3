"""Market data layer for balance valuation.

Provides:
- DexScreenerClient: Async HTTP client for per-symbol pair metrics
- BalanceRefresher: Best-effort fetch and idempotent apply to ledgers
"""

from vaultkeeper.market.client import DexScreenerClient
from vaultkeeper.market.refresher import BalanceRefresher, MetricsSource

__all__ = ["BalanceRefresher", "DexScreenerClient", "MetricsSource"]
