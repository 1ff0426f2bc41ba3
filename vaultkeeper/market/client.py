"""DexScreener API client for per-symbol market metrics."""

import asyncio
import math
from typing import Any

import aiohttp
from loguru import logger

from vaultkeeper.exceptions import ExternalFetchExhaustedError, InvalidFeedResponseError
from vaultkeeper.models import PAIR_ADDRESSES, CryptoSymbol, MarketMetrics


class DexScreenerClient:
    """Async HTTP client for the DexScreener pairs endpoint.

    Each symbol maps to one trading pair. Requests use:
    - A fixed per-attempt timeout
    - Bounded retries with a fixed pause between attempts
    - A structural check of the payload before any field is read

    Usage:
        async with DexScreenerClient() as client:
            metrics = await client.fetch_pair_metrics(CryptoSymbol.BTC)
    """

    # API Configuration
    BASE_URL = "https://api.dexscreener.com"
    PAIRS_ENDPOINT = "/latest/dex/pairs"

    # Retry Configuration
    MAX_ATTEMPTS: int = 3
    BACKOFF_SECONDS: float = 1.0

    # Timeouts
    DEFAULT_TIMEOUT: float = 5.0

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        backoff: float = BACKOFF_SECONDS,
        pair_addresses: dict[CryptoSymbol, str] | None = None,
    ) -> None:
        """Initialize the DexScreener client.

        Args:
            base_url: API root URL.
            timeout: Per-attempt request timeout in seconds.
            max_attempts: Total attempts per symbol before giving up.
            backoff: Pause between attempts in seconds.
            pair_addresses: Symbol to pair path mapping.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._pair_addresses = pair_addresses or PAIR_ADDRESSES
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "DexScreenerClient":
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    @property
    def symbols(self) -> list[CryptoSymbol]:
        """Symbols this client knows a price source for."""
        return list(self._pair_addresses)

    def pair_url(self, symbol: CryptoSymbol) -> str:
        """Build the request URL for a symbol's trading pair."""
        return f"{self._base_url}{self.PAIRS_ENDPOINT}/{self._pair_addresses[symbol]}"

    async def _request_with_retry(self, symbol: CryptoSymbol) -> Any:
        """GET the pair payload, retrying on any failure.

        Args:
            symbol: Symbol whose pair to fetch.

        Returns:
            Decoded JSON body.

        Raises:
            ExternalFetchExhaustedError: If every attempt failed.
            InvalidFeedResponseError: If the body is not JSON.
        """
        session = await self._ensure_session()
        url = self.pair_url(symbol)

        for attempt in range(1, self._max_attempts + 1):
            try:
                async with session.get(
                    url, headers={"Accept": "application/json"}
                ) as response:
                    if response.status == 200:
                        try:
                            return await response.json()
                        except ValueError as e:
                            raise InvalidFeedResponseError(
                                f"Non-JSON response for {symbol.value}: {e}"
                            ) from e

                    logger.warning(
                        "Attempt {}/{} for {} failed with status {}",
                        attempt,
                        self._max_attempts,
                        symbol.value,
                        response.status,
                    )

            except aiohttp.ClientError as e:
                logger.warning(
                    "Attempt {}/{} for {} failed: {}",
                    attempt,
                    self._max_attempts,
                    symbol.value,
                    str(e),
                )

            except asyncio.TimeoutError:
                logger.warning(
                    "Attempt {}/{} for {} timed out",
                    attempt,
                    self._max_attempts,
                    symbol.value,
                )

            if attempt < self._max_attempts:
                await asyncio.sleep(self._backoff)

        raise ExternalFetchExhaustedError(symbol.value, self._max_attempts)

    @staticmethod
    def _safe_float(value: Any) -> float:
        """Safely parse a number or decimal string, returning 0.0 on failure."""
        if value is None or isinstance(value, bool):
            return 0.0
        try:
            result = float(value)
        except (TypeError, ValueError):
            return 0.0
        return result if math.isfinite(result) else 0.0

    @staticmethod
    def _is_pair_response(data: Any) -> bool:
        """Structural guard for the DexScreener pairs payload."""
        if not isinstance(data, dict):
            return False
        has_pairs = "pairs" in data and (
            data["pairs"] is None or isinstance(data["pairs"], list)
        )
        has_pair = "pair" in data and (
            data["pair"] is None or isinstance(data["pair"], dict)
        )
        return has_pairs or has_pair

    def _parse_metrics(self, symbol: CryptoSymbol, data: Any) -> MarketMetrics:
        """Extract metrics from a pairs payload.

        Args:
            symbol: Symbol being parsed, for logging.
            data: Decoded JSON body.

        Returns:
            MarketMetrics from the first pair, or zero metrics if the
            payload holds no pair.

        Raises:
            InvalidFeedResponseError: If the payload fails the shape check.
        """
        if not self._is_pair_response(data):
            raise InvalidFeedResponseError(
                f"Invalid response format from DexScreener for {symbol.value}"
            )

        pairs = data.get("pairs") or []
        pair = pairs[0] if pairs else data.get("pair")

        if not isinstance(pair, dict):
            logger.warning("No data available for {}", symbol.value)
            return MarketMetrics.zero()

        def nested(key: str, field: str) -> Any:
            section = pair.get(key)
            return section.get(field) if isinstance(section, dict) else None

        return MarketMetrics(
            price=max(0.0, self._safe_float(pair.get("priceUsd"))),
            market_cap=self._safe_float(pair.get("marketCap")),
            volume_24h=self._safe_float(nested("volume", "h24")),
            price_change_24h=self._safe_float(nested("priceChange", "h24")),
            liquidity=self._safe_float(nested("liquidity", "usd")),
        )

    async def fetch_pair_metrics(self, symbol: CryptoSymbol) -> MarketMetrics:
        """Fetch current metrics for one symbol.

        Args:
            symbol: Symbol to fetch.

        Returns:
            Parsed MarketMetrics.

        Raises:
            ExternalFetchExhaustedError: If every attempt failed.
            InvalidFeedResponseError: If the payload is malformed.
        """
        data = await self._request_with_retry(symbol)
        metrics = self._parse_metrics(symbol, data)
        logger.debug("Fetched {} metrics: {}", symbol.value, metrics)
        return metrics
