"""Main entry point for the vaultkeeper price refresh worker."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from loguru import logger

from vaultkeeper.config import Settings, load_settings
from vaultkeeper.market import BalanceRefresher, DexScreenerClient
from vaultkeeper.persistence import DatabaseManager, WalletAuditLogger
from vaultkeeper.service import WalletService
from vaultkeeper.wallet import SeedCipher, WalletLifecycleManager


def setup_logging() -> None:
    """Configure loguru logging."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="INFO",
    )
    logger.add(
        "logs/vaultkeeper_{time}.log",
        rotation="100 MB",
        retention="7 days",
        level="DEBUG",
    )


def build_service(
    settings: Settings,
    database: DatabaseManager,
    client: DexScreenerClient,
) -> WalletService:
    """Wire the custody components together.

    Every component is constructed once here and passed explicitly to
    the ones that depend on it.
    """
    refresher = BalanceRefresher(repository=database, source=client)
    manager = WalletLifecycleManager(
        repository=database,
        refresher=refresher,
        cipher=SeedCipher(iterations=settings.cipher.pbkdf2_iterations),
        audit=WalletAuditLogger(data_dir=settings.storage.audit_dir),
    )
    return WalletService(manager=manager, refresher=refresher)


async def main(once: bool, interval: float | None, db_path: Path | None) -> None:
    """Run the periodic price refresh."""
    setup_logging()
    logger.info("Starting vaultkeeper price refresh")

    settings = load_settings()
    refresh_interval = interval or settings.refresh.interval_seconds

    client = DexScreenerClient(
        base_url=settings.feed.base_url,
        timeout=settings.feed.timeout_seconds,
        max_attempts=settings.feed.max_attempts,
        backoff=settings.feed.backoff_seconds,
    )

    async with DatabaseManager(db_path or settings.storage.database_path) as database:
        async with client:
            service = build_service(settings, database, client)

            if once:
                result = await service.refresh_all_prices()
                logger.info("Refresh finished: ok={} updated={}", result.ok, result.data)
                return

            # Setup graceful shutdown
            shutdown_event = asyncio.Event()

            def shutdown_handler(sig: signal.Signals) -> None:
                logger.info("Received signal {}, initiating shutdown...", sig.name)
                shutdown_event.set()

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, shutdown_handler, sig)

            logger.info("Refreshing prices every {:.0f}s", refresh_interval)
            while not shutdown_event.is_set():
                result = await service.refresh_all_prices()
                if not result.ok:
                    logger.error("Refresh failed: {}", result.error)

                try:
                    await asyncio.wait_for(shutdown_event.wait(), timeout=refresh_interval)
                except asyncio.TimeoutError:
                    pass

    logger.info("Shutdown complete")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Vaultkeeper - wallet balance price refresh worker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh all wallet prices once and exit",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between refreshes (default: REFRESH_INTERVAL_SECONDS or 300)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite database (default: STORAGE_DATABASE_PATH)",
    )
    return parser.parse_args()


if __name__ == "__main__":
    # Create logs directory if it doesn't exist
    Path("logs").mkdir(exist_ok=True)

    args = parse_args()
    asyncio.run(main(once=args.once, interval=args.interval, db_path=args.db))
