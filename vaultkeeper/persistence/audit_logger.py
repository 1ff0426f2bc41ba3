"""Wallet lifecycle audit trail in JSONL files."""

import json
from datetime import date
from enum import Enum
from pathlib import Path
from time import time

import aiofiles
from loguru import logger

from vaultkeeper.models import Wallet


class AuditEvent(str, Enum):
    """Lifecycle transitions recorded in the audit trail."""

    CREATED = "CREATED"
    REUSED = "REUSED"
    IMPORTED = "IMPORTED"
    LOGGED_OUT = "LOGGED_OUT"
    VERIFIED = "VERIFIED"


class WalletAuditLogger:
    """Append-only JSONL logger for wallet lifecycle events.

    Uses daily file rotation. Records hold the public wallet summary and
    never any seed, IV, salt or PIN material.

    Example output (wallet_audit_2026-10-18.jsonl):
        {"logged_at": 1792368000.0, "event": "CREATED", "owner_id": "u1", "wallet": {...}}
    """

    def __init__(self, data_dir: Path = Path("data/audit")) -> None:
        """Initialize the audit logger.

        Args:
            data_dir: Directory for storing audit logs. Created if not exists.
        """
        self._data_dir = data_dir
        self._ensure_data_dir()

    def _ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create audit directory {}: {}", self._data_dir, e)

    def _get_daily_filepath(self) -> Path:
        """Get the filepath for today's audit log."""
        return self._data_dir / f"wallet_audit_{date.today().isoformat()}.jsonl"

    async def record(self, event: AuditEvent, wallet: Wallet) -> None:
        """Append one lifecycle event.

        Args:
            event: The transition that happened.
            wallet: Wallet state after the transition.

        Note:
            IO errors are logged but do not raise exceptions.
            Wallet operations must not fail because of the audit trail.
        """
        filepath = self._get_daily_filepath()

        record = {
            "logged_at": time(),
            "event": event.value,
            "owner_id": wallet.owner_id,
            "wallet": wallet.to_summary().model_dump(mode="json"),
        }

        try:
            async with aiofiles.open(filepath, "a") as f:
                await f.write(json.dumps(record) + "\n")
        except OSError as e:
            logger.error("Failed to write audit record to {}: {}", filepath, e)
