from __future__ import annotations

import getpass
import logging
import socket
from datetime import datetime
from pathlib import Path
from typing import Any

import msgspec

logger = logging.getLogger(__name__)


class AuditRecord(msgspec.Struct):
    """One line of the audit log."""

    timestamp: datetime
    operation: str
    user: str = "unknown"
    host: str = "unknown"
    details: dict[str, Any] = {}


def audit_log_path() -> Path:
    return Path.home() / ".unitsync" / "audit.log"


def log_operation(operation: str, details: dict[str, Any] | None = None):
    """
    Append a record of a run to the local audit log.

    Args:
        operation: What was done (apply, ...)
        details: Operation-specific details (action outcomes, state file, ...)
    """
    log_file = audit_log_path()
    record = AuditRecord(
        timestamp=datetime.now(),
        operation=operation,
        user=getpass.getuser(),
        host=socket.gethostname(),
        details=details or {},
    )

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with log_file.open("ab") as f:
            f.write(msgspec.json.encode(record) + b"\n")
    except OSError as e:
        # the run already happened, losing its audit line must not fail it
        logger.warning("Could not write audit log %s: %s", log_file, e)


def read_logs(limit: int | None = None) -> list[AuditRecord]:
    """Return audit records, most recent first. Lines that do not decode are skipped."""
    log_file = audit_log_path()
    if not log_file.exists():
        return []

    decoder = msgspec.json.Decoder(AuditRecord)
    records: list[AuditRecord] = []
    for number, line in enumerate(log_file.read_bytes().splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(decoder.decode(line))
        except msgspec.MsgspecError as e:
            logger.debug("Skipping audit line %d: %s", number, e)

    records.reverse()
    return records[:limit] if limit else records
