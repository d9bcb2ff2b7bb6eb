"""Persisted record of the units unitsync has applied."""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import msgspec

from unitsync.errors import StateError, StateLockedError

logger = logging.getLogger(__name__)


class ManagedRecord(msgspec.Struct, frozen=True):
    unit: str
    template: str
    content_hash: str


# unit name -> record
ManagedState = dict[str, ManagedRecord]


class _StoredRecord(msgspec.Struct, frozen=True, forbid_unknown_fields=True):
    template: str
    content_hash: str


class StateStore:
    """
    Owns the state file: the exclusive lock, loading and atomic saving.

    The lock lives in a sibling ``<state>.lock`` file so that replacing the
    state file on save never drops it. It must be held for the whole
    load -> plan -> apply -> save lifecycle of a run; ``save`` refuses to write
    without it.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock_fh = None

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    @property
    def locked(self) -> bool:
        return self._lock_fh is not None

    @contextmanager
    def lock(self) -> Generator[StateStore, None, None]:
        if self.locked:
            raise StateError(f"State lock {self.lock_path} is already held")
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            lock_fh = self.lock_path.open("a+")
        except OSError as e:
            raise StateError(f"Could not open lock file {self.lock_path}: {e}") from e

        try:
            fcntl.flock(lock_fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            lock_fh.close()
            raise StateLockedError(
                f"Another unitsync run holds the lock on {self.lock_path}"
            ) from None
        except OSError as e:
            lock_fh.close()
            raise StateError(f"Could not lock {self.lock_path}: {e}") from e

        logger.debug("Acquired state lock %s", self.lock_path)
        self._lock_fh = lock_fh
        try:
            yield self
        finally:
            self._lock_fh = None
            fcntl.flock(lock_fh.fileno(), fcntl.LOCK_UN)
            lock_fh.close()
            logger.debug("Released state lock %s", self.lock_path)

    def load(self) -> ManagedState:
        if not self.path.exists():
            logger.info("No state file at %s, starting from empty state", self.path)
            return {}

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise StateError(f"Could not read state file {self.path}: {e}") from e

        try:
            stored = msgspec.json.decode(raw, type=dict[str, _StoredRecord])
        except msgspec.MsgspecError as e:
            raise StateError(f"Corrupt state file {self.path}: {e}") from e

        return {
            unit: ManagedRecord(
                unit=unit, template=record.template, content_hash=record.content_hash
            )
            for unit, record in stored.items()
        }

    def save(self, state: ManagedState) -> None:
        if not self.locked:
            raise StateError("Refusing to write state without holding the state lock")

        stored = {
            unit: _StoredRecord(
                template=state[unit].template, content_hash=state[unit].content_hash
            )
            for unit in sorted(state)
        }
        data = msgspec.json.format(msgspec.json.encode(stored), indent=2) + b"\n"
        try:
            atomic_write(self.path, data)
        except OSError as e:
            raise StateError(f"Could not write state file {self.path}: {e}") from e
        logger.debug("Saved state with %d unit(s) to %s", len(state), self.path)


def atomic_write(path: Path, data: bytes, mode: int | None = None) -> None:
    """Write to a temporary file next to ``path`` then rename it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            tmp_path.chmod(mode)
        os.replace(tmp_path, path)
        try:
            dir_fd = os.open(str(path.parent), os.O_DIRECTORY)
        except OSError:
            dir_fd = None
        if dir_fd is not None:
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
    finally:
        tmp_path.unlink(missing_ok=True)
