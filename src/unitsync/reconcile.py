"""
Compute the ordered set of actions that brings managed units in line with the
desired configuration.

Nothing in this module touches the host. ``plan`` is a pure function of the
rendered units and the recorded state; ``find_drift`` only reads unit files
through the callable it is given.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Collection, Sequence

import msgspec

from unitsync.errors import ConfigError
from unitsync.rendering import RenderedUnit, content_hash
from unitsync.state import ManagedState

logger = logging.getLogger(__name__)


class Create(msgspec.Struct, frozen=True, tag="create", tag_field="action"):
    rendered: RenderedUnit

    @property
    def unit(self) -> str:
        return self.rendered.unit


class Update(msgspec.Struct, frozen=True, tag="update", tag_field="action"):
    rendered: RenderedUnit

    @property
    def unit(self) -> str:
        return self.rendered.unit


class Remove(msgspec.Struct, frozen=True, tag="remove", tag_field="action"):
    unit: str


Action = Create | Update | Remove
Plan = list[Action]


def plan(
    desired: Sequence[RenderedUnit],
    current: ManagedState,
    *,
    resync: Collection[str] = (),
) -> Plan:
    """
    Diff the desired units against the recorded state.

    Removals come first so a unit's name and file are released before anything
    new claims them, then creates and updates. Each group is sorted by unit
    name. Units named in ``resync`` get an Update even when their recorded hash
    already matches (their file on disk is known to be out of sync).
    """
    by_name: dict[str, RenderedUnit] = {}
    for rendered in desired:
        if rendered.unit in by_name:
            raise ConfigError(f"Duplicate unit name in desired set: {rendered.unit}")
        by_name[rendered.unit] = rendered

    removals: list[Action] = [
        Remove(unit=unit) for unit in sorted(current) if unit not in by_name
    ]

    changes: list[Action] = []
    for unit in sorted(by_name):
        rendered = by_name[unit]
        record = current.get(unit)
        if record is None:
            changes.append(Create(rendered=rendered))
        elif record.content_hash != rendered.content_hash or unit in resync:
            changes.append(Update(rendered=rendered))

    logger.debug(
        "Planned %d removal(s) and %d create/update(s)", len(removals), len(changes)
    )
    return removals + changes


def describe(action: Action) -> str:
    if isinstance(action, Create):
        return f"create {action.unit}"
    if isinstance(action, Update):
        return f"update {action.unit}"
    return f"remove {action.unit}"


class DriftKind(str, enum.Enum):
    MODIFIED = "modified"
    UNMANAGED = "unmanaged"
    MISSING = "missing"


class Drift(msgspec.Struct, frozen=True):
    unit: str
    kind: DriftKind

    @property
    def blocking(self) -> bool:
        """Whether applying over this drift would silently discard someone's work."""
        return self.kind != DriftKind.MISSING


def find_drift(
    desired: Sequence[RenderedUnit],
    current: ManagedState,
    read_unit: Callable[[str], str | None],
) -> list[Drift]:
    """
    Compare unit files on disk with what unitsync last wrote.

    - a managed unit whose file no longer hashes to the recorded value was
      edited by hand (``modified``)
    - a managed unit whose file is gone is ``missing``
    - a unit about to be created whose file already exists with different
      content belongs to someone else (``unmanaged``)

    A file that already holds the newly rendered content is never drift, which
    is what an update interrupted after its write leaves behind.
    """
    drift: list[Drift] = []
    desired_by_name = {rendered.unit: rendered for rendered in desired}

    for unit in sorted(set(current) | set(desired_by_name)):
        on_disk = read_unit(unit)
        record = current.get(unit)
        if on_disk is None:
            if record is not None:
                drift.append(Drift(unit=unit, kind=DriftKind.MISSING))
            continue

        disk_hash = content_hash(on_disk)
        rendered = desired_by_name.get(unit)
        if rendered is not None and disk_hash == rendered.content_hash:
            continue
        if record is None:
            drift.append(Drift(unit=unit, kind=DriftKind.UNMANAGED))
        elif disk_hash != record.content_hash:
            drift.append(Drift(unit=unit, kind=DriftKind.MODIFIED))

    for item in drift:
        logger.info("Drift detected on %s: %s", item.unit, item.kind.value)
    return drift
