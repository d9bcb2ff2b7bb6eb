from __future__ import annotations

import logging
from collections.abc import Callable

import msgspec

from unitsync.errors import ApplyError
from unitsync.reconcile import Action, Plan, Remove, describe
from unitsync.rendering import RenderedUnit
from unitsync.state import ManagedRecord, ManagedState
from unitsync.systemd import ServiceManager, UnitTraits

logger = logging.getLogger(__name__)


class ActionResult(msgspec.Struct, frozen=True):
    action: Action
    ok: bool
    reason: str | None = None

    @property
    def failed(self) -> bool:
        return not self.ok


class _StepFailed(Exception):
    def __init__(self, step: str, error: ApplyError):
        self.step = step
        self.error = error
        super().__init__(f"{step} failed: {error}")


def apply(
    plan: Plan,
    state: ManagedState,
    manager: ServiceManager,
    *,
    on_commit: Callable[[ManagedState], None] | None = None,
) -> tuple[ManagedState, list[ActionResult]]:
    """
    Execute a plan one action at a time, in order.

    A failing action is recorded and the rest of the plan still runs; the state
    entry of a failed unit keeps its previous value. ``on_commit`` receives the
    updated state after every successful action, so a run interrupted halfway
    leaves a state file that matches what was actually applied. The ``state``
    argument itself is never mutated.
    """
    state = dict(state)
    results: list[ActionResult] = []

    for action in plan:
        logger.info("Applying: %s", describe(action))
        try:
            if isinstance(action, Remove):
                _remove(action.unit, manager)
            else:
                _install(action.rendered, manager)
        except _StepFailed as e:
            logger.error("Failed to %s: %s", describe(action), e)
            results.append(ActionResult(action=action, ok=False, reason=str(e)))
            continue

        if isinstance(action, Remove):
            state.pop(action.unit, None)
        else:
            state[action.unit] = ManagedRecord(
                unit=action.unit,
                template=action.rendered.template,
                content_hash=action.rendered.content_hash,
            )
        if on_commit is not None:
            on_commit(state)
        results.append(ActionResult(action=action, ok=True))

    return state, results


def _install(rendered: RenderedUnit, manager: ServiceManager) -> None:
    traits = UnitTraits.from_content(rendered.unit, rendered.content)
    _step("write unit file", manager.write_unit_file, rendered.unit, rendered.content)
    _step("daemon-reload", manager.reload)
    if traits.installable:
        _step("enable", manager.enable, rendered.unit)
    if traits.should_restart:
        _step("restart", manager.restart, rendered.unit)
    else:
        logger.debug("Not starting %s", rendered.unit)


def _remove(unit: str, manager: ServiceManager) -> None:
    traits = UnitTraits.from_name(unit)
    if not traits.is_template:
        _step("stop", manager.stop, unit)
    _step("disable", manager.disable, unit)
    _step("remove unit file", manager.remove_unit_file, unit)
    _step("daemon-reload", manager.reload)


def _step(name: str, func: Callable[..., None], *args: str) -> None:
    try:
        func(*args)
    except ApplyError as e:
        raise _StepFailed(name, e) from e


def summarize(results: list[ActionResult]) -> tuple[int, int]:
    """Return (succeeded, failed) counts."""
    failed = sum(1 for result in results if result.failed)
    return len(results) - failed, failed
