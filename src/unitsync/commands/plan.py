from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass

import cappa
from rich.markup import escape

from unitsync import reconcile
from unitsync.commands._base import BaseCommand, MessageFormatter, fatal_errors
from unitsync.errors import DriftError
from unitsync.reconcile import Create, Drift, DriftKind, Remove, Update
from unitsync.rendering import RenderedUnit
from unitsync.state import ManagedState
from unitsync.systemd import ServiceManager

logger = logging.getLogger(__name__)

DRIFT_MESSAGES = {
    DriftKind.MODIFIED: "has been modified outside of unitsync",
    DriftKind.UNMANAGED: "already exists and is not managed by unitsync",
    DriftKind.MISSING: "is missing on disk and will be rewritten",
}


def compute_plan(
    desired: list[RenderedUnit],
    current: ManagedState,
    manager: ServiceManager,
    *,
    force: bool,
) -> tuple[reconcile.Plan, list[Drift]]:
    """Plan against the recorded state, refusing to clobber drifted files unless forced."""
    drift = reconcile.find_drift(desired, current, manager.read_unit_file)
    blocking = [d for d in drift if d.blocking]
    if blocking and not force:
        raise DriftError(blocking)

    desired_units = {rendered.unit for rendered in desired}
    resync = {
        d.unit
        for d in drift
        if d.unit in desired_units and (force or d.kind == DriftKind.MISSING)
    }
    return reconcile.plan(desired, current, resync=resync), drift


def print_plan(
    output: MessageFormatter,
    actions: reconcile.Plan,
    drift: list[Drift],
    manager: ServiceManager,
) -> None:
    drifted = {d.unit: d for d in drift}
    output.info("[bold]Planned changes:[/bold]")
    for action in actions:
        old_content = manager.read_unit_file(action.unit) or ""
        new_content = "" if isinstance(action, Remove) else action.rendered.content

        output.info(f"\n[bold cyan]# {reconcile.describe(action)}[/bold cyan]")
        if action.unit in drifted:
            message = DRIFT_MESSAGES[drifted[action.unit].kind]
            output.warning(f"WARNING: {action.unit} {message}!")
        diff = unified_diff(old_content, new_content, action.unit)
        if diff:
            output.output(diff)

    output.info("\nThe following actions will be performed:")
    for action in actions:
        if action.unit in drifted and drifted[action.unit].blocking:
            output.output(f" ! Override manual changes to: {action.unit}")
        if isinstance(action, Create):
            output.output(f" + Create unit file: {action.unit}")
        elif isinstance(action, Update):
            output.output(f" ~ Update unit file: {action.unit}")
        else:
            output.output(f" - Stop, disable and remove: {action.unit}")


def unified_diff(old: str, new: str, unit: str) -> str:
    lines = []
    for line in difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"a/{unit}",
        tofile=f"b/{unit}",
    ):
        text = escape(line.rstrip("\n"))
        if line.startswith("+") and not line.startswith("+++"):
            lines.append(f"[green]{text}[/green]")
        elif line.startswith("-") and not line.startswith("---"):
            lines.append(f"[red]{text}[/red]")
        else:
            lines.append(text)
    return "\n".join(lines)


@cappa.command(help="Show what apply would change, without changing anything")
@dataclass
class Plan(BaseCommand):
    def __call__(self):
        self.setup()
        with fatal_errors():
            desired = self.render()
            with self.store.lock():
                current = self.store.load()
                # drift is reported, never fatal, when only looking
                actions, drift = compute_plan(
                    desired, current, self.manager, force=True
                )

            if not actions:
                self.output.success("No changes needed, all units are in sync")
                return

            print_plan(self.output, actions, drift, self.manager)

        blocking = [d for d in drift if d.blocking]
        if blocking:
            self.output.warning(
                f"\n{len(blocking)} unit(s) changed outside of unitsync, "
                "apply needs --force to overwrite them"
            )
