from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

import cappa
from rich.prompt import Confirm
from rich.table import Table

from unitsync import audit, executor, reconcile
from unitsync.commands._base import (
    EXIT_PARTIAL_FAILURE,
    BaseCommand,
    fatal_errors,
)
from unitsync.commands.plan import compute_plan, print_plan

logger = logging.getLogger(__name__)


@cappa.command(help="Render units and reconcile the host with the configuration")
@dataclass
class Apply(BaseCommand):
    force: Annotated[
        bool,
        cappa.Arg(
            long="--force",
            help="Overwrite unit files that were changed outside of unitsync",
        ),
    ] = False
    yes: Annotated[
        bool,
        cappa.Arg(short="-y", long="--yes", help="Do not ask for confirmation"),
    ] = False
    dry_run: Annotated[
        bool,
        cappa.Arg(long="--dry-run", help="Print the plan and stop"),
    ] = False

    def __call__(self):
        self.setup()
        logger.info("Starting apply")
        with fatal_errors():
            desired = self.render()
            with self.store.lock():
                current = self.store.load()
                actions, drift = compute_plan(
                    desired, current, self.manager, force=self.force
                )

                if not actions:
                    self.output.success("No changes needed, all units are in sync")
                    return

                print_plan(self.output, actions, drift, self.manager)
                if self.dry_run:
                    self.output.info("\n[dim]Dry run - no changes applied[/dim]")
                    return

                if not self.yes:
                    try:
                        confirmed = Confirm.ask("\nDo you want to apply these changes?")
                    except KeyboardInterrupt:
                        raise cappa.Exit("Apply aborted", code=0)
                    if not confirmed:
                        self.output.info("Operation cancelled.")
                        return

                self.output.info("\nApplying changes...")
                new_state, results = executor.apply(
                    actions, current, self.manager, on_commit=self.store.save
                )
                self.store.save(new_state)

        succeeded, failed = executor.summarize(results)
        audit.log_operation(
            "apply",
            {
                "state_file": str(self.store.path),
                "succeeded": succeeded,
                "failed": failed,
                "actions": [
                    {
                        "action": reconcile.describe(result.action),
                        "ok": result.ok,
                        "reason": result.reason,
                    }
                    for result in results
                ],
            },
        )
        self._print_summary(results)

        if failed:
            self.output.error(
                f"{failed} of {len(results)} action(s) failed, "
                "state reflects only the successful ones"
            )
            raise cappa.Exit(code=EXIT_PARTIAL_FAILURE)
        self.output.success("All changes applied successfully!")

    def _print_summary(self, results: list[executor.ActionResult]):
        table = Table(title="", header_style="bold cyan")
        table.add_column("Action")
        table.add_column("Unit")
        table.add_column("Outcome")
        for result in results:
            kind = reconcile.describe(result.action).split(" ", 1)[0]
            if result.ok:
                outcome = "[bold green]ok[/bold green]"
            else:
                outcome = f"[bold red]failed[/bold red]: {result.reason}"
            table.add_row(kind, result.action.unit, outcome)
        self.output.output(table)
