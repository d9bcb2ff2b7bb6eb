from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Annotated

import cappa
from rich.console import Console
from rich.markup import escape

from unitsync.audit import AuditRecord, read_logs


@cappa.command(help="View the local audit log of apply runs")
@dataclass
class History:
    limit: Annotated[
        int,
        cappa.Arg(
            short="-n",
            long="--limit",
            help="Number of audit entries to show",
        ),
    ] = 20

    def __call__(self):
        records = read_logs(limit=self.limit)
        console = Console()

        if not records:
            console.print("[dim]No audit logs found[/dim]")
            return

        grouped: dict[str, list[AuditRecord]] = defaultdict(list)
        for record in records:
            state_file = str(record.details.get("state_file", "unknown"))
            grouped[state_file].append(record)

        first = True
        for state_file, state_records in grouped.items():
            if not first:
                console.print()
            console.print(f"[green]{escape(state_file)}[/green]:")
            first = False

            for record in state_records:
                timestamp = record.timestamp.strftime("%Y-%m-%d %H:%M")
                user, host = escape(record.user), escape(record.host)
                details = record.details
                succeeded = details.get("succeeded", 0)
                failed = details.get("failed", 0)

                if failed:
                    message = f"Applied [blue]{succeeded}[/blue] action(s), [red]{failed} failed[/red]"
                else:
                    message = f"Applied [blue]{succeeded}[/blue] action(s)"

                console.print(
                    f"  [{escape(timestamp)}] [dim]\\[[/dim][yellow]{user}@{host}[/yellow][dim]][/dim] {message}",
                    highlight=False,
                )
                for action in details.get("actions", []):
                    if not action.get("ok", True):
                        console.print(
                            f"      [red]{escape(action.get('action', '?'))}: "
                            f"{escape(action.get('reason') or '')}[/red]",
                            highlight=False,
                        )
