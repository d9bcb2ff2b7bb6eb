from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import cappa
from rich.markup import escape

from unitsync.commands import BaseCommand
from unitsync.commands._base import fatal_errors


@cappa.command(help="Show rendered unit files")
@dataclass
class Show(BaseCommand):
    unit: Annotated[
        str | None,
        cappa.Arg(help="Only show this unit, no value means all"),
    ] = None

    def __call__(self):
        """Display the unit files apply would write, rendered from their templates."""
        self.setup()
        with fatal_errors():
            units = self.render()

        if self.unit:
            units = [rendered for rendered in units if rendered.unit == self.unit]
            if not units:
                self.output.error(f"No unit named {self.unit} in the configuration")
                raise cappa.Exit(code=1)

        if not units:
            self.output.warning("No units configured")
            return

        for rendered in units:
            self.output.info(
                f"\n[bold cyan]# {rendered.unit}[/bold cyan] "
                f"[dim](template {rendered.template}, sha256 {rendered.content_hash[:12]})[/dim]"
            )
            self.output.output(escape(rendered.content))
