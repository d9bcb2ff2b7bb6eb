from __future__ import annotations

from dataclasses import dataclass

import cappa

from unitsync import __version__
from unitsync.commands.apply import Apply
from unitsync.commands.history import History
from unitsync.commands.init import Init
from unitsync.commands.plan import Plan
from unitsync.commands.show import Show


@cappa.command(
    name="unitsync",
    help="Declaratively manage systemd unit files rendered from templates",
)
@dataclass
class Unitsync:
    subcommands: cappa.Subcommands[Init | Show | Plan | Apply | History]


def main():
    cappa.invoke(Unitsync, version=__version__)


if __name__ == "__main__":
    main()
