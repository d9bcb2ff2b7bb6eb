from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Annotated

import cappa
import tomli_w

from unitsync.commands._base import MessageFormatter
from unitsync.config import DEFAULT_CONFIG_FILE
from unitsync.templates import STARTER_TEMPLATES


@cappa.command(help="Initialize a new unitsync.toml and templates directory")
@dataclass
class Init:
    """
    Examples:
      unitsync init                     Create unitsync.toml and templates/
      unitsync init --prefix myapp      Prefix the generated unit names
    """

    prefix: Annotated[
        str | None,
        cappa.Arg(long="--prefix", help="Prefix for the example unit names"),
    ] = None

    @cached_property
    def output(self) -> MessageFormatter:
        return MessageFormatter(cappa.Output())

    def __call__(self):
        config_file = Path(DEFAULT_CONFIG_FILE)
        templates_dir = Path("templates")

        if config_file.exists():
            self.output.warning(f"{config_file} already exists, skipping generation")
            return

        prefix = self.prefix or (
            Path().resolve().stem.replace("_", "-").replace(" ", "-").lower()
        )
        config_file.write_text(
            tomli_w.dumps(self._generate_toml(prefix), multiline_strings=True)
        )
        self.output.success(f"Generated {config_file}")

        templates_dir.mkdir(exist_ok=True)
        for name, content in STARTER_TEMPLATES.items():
            path = templates_dir / name
            if path.exists():
                self.output.warning(f"{path} already exists, leaving it untouched")
                continue
            path.write_text(content)
            self.output.info(f"Created {path}")

        self.output.info(
            "\nNext steps:\n"
            f"  1. Review the templates in {templates_dir}/\n"
            f"  2. Adjust the services and their variables in {config_file}\n"
            "  3. Preview: unitsync plan\n"
            "  4. Apply: sudo unitsync apply"
        )

    def _generate_toml(self, prefix: str) -> dict:
        return {
            "templates_dir": "templates",
            "unit_dir": "/etc/systemd/system",
            "state_file": "/var/lib/unitsync/state.json",
            "timeout": 30.0,
            "services": [
                {
                    "template": "app.service",
                    "unit": f"{prefix}-web.service",
                    "variables": {
                        "description": f"{prefix} web server",
                        "user": "www-data",
                        "workdir": f"/srv/{prefix}",
                        "exec_start": f"/srv/{prefix}/.venv/bin/gunicorn app:wsgi",
                    },
                },
                {
                    "template": "task.service",
                    "unit": f"{prefix}-cleanup.service",
                    "variables": {
                        "description": f"{prefix} cleanup",
                        "user": "www-data",
                        "exec_start": f"/srv/{prefix}/.venv/bin/python -m app.cleanup",
                    },
                },
                {
                    "template": "task.timer",
                    "unit": f"{prefix}-cleanup.timer",
                    "variables": {
                        "description": f"{prefix} cleanup",
                        "schedule": "daily",
                    },
                },
            ],
        }
