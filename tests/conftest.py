from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes import FakeServiceManager

SERVICE_TEMPLATE = """[Unit]
Description=Worker {x}

[Service]
ExecStart=/usr/bin/worker --id {x}

[Install]
WantedBy=multi-user.target
"""


@pytest.fixture
def templates_dir(tmp_path) -> Path:
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "t").write_text(SERVICE_TEMPLATE)
    return directory


@pytest.fixture
def manager() -> FakeServiceManager:
    return FakeServiceManager()


@pytest.fixture
def project(tmp_path, templates_dir, monkeypatch):
    """A directory holding unitsync.toml, templates/ and a state file location."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    def write_config(services: list[dict]) -> Path:
        lines = [
            'templates_dir = "templates"',
            'unit_dir = "units"',
            'state_file = "state/state.json"',
            "",
        ]
        for service in services:
            lines.append("[[services]]")
            lines.append(f'template = "{service["template"]}"')
            lines.append(f'unit = "{service["unit"]}"')
            variables = ", ".join(
                f'{key} = "{value}"' for key, value in service["variables"].items()
            )
            lines.append(f"variables = {{ {variables} }}")
            lines.append("")
        config_file = tmp_path / "unitsync.toml"
        config_file.write_text("\n".join(lines))
        return config_file

    return write_config
