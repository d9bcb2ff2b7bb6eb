"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from unitsync.config import Config, ServiceSpec
from unitsync.errors import ConfigError


def write(tmp_path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content)
    return path


def test_config_loads_toml(tmp_path):
    path = write(
        tmp_path,
        "unitsync.toml",
        """
templates_dir = "tmpl"

[[services]]
template = "t"
unit = "a.service"
variables = { x = "1" }

[[services]]
template = "t"
unit = "b.timer"
""",
    )

    config = Config.read(path)

    assert config.services == [
        ServiceSpec(template="t", unit="a.service", variables={"x": "1"}),
        ServiceSpec(template="t", unit="b.timer"),
    ]
    assert config.templates_path == tmp_path / "tmpl"
    assert config.unit_path == Path("/etc/systemd/system")
    assert config.timeout == 30.0


def test_config_loads_yaml(tmp_path):
    path = write(
        tmp_path,
        "units.yaml",
        """
state_file: state.json
services:
  - template: t
    unit: a.service
    variables:
      x: "1"
""",
    )

    config = Config.read(path)

    assert config.services[0].variables == {"x": "1"}
    assert config.state_path == tmp_path / "state.json"


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="No configuration file"):
        Config.read(tmp_path / "unitsync.toml")


def test_duplicate_unit_names_rejected(tmp_path):
    path = write(
        tmp_path,
        "unitsync.toml",
        """
[[services]]
template = "t"
unit = "a.service"

[[services]]
template = "other"
unit = "a.service"
""",
    )

    with pytest.raises(ConfigError, match="Duplicate unit names.*a.service"):
        Config.read(path)


@pytest.mark.parametrize(
    "service",
    [
        'template = "t"\nunit = "../evil.service"',
        'template = "t"\nunit = "noext"',
        'template = "t"\nunit = ".service"',
        'template = ""\nunit = "a.service"',
        'unit = "a.service"',
        'template = "t"\nunit = "a.service"\nvariables = { port = 8000 }',
        'template = "t"\nunit = "a.service"\nunknown = 1',
    ],
)
def test_invalid_service_entries(tmp_path, service):
    path = write(tmp_path, "unitsync.toml", f"[[services]]\n{service}\n")

    with pytest.raises(ConfigError):
        Config.read(path)


def test_invalid_toml(tmp_path):
    path = write(tmp_path, "unitsync.toml", "services = [")

    with pytest.raises(ConfigError):
        Config.read(path)


def test_timeout_must_be_positive(tmp_path):
    path = write(tmp_path, "unitsync.toml", "timeout = 0\n")

    with pytest.raises(ConfigError, match="timeout"):
        Config.read(path)


def test_absolute_paths_are_kept(tmp_path):
    path = write(tmp_path, "unitsync.toml", 'unit_dir = "/run/systemd/system"\n')

    config = Config.read(path)

    assert config.unit_path == Path("/run/systemd/system")
    assert config.state_path == Path("/var/lib/unitsync/state.json")


def test_base_dir_is_not_a_configuration_key(tmp_path):
    path = write(tmp_path, "unitsync.toml", 'base_dir = "/x"\n')

    with pytest.raises(ConfigError, match="base_dir"):
        Config.read(path)
