from __future__ import annotations

import logging
from pathlib import Path

import msgspec

from unitsync.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "unitsync.toml"

UNIT_SUFFIXES = (
    ".service",
    ".socket",
    ".timer",
    ".path",
    ".mount",
    ".automount",
    ".target",
    ".slice",
    ".swap",
)


class ServiceSpec(msgspec.Struct, frozen=True, forbid_unknown_fields=True):
    """One unit to manage: which template renders it and with what variables."""

    template: str
    unit: str
    variables: dict[str, str] = {}

    def __post_init__(self):
        if not self.template:
            raise ValueError("template must not be empty")
        if "/" in self.unit or not self.unit.endswith(UNIT_SUFFIXES):
            raise ValueError(
                f"invalid unit name {self.unit!r}, expected a file name ending in one of "
                f"{', '.join(UNIT_SUFFIXES)}"
            )
        stem = self.unit.rsplit(".", 1)[0]
        if not stem or stem == "@":
            raise ValueError(f"invalid unit name {self.unit!r}")


class Config(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    services: list[ServiceSpec] = []
    templates_dir: str = "templates"
    unit_dir: str = "/etc/systemd/system"
    state_file: str = "/var/lib/unitsync/state.json"
    timeout: float = 30.0

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError("timeout must be a positive number of seconds")

    @property
    def templates_path(self) -> Path:
        return Path(self.templates_dir)

    @property
    def unit_path(self) -> Path:
        return Path(self.unit_dir)

    @property
    def state_path(self) -> Path:
        return Path(self.state_file)

    @classmethod
    def read(cls, path: Path | str = DEFAULT_CONFIG_FILE) -> Config:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"No configuration file found at {path}")

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ConfigError(f"Could not read {path}: {e}") from e

        decoder = msgspec.yaml if path.suffix in (".yaml", ".yml") else msgspec.toml
        try:
            config = decoder.decode(raw, type=cls)
        except msgspec.MsgspecError as e:
            raise ConfigError(f"Improperly configured, {path}: {e}") from e

        check_unique_units(config.services)
        logger.debug("Loaded %d service(s) from %s", len(config.services), path)
        # relative paths are relative to the configuration file
        base = path.parent
        return msgspec.structs.replace(
            config,
            templates_dir=str(base / config.templates_dir),
            unit_dir=str(base / config.unit_dir),
            state_file=str(base / config.state_file),
        )


def check_unique_units(specs: list[ServiceSpec]) -> None:
    seen: set[str] = set()
    duplicates: set[str] = set()
    for spec in specs:
        if spec.unit in seen:
            duplicates.add(spec.unit)
        seen.add(spec.unit)
    if duplicates:
        raise ConfigError(
            f"Duplicate unit names in configuration: {', '.join(sorted(duplicates))}"
        )
