from __future__ import annotations

import configparser
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from unitsync.errors import ApplyError, CommandFailedError, CommandTimeoutError
from unitsync.state import atomic_write

logger = logging.getLogger(__name__)

SYSTEMD_SYSTEM_DIR = Path("/etc/systemd/system")
INSTALL_KEYS = ("wantedby", "requiredby", "upheldby", "also", "alias")


class ServiceManager(Protocol):
    """Everything the executor needs from the host's service manager."""

    def write_unit_file(self, name: str, content: str) -> None: ...

    def remove_unit_file(self, name: str) -> None: ...

    def read_unit_file(self, name: str) -> str | None: ...

    def reload(self) -> None: ...

    def enable(self, name: str) -> None: ...

    def disable(self, name: str) -> None: ...

    def restart(self, name: str) -> None: ...

    def stop(self, name: str) -> None: ...


@dataclass(frozen=True)
class UnitTraits:
    """What the executor needs to know about a unit to decide how to (re)start it."""

    name: str
    installable: bool = False
    oneshot: bool = False

    @property
    def is_template(self) -> bool:
        # web@.service can be enabled through instances only, never started directly
        return "@." in self.name

    @property
    def should_restart(self) -> bool:
        return self.installable and not self.oneshot and not self.is_template

    @classmethod
    def from_name(cls, name: str) -> UnitTraits:
        return cls(name=name)

    @classmethod
    def from_content(cls, name: str, content: str) -> UnitTraits:
        parser = configparser.ConfigParser(
            strict=False, allow_no_value=True, interpolation=None
        )
        try:
            parser.read_string(content, source=name)
        except configparser.Error as e:
            logger.warning("Could not parse %s, treating it as a plain unit: %s", name, e)
            return cls(name=name)

        installable = parser.has_section("Install") and any(
            parser.get("Install", key, fallback=None) for key in INSTALL_KEYS
        )
        oneshot = (
            parser.get("Service", "Type", fallback="").strip().lower() == "oneshot"
        )
        return cls(name=name, installable=installable, oneshot=oneshot)


class SystemdManager:
    """
    Drive systemd through ``systemctl``.

    Every command is bounded by ``timeout`` seconds. A timeout raises
    CommandTimeoutError and a nonzero exit raises CommandFailedError so callers
    can tell the two apart; both are ApplyErrors.
    """

    def __init__(
        self,
        unit_dir: Path | str = SYSTEMD_SYSTEM_DIR,
        timeout: float = 30.0,
        systemctl: str = "systemctl",
    ):
        self.unit_dir = Path(unit_dir)
        self.timeout = timeout
        self.systemctl = systemctl

    def write_unit_file(self, name: str, content: str) -> None:
        path = self.unit_dir / name
        logger.debug("Writing %s", path)
        try:
            atomic_write(path, content.encode("utf-8"), mode=0o644)
        except OSError as e:
            raise ApplyError(f"Could not write {path}: {e}") from e

    def remove_unit_file(self, name: str) -> None:
        path = self.unit_dir / name
        logger.debug("Removing %s", path)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ApplyError(f"Could not remove {path}: {e}") from e

    def read_unit_file(self, name: str) -> str | None:
        path = self.unit_dir / name
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise ApplyError(f"Could not read {path}: {e}") from e

    def reload(self) -> None:
        self.run("daemon-reload")

    def enable(self, name: str) -> None:
        self.run("enable", "--quiet", name)

    def disable(self, name: str) -> None:
        self.run("disable", "--quiet", name)

    def restart(self, name: str) -> None:
        self.run("restart", name)

    def stop(self, name: str) -> None:
        self.run("stop", name)

    def run(self, *args: str) -> subprocess.CompletedProcess[str]:
        cmd = [self.systemctl, *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(cmd, self.timeout) from e
        except OSError as e:
            raise ApplyError(f"Could not run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            raise CommandFailedError(cmd, result.returncode, result.stderr)
        return result
