from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from unitsync.reconcile import Drift


class UnitsyncError(Exception):
    """Base class for every error raised by unitsync."""


class ConfigError(UnitsyncError):
    """The desired configuration is malformed or inconsistent."""


class RenderError(UnitsyncError):
    """A template is missing or one of its variables could not be resolved."""

    def __init__(self, template_name: str, cause: str):
        self.template_name = template_name
        self.cause = cause
        super().__init__(f"Failed to render template {template_name!r}: {cause}")


class StateError(UnitsyncError):
    """The state file is unreadable, corrupt or cannot be written."""


class StateLockedError(StateError):
    """Another unitsync run currently holds the state lock."""


class DriftError(UnitsyncError):
    """Managed unit files were changed outside of unitsync."""

    def __init__(self, drift: list[Drift]):
        self.drift = drift
        units = ", ".join(d.unit for d in drift)
        super().__init__(
            f"Unit files changed outside of unitsync: {units}. "
            "Use --force to overwrite them."
        )


class ApplyError(UnitsyncError):
    """A single interaction with the service manager failed."""


class CommandFailedError(ApplyError):
    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"`{' '.join(command)}` exited with code {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


class CommandTimeoutError(ApplyError):
    def __init__(self, command: list[str], timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"`{' '.join(command)}` timed out after {timeout:g}s")
