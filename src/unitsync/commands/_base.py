from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Annotated, Generator

import cappa
import msgspec

from unitsync.config import DEFAULT_CONFIG_FILE, Config
from unitsync.errors import UnitsyncError
from unitsync.rendering import RenderedUnit, TemplateRenderer, render_units
from unitsync.state import StateStore
from unitsync.systemd import ServiceManager, SystemdManager

EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_FATAL_ERROR = 2
EXIT_PARTIAL_FAILURE = 3


class MessageFormatter:
    """Thin wrapper around cappa.Output giving each kind of message its color."""

    def __init__(self, output: cappa.Output):
        self._output = output

    def output(self, message) -> None:
        self._output.output(message)

    def info(self, message: str) -> None:
        self._output.output(message)

    def success(self, message: str) -> None:
        self._output.output(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self._output.output(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self._output.error(f"[red]{message}[/red]")


class _LogFormatter(logging.Formatter):
    FORMATS = {
        logging.DEBUG: "    → %(message)s",
        logging.INFO: "==> %(message)s",
        logging.WARNING: "⚠️  %(message)s",
        logging.ERROR: "❌  %(message)s",
    }

    def format(self, record: logging.LogRecord) -> str:
        fmt = self.FORMATS.get(record.levelno, "%(message)s")
        return logging.Formatter(fmt).format(record)


def setup_logging(verbose: int) -> None:
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger = logging.getLogger("unitsync")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_LogFormatter())
        logger.addHandler(handler)
    logger.setLevel(level)


@contextmanager
def fatal_errors() -> Generator[None, None, None]:
    """Turn configuration, render, state and drift errors into a clean exit."""
    try:
        yield
    except UnitsyncError as e:
        raise cappa.Exit(str(e), code=EXIT_FATAL_ERROR) from e


@dataclass
class BaseCommand:
    """
    A command that knows where the configuration and state live, and provides
    the rendered desired units and a service manager to apply them with.
    """

    config_file: Annotated[
        Path,
        cappa.Arg(short="-c", long="--config", help="Configuration file"),
    ] = Path(DEFAULT_CONFIG_FILE)
    state_file: Annotated[
        Path | None,
        cappa.Arg(
            short="-s",
            long="--state",
            help="State file, overrides state_file from the configuration",
        ),
    ] = None
    templates: Annotated[
        Path | None,
        cappa.Arg(
            short="-t",
            long="--templates",
            help="Templates directory, overrides templates_dir from the configuration",
        ),
    ] = None
    verbose: Annotated[
        int,
        cappa.Arg(
            short="-v",
            long="--verbose",
            action=cappa.ArgAction.count,
            help="Increase log verbosity (-v info, -vv debug)",
        ),
    ] = 0

    @cached_property
    def output(self) -> MessageFormatter:
        return MessageFormatter(cappa.Output())

    @cached_property
    def config(self) -> Config:
        config = Config.read(self.config_file)
        if self.templates is not None:
            config = msgspec.structs.replace(
                config, templates_dir=str(self.templates.resolve())
            )
        return config

    @cached_property
    def manager(self) -> ServiceManager:
        return SystemdManager(unit_dir=self.config.unit_path, timeout=self.config.timeout)

    @cached_property
    def store(self) -> StateStore:
        if self.state_file is not None:
            return StateStore(self.state_file)
        return StateStore(self.config.state_path)

    def render(self) -> list[RenderedUnit]:
        renderer = TemplateRenderer(self.config.templates_path)
        return render_units(self.config.services, renderer)

    def setup(self) -> None:
        setup_logging(self.verbose)
