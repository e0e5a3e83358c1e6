"""Shared setup logic for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

import click

from diarist.core.config import Config
from diarist.core.exceptions import DiaristError
from diarist.core.utils.logging import setup_logging_from_config
from diarist.journal import Journal, Outcome, notice_for

T = TypeVar("T")

DIARIST_DIR = Path.home() / ".diarist"
CONFIG_PATH = DIARIST_DIR / "config.yaml"


def load_config(config_file: str | None = None, data_dir: str | None = None) -> Config:
    """Load config from ``config_file`` or ~/.diarist/config.yaml, then set up logging."""
    if config_file is None and CONFIG_PATH.exists():
        config_file = str(CONFIG_PATH)
    try:
        config = Config(config_file=config_file, data_dir=data_dir)
    except DiaristError as e:
        raise click.ClickException(str(e)) from e
    setup_logging_from_config(config)
    return config


def open_journal(config: Config) -> Journal:
    try:
        return Journal.from_config(config)
    except DiaristError as e:
        raise click.ClickException(str(e)) from e


def run(work: Awaitable[Outcome[T]]) -> T:
    """Run a journal call to completion; failures become click errors."""
    outcome = asyncio.run(work)
    if not outcome.ok:
        notice = notice_for(outcome)
        raise click.ClickException(notice.message if notice else str(outcome.error))
    return outcome.value


def read_content(initial: str = "") -> str:
    """Open $EDITOR for entry content; an unsaved editor keeps ``initial``."""
    edited = click.edit(initial, extension=".html")
    return initial if edited is None else edited
