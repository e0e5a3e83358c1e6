"""Configuration dataclasses for the journal engine.

These are pure data containers with sensible defaults. Build them from a
:class:`~diarist.core.config.Config` with ``from_config`` or pass values
directly in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from diarist.core.exceptions import ConfigurationError

from .identity import DEFAULT_MAX_ATTEMPTS

if TYPE_CHECKING:
    from diarist.core.config import Config

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _as_number(key: str, value: Any, kind: type, minimum: float) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
    if number < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {number}")
    return number


@dataclass
class StoreConfig:
    """Settings for the entry store.

    Attributes:
        entries_dir: Directory holding one record file per entry.
        max_identity_attempts: Candidates tried when identities collide.
    """

    entries_dir: str
    max_identity_attempts: int = DEFAULT_MAX_ATTEMPTS

    @classmethod
    def from_config(cls, config: Config) -> StoreConfig:
        return cls(
            entries_dir=config.get_entries_dir(),
            max_identity_attempts=_as_number(
                "journal.max_identity_attempts",
                config.get("journal.max_identity_attempts", DEFAULT_MAX_ATTEMPTS),
                int,
                1,
            ),
        )


@dataclass
class AutosaveConfig:
    """Settings for the autosave coordinator.

    Attributes:
        interval_seconds: Period between autosave checks.
        enabled: When False the coordinator never schedules itself.
    """

    interval_seconds: float = 30.0
    enabled: bool = True

    @classmethod
    def from_config(cls, config: Config) -> AutosaveConfig:
        return cls(
            interval_seconds=_as_number(
                "journal.autosave_interval", config.get("journal.autosave_interval", 30), float, 0.01
            ),
            enabled=_as_bool("journal.autosave_enabled", config.get("journal.autosave_enabled", True)),
        )


@dataclass
class SearchConfig:
    """Settings for entry search.

    Attributes:
        strip_markup: Match content against its visible text rather than raw HTML.
    """

    strip_markup: bool = False

    @classmethod
    def from_config(cls, config: Config) -> SearchConfig:
        return cls(
            strip_markup=_as_bool("journal.search_strip_markup", config.get("journal.search_strip_markup", False))
        )
