"""
Configuration Layer - Startup settings for a watch session.

Everything here is resolved once when the process starts and is never
mutated afterwards. Changing the repository's configuration while a
session is running leads to undefined behaviour.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
)


DEFAULT_SLEEP_TIME = 2.0
DEFAULT_DATE_FMT = "+%Y-%m-%d %H:%M:%S"
DEFAULT_COMMIT_MSG = "Scripted auto-commit on change (%d) by gitwatch"
DEFAULT_EVENTS = "close_write,move,delete,create"
DATE_PLACEHOLDER = "%d"
GIT_DIR_NAME = ".git"

# inotify-style names accepted on the command line
EVENT_NAMES = {
    "close_write": EVENT_TYPE_CLOSED,
    "modify": EVENT_TYPE_MODIFIED,
    "move": EVENT_TYPE_MOVED,
    "delete": EVENT_TYPE_DELETED,
    "create": EVENT_TYPE_CREATED,
}


class ConfigError(ValueError):
    """Raised when a setting cannot be used to start a session."""
    pass


@dataclass(frozen=True)
class DiffSummaryPolicy:
    """How much of the pending diff goes into the commit message.

    ``line_limit`` of ``None`` disables diff summaries entirely. A limit of
    zero is valid and means the full diff is never used, only the stats.
    """
    line_limit: Optional[int] = None
    color: bool = True

    def __post_init__(self) -> None:
        if self.line_limit is not None and self.line_limit < 0:
            raise ConfigError(f"Line limit must be non-negative: {self.line_limit}")

    @property
    def enabled(self) -> bool:
        return self.line_limit is not None

    @classmethod
    def disabled(cls) -> "DiffSummaryPolicy":
        return cls(line_limit=None)


@dataclass(frozen=True)
class WatchConfig:
    """All settings of a watch session."""
    target: str
    sleep_time: float = DEFAULT_SLEEP_TIME
    date_format: str = DEFAULT_DATE_FMT
    commit_message: str = DEFAULT_COMMIT_MSG
    diff_policy: DiffSummaryPolicy = field(default_factory=DiffSummaryPolicy.disabled)
    events: FrozenSet[str] = field(default_factory=lambda: parse_events(DEFAULT_EVENTS))
    remote: str = ""
    branch: str = ""
    git_bin: str = "git"

    def __post_init__(self) -> None:
        if self.sleep_time < 0:
            raise ConfigError(f"Debounce time must be non-negative: {self.sleep_time}")

    @property
    def push_enabled(self) -> bool:
        return bool(self.remote)


def parse_events(value: str) -> FrozenSet[str]:
    """Translate a comma separated list of event names to watchdog event types.

    Args:
        value: e.g. ``"close_write,move,delete,create"``

    Returns:
        frozenset of watchdog ``EVENT_TYPE_*`` values

    Raises:
        ConfigError: If a name is unknown or the list is empty
    """
    names = [name.strip() for name in value.split(",") if name.strip()]
    if not names:
        raise ConfigError("At least one event type is required")

    types = set()
    for name in names:
        try:
            types.add(EVENT_NAMES[name])
        except KeyError:
            known = ", ".join(sorted(EVENT_NAMES))
            raise ConfigError(f"Unknown event type '{name}' (known: {known})")
    return frozenset(types)


def git_bin_from_env() -> str:
    """Return the git binary to use; ``GW_GIT_BIN`` overrides ``git``."""
    return os.environ.get("GW_GIT_BIN") or "git"
