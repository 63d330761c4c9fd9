"""
progconf

Per-program configuration file resolution with change notification.
Finds a program's configuration in $XDG_CONFIG_HOME (or ~/.config), seeds it
from /etc when missing, and falls back to a temporary or read-only copy.
"""

from .config import (
    ChangeWatcher,
    ConfigData,
    ConfigHandle,
    ConfigLocator,
    WatcherState,
    build_path,
    get,
    split_path,
)
from .errors import (
    ConfigError,
    ConfigIOError,
    DecompositionError,
    ErrorCode,
    InvalidLocationError,
    ResolutionError,
    SubscriptionError,
)
from .models import EnvironmentSnapshot, LocatorSettings, WatcherSettings

__version__ = "1.0.0"

__all__ = [
    "ChangeWatcher",
    "ConfigData",
    "ConfigHandle",
    "ConfigLocator",
    "WatcherState",
    "build_path",
    "get",
    "split_path",
    "ConfigError",
    "ConfigIOError",
    "DecompositionError",
    "ErrorCode",
    "InvalidLocationError",
    "ResolutionError",
    "SubscriptionError",
    "EnvironmentSnapshot",
    "LocatorSettings",
    "WatcherSettings",
]
