"""
Configuration subsystem for progconf.

Modules:
- paths: Build and split <root>/<program>/<file> paths
- rwlock: Reader/writer lock guarding each handle's file
- handle: Read, write and copy one configuration file
- locator: Resolve a configuration across user, system and temporary roots
- file_watcher: Stream configuration contents on file changes
"""

from .paths import build_path, split_path
from .handle import ConfigHandle
from .locator import ConfigLocator, get
from .file_watcher import ChangeWatcher, ConfigData, WatcherState

__all__ = [
    "build_path",
    "split_path",
    "ConfigHandle",
    "ConfigLocator",
    "get",
    "ChangeWatcher",
    "ConfigData",
    "WatcherState",
]
