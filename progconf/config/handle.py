"""
Configuration handle.

A ConfigHandle points at one <root>/<program>/<file> location and guards
reads and writes of that file with its own reader/writer lock.
"""

import fcntl
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from ..errors import ConfigIOError, ErrorCode, InvalidLocationError
from ..models import ConfigLocation, WatcherSettings
from .file_watcher import ChangeWatcher
from .rwlock import RWLock

logger = logging.getLogger(__name__)


class ConfigHandle:
    """Handle to a resolved, possibly temporary, configuration file."""

    def __init__(
        self,
        root_path: Union[str, Path],
        program_name: str,
        file_name: str,
        is_temporary: bool = False,
        temp_root: Optional[Union[str, Path]] = None,
        dir_mode: int = 0o700,
        advisory_lock: bool = False
    ):
        """
        Initialize configuration handle.

        Args:
            root_path: Directory under which the program's config directory lives
            program_name: Program config directory name
            file_name: Configuration file name
            is_temporary: True if the file lives under the temporary root
            temp_root: Designated temporary root (defaults to tempfile.gettempdir())
            dir_mode: Mode for program directories created by copy_to()
            advisory_lock: Also take fcntl.flock on the file during read/write

        Raises:
            InvalidLocationError: If any component is empty or malformed
        """
        try:
            self.location = ConfigLocation(
                root_path=root_path,
                program_name=program_name,
                file_name=file_name
            )
        except ValidationError as e:
            reasons = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidLocationError(
                reasons,
                root_path=root_path,
                program_name=program_name,
                file_name=file_name
            ) from e

        self.is_temporary = is_temporary
        self.temp_root = Path(temp_root) if temp_root else Path(tempfile.gettempdir())
        self.dir_mode = dir_mode
        self.advisory_lock = advisory_lock
        self._lock = RWLock()

    @property
    def root_path(self) -> Path:
        return self.location.root_path

    @property
    def program_name(self) -> str:
        return self.location.program_name

    @property
    def file_name(self) -> str:
        return self.location.file_name

    @property
    def path(self) -> Path:
        """Full path to the configuration file."""
        return self.location.path

    def exists(self) -> bool:
        """
        Check whether the backing file can be stat'ed.

        Any OSError (including permission errors) is reported as absence.
        """
        try:
            os.stat(self.path)
        except OSError:
            return False
        return True

    def read(self) -> bytes:
        """
        Read the configuration file.

        Returns:
            File contents

        Raises:
            ConfigIOError: If the file cannot be opened or read
        """
        with self._lock.read_locked():
            try:
                with open(self.path, "rb") as f:
                    if self.advisory_lock:
                        fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                    return f.read()
            except OSError as e:
                raise ConfigIOError.from_os_error(e, "read", self.path, ErrorCode.FILE_READ_ERROR) from e

    def write(self, data: bytes) -> int:
        """
        Replace the configuration file contents.

        The exclusive lock covers the create/truncate as well as the write,
        so a read through this handle never sees a half-replaced file.
        Parent directories are not created.

        Args:
            data: New file contents

        Returns:
            Number of bytes written

        Raises:
            ConfigIOError: If the file cannot be created or written
        """
        with self._lock.write_locked():
            try:
                fd = os.open(self.path, os.O_WRONLY | os.O_CREAT, 0o666)
                with os.fdopen(fd, "wb") as f:
                    if self.advisory_lock:
                        fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                    f.truncate(0)
                    written = f.write(data)
            except OSError as e:
                raise ConfigIOError.from_os_error(e, "write", self.path, ErrorCode.FILE_WRITE_ERROR) from e

        logger.debug(f"Wrote {written} bytes to {self.path}")
        return written

    def copy_to(
        self,
        new_root: Union[str, Path],
        new_program: str,
        new_file: str
    ) -> "ConfigHandle":
        """
        Copy this configuration to a new location.

        Creates the new program directory (owner-only permissions) if needed
        and truncates any existing destination file.

        Args:
            new_root: Destination root directory
            new_program: Destination program directory name
            new_file: Destination file name

        Returns:
            Handle for the copy; temporary iff new_root is the temporary root

        Raises:
            InvalidLocationError: If the destination components are invalid
            ConfigIOError: If the directory cannot be created or the copy fails
        """
        new_conf = ConfigHandle(
            new_root,
            new_program,
            new_file,
            is_temporary=Path(new_root) == self.temp_root,
            temp_root=self.temp_root,
            dir_mode=self.dir_mode,
            advisory_lock=self.advisory_lock
        )

        if new_conf.path == self.path:
            raise ConfigIOError(
                code=ErrorCode.COPY_FAILED,
                operation="copy",
                path=self.path,
                reason="source and destination are the same file"
            )

        program_dir = new_conf.path.parent
        try:
            # Every missing ancestor gets dir_mode, not just the program directory
            for directory in reversed((program_dir, *program_dir.parents)):
                if not directory.is_dir():
                    directory.mkdir(mode=self.dir_mode, exist_ok=True)
        except OSError as e:
            raise ConfigIOError.from_os_error(e, "create directory", program_dir, ErrorCode.COPY_FAILED) from e

        with self._lock.read_locked(), new_conf._lock.write_locked():
            try:
                src = open(self.path, "rb")
            except OSError as e:
                raise ConfigIOError.from_os_error(e, "copy", self.path, ErrorCode.COPY_FAILED) from e

            with src:
                try:
                    with open(new_conf.path, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                except OSError as e:
                    raise ConfigIOError.from_os_error(e, "copy", new_conf.path, ErrorCode.COPY_FAILED) from e

        logger.debug(f"Copied {self.path} to {new_conf.path}")
        return new_conf

    def make_temporary(self) -> "ConfigHandle":
        """Copy this configuration under the temporary root."""
        return self.copy_to(self.temp_root, self.program_name, self.file_name)

    def watch(self, settings: Optional[WatcherSettings] = None) -> ChangeWatcher:
        """Create a change watcher for this handle (not yet listening)."""
        return ChangeWatcher(self, settings)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConfigHandle):
            return NotImplemented
        return self.path == other.path and self.is_temporary == other.is_temporary

    def __hash__(self) -> int:
        return hash((self.path, self.is_temporary))

    def __repr__(self) -> str:
        return f"ConfigHandle(path={str(self.path)!r}, is_temporary={self.is_temporary})"
