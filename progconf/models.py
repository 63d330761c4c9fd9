"""
Pydantic data models for progconf.

Defines configuration locations, the environment snapshot used for
resolution, and locator/watcher settings.
"""

import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_temp_root() -> Path:
    return Path(tempfile.gettempdir())


class ConfigLocation(BaseModel):
    """Validated root/program/file triple of a configuration file."""

    model_config = ConfigDict(frozen=True)

    root_path: Path = Field(..., description="Directory holding the program's config directory")
    program_name: str = Field(..., description="Program config directory name")
    file_name: str = Field(..., description="Configuration file name")

    @field_validator('root_path', mode='before')
    @classmethod
    def validate_root_path(cls, v):
        """Reject empty roots and ".", which a path join would drop."""
        if v is None or str(v) == "":
            raise ValueError("root path must not be empty")
        if Path(v) == Path("."):
            raise ValueError("root path must not be the current directory")
        return v

    @field_validator('program_name', 'file_name')
    @classmethod
    def validate_segment(cls, v: str) -> str:
        """Program and file names must be single, non-empty path segments."""
        if not v:
            raise ValueError("must not be empty")
        if "/" in v or v in (".", ".."):
            raise ValueError(f"must be a single path segment: {v!r}")
        return v

    @property
    def path(self) -> Path:
        """Full path to the configuration file."""
        return self.root_path / self.program_name / self.file_name


class EnvironmentSnapshot(BaseModel):
    """Environment values that drive user root resolution."""

    model_config = ConfigDict(frozen=True)

    xdg_config_home: Optional[str] = Field(None, description="User config root ($XDG_CONFIG_HOME)")
    home: Optional[str] = Field(None, description="Home directory ($HOME)")

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        user_root_var: str = "XDG_CONFIG_HOME",
        home_var: str = "HOME"
    ) -> "EnvironmentSnapshot":
        """
        Capture a snapshot from a mapping (defaults to os.environ).

        Args:
            environ: Mapping to read from
            user_root_var: Name of the user config root variable
            home_var: Name of the home directory variable
        """
        if environ is None:
            environ = os.environ
        return cls(
            xdg_config_home=environ.get(user_root_var),
            home=environ.get(home_var),
        )

    def user_root(self) -> Optional[Path]:
        """
        Resolve the user configuration root.

        Returns:
            $XDG_CONFIG_HOME if set, else $HOME/.config if $HOME is set, else None
        """
        if self.xdg_config_home:
            return Path(self.xdg_config_home)
        if self.home:
            return Path(self.home) / ".config"
        return None


class LocatorSettings(BaseModel):
    """Roots and policies used by ConfigLocator."""

    system_root: Path = Field(Path("/etc"), description="System-wide configuration root")
    temp_root: Path = Field(default_factory=_default_temp_root, description="Scratch root for writable copies")
    user_root_var: str = Field("XDG_CONFIG_HOME", description="User config root variable")
    home_var: str = Field("HOME", description="Home directory variable")
    dir_mode: int = Field(0o700, ge=0, le=0o777, description="Mode for newly created program directories")
    advisory_lock: bool = Field(False, description="Also take fcntl.flock on reads and writes")


class WatcherSettings(BaseModel):
    """Timing knobs for ChangeWatcher."""

    settle_ms: int = Field(50, gt=0, description="Delay before reading after a change notification")
    max_settle_rounds: int = Field(5, ge=1, description="Maximum settle rounds while the file keeps changing")
    health_check_interval: float = Field(1.0, gt=0, description="Seconds between observer liveness checks")

    @property
    def settle_seconds(self) -> float:
        return self.settle_ms / 1000
