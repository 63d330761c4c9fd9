"""
Pytest configuration and fixtures for progconf tests.

Every test gets its own system, temporary and user roots so nothing touches
/etc, the real temp directory or the process environment.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from progconf.config import ConfigHandle, ConfigLocator
from progconf.models import EnvironmentSnapshot, LocatorSettings

PROGRAM_NAME = "fonts"
CONF_NAME = "fonts.conf"
SYSTEM_CONTENT = b"<fontconfig>system</fontconfig>\n"


@pytest.fixture
def roots() -> Generator[dict, None, None]:
    """Create isolated system, temp and home directories."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        paths = {
            "system": base / "etc",
            "temp": base / "tmp",
            "home": base / "home" / "user",
        }
        for path in paths.values():
            path.mkdir(parents=True)
        yield paths


@pytest.fixture
def settings(roots) -> LocatorSettings:
    """Locator settings pointing at the isolated roots."""
    return LocatorSettings(system_root=roots["system"], temp_root=roots["temp"])


@pytest.fixture
def system_config(roots) -> Path:
    """Install a system configuration for PROGRAM_NAME."""
    program_dir = roots["system"] / PROGRAM_NAME
    program_dir.mkdir()
    conf = program_dir / CONF_NAME
    conf.write_bytes(SYSTEM_CONTENT)
    return conf


@pytest.fixture
def make_locator(settings):
    """Factory for locators over a given environment."""
    def _make(xdg_config_home=None, home=None, **overrides) -> ConfigLocator:
        locator_settings = settings.model_copy(update=overrides) if overrides else settings
        environment = EnvironmentSnapshot(xdg_config_home=xdg_config_home, home=home)
        return ConfigLocator(locator_settings, environment)
    return _make


@pytest.fixture
def handle(roots) -> ConfigHandle:
    """Handle for an existing, empty-ish configuration file under the temp root."""
    program_dir = roots["temp"] / PROGRAM_NAME
    program_dir.mkdir()
    (program_dir / CONF_NAME).write_bytes(b"initial\n")
    return ConfigHandle(roots["temp"], PROGRAM_NAME, CONF_NAME, is_temporary=True, temp_root=roots["temp"])
