"""
Tests for the user → system → temporary configuration cascade.
"""

import stat
from pathlib import Path

import pytest

from progconf.config import ConfigLocator
from progconf.errors import ErrorCode, InvalidLocationError, ResolutionError
from progconf.models import EnvironmentSnapshot, LocatorSettings

from .conftest import CONF_NAME, PROGRAM_NAME, SYSTEM_CONTENT


class TestEnvironmentSnapshot:

    def test_xdg_config_home_wins(self):
        """$XDG_CONFIG_HOME takes precedence over $HOME."""
        env = EnvironmentSnapshot(xdg_config_home="/xdg", home="/home/user")
        assert env.user_root() == Path("/xdg")

    def test_falls_back_to_home_config(self):
        """An empty $XDG_CONFIG_HOME falls back to $HOME/.config."""
        env = EnvironmentSnapshot(xdg_config_home="", home="/home/user")
        assert env.user_root() == Path("/home/user/.config")

    def test_unresolved_without_home(self):
        """Without either variable there is no user root."""
        assert EnvironmentSnapshot().user_root() is None
        assert EnvironmentSnapshot(xdg_config_home="", home="").user_root() is None

    def test_from_environ_mapping(self):
        """Snapshots read only the configured variables."""
        env = EnvironmentSnapshot.from_environ({"HOME": "/home/me", "UNRELATED": "x"})
        assert env.xdg_config_home is None
        assert env.home == "/home/me"

    def test_from_environ_custom_variables(self):
        """Variable names can be overridden."""
        env = EnvironmentSnapshot.from_environ(
            {"MY_CONFIG": "/cfg", "MY_HOME": "/h"},
            user_root_var="MY_CONFIG",
            home_var="MY_HOME"
        )
        assert env.user_root() == Path("/cfg")


class TestNoUserRoot:
    """Without $XDG_CONFIG_HOME or $HOME only the system configuration counts."""

    def test_no_system_config_fails(self, make_locator):
        """No user root and no system configuration raises ResolutionError."""
        locator = make_locator()

        with pytest.raises(ResolutionError) as exc_info:
            locator.get(PROGRAM_NAME, CONF_NAME)

        assert exc_info.value.code == ErrorCode.NO_CONFIGURATION
        assert exc_info.value.context["program_name"] == PROGRAM_NAME

    def test_system_config_copied_to_temp(self, make_locator, roots, system_config):
        """Without a user root the system configuration is copied to the temp root."""
        conf = make_locator().get(PROGRAM_NAME, CONF_NAME)

        assert conf.is_temporary is True
        assert conf.path == roots["temp"] / PROGRAM_NAME / CONF_NAME
        assert conf.read() == SYSTEM_CONTENT

    def test_temp_copy_is_writable_and_independent(self, make_locator, system_config):
        """Writing the temporary copy leaves the system file alone."""
        conf = make_locator().get(PROGRAM_NAME, CONF_NAME)

        conf.write(b"local change")

        assert conf.read() == b"local change"
        assert system_config.read_bytes() == SYSTEM_CONTENT

    def test_unwritable_temp_returns_system_handle(self, make_locator, roots, system_config):
        """If no temporary copy can be made, the system handle is returned."""
        blocker = roots["temp"] / "blocker"
        blocker.write_bytes(b"")
        locator = make_locator(temp_root=blocker / "tmp")

        conf = locator.get(PROGRAM_NAME, CONF_NAME)

        assert conf.is_temporary is False
        assert conf.path == system_config
        assert conf.read() == SYSTEM_CONTENT


class TestUserRoot:

    def test_existing_user_config_returned(self, make_locator, roots, system_config):
        """An existing user configuration is returned as-is."""
        user_root = roots["home"] / ".config"
        (user_root / PROGRAM_NAME).mkdir(parents=True)
        (user_root / PROGRAM_NAME / CONF_NAME).write_bytes(b"mine")

        conf = make_locator(home=str(roots["home"])).get(PROGRAM_NAME, CONF_NAME)

        assert conf.path == user_root / PROGRAM_NAME / CONF_NAME
        assert conf.is_temporary is False
        assert conf.read() == b"mine"

    def test_existing_user_config_without_system_config(self, make_locator, roots):
        """A user configuration is found even without a system one."""
        xdg = roots["home"] / "xdg"
        (xdg / PROGRAM_NAME).mkdir(parents=True)
        (xdg / PROGRAM_NAME / CONF_NAME).write_bytes(b"only mine")

        conf = make_locator(xdg_config_home=str(xdg)).get(PROGRAM_NAME, CONF_NAME)

        assert conf.path == xdg / PROGRAM_NAME / CONF_NAME
        assert conf.is_temporary is False

    def test_xdg_preferred_over_home(self, make_locator, roots, system_config):
        """$XDG_CONFIG_HOME is seeded even when $HOME/.config has a file."""
        xdg = roots["home"] / "xdg"
        home_conf = roots["home"] / ".config" / PROGRAM_NAME / CONF_NAME
        home_conf.parent.mkdir(parents=True)
        home_conf.write_bytes(b"home")

        conf = make_locator(xdg_config_home=str(xdg), home=str(roots["home"])).get(PROGRAM_NAME, CONF_NAME)

        # $XDG_CONFIG_HOME has no config yet, so it is seeded from the system one
        assert conf.path == xdg / PROGRAM_NAME / CONF_NAME
        assert conf.read() == SYSTEM_CONTENT

    def test_user_config_seeded_from_system(self, make_locator, roots, system_config):
        """A missing user configuration is seeded from /etc in owner-only directories."""
        conf = make_locator(home=str(roots["home"])).get(PROGRAM_NAME, CONF_NAME)

        expected = roots["home"] / ".config" / PROGRAM_NAME / CONF_NAME
        assert conf.path == expected
        assert conf.is_temporary is False
        assert expected.read_bytes() == SYSTEM_CONTENT
        assert stat.S_IMODE(expected.parent.stat().st_mode) == 0o700
        assert stat.S_IMODE(expected.parent.parent.stat().st_mode) == 0o700

    def test_seeded_config_found_on_next_get(self, make_locator, roots, system_config):
        """A seeded configuration is found directly on the next lookup."""
        locator = make_locator(home=str(roots["home"]))
        first = locator.get(PROGRAM_NAME, CONF_NAME)
        first.write(b"edited")

        second = locator.get(PROGRAM_NAME, CONF_NAME)

        assert second == first
        assert second.read() == b"edited"

    def test_no_config_anywhere_fails(self, make_locator, roots):
        """With nothing to copy, every searched path is reported and nothing is created."""
        with pytest.raises(ResolutionError) as exc_info:
            make_locator(home=str(roots["home"])).get(PROGRAM_NAME, CONF_NAME)

        searched = exc_info.value.context["searched"]
        assert str(roots["home"] / ".config" / PROGRAM_NAME / CONF_NAME) in searched
        assert str(roots["system"] / PROGRAM_NAME / CONF_NAME) in searched
        assert not (roots["home"] / ".config" / PROGRAM_NAME).exists()

    def test_unwritable_user_root_falls_back_to_temp(self, make_locator, roots, system_config):
        """A user root that cannot be created falls back to a temporary copy."""
        blocker = roots["home"] / "blocker"
        blocker.write_bytes(b"")

        conf = make_locator(xdg_config_home=str(blocker / "config")).get(PROGRAM_NAME, CONF_NAME)

        assert conf.is_temporary is True
        assert conf.path == roots["temp"] / PROGRAM_NAME / CONF_NAME


class TestLocatorHelpers:

    def test_find_config_missing(self, make_locator, roots):
        """find_config returns None for a missing file."""
        assert make_locator().find_config(roots["system"], PROGRAM_NAME, CONF_NAME) is None

    def test_find_config_present(self, make_locator, roots, system_config):
        """find_config returns a non-temporary handle for an existing file."""
        conf = make_locator().find_config(roots["system"], PROGRAM_NAME, CONF_NAME)
        assert conf.path == system_config
        assert conf.is_temporary is False

    def test_copy_system_config_without_system(self, make_locator, roots):
        """Nothing is copied when there is no system configuration."""
        assert make_locator().copy_system_config(roots["home"], PROGRAM_NAME, CONF_NAME) is None

    def test_invalid_program_name(self, make_locator):
        """An empty program name is rejected."""
        with pytest.raises(InvalidLocationError):
            make_locator().get("", CONF_NAME)

    def test_settings_propagate_to_handles(self, roots, system_config):
        """Locator settings are passed on to resolved handles."""
        settings = LocatorSettings(
            system_root=roots["system"],
            temp_root=roots["temp"],
            advisory_lock=True
        )
        locator = ConfigLocator(settings, EnvironmentSnapshot(home=str(roots["home"])))

        conf = locator.get(PROGRAM_NAME, CONF_NAME)

        assert conf.advisory_lock is True
        assert conf.temp_root == roots["temp"]

    def test_live_environment_is_read_per_call(self, roots, system_config, monkeypatch):
        """Without a snapshot, the process environment is read on each get()."""
        locator = ConfigLocator(LocatorSettings(system_root=roots["system"], temp_root=roots["temp"]))
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(roots["home"]))

        conf = locator.get(PROGRAM_NAME, CONF_NAME)

        assert conf.path == roots["home"] / ".config" / PROGRAM_NAME / CONF_NAME
