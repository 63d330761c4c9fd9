"""
Configuration locator.

Resolves a program's configuration file across the user directory, the
system directory and a temporary copy, in that order of preference.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..errors import ConfigIOError, ResolutionError
from ..models import EnvironmentSnapshot, LocatorSettings
from .handle import ConfigHandle

logger = logging.getLogger(__name__)


class ConfigLocator:
    """Resolves ConfigHandles from an environment snapshot and root settings."""

    def __init__(
        self,
        settings: Optional[LocatorSettings] = None,
        environment: Optional[EnvironmentSnapshot] = None
    ):
        """
        Initialize configuration locator.

        Args:
            settings: System/temporary roots and handle options
            environment: Environment snapshot; captured from os.environ on each
                get() call when omitted
        """
        self.settings = settings or LocatorSettings()
        self.environment = environment

    def _snapshot(self) -> EnvironmentSnapshot:
        if self.environment is not None:
            return self.environment
        return EnvironmentSnapshot.from_environ(
            user_root_var=self.settings.user_root_var,
            home_var=self.settings.home_var
        )

    def _handle(self, root: Union[str, Path], program_name: str, file_name: str) -> ConfigHandle:
        return ConfigHandle(
            root,
            program_name,
            file_name,
            is_temporary=False,
            temp_root=self.settings.temp_root,
            dir_mode=self.settings.dir_mode,
            advisory_lock=self.settings.advisory_lock
        )

    def find_config(
        self,
        root: Union[str, Path],
        program_name: str,
        file_name: str
    ) -> Optional[ConfigHandle]:
        """
        Build a handle for root/program/file if that file exists.

        Returns:
            Handle, or None if the file does not exist
        """
        conf = self._handle(root, program_name, file_name)
        if conf.exists():
            logger.debug(f"Found configuration at {conf.path}")
            return conf
        logger.debug(f"No configuration at {conf.path}")
        return None

    def system_config(self, program_name: str, file_name: str) -> Optional[ConfigHandle]:
        """Return the system-wide configuration handle if it exists."""
        return self.find_config(self.settings.system_root, program_name, file_name)

    def copy_system_config(
        self,
        root: Union[str, Path],
        program_name: str,
        file_name: str
    ) -> Optional[ConfigHandle]:
        """
        Copy the system configuration to root/program/file.

        Returns:
            Handle for the copy, or None if no system configuration exists

        Raises:
            ConfigIOError: If the copy fails
        """
        sys_conf = self.system_config(program_name, file_name)
        if sys_conf is None:
            return None
        return sys_conf.copy_to(root, program_name, file_name)

    def get(self, program_name: str, file_name: str) -> ConfigHandle:
        """
        Resolve a usable configuration for a program.

        Looks in the user directory first and seeds it from the system
        configuration when empty. Without a usable user directory, the
        system configuration is copied to the temporary root; if even that
        fails, the read-only system configuration itself is returned.

        Args:
            program_name: Program config directory name
            file_name: Configuration file name

        Returns:
            Resolved configuration handle

        Raises:
            ResolutionError: If no system configuration exists to fall back on
            InvalidLocationError: If program_name or file_name is invalid
        """
        searched = []
        user_root = self._snapshot().user_root()

        if user_root is not None:
            conf = self.find_config(user_root, program_name, file_name)
            if conf is not None:
                logger.info(f"Using user configuration {conf.path}")
                return conf

            searched.append(user_root / program_name / file_name)
            try:
                user_conf = self.copy_system_config(user_root, program_name, file_name)
            except ConfigIOError as e:
                logger.warning(f"Could not seed user configuration from system configuration: {e}")
            else:
                if user_conf is not None:
                    logger.info(f"Created user configuration {user_conf.path} from system configuration")
                    return user_conf
        else:
            logger.debug(
                f"Neither ${self.settings.user_root_var} nor ${self.settings.home_var} is set; "
                "skipping user configuration"
            )

        sys_conf = self.system_config(program_name, file_name)
        if sys_conf is None:
            searched.append(Path(self.settings.system_root) / program_name / file_name)
            raise ResolutionError(program_name, file_name, searched)

        try:
            tmp_conf = sys_conf.make_temporary()
        except ConfigIOError as e:
            logger.warning(f"Could not create temporary copy, using read-only {sys_conf.path}: {e}")
            return sys_conf

        logger.info(f"Using temporary copy {tmp_conf.path} of {sys_conf.path}")
        return tmp_conf


def get(program_name: str, file_name: str, settings: Optional[LocatorSettings] = None) -> ConfigHandle:
    """Resolve a configuration using the live process environment."""
    return ConfigLocator(settings).get(program_name, file_name)
