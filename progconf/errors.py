"""
Error handling for progconf.

Structured error codes shared by path resolution, configuration handles,
the locator cascade and the change watcher.
"""

import errno
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union


class ErrorCode(Enum):
    """
    Error codes for progconf.

    Code ranges:
    - 1100-1199: Location and resolution errors
    - 1200-1299: File system errors
    - 1500-1599: Watcher errors
    """

    # Location and resolution errors (1100-1199)
    INVALID_LOCATION = 1100
    PATH_DECOMPOSITION_FAILED = 1101
    NO_CONFIGURATION = 1102

    # File system errors (1200-1299)
    FILE_NOT_FOUND = 1200
    FILE_READ_ERROR = 1201
    FILE_WRITE_ERROR = 1202
    DIRECTORY_NOT_FOUND = 1203
    PERMISSION_DENIED = 1204
    COPY_FAILED = 1205

    # Watcher errors (1500-1599)
    SUBSCRIPTION_FAILED = 1500
    WATCHER_ALREADY_RUNNING = 1501
    NOTIFICATION_ERROR = 1502


class ConfigError(Exception):
    """Base exception for configuration errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for structured output.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class InvalidLocationError(ConfigError):
    """A configuration location has an empty or malformed component."""

    def __init__(self, reason: str, **components: Any):
        super().__init__(
            code=ErrorCode.INVALID_LOCATION,
            message=f"Invalid configuration location: {reason}",
            suggestion="Root, program name and file name must all be non-empty",
            context={key: str(value) for key, value in components.items()}
        )


class DecompositionError(ConfigError):
    """A path could not be split into root, program and file."""

    def __init__(self, path: Union[str, Path]):
        super().__init__(
            code=ErrorCode.PATH_DECOMPOSITION_FAILED,
            message=f"Could not decompose path: {path}",
            suggestion="Use a path of the form <root>/<program>/<file>",
            context={"path": str(path)}
        )


class ConfigIOError(ConfigError):
    """File system error while reading, writing or copying a configuration."""

    def __init__(
        self,
        code: ErrorCode,
        operation: str,
        path: Union[str, Path],
        reason: str,
        errno_value: Optional[int] = None
    ):
        """
        Initialize I/O error.

        Args:
            code: Error code (FILE_* / DIRECTORY_NOT_FOUND / PERMISSION_DENIED / COPY_FAILED)
            operation: Operation that failed (e.g., "read", "write", "copy")
            path: Path the operation was acting on
            reason: Reason for failure
            errno_value: Underlying errno, if any
        """
        context = {"operation": operation, "path": str(path)}
        if errno_value is not None:
            context["errno"] = errno_value

        super().__init__(
            code=code,
            message=f"Failed to {operation} {path}: {reason}",
            context=context
        )
        self.operation = operation
        self.path = Path(path)
        self.errno = errno_value

    @classmethod
    def from_os_error(
        cls,
        exc: OSError,
        operation: str,
        path: Union[str, Path],
        default: ErrorCode
    ) -> "ConfigIOError":
        """
        Build a ConfigIOError from an OSError, refining the code from its errno.

        Args:
            exc: Underlying OS error
            operation: Operation that failed
            path: Path the operation was acting on
            default: Code used when errno does not map to a more specific one
        """
        code = default
        if exc.errno == errno.EACCES or exc.errno == errno.EPERM:
            code = ErrorCode.PERMISSION_DENIED
        elif exc.errno == errno.ENOENT:
            if operation == "write" or not Path(path).parent.exists():
                code = ErrorCode.DIRECTORY_NOT_FOUND
            else:
                code = ErrorCode.FILE_NOT_FOUND

        return cls(
            code=code,
            operation=operation,
            path=path,
            reason=exc.strerror or str(exc),
            errno_value=exc.errno
        )


class ResolutionError(ConfigError):
    """No configuration could be found anywhere in the search cascade."""

    def __init__(self, program_name: str, file_name: str, searched: Optional[list] = None):
        super().__init__(
            code=ErrorCode.NO_CONFIGURATION,
            message=f"No configuration available for {program_name}/{file_name}",
            suggestion="Install a system configuration or create one in the user config directory",
            context={
                "program_name": program_name,
                "file_name": file_name,
                "searched": [str(p) for p in (searched or [])]
            }
        )


class SubscriptionError(ConfigError):
    """Change notification could not be established or failed."""

    def __init__(
        self,
        path: Union[str, Path],
        reason: str,
        code: ErrorCode = ErrorCode.SUBSCRIPTION_FAILED
    ):
        super().__init__(
            code=code,
            message=f"Cannot watch {path}: {reason}",
            suggestion="Check that the file exists and inotify watches are available",
            context={"path": str(path), "reason": reason}
        )
