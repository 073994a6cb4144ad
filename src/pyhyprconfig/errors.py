"""Exception hierarchy for pyhyprconfig.

Every failure raised by the file and command layers is classified at the
point of origin into one :class:`ErrorKind`.  File errors keep the ``errno``
of the underlying :class:`OSError` when one exists so that retry and
user-facing decisions are driven by structured data rather than by message
wording.
"""

from __future__ import annotations

import errno as _errno
from enum import Enum
from pathlib import Path

from .recovery import (
    ABORT,
    Fallback,
    RecoveryStrategy,
    Retry,
    UserIntervention,
)


class ErrorKind(Enum):
    # file domain
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    ALREADY_EXISTS = "already_exists"
    INVALID_FORMAT = "invalid_format"
    INVALID_CONTENT = "invalid_content"
    CORRUPTION_DETECTED = "corruption_detected"
    READ_ERROR = "read_error"
    WRITE_ERROR = "write_error"
    DIRECTORY_CREATION_FAILED = "directory_creation_failed"
    OPERATION_INTERRUPTED = "operation_interrupted"
    INSUFFICIENT_SPACE = "insufficient_space"
    FILE_LOCKED = "file_locked"
    BACKUP_FAILED = "backup_failed"
    ATOMIC_OPERATION_FAILED = "atomic_operation_failed"
    TEMP_FILE_ERROR = "temp_file_error"
    # command domain
    COMMAND_NOT_FOUND = "command_not_found"
    BACKEND_NOT_RUNNING = "backend_not_running"
    INVALID_OPTION = "invalid_option"
    TIMEOUT = "timeout"
    PARSE_ERROR = "parse_error"
    EXECUTION_FAILED = "execution_failed"
    # configuration
    VALIDATION = "validation"


TRANSIENT_ERRNOS = frozenset(
    {_errno.EAGAIN, _errno.EBUSY, _errno.EINTR, _errno.ETXTBSY}
)
SPACE_ERRNOS = frozenset({_errno.ENOSPC, getattr(_errno, "EDQUOT", _errno.ENOSPC)})
PERMISSION_ERRNOS = frozenset({_errno.EACCES, _errno.EPERM, _errno.EROFS})

# Only consulted for errors built without an OS error code.
_TRANSIENT_MARKERS = ("busy", "temporar", "try again")
_SPACE_MARKERS = ("no space left", "disk full", "insufficient space")
_PERMISSION_MARKERS = ("permission denied", "access denied", "forbidden")


def _mentions(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(m in lowered for m in markers)


class HyprConfigError(Exception):
    """Base class for pyhyprconfig errors."""

    kind: ErrorKind | None = None

    @property
    def is_retryable(self) -> bool:
        return False

    def recovery_strategy(self) -> RecoveryStrategy:
        return ABORT

    def user_message(self) -> str:
        return str(self)


class ConfigValidationError(HyprConfigError):
    """Raised when an option value or settings entry fails validation."""

    kind = ErrorKind.VALIDATION

    def __init__(self, option: str, message: str) -> None:
        self.option = option
        self.message = message
        super().__init__(f"Configuration validation failed for '{option}': {message}")

    def user_message(self) -> str:
        return f"Invalid value for '{self.option}': {self.message}."


# ---------------------------------------------------------------------------
# File domain
# ---------------------------------------------------------------------------


class FileError(HyprConfigError):
    """A classified failure of a filesystem operation."""

    def __init__(
        self,
        path: str | Path,
        *,
        reason: str = "",
        operation: str = "",
        errno: int | None = None,
    ) -> None:
        self.path = Path(path)
        self.reason = reason
        self.operation = operation
        self.errno = errno
        super().__init__(self.describe())

    def describe(self) -> str:
        detail = f" - {self.reason}" if self.reason else ""
        return f"File operation failed: {self.path}{detail}"

    def _errno_in(self, codes: frozenset[int]) -> bool:
        return self.errno is not None and self.errno in codes

    def _transient_reason(self) -> bool:
        if self.errno is not None:
            return self.errno in TRANSIENT_ERRNOS
        return _mentions(self.reason, _TRANSIENT_MARKERS)

    @property
    def suggests_space_issue(self) -> bool:
        return self._errno_in(SPACE_ERRNOS)

    @property
    def suggests_permission_issue(self) -> bool:
        return self._errno_in(PERMISSION_ERRNOS)


class NotFoundError(FileError):
    kind = ErrorKind.NOT_FOUND

    def describe(self) -> str:
        return f"File not found: {self.path}"

    def recovery_strategy(self) -> RecoveryStrategy:
        return Fallback(
            f"File {self.path} not found, will attempt to create it or use default values"
        )

    def user_message(self) -> str:
        return f"File '{self.path}' was not found. It may have been moved or deleted."


class PermissionDeniedError(FileError):
    kind = ErrorKind.PERMISSION_DENIED

    def describe(self) -> str:
        return f"Permission denied accessing: {self.path} (operation: {self.operation})"

    @property
    def suggests_permission_issue(self) -> bool:
        return True

    def recovery_strategy(self) -> RecoveryStrategy:
        return UserIntervention(
            f"Permission denied for {self.operation} operation on {self.path}. "
            "Please check file permissions or run with appropriate privileges."
        )

    def user_message(self) -> str:
        return (
            f"Permission denied when trying to {self.operation or 'access'} "
            f"'{self.path}'. Please check the file permissions."
        )


class AlreadyExistsError(FileError):
    kind = ErrorKind.ALREADY_EXISTS

    def describe(self) -> str:
        return f"File already exists: {self.path}"


class InvalidFormatError(FileError):
    kind = ErrorKind.INVALID_FORMAT

    def __init__(self, path: str | Path, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(path, reason=f"expected {expected}, got {actual}")

    def describe(self) -> str:
        return (
            f"Invalid file format for {self.path}: expected {self.expected}, "
            f"got {self.actual}"
        )


class InvalidContentError(FileError):
    kind = ErrorKind.INVALID_CONTENT

    def describe(self) -> str:
        return f"File content is invalid or corrupted: {self.path} - {self.reason}"


class CorruptionDetectedError(FileError):
    kind = ErrorKind.CORRUPTION_DETECTED

    def __init__(self, path: str | Path, details: str) -> None:
        self.details = details
        super().__init__(path, reason=details)

    def describe(self) -> str:
        return f"File corruption detected: {self.path} - {self.details}"

    def recovery_strategy(self) -> RecoveryStrategy:
        return UserIntervention(
            f"File corruption detected in {self.path}. "
            "Please restore from backup or recreate the file."
        )

    def user_message(self) -> str:
        return (
            f"File '{self.path}' appears to be corrupted ({self.details}). "
            "Consider restoring from backup."
        )


class ReadError(FileError):
    kind = ErrorKind.READ_ERROR

    def describe(self) -> str:
        return f"Failed to read file: {self.path} - {self.reason}"

    @property
    def is_retryable(self) -> bool:
        return self._transient_reason()

    @property
    def suggests_permission_issue(self) -> bool:
        if self.errno is not None:
            return self.errno in PERMISSION_ERRNOS
        return _mentions(self.reason, _PERMISSION_MARKERS)


class WriteError(FileError):
    kind = ErrorKind.WRITE_ERROR

    def describe(self) -> str:
        return f"Failed to write file: {self.path} - {self.reason}"

    @property
    def is_retryable(self) -> bool:
        return self._transient_reason()

    @property
    def suggests_space_issue(self) -> bool:
        if self.errno is not None:
            return self.errno in SPACE_ERRNOS
        return _mentions(self.reason, _SPACE_MARKERS)

    @property
    def suggests_permission_issue(self) -> bool:
        if self.errno is not None:
            return self.errno in PERMISSION_ERRNOS
        return _mentions(self.reason, _PERMISSION_MARKERS)


class DirectoryCreationError(FileError):
    kind = ErrorKind.DIRECTORY_CREATION_FAILED

    def describe(self) -> str:
        return f"Directory creation failed: {self.path} - {self.reason}"


class OperationInterruptedError(FileError):
    kind = ErrorKind.OPERATION_INTERRUPTED

    def describe(self) -> str:
        return f"File operation interrupted: {self.path} (operation: {self.operation})"

    @property
    def is_retryable(self) -> bool:
        return True

    def recovery_strategy(self) -> RecoveryStrategy:
        return Retry(max_attempts=2, base_delay_ms=50)


class InsufficientSpaceError(FileError):
    kind = ErrorKind.INSUFFICIENT_SPACE

    def describe(self) -> str:
        return f"Disk space insufficient for operation on: {self.path}"

    @property
    def suggests_space_issue(self) -> bool:
        return True

    def recovery_strategy(self) -> RecoveryStrategy:
        return UserIntervention(
            f"Insufficient disk space for operation on {self.path}. "
            "Please free up space and try again."
        )

    def user_message(self) -> str:
        return (
            f"Not enough disk space to complete the operation on '{self.path}'. "
            "Please free up some space."
        )


class FileLockedError(FileError):
    kind = ErrorKind.FILE_LOCKED

    def describe(self) -> str:
        return f"File locked by another process: {self.path}"

    @property
    def is_retryable(self) -> bool:
        return True

    def recovery_strategy(self) -> RecoveryStrategy:
        return Retry(max_attempts=3, base_delay_ms=100)

    def user_message(self) -> str:
        return (
            f"File '{self.path}' is currently in use by another application. "
            "Please close it and try again."
        )


class BackupFailedError(FileError):
    kind = ErrorKind.BACKUP_FAILED

    def __init__(
        self,
        path: str | Path,
        backup_path: str | Path,
        reason: str,
        *,
        errno: int | None = None,
    ) -> None:
        self.backup_path = Path(backup_path)
        super().__init__(path, reason=reason, operation="backup", errno=errno)

    def describe(self) -> str:
        return (
            f"Backup operation failed: {self.path} -> {self.backup_path} - {self.reason}"
        )

    def user_message(self) -> str:
        return (
            f"Failed to create backup of '{self.path}': {self.reason}. "
            "The original file was not modified."
        )


class AtomicOperationError(FileError):
    kind = ErrorKind.ATOMIC_OPERATION_FAILED

    def __init__(self, path: str | Path, stage: str, *, errno: int | None = None) -> None:
        self.stage = stage
        super().__init__(path, reason=stage, operation="atomic write", errno=errno)

    def describe(self) -> str:
        return f"Atomic operation failed: {self.path} - {self.stage}"

    @property
    def suggests_space_issue(self) -> bool:
        if self.errno is not None:
            return self.errno in SPACE_ERRNOS
        return _mentions(self.stage, ("space", "disk"))

    def user_message(self) -> str:
        return (
            f"Safe file operation failed for '{self.path}' during {self.stage}: "
            "The file was not modified to prevent corruption."
        )


class TempFileError(FileError):
    kind = ErrorKind.TEMP_FILE_ERROR

    def describe(self) -> str:
        return f"Temporary file operation failed: {self.path} - {self.reason}"

    @property
    def is_retryable(self) -> bool:
        return True

    def recovery_strategy(self) -> RecoveryStrategy:
        return Retry(max_attempts=2, base_delay_ms=200)


def classify_os_error(exc: OSError, path: str | Path, operation: str) -> FileError:
    """Map *exc* raised while performing *operation* on *path* to a :class:`FileError`."""
    code = exc.errno
    reason = exc.strerror or str(exc)
    if isinstance(exc, FileNotFoundError) or code == _errno.ENOENT:
        return NotFoundError(path, operation=operation, errno=code)
    if code in (_errno.EACCES, _errno.EPERM):
        return PermissionDeniedError(path, operation=operation, reason=reason, errno=code)
    if code == _errno.EEXIST:
        return AlreadyExistsError(path, operation=operation, errno=code)
    if code in SPACE_ERRNOS:
        return InsufficientSpaceError(path, operation=operation, reason=reason, errno=code)
    if code == _errno.EINTR:
        return OperationInterruptedError(path, operation=operation, reason=reason, errno=code)
    if code == _errno.ETXTBSY:
        return FileLockedError(path, operation=operation, reason=reason, errno=code)
    if operation == "read":
        return ReadError(path, operation=operation, reason=reason, errno=code)
    return WriteError(path, operation=operation, reason=reason, errno=code)


# ---------------------------------------------------------------------------
# Command domain
# ---------------------------------------------------------------------------

_BACKEND_DOWN_MARKERS = (
    "no such file or directory",
    "connection refused",
    "could not connect",
    "hyprland_instance_signature",
)


class CommandError(HyprConfigError):
    """A classified failure of a control-plane command."""

    def __init__(self, message: str, *, command: str = "") -> None:
        self.command = command
        super().__init__(message)

    @property
    def suggests_backend_down(self) -> bool:
        return False


class CommandNotFoundError(CommandError):
    kind = ErrorKind.COMMAND_NOT_FOUND

    def __init__(self, command: str = "hyprctl") -> None:
        super().__init__(
            "Hyprctl command not found - is Hyprland running?", command=command
        )

    @property
    def suggests_backend_down(self) -> bool:
        return True

    def user_message(self) -> str:
        return (
            "Hyprctl command not found. Please ensure Hyprland is installed and running."
        )


class BackendNotRunningError(CommandError):
    kind = ErrorKind.BACKEND_NOT_RUNNING

    def __init__(self, command: str = "") -> None:
        super().__init__("Hyprland is not running or not accessible", command=command)

    @property
    def suggests_backend_down(self) -> bool:
        return True

    def user_message(self) -> str:
        return "Hyprland is not running. Please start Hyprland and try again."


class InvalidOptionError(CommandError):
    kind = ErrorKind.INVALID_OPTION

    def __init__(self, option: str, *, command: str = "") -> None:
        self.option = option
        super().__init__(f"Invalid hyprctl option: {option}", command=command)

    def user_message(self) -> str:
        return (
            f"Configuration option '{self.option}' is not supported by your Hyprland "
            "version. Please check the documentation or update Hyprland."
        )


class CommandTimeoutError(CommandError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, command: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Hyprctl command timed out after {timeout_ms}ms: {command}",
            command=command,
        )

    @property
    def is_retryable(self) -> bool:
        return True

    def user_message(self) -> str:
        return (
            f"Command '{self.command}' timed out after {self.timeout_ms}ms. "
            "Hyprland may be busy - try again in a moment."
        )


class ParseError(CommandError):
    kind = ErrorKind.PARSE_ERROR

    def __init__(self, command: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Failed to parse hyprctl output for command '{command}': {reason}",
            command=command,
        )

    def user_message(self) -> str:
        return (
            f"Failed to understand Hyprland's response to '{self.command}': "
            f"{self.reason}. This may indicate a version compatibility issue."
        )


class ExecutionFailedError(CommandError):
    kind = ErrorKind.EXECUTION_FAILED

    def __init__(self, command: str, stderr: str) -> None:
        self.stderr = stderr
        super().__init__(f"Hyprctl command failed: {command} - {stderr}", command=command)

    @property
    def is_retryable(self) -> bool:
        return _mentions(self.stderr, _TRANSIENT_MARKERS)

    @property
    def suggests_backend_down(self) -> bool:
        return _mentions(self.stderr, _BACKEND_DOWN_MARKERS)

    def user_message(self) -> str:
        if "could not connect" in self.stderr.lower():
            return "Cannot connect to Hyprland. Make sure Hyprland is running and try again."
        return (
            f"Hyprland command '{self.command}' failed: {self.stderr.strip()}. "
            "Please check your configuration."
        )
