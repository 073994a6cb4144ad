from __future__ import annotations

import errno

from pyhyprconfig.errors import (
    AtomicOperationError,
    BackendNotRunningError,
    CommandNotFoundError,
    CommandTimeoutError,
    CorruptionDetectedError,
    ErrorKind,
    ExecutionFailedError,
    FileLockedError,
    InsufficientSpaceError,
    InvalidOptionError,
    NotFoundError,
    OperationInterruptedError,
    ParseError,
    PermissionDeniedError,
    ReadError,
    TempFileError,
    WriteError,
    classify_os_error,
)
from pyhyprconfig.recovery import ABORT, Fallback, Retry, UserIntervention


def test_classify_os_error_uses_errno(tmp_path):
    path = tmp_path / "x"
    cases = {
        errno.ENOENT: NotFoundError,
        errno.EACCES: PermissionDeniedError,
        errno.EPERM: PermissionDeniedError,
        errno.ENOSPC: InsufficientSpaceError,
        errno.EINTR: OperationInterruptedError,
        errno.ETXTBSY: FileLockedError,
    }
    for code, cls in cases.items():
        err = classify_os_error(OSError(code, "boom"), path, "write")
        assert type(err) is cls
        assert err.errno == code


def test_classify_falls_back_on_operation(tmp_path):
    read = classify_os_error(OSError(errno.EIO, "io"), tmp_path, "read")
    write = classify_os_error(OSError(errno.EIO, "io"), tmp_path, "write")
    assert isinstance(read, ReadError)
    assert isinstance(write, WriteError)
    assert not read.is_retryable


def test_retryable_comes_from_errno_not_wording(tmp_path):
    busy = WriteError(tmp_path, reason="all good", errno=errno.EAGAIN)
    assert busy.is_retryable
    worded = WriteError(tmp_path, reason="device busy", errno=errno.EIO)
    assert not worded.is_retryable


def test_text_markers_only_without_errno(tmp_path):
    assert ReadError(tmp_path, reason="Resource temporarily unavailable").is_retryable
    assert WriteError(tmp_path, reason="No space left on device").suggests_space_issue
    assert WriteError(tmp_path, reason="Permission denied").suggests_permission_issue
    assert not WriteError(tmp_path, reason="odd").suggests_space_issue


def test_temporarily_unavailable_is_transient(tmp_path):
    reason = "Resource temporarily unavailable"
    assert ExecutionFailedError("hyprctl keyword", reason).is_retryable
    assert WriteError(tmp_path, reason=reason).is_retryable
    assert ExecutionFailedError("hyprctl keyword", "Temporary failure").is_retryable
    assert not ExecutionFailedError("hyprctl keyword", "invalid value").is_retryable


def test_recovery_strategies_per_kind(tmp_path):
    assert isinstance(NotFoundError(tmp_path).recovery_strategy(), Fallback)
    assert isinstance(
        PermissionDeniedError(tmp_path, operation="write").recovery_strategy(),
        UserIntervention,
    )
    assert FileLockedError(tmp_path).recovery_strategy() == Retry(3, 100)
    assert OperationInterruptedError(tmp_path).recovery_strategy() == Retry(2, 50)
    assert TempFileError(tmp_path).recovery_strategy() == Retry(2, 200)
    assert isinstance(CorruptionDetectedError(tmp_path, "bad").recovery_strategy(), UserIntervention)
    assert WriteError(tmp_path).recovery_strategy() is ABORT
    assert TempFileError(tmp_path).is_retryable


def test_file_error_messages(tmp_path):
    path = tmp_path / "hyprland.conf"
    assert "was not found" in NotFoundError(path).user_message()
    err = AtomicOperationError(path, "rename temporary file")
    assert err.kind is ErrorKind.ATOMIC_OPERATION_FAILED
    assert "was not modified" in err.user_message()
    assert str(path) in str(err)


def test_command_errors():
    assert CommandNotFoundError().suggests_backend_down
    assert BackendNotRunningError("hyprctl version").suggests_backend_down
    timeout = CommandTimeoutError("hyprctl binds", 250)
    assert timeout.is_retryable
    assert "250ms" in timeout.user_message()
    assert not ParseError("hyprctl binds", "garbage").is_retryable
    assert not InvalidOptionError("foo:bar").is_retryable
    assert "foo:bar" in InvalidOptionError("foo:bar").user_message()


def test_execution_failed_classification():
    busy = ExecutionFailedError("hyprctl keyword", "resource busy")
    assert busy.is_retryable
    down = ExecutionFailedError("hyprctl version", "Could not connect to socket")
    assert down.suggests_backend_down
    assert down.user_message().startswith("Cannot connect to Hyprland")
    plain = ExecutionFailedError("hyprctl keyword", "bad value")
    assert not plain.is_retryable
    assert not plain.suggests_backend_down
