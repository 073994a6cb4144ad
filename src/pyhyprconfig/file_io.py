"""Durable file operations: backup, atomic replace, retry and verification.

All blocking filesystem calls run in a worker thread via
:func:`asyncio.to_thread` so callers on an event loop are never blocked.
Each step of :meth:`FileOperations.write_to_file` happens strictly in order:
backup, write, verify, backup removal.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from .errors import (
    AtomicOperationError,
    BackupFailedError,
    CorruptionDetectedError,
    DirectoryCreationError,
    FileError,
    InvalidContentError,
    NotFoundError,
    PermissionDeniedError,
    TempFileError,
    WriteError,
    classify_os_error,
)
from .recovery import Backoff, RecoveryContext, UserIntervention, run_with_recovery

logger = logging.getLogger("pyhyprconfig.file_io")

StrPath = str | os.PathLike[str]


@dataclass(frozen=True)
class FileOperationConfig:
    create_backup: bool = True
    backup_suffix: str = ".backup"
    atomic_writes: bool = True
    temp_suffix: str = ".tmp"
    max_retries: int = 3
    retry_delay_ms: int = 100
    verify_writes: bool = True
    # When False a verification mismatch is only logged.
    fail_on_verify_mismatch: bool = False


def _write_bytes(path: Path, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)
        fh.flush()
        os.fsync(fh.fileno())


class FileOperations:
    def __init__(
        self,
        config: FileOperationConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or FileOperationConfig()
        self._sleep = sleep

    def _context(self, operation: str) -> RecoveryContext:
        return RecoveryContext(operation).with_retry(
            self.config.max_retries, self.config.retry_delay_ms
        )

    async def _recover(self, context: RecoveryContext, attempt, **kwargs):
        return await run_with_recovery(
            context, attempt, backoff=Backoff.LINEAR, sleep=self._sleep, **kwargs
        )

    # ----- read -----

    async def read_to_string(self, path: StrPath, *, missing_ok: bool = True) -> str:
        """Return the UTF-8 text of *path*.

        A missing file reads as ``""`` unless *missing_ok* is false, in which
        case :class:`NotFoundError` propagates.
        """
        path = Path(path)

        def _absent_as_empty(error: Exception) -> str:
            if missing_ok and isinstance(error, NotFoundError):
                return ""
            raise error

        context = self._context("read file").with_fallback("treat missing file as empty")
        return await self._recover(
            context, lambda: self._attempt_read(path), fallback=_absent_as_empty
        )

    async def _attempt_read(self, path: Path) -> str:
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise classify_os_error(exc, path, "read") from exc
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidContentError(path, reason=f"not valid UTF-8: {exc}") from exc

    # ----- write -----

    async def write_to_file(self, path: StrPath, content: str) -> None:
        """Persist *content* at *path*.

        On failure the pre-call content is restored from the backup taken at
        the start, so the target is never left worse off than before.
        """
        path = Path(path)
        backup: Path | None = None
        if self.config.create_backup and await asyncio.to_thread(path.exists):
            try:
                backup = await self.create_backup(path)
                logger.info("created backup %s", backup)
            except FileError as exc:
                logger.warning("failed to create backup of %s: %s", path, exc)

        try:
            await self._recover(
                self._context("write file"), lambda: self._attempt_write(path, content)
            )
            if self.config.verify_writes:
                await self._verify(path, content)
        except FileError as exc:
            strategy = exc.recovery_strategy()
            if isinstance(strategy, UserIntervention):
                logger.error("%s", strategy.message)
                exc.add_note(strategy.message)
            if backup is not None:
                await self._restore(backup, path)
            raise

        if backup is not None:
            try:
                await asyncio.to_thread(backup.unlink)
            except OSError as exc:
                logger.debug("could not remove backup %s: %s", backup, exc)

    async def _attempt_write(self, path: Path, content: str) -> None:
        await self.ensure_directory(path.parent)
        data = content.encode("utf-8")
        if self.config.atomic_writes:
            await self._atomic_write(path, data)
        else:
            try:
                await asyncio.to_thread(_write_bytes, path, data)
            except OSError as exc:
                raise classify_os_error(exc, path, "write") from exc

    def temp_path_for(self, path: Path) -> Path:
        return path.with_name(path.name + self.config.temp_suffix)

    async def _atomic_write(self, path: Path, data: bytes) -> None:
        temp = self.temp_path_for(path)
        try:
            await asyncio.to_thread(_write_bytes, temp, data)
        except OSError as exc:
            await self._discard(temp)
            error = classify_os_error(exc, path, "write")
            if isinstance(error, WriteError) and not error.is_retryable:
                error = TempFileError(
                    temp, reason=str(exc), operation="write", errno=exc.errno
                )
            raise error from exc
        try:
            await asyncio.to_thread(os.replace, temp, path)
        except OSError as exc:
            await self._discard(temp)
            raise AtomicOperationError(
                path, f"rename temporary file: {exc}", errno=exc.errno
            ) from exc

    async def _verify(self, path: Path, expected: str) -> None:
        try:
            actual = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            error: FileError = CorruptionDetectedError(path, f"verification read failed: {exc}")
        else:
            wanted = expected.encode("utf-8")
            if actual == wanted:
                return
            error = CorruptionDetectedError(
                path,
                f"Content mismatch: expected {len(wanted)} bytes, got {len(actual)} bytes",
            )
        if self.config.fail_on_verify_mismatch:
            raise error
        logger.warning("file verification failed: %s", error)

    async def _restore(self, backup: Path, path: Path) -> None:
        try:
            await asyncio.to_thread(shutil.copyfile, backup, path)
        except OSError as exc:
            logger.error("failed to restore backup %s onto %s: %s", backup, path, exc)
        else:
            logger.warning("restored %s from backup after write failure", path)

    @staticmethod
    async def _discard(path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            logger.debug("could not remove %s: %s", path, exc)

    # ----- supporting operations -----

    def backup_path_for(self, path: Path, timestamp: int | None = None) -> Path:
        stamp = int(time.time()) if timestamp is None else timestamp
        suffix = self.config.backup_suffix.lstrip(".")
        candidate = path.with_name(f"{path.name}.{suffix}.{stamp}")
        counter = 1
        while candidate.exists():
            candidate = path.with_name(f"{path.name}.{suffix}.{stamp}.{counter}")
            counter += 1
        return candidate

    async def create_backup(self, path: StrPath) -> Path:
        """Copy *path* to a timestamped sibling and return the backup path."""
        path = Path(path)
        if not await asyncio.to_thread(path.exists):
            raise NotFoundError(path, operation="backup")
        backup = await asyncio.to_thread(self.backup_path_for, path)
        try:
            await asyncio.to_thread(shutil.copy2, path, backup)
        except OSError as exc:
            raise BackupFailedError(path, backup, str(exc), errno=exc.errno) from exc
        return backup

    async def ensure_directory(self, path: StrPath) -> None:
        path = Path(path)

        async def attempt() -> None:
            if await asyncio.to_thread(path.exists):
                if await asyncio.to_thread(path.is_dir):
                    return
                raise DirectoryCreationError(
                    path, reason="Path exists but is not a directory", operation="mkdir"
                )
            try:
                await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
            except OSError as exc:
                raise DirectoryCreationError(
                    path, reason=str(exc), operation="mkdir", errno=exc.errno
                ) from exc

        await self._recover(self._context("create directory"), attempt)

    async def copy_file(self, src: StrPath, dst: StrPath) -> None:
        src, dst = Path(src), Path(dst)
        await self.ensure_directory(dst.parent)

        async def attempt() -> None:
            try:
                await asyncio.to_thread(shutil.copyfile, src, dst)
            except FileNotFoundError as exc:
                raise NotFoundError(src, operation="copy", errno=exc.errno) from exc
            except PermissionError as exc:
                raise PermissionDeniedError(
                    src, operation="copy", reason=str(exc), errno=exc.errno
                ) from exc
            except OSError as exc:
                raise WriteError(
                    dst, operation="copy", reason=str(exc), errno=exc.errno
                ) from exc

        await self._recover(self._context("copy file"), attempt)

    async def remove_file(self, path: StrPath) -> None:
        path = Path(path)

        async def attempt() -> None:
            try:
                await asyncio.to_thread(path.unlink)
            except OSError as exc:
                raise classify_os_error(exc, path, "delete") from exc

        await self._recover(self._context("remove file"), attempt)
