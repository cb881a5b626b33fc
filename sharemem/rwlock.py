"""Reader/writer locks between processes, built on a pair of lock files."""

from __future__ import annotations

import time
import tempfile
from pathlib import Path
from typing import IO

import portalocker

POLL_PERIOD_DEFAULT = 15
"""Default polling period in milliseconds (about sixty polls a second)."""

_LOCK_DIRECTORY = "rwfilelock"
_FORBIDDEN = str.maketrans({":": "_", "\\": "_", "/": "_"})


def lock_base_path(name: str) -> Path:
    """Return the base path of the lock files for ``name``.

    The files live in a ``rwfilelock`` directory under the system temporary
    directory; path separators and colons in ``name`` become underscores.
    The directory is created if it does not exist.
    """
    directory = Path(tempfile.gettempdir()) / _LOCK_DIRECTORY
    directory.mkdir(parents=True, exist_ok=True)
    return directory / name.translate(_FORBIDDEN)


class RWFileLock:
    """A lock shared between processes that admits many readers or one writer.

    Writers first take the writer file exclusively, which keeps new readers
    out, then the reader/writer file exclusively once current readers leave.
    Readers wait until no writer holds the writer file, then hold the
    reader/writer file in shared mode.
    """

    def __init__(
        self,
        is_read_lock: bool,
        name: str,
        initial_lock: bool = False,
        poll_period_ms: int = POLL_PERIOD_DEFAULT,
    ) -> None:
        self.is_read_lock = is_read_lock
        self.poll_period = poll_period_ms / 1000.0
        base = lock_base_path(name)
        self.reader_writer_path = base.with_name(base.name + ".rlc")
        self.writer_path = base.with_name(base.name + ".wlc")
        self._reader_writer_file: IO[bytes] | None = None
        self._writer_file: IO[bytes] | None = None
        self._locked = False
        if initial_lock:
            self.lock()

    @property
    def is_locked(self) -> bool:
        """Whether this lock is currently held."""
        return self._locked

    def _acquire(self, path: Path, shared: bool) -> IO[bytes]:
        flags = (portalocker.LOCK_SH if shared else portalocker.LOCK_EX) | portalocker.LOCK_NB
        while True:
            handle = open(path, "a+b")
            try:
                portalocker.lock(handle, flags)
            except portalocker.exceptions.LockException:
                handle.close()
                time.sleep(self.poll_period)
                continue
            except BaseException:
                handle.close()
                raise
            return handle

    @staticmethod
    def _release(handle: IO[bytes] | None) -> None:
        if handle is None:
            return
        try:
            portalocker.unlock(handle)
        finally:
            handle.close()

    def lock(self) -> None:
        """Block until the lock is held; does nothing if it already is."""
        if self._locked:
            return
        if self.is_read_lock:
            # Wait while a writer claims access, so writers are not starved.
            self._release(self._acquire(self.writer_path, shared=True))
            self._reader_writer_file = self._acquire(self.reader_writer_path, shared=True)
        else:
            self._writer_file = self._acquire(self.writer_path, shared=False)
            try:
                self._reader_writer_file = self._acquire(self.reader_writer_path, shared=False)
            except BaseException:
                self._release(self._writer_file)
                self._writer_file = None
                raise
        self._locked = True

    def unlock(self) -> None:
        """Release the lock; does nothing if it is not held."""
        if not self._locked:
            return
        try:
            if not self.is_read_lock:
                self._release(self._writer_file)
            self._release(self._reader_writer_file)
        finally:
            self._writer_file = None
            self._reader_writer_file = None
            self._locked = False

    def __enter__(self) -> "RWFileLock":
        self.lock()
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()

    def __del__(self) -> None:
        try:
            self.unlock()
        except Exception:
            pass


class ReadFileLock(RWFileLock):
    """A shared lock for readers."""

    def __init__(
        self, name: str, initial_lock: bool = False, poll_period_ms: int = POLL_PERIOD_DEFAULT
    ) -> None:
        super().__init__(True, name, initial_lock, poll_period_ms)


class WriteFileLock(RWFileLock):
    """An exclusive lock for writers."""

    def __init__(
        self, name: str, initial_lock: bool = False, poll_period_ms: int = POLL_PERIOD_DEFAULT
    ) -> None:
        super().__init__(False, name, initial_lock, poll_period_ms)