"""Named shared memory blocks with a small header, guarded by reader/writer file locks."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from multiprocessing import shared_memory

from .crc import crc64
from .rwlock import ReadFileLock, WriteFileLock

MAP_PREFIX = "ShareMemoryMap-"
LOCK_PREFIX = "ShareMemoryLockedFile-"
LOCK_SUFFIX = ".mdb"

# memorySize, headSize, contentSize, padding, crcCheck, varReserved, padding
_HEADER = struct.Struct("<iii4xQi4x")
HEAD_SIZE = _HEADER.size

# Shared memory blocks this process created; attaching to one of them again
# must not drop the ownership record kept by the resource tracker.
_owned_names: set[str] = set()


class ShareMemoryError(Exception):
    """Raised when a shared memory block cannot be opened, read or written."""


@dataclass
class ShareMemoryHeader:
    """The header stored at the start of every shared memory block."""

    memory_size: int = 0
    head_size: int = HEAD_SIZE
    content_size: int = 0
    crc_check: int = 0
    reserved: int = 0

    def pack(self) -> bytes:
        """Return the header in its stored binary form."""
        return _HEADER.pack(
            self.memory_size, self.head_size, self.content_size, self.crc_check, self.reserved
        )

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> "ShareMemoryHeader":
        """Parse a header from the first bytes of ``data``."""
        if len(data) < HEAD_SIZE:
            raise ShareMemoryError(
                f"header needs {HEAD_SIZE} bytes, got {len(data)}"
            )
        return cls(*_HEADER.unpack_from(bytes(data[:HEAD_SIZE])))

    def max_content_size(self) -> int:
        """Return how many content bytes the block can hold."""
        return self.memory_size - self.head_size


def _untrack(block: shared_memory.SharedMemory) -> None:
    """Keep the resource tracker from destroying a block this process only attached to."""
    if os.name != "posix" or block.name in _owned_names:
        return
    from multiprocessing import resource_tracker

    resource_tracker.unregister(getattr(block, "_name", "/" + block.name), "shared_memory")


def _attach(map_name: str) -> shared_memory.SharedMemory:
    try:
        block = shared_memory.SharedMemory(map_name)
    except FileNotFoundError as error:
        raise ShareMemoryError(f"shared memory {map_name!r} does not exist") from error
    _untrack(block)
    return block


class ShareMemory:
    """A named shared memory block; base of the writer and the reader."""

    def __init__(self, name: str, write: bool) -> None:
        self.name = name
        self.map_name = MAP_PREFIX + name
        self.lock_name = LOCK_PREFIX + name + LOCK_SUFFIX
        self.writable = write
        self._read_lock = ReadFileLock(self.lock_name)
        self._write_lock = WriteFileLock(self.lock_name)
        self._block: shared_memory.SharedMemory | None = None
        self._owner = False

    @property
    def closed(self) -> bool:
        """Whether the block has been closed."""
        return self._block is None

    def _buffer(self) -> memoryview:
        if self._block is None:
            raise ShareMemoryError(f"shared memory {self.map_name!r} is closed")
        return self._block.buf

    def _read_header(self) -> ShareMemoryHeader:
        header = ShareMemoryHeader.from_bytes(self._buffer()[:HEAD_SIZE])
        if header.head_size != HEAD_SIZE:
            raise ShareMemoryError(
                f"unexpected header size {header.head_size}, expected {HEAD_SIZE}"
            )
        return header

    @property
    def header(self) -> ShareMemoryHeader:
        """The header currently stored in the block."""
        return self._read_header()

    def read(self) -> bytes:
        """Return a copy of the current content under the read lock."""
        buffer = self._buffer()
        with self._read_lock:
            header = self._read_header()
            size = header.content_size
            if size < 0 or HEAD_SIZE + size > len(buffer):
                raise ShareMemoryError(f"corrupt content size {size}")
            return bytes(buffer[HEAD_SIZE:HEAD_SIZE + size])

    def close(self) -> None:
        """Release the block; the creator also removes its name."""
        block, self._block = self._block, None
        if block is None:
            return
        block.close()
        if self._owner:
            _owned_names.discard(block.name)
            try:
                block.unlink()
            except FileNotFoundError:
                pass
        self._read_lock.unlock()
        self._write_lock.unlock()

    def __enter__(self) -> "ShareMemory":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass


class ShareMemoryWriter(ShareMemory):
    """Creates (or reuses) a named block and writes content into it."""

    def __init__(self, name: str, size: int) -> None:
        super().__init__(name, True)
        self.size = max(size, 0)
        memory_size = self.size + HEAD_SIZE
        try:
            block = shared_memory.SharedMemory(self.map_name, create=True, size=memory_size)
        except FileExistsError:
            block = _attach(self.map_name)
            if block.size < memory_size:
                block.close()
                raise ShareMemoryError(
                    f"existing shared memory {self.map_name!r} holds {block.size} bytes,"
                    f" {memory_size} needed"
                ) from None
        else:
            self._owner = True
            _owned_names.add(block.name)
        self._block = block
        header = ShareMemoryHeader(memory_size=memory_size, head_size=HEAD_SIZE)
        block.buf[:HEAD_SIZE] = header.pack()

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Replace the content with ``data`` and return the number of bytes stored.

        Data longer than the block holds is truncated.
        """
        buffer = self._buffer()
        payload = bytes(data)
        with self._write_lock:
            header = self._read_header()
            payload = payload[:max(header.max_content_size(), 0)]
            header.content_size = len(payload)
            header.crc_check = crc64(payload, 0)
            buffer[:HEAD_SIZE] = header.pack()
            buffer[HEAD_SIZE:HEAD_SIZE + len(payload)] = payload
        return len(payload)


class ShareMemoryReader(ShareMemory):
    """Opens an existing named block for reading."""

    def __init__(self, name: str) -> None:
        super().__init__(name, False)
        self._block = _attach(self.map_name)