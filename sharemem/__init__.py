"""Named shared-memory blocks with a CRC-64 header, guarded by file-based reader/writer locks."""

__version__ = "0.1.0"
__all__ = ["crc", "rwlock", "memory", "cli"]