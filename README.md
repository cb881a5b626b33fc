# sharemem

Share a block of bytes between processes on one machine.

A writer creates a named shared-memory block of a fixed capacity and
publishes content into it. Any number of readers attach to the same name and
take copies of the latest content. Each block starts with a 32-byte header
(`ShareMemoryHeader`) that records the block size, the header size, the
current content length and a CRC-64 (ECMA-182) of the content.

Access is coordinated with file-based reader/writer locks kept in a
`rwfilelock` directory under the system temporary directory. Readers share
the lock and a writer holds it alone. A writer that is waiting keeps new
readers out, so it is not starved.

## Installation

```
pip install sharemem
```

## Library use

Writer process:

```python
from sharemem.memory import ShareMemoryWriter

with ShareMemoryWriter("demo", 1024 * 1024) as block:
    stored = block.write(b"hello from the writer")
```

Reader process:

```python
from sharemem.memory import ShareMemoryReader

with ShareMemoryReader("demo") as block:
    content = block.read()
    print(block.header.content_size, block.header.crc_check)
```

Behaviour:

- `ShareMemoryWriter(name, size)` creates the block with room for `size`
  bytes of content. Negative sizes count as 0. If a block with that name
  already exists, the writer reuses it. If the existing block is too small,
  `ShareMemoryError` is raised.
- `write(data)` replaces the content and returns the number of bytes stored.
  Data longer than the block's capacity is cut short to fit. The header's
  CRC-64 is updated on every write.
- `read()` returns a copy of the current content. The stored CRC is not
  checked against the content; compare `header.crc_check` with
  `sharemem.crc.crc64` yourself if you need that.
- `ShareMemoryError` is raised in these cases:
  - a reader is opened on a name that does not exist;
  - a block's header size does not match;
  - the stored content size is corrupt;
  - a closed block is used.
- `close()`, or leaving the `with` block, releases the block. The process
  that created the block also removes its name.

The checksum is available on its own. Feeding one result back in as `crc`
continues the checksum over further data:

```python
from sharemem.crc import crc64

checksum = crc64(b"some bytes", 0)
```

The locks can also be used directly, as context managers or through
`lock()` / `unlock()`:

```python
from sharemem.rwlock import ReadFileLock, WriteFileLock

with WriteFileLock("my-resource"):
    ...
```

Each lock polls for its files every 15 ms by default. Pass `poll_period_ms`
to change this. `lock_base_path(name)` returns where a name's lock files
(`.rlc` and `.wlc`) live.

## Command line

The `sharemem` command runs a self-checking exchange of random records.
Each record is 100 random bytes followed by their CRC-64. In one terminal
start the writer:

```
sharemem write
```

and in another the reader:

```
sharemem read
```

The writer prints each record's checksum as it publishes it. The reader
checks the size and checksum of every record it picks up and prints the
checksum. A failed check or a shared-memory error is reported on standard
error, and the command exits with status 1.

Options:

| Option | Default | Meaning |
| --- | --- | --- |
| `--name` | `SHARE_MEMORY_TEST` | Name of the block |
| `--size` | 1048576 | Content capacity; used by the writer only |
| `--iterations` | 60000 | Number of rounds |
| `--interval` | 0.001 | Seconds to sleep between rounds |

Start the writer first. A reader on a name that does not exist fails at once.

## What it does not do

Readers are not notified of new content; they poll. Blocks live only as
long as the processes using them. Nothing is kept on disk apart from the
empty lock files.

## Running the tests

```
pip install "sharemem[test]"
pytest
```