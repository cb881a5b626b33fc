import tempfile
import threading
import time

import pytest

from sharemem.rwlock import (
    ReadFileLock,
    RWFileLock,
    WriteFileLock,
    lock_base_path,
)


@pytest.fixture(autouse=True)
def isolated_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    return tmp_path


def _lock_in_thread(lock):
    acquired = threading.Event()

    def target():
        lock.lock()
        acquired.set()

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return acquired, thread


def test_lock_base_path_location(isolated_tempdir):
    path = lock_base_path("data.mdb")
    assert path == isolated_tempdir / "rwfilelock" / "data.mdb"
    assert path.parent.is_dir()


def test_lock_base_path_replaces_separators():
    path = lock_base_path("a:b\\c/d")
    assert path.name == "a_b_c_d"


def test_lock_file_paths():
    lock = ReadFileLock("name.mdb")
    base = lock_base_path("name.mdb")
    assert lock.reader_writer_path.name == base.name + ".rlc"
    assert lock.writer_path.name == base.name + ".wlc"
    assert lock.is_read_lock is True
    assert WriteFileLock("name.mdb").is_read_lock is False


def test_lock_and_unlock_toggle_state():
    lock = WriteFileLock("toggle")
    assert lock.is_locked is False
    lock.lock()
    assert lock.is_locked is True
    assert lock.reader_writer_path.exists()
    assert lock.writer_path.exists()
    lock.unlock()
    assert lock.is_locked is False


def test_repeated_lock_and_unlock_are_harmless():
    lock = ReadFileLock("repeat")
    lock.unlock()
    assert lock.is_locked is False
    lock.lock()
    lock.lock()
    assert lock.is_locked is True
    lock.unlock()
    lock.unlock()
    assert lock.is_locked is False


def test_initial_lock():
    lock = RWFileLock(False, "initial", initial_lock=True)
    try:
        assert lock.is_locked is True
    finally:
        lock.unlock()


def test_context_manager():
    lock = WriteFileLock("ctx")
    with lock as held:
        assert held is lock
        assert lock.is_locked is True
    assert lock.is_locked is False


def test_readers_share_the_lock():
    first = ReadFileLock("shared", poll_period_ms=1)
    second = ReadFileLock("shared", poll_period_ms=1)
    first.lock()
    try:
        acquired, thread = _lock_in_thread(second)
        assert acquired.wait(2.0)
        thread.join(2.0)
        assert second.is_locked is True
    finally:
        second.unlock()
        first.unlock()


def test_writer_excludes_writer():
    first = WriteFileLock("exclusive", poll_period_ms=1)
    second = WriteFileLock("exclusive", poll_period_ms=1)
    first.lock()
    acquired, thread = _lock_in_thread(second)
    try:
        time.sleep(0.1)
        assert not acquired.is_set()
        first.unlock()
        assert acquired.wait(2.0)
        thread.join(2.0)
        assert second.is_locked is True
    finally:
        first.unlock()
        second.unlock()


def test_reader_blocks_writer_until_released():
    reader = ReadFileLock("rw", poll_period_ms=1)
    writer = WriteFileLock("rw", poll_period_ms=1)
    reader.lock()
    acquired, thread = _lock_in_thread(writer)
    try:
        time.sleep(0.1)
        assert not acquired.is_set()
        reader.unlock()
        assert acquired.wait(2.0)
        thread.join(2.0)
        assert writer.is_locked is True
    finally:
        reader.unlock()
        writer.unlock()


def test_writer_blocks_reader_until_released():
    writer = WriteFileLock("wr", poll_period_ms=1)
    reader = ReadFileLock("wr", poll_period_ms=1)
    writer.lock()
    acquired, thread = _lock_in_thread(reader)
    try:
        time.sleep(0.1)
        assert not acquired.is_set()
        writer.unlock()
        assert acquired.wait(2.0)
        thread.join(2.0)
        assert reader.is_locked is True
    finally:
        writer.unlock()
        reader.unlock()