"""Tests for the PID lock file."""

import os
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

from edgecd.utils.lock import LockHeldError, ProcessLock, pid_alive


def _dead_pid() -> int:
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


def test_pid_alive():
    assert pid_alive(os.getpid())
    assert not pid_alive(0)
    assert not pid_alive(_dead_pid())


def test_acquire_writes_pid_and_release_removes_it():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "run" / "edge-cd.lock"
        lock = ProcessLock(path)

        lock.acquire()
        assert path.read_text() == str(os.getpid())
        assert lock.holder() == os.getpid()

        lock.release()
        assert not path.exists()


def test_acquire_is_reentrant_for_same_pid():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock = ProcessLock(Path(tmpdir) / "edge-cd.lock")
        lock.acquire()
        lock.acquire()
        assert lock.holder() == os.getpid()


def test_live_holder_blocks_acquire():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "edge-cd.lock"
        ProcessLock(path).acquire()

        with pytest.raises(LockHeldError, match=str(os.getpid())):
            ProcessLock(path, pid=os.getpid() + 100000).acquire()
        assert path.read_text() == str(os.getpid())


def test_stale_lock_is_taken_over():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "edge-cd.lock"
        path.write_text(str(_dead_pid()))

        with ProcessLock(path) as lock:
            assert lock.holder() == os.getpid()
        assert not path.exists()


def test_garbage_lock_file_is_taken_over():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "edge-cd.lock"
        path.write_text("not-a-pid")

        lock = ProcessLock(path)
        assert lock.holder() is None
        lock.acquire()
        assert lock.holder() == os.getpid()


def test_release_leaves_foreign_lock_alone():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "edge-cd.lock"
        path.write_text("1")

        ProcessLock(path).release()

        assert path.read_text() == "1"


@pytest.fixture
def other_agent():
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    yield proc.pid
    proc.kill()
    proc.wait()


def test_concurrent_start_does_not_overwrite_new_holder(other_agent):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "edge-cd.lock"
        other_pid = other_agent
        ProcessLock(path, pid=other_pid).acquire()

        # The late agent's first read happened before the other agent wrote its PID.
        late = ProcessLock(path)
        real_holder = late.holder
        reads = []

        def holder():
            reads.append(path)
            return None if len(reads) == 1 else real_holder()

        late.holder = holder

        with pytest.raises(LockHeldError):
            late.acquire()
        assert path.read_text() == str(other_pid)
