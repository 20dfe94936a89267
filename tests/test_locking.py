#!/usr/bin/env python3
"""
Tests for work item locks and the submission admission gate.
"""
import errno
import os
import subprocess
import sys
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from factor_worker.locking import (
    MAX_PLAIN_NAME, LockManager, SubmissionGate, _release_flock, _try_flock, is_decimal,
)

REPO_DIR = Path(__file__).parent.parent

CHILD_HOLDER = """
import sys
from factor_worker.locking import LockManager
token = LockManager(sys.argv[1]).try_acquire(sys.argv[2])
print("locked" if token else "busy", flush=True)
sys.stdin.read()
"""


def spawn_holder(lock_dir: Path, item: str) -> subprocess.Popen:
    env = dict(os.environ)
    env["PYTHONPATH"] = str(REPO_DIR) + os.pathsep + env.get("PYTHONPATH", "")
    return subprocess.Popen(
        [sys.executable, "-c", CHILD_HOLDER, str(lock_dir), item],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        text=True,
        env=env,
    )


@pytest.fixture
def manager(tmp_path):
    return LockManager(str(tmp_path / "locks"))


class TestLockManager:
    def test_acquire_then_busy(self, manager):
        token = manager.try_acquire("1000000016000000063")
        assert token is not None
        assert token.held

        assert manager.try_acquire("1000000016000000063") is None

    def test_release_allows_reacquire(self, manager):
        token = manager.try_acquire("10403")
        token.release()
        assert not token.held
        token.release()  # idempotent

        again = manager.try_acquire("10403")
        assert again is not None
        again.release()

    def test_context_manager_releases(self, manager):
        with manager.try_acquire("10403") as token:
            assert token.held
            assert manager.try_acquire("10403") is None
        assert manager.try_acquire("10403") is not None

    def test_distinct_representations_do_not_collide(self, manager):
        first = manager.try_acquire("10403")
        second = manager.try_acquire("010403")
        assert first is not None
        assert second is not None

    @pytest.mark.parametrize("item", ["", "12a4", "../etc/passwd", "-5", "1 2"])
    def test_rejects_non_decimal_keys(self, manager, item):
        with pytest.raises(ValueError):
            manager.try_acquire(item)

    def test_lock_file_is_named_after_item(self, manager, tmp_path):
        with manager.try_acquire("10403"):
            assert (tmp_path / "locks" / "10403").exists()

    def test_very_long_item_gets_short_lock_file(self, manager):
        item = "1" + "0" * 299 + "7"

        token = manager.try_acquire(item)

        assert token is not None
        assert len(token.path.name) < 255
        assert manager.try_acquire(item) is None
        token.release()

    def test_long_items_do_not_collide(self, manager):
        first = manager.try_acquire("9" * 300)
        second = manager.try_acquire("9" * 301)
        third = manager.try_acquire("9" * 299 + "8")

        assert None not in (first, second, third)
        assert len({first.path, second.path, third.path}) == 3

    def test_plain_names_up_to_limit(self, manager):
        item = "7" * MAX_PLAIN_NAME
        assert manager.lock_path(item).name == item
        assert manager.lock_path(item + "7").name != item + "7"

    def test_flock_failure_is_not_reported_as_busy(self, manager):
        with patch("factor_worker.locking.fcntl.flock",
                   side_effect=OSError(errno.ENOLCK, "No locks available")):
            with pytest.raises(OSError):
                manager.try_acquire("10403")

    def test_contended_flock_is_busy(self, manager):
        with patch("factor_worker.locking.fcntl.flock",
                   side_effect=OSError(errno.EAGAIN, "Resource temporarily unavailable")):
            assert manager.try_acquire("10403") is None

    @pytest.mark.parametrize("text,expected", [("10403", True), ("", False), ("1e5", False)])
    def test_is_decimal(self, text, expected):
        assert is_decimal(text) is expected


class TestCrossProcess:
    def test_other_process_holds_lock(self, manager, tmp_path):
        proc = spawn_holder(tmp_path / "locks", "10403")
        try:
            assert proc.stdout.readline().strip() == "locked"
            assert manager.try_acquire("10403") is None
        finally:
            proc.kill()
            proc.wait()

        # Killed holder leaves no stale lock
        token = manager.try_acquire("10403")
        assert token is not None
        token.release()

    def test_other_process_sees_busy(self, manager, tmp_path):
        token = manager.try_acquire("10403")
        proc = spawn_holder(tmp_path / "locks", "10403")
        try:
            assert proc.stdout.readline().strip() == "busy"
        finally:
            proc.stdin.close()
            proc.wait(timeout=10)
            token.release()


class TestSubmissionGate:
    def test_limits_concurrency(self):
        gate = SubmissionGate(max_concurrent=2)
        active = 0
        peak = 0
        lock = threading.Lock()

        def submit():
            nonlocal active, peak
            with gate.admit():
                with lock:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.05)
                with lock:
                    active -= 1

        threads = [threading.Thread(target=submit) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert peak <= 2

    def test_slot_files_are_shared(self, tmp_path):
        slot_dir = tmp_path / "slots"
        slot_dir.mkdir()
        gate = SubmissionGate(max_concurrent=1, slot_dir=str(slot_dir), poll_interval=0.01)

        # Another holder (separate open file description) takes the only slot
        foreign = _try_flock(slot_dir / "slot-0.lock")
        assert foreign is not None

        admitted = threading.Event()

        def submit():
            with gate.admit():
                admitted.set()

        thread = threading.Thread(target=submit)
        thread.start()
        assert not admitted.wait(0.2)

        _release_flock(foreign)
        assert admitted.wait(5)
        thread.join()

    def test_rejects_zero_width(self):
        with pytest.raises(ValueError):
            SubmissionGate(max_concurrent=0)
