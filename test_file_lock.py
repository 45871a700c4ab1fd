#!/usr/bin/env python3
"""Tests for the advisory lock held over a working copy."""

import os
import shutil
import tempfile
import time
import unittest
from pathlib import Path

from reposync.config import Config
from reposync.errors import PreconditionError
from reposync.file_lock import FileLock, target_lock, STALE_LOCK_AGE_SECONDS


# Far above any pid_max, so no live process can own it
DEAD_PID = 99999999


class TestFileLock(unittest.TestCase):
    """FileLock acquisition, contention and stale-lock recovery."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.lock_path = self.temp_dir / "locks" / ".checkout.reposync.lock"

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def age_lock_file(self):
        old = time.time() - STALE_LOCK_AGE_SECONDS - 60
        os.utime(self.lock_path, (old, old))

    def test_acquire_and_release(self):
        lock = FileLock(self.lock_path, timeout=0)

        self.assertTrue(lock.acquire())
        self.assertTrue(lock.is_locked())
        self.assertIn(f"locked_by_pid_{os.getpid()}", self.lock_path.read_text())

        lock.release()
        self.assertFalse(lock.is_locked())
        self.assertFalse(self.lock_path.exists())

    def test_second_lock_times_out_while_first_is_held(self):
        first = FileLock(self.lock_path, timeout=0)
        second = FileLock(self.lock_path, timeout=0.2)

        self.assertTrue(first.acquire())
        try:
            self.assertFalse(second.acquire())
            self.assertFalse(second.is_locked())
        finally:
            first.release()

        self.assertTrue(second.acquire())
        second.release()

    def test_lock_from_dead_process_is_reclaimed(self):
        self.lock_path.parent.mkdir(parents=True)
        self.lock_path.write_text(f"locked_by_pid_{DEAD_PID}")

        lock = FileLock(self.lock_path, timeout=0)

        self.assertTrue(lock.acquire())
        self.assertIn(f"locked_by_pid_{os.getpid()}", self.lock_path.read_text())
        lock.release()

    def test_old_lock_of_live_process_is_kept(self):
        self.lock_path.parent.mkdir(parents=True)
        self.lock_path.write_text(f"locked_by_pid_{os.getpid()}")
        self.age_lock_file()

        lock = FileLock(self.lock_path, timeout=0)

        self.assertFalse(lock.acquire())
        self.assertTrue(self.lock_path.exists())
        self.assertIn(f"locked_by_pid_{os.getpid()}", self.lock_path.read_text())

    def test_old_unparseable_lock_is_reclaimed(self):
        self.lock_path.parent.mkdir(parents=True)
        self.lock_path.write_text("garbage")
        self.age_lock_file()

        lock = FileLock(self.lock_path, timeout=0)

        self.assertTrue(lock.acquire())
        lock.release()

    def test_fresh_unparseable_lock_is_kept(self):
        self.lock_path.parent.mkdir(parents=True)
        self.lock_path.write_text("")

        lock = FileLock(self.lock_path, timeout=0)

        self.assertFalse(lock.acquire())
        self.assertTrue(self.lock_path.exists())

    def test_release_without_acquire_leaves_foreign_lock(self):
        holder = FileLock(self.lock_path, timeout=0)
        self.assertTrue(holder.acquire())

        bystander = FileLock(self.lock_path, timeout=0)
        bystander.release()

        self.assertTrue(self.lock_path.exists())
        holder.release()

    def test_context_manager(self):
        with FileLock(self.lock_path, timeout=0) as lock:
            self.assertTrue(lock.is_locked())
            self.assertTrue(self.lock_path.exists())
        self.assertFalse(self.lock_path.exists())


class TestTargetLock(unittest.TestCase):
    """target_lock() as used by the command-line wrapper."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config = Config(target_path=self.temp_dir / "checkout", lock_timeout=0)

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_lock_is_held_during_body_and_released_after(self):
        with target_lock(self.config):
            self.assertTrue(self.config.lock_file_path.exists())
        self.assertFalse(self.config.lock_file_path.exists())

    def test_lock_is_released_when_body_raises(self):
        with self.assertRaises(RuntimeError):
            with target_lock(self.config):
                raise RuntimeError("sync failed")
        self.assertFalse(self.config.lock_file_path.exists())

    def test_contention_is_precondition_error(self):
        holder = FileLock(self.config.lock_file_path, timeout=0)
        self.assertTrue(holder.acquire())
        try:
            with self.assertRaises(PreconditionError) as ctx:
                with target_lock(self.config):
                    self.fail("body must not run while another run holds the lock")
            self.assertIn("in progress", ctx.exception.message)
        finally:
            holder.release()


if __name__ == "__main__":
    unittest.main(verbosity=2)
