#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""File run-lock preventing two maintenance runs over the same state file."""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional, Union

from .constants import DEFAULT_LOCK_FILE, DEFAULT_LOCK_TIMEOUT_S


class RunLockError(Exception):
    """Raised when unable to acquire run lock."""
    pass


class RunLock:
    """Context manager ensuring no two maintenance runs overlap."""

    def __init__(
        self,
        lock_file: Optional[Union[str, Path]] = None,
        timeout_seconds: int = DEFAULT_LOCK_TIMEOUT_S,
    ):
        """
        Initialize run lock.

        Args:
            lock_file: Lock path (defaults to ``.maintenance_lock`` in the cwd)
            timeout_seconds: Age after which an existing lock is considered abandoned
        """
        self.lock_file = Path(lock_file or DEFAULT_LOCK_FILE)
        self.timeout_seconds = timeout_seconds
        self.acquired = False

    def __enter__(self) -> "RunLock":
        if self.lock_file.exists():
            try:
                lock_age = time.time() - self.lock_file.stat().st_mtime
            except OSError as exc:
                raise RunLockError(f"Cannot access lock file: {exc}") from exc
            if lock_age < self.timeout_seconds:
                raise RunLockError(f"Maintenance already in progress (lock age: {int(lock_age)}s)")
            try:
                self.lock_file.unlink()
            except OSError as exc:
                raise RunLockError(f"Cannot remove stale lock: {exc}") from exc

        try:
            # O_EXCL so two processes racing past the check cannot both win
            fd = os.open(str(self.lock_file), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise RunLockError("Maintenance already in progress") from exc
        except OSError as exc:
            raise RunLockError(f"Cannot create lock file: {exc}") from exc
        with os.fdopen(fd, "w") as fh:
            fh.write(f"{os.getpid()}\n{time.time()}\n")
        self.acquired = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.acquired and self.lock_file.exists():
            try:
                self.lock_file.unlink()
            except OSError:
                # Best effort cleanup; a leftover lock goes stale after the timeout
                pass
        self.acquired = False
        return False
