"""
Cross-process locks for work items and the submission admission gate.

Both use advisory ``flock`` locks on small files. The kernel releases a flock
when its file descriptor is closed, so a crashed or killed worker never leaves
a held lock behind. Lock files themselves stay on disk and are reused.
"""
import errno
import fcntl
import hashlib
import logging
import re
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

logger = logging.getLogger(__name__)

_DECIMAL_RE = re.compile(r'^[0-9]+$')

# Longer keys are hashed to stay under the filesystem name limit
MAX_PLAIN_NAME = 200


def is_decimal(text: str) -> bool:
    return bool(_DECIMAL_RE.match(text))


def _try_flock(path: Path) -> Optional[IO]:
    """
    Open ``path`` and take an exclusive non-blocking flock on it.

    Returns:
        The open handle holding the lock, or None if another holder has it

    Raises:
        OSError: For any failure other than the lock being held elsewhere
    """
    handle = open(path, 'a')
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        return handle
    except OSError as e:
        handle.close()
        if e.errno in (errno.EAGAIN, errno.EACCES):
            return None
        raise


def _release_flock(handle: IO) -> None:
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        handle.close()


class LockToken:
    """
    Ownership of one work item.

    Usable as a context manager; release() is idempotent and also happens
    implicitly when the process exits.
    """

    def __init__(self, item: str, path: Path, handle: IO):
        self.item = item
        self.path = path
        self._handle: Optional[IO] = handle

    @property
    def held(self) -> bool:
        return self._handle is not None

    def release(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        _release_flock(handle)
        logger.debug(f"Released lock on {self.item}")

    def __enter__(self) -> 'LockToken':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class LockManager:
    """Grant exclusive, non-blocking ownership of work items by decimal string."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.logger = logging.getLogger(f"{__name__}.LockManager")

    def lock_path(self, item: str) -> Path:
        """
        Lock file for an item. The key is the exact string, never normalized;
        items longer than MAX_PLAIN_NAME digits use their SHA-256 and length.

        Raises:
            ValueError: If the item is not a plain decimal string
        """
        if not is_decimal(item):
            raise ValueError(f"Work item must be a decimal string, got {item!r}")
        if len(item) <= MAX_PLAIN_NAME:
            return self.directory / item
        digest = hashlib.sha256(item.encode('ascii')).hexdigest()
        return self.directory / f"{digest}-{len(item)}"

    def try_acquire(self, item: str) -> Optional[LockToken]:
        """
        Try to take ownership of an item without waiting.

        Returns:
            A LockToken, or None if another worker already owns the item

        Raises:
            OSError: If the lock file cannot be opened or locked
        """
        path = self.lock_path(item)
        self.directory.mkdir(parents=True, exist_ok=True)

        handle = _try_flock(path)
        if handle is None:
            self.logger.info(f"Skipping {item} because it's already being factored")
            return None

        self.logger.debug(f"Acquired lock on {item}")
        return LockToken(item, path, handle)


class SubmissionGate:
    """
    Counting admission gate limiting concurrent registry submissions.

    A bounded semaphore covers threads of this process. When ``slot_dir`` is
    set, each admitted submission also holds one of ``max_concurrent`` slot
    files, which extends the limit to every process sharing the directory.
    """

    def __init__(self, max_concurrent: int = 2, slot_dir: Optional[str] = None,
                 poll_interval: float = 0.5):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self.slot_dir = Path(slot_dir) if slot_dir else None
        self.poll_interval = poll_interval
        self._semaphore = threading.BoundedSemaphore(max_concurrent)

    def _acquire_slot(self) -> IO:
        assert self.slot_dir is not None
        self.slot_dir.mkdir(parents=True, exist_ok=True)
        while True:
            for index in range(self.max_concurrent):
                handle = _try_flock(self.slot_dir / f"slot-{index}.lock")
                if handle is not None:
                    return handle
            time.sleep(self.poll_interval)

    @contextmanager
    def admit(self) -> Iterator[None]:
        """Block until a submission slot is free and hold it for the block."""
        with self._semaphore:
            handle = self._acquire_slot() if self.slot_dir else None
            try:
                yield
            finally:
                if handle is not None:
                    _release_flock(handle)
