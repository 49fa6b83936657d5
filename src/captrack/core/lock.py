"""File-based locking for per-developer, per-date entry generation."""

import fcntl
import hashlib
import logging
import tempfile
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from captrack.core.settings import Settings, settings

logger = logging.getLogger(__name__)


class GenerationLock:
    """Serializes the check-then-create sequence for one (developer, date).

    Two scheduler invocations for the same key would otherwise both pass the
    existence check before either writes.
    """

    def __init__(
        self, developer_id: str, date_str: str, timeout: float | None = None, config: Settings | None = None
    ):
        self.config = config or settings
        self.key = f"{developer_id}:{date_str}"
        self.timeout = self.config.lock_timeout_seconds if timeout is None else timeout
        self.lock_file_path = self._get_lock_file_path()
        self._lock_file_fd = None

    def _get_lock_file_path(self) -> Path:
        """Get path for the lock file, one file per key."""
        digest = hashlib.sha256(self.key.encode()).hexdigest()[:16]
        lock_dir = Path(tempfile.gettempdir())
        try:
            db_path = self.config.resolved_database_path
            if db_path and db_path.parent.exists():
                lock_dir = db_path.parent
        except Exception as e:
            logger.debug(f"Failed to get db path for lock file, using tempdir: {e}")

        return lock_dir / f"captrack-{digest}.lock"

    @contextmanager
    def acquire(self) -> Generator[bool]:
        """Attempt to acquire the lock.

        Yields:
            True if lock acquired, False if timed out.
        """
        start_time = time.time()
        self._lock_file_fd = open(self.lock_file_path, "w")

        acquired = False
        try:
            while True:
                try:
                    fcntl.flock(self._lock_file_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    acquired = True
                    break
                except OSError:
                    if time.time() - start_time >= self.timeout:
                        break
                    time.sleep(0.1)

            yield acquired

        finally:
            if acquired:
                try:
                    fcntl.flock(self._lock_file_fd, fcntl.LOCK_UN)
                except OSError as e:
                    logger.debug(f"Failed to unlock file (may already be released): {e}")

            try:
                self._lock_file_fd.close()
            except OSError as e:
                logger.debug(f"Failed to close lock file (may already be closed): {e}")
