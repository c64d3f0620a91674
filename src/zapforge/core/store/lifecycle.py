# src/zapforge/core/store/lifecycle.py
"""Store lifecycle guard: backup rotation, opening, and current-handle ownership.

One StoreLifecycle is owned by the Application per process start and passed
explicitly to the pipeline and to the shutdown path. It replaces a
module-level "main database" global.

Concurrency hazard: nothing serialises set_current() or maybe_rotate().
Two overlapping pipeline runs race, and the last set_current() wins. The
Application never starts a second pipeline (reactivation reuses the running
server), so in practice there is one writer.
"""

from pathlib import Path

import structlog

from zapforge.core.store.database import MetadataStore

logger = structlog.get_logger(__name__)

BACKUP_SUFFIX = "~"


def backup_path(path: Path) -> Path:
    """Backup location for a store file: the path with BACKUP_SUFFIX appended."""
    return path.with_name(path.name + BACKUP_SUFFIX)


def maybe_rotate(path: Path, reset_requested: bool) -> Path | None:
    """Move the store file aside so the next open starts from an empty store.

    The previous backup, if any, is deleted first; only the most recent backup
    is ever kept. The rename is the last step, so a failure leaves either the
    original file in place or the completed move.

    Assumes exclusive ownership of the file; no locking is performed.

    Args:
        path: Store file location
        reset_requested: When False, nothing happens

    Returns:
        The backup path if a rotation happened, otherwise None

    Raises:
        OSError: Any filesystem failure. Never retried or skipped.
    """
    if not reset_requested:
        return None
    if not path.exists():
        return None

    backup = backup_path(path)
    if backup.exists():
        logger.warning("Deleting old backup file", backup=str(backup))
        backup.unlink()
    logger.warning("Database restart requested, moving store file", path=str(path), backup=str(backup))
    path.rename(backup)
    return backup


class StoreLifecycle:
    """Owner of the process-wide current store handle."""

    def __init__(self) -> None:
        self._current: MetadataStore | None = None

    @property
    def current(self) -> MetadataStore | None:
        """The registered handle, or None before attach / after close."""
        return self._current

    async def open(self, path: Path) -> MetadataStore:
        """Open or create the store at path.

        Raises:
            StoreOpenError: If the store cannot be opened.
        """
        store = MetadataStore(path)
        logger.debug("Metadata store opened", path=str(path))
        return store

    def set_current(self, store: MetadataStore) -> None:
        """Register store as the current handle. Last write wins."""
        previous = self._current
        if previous is not None and previous is not store and previous.is_open:
            logger.warning(
                "Replacing a live current store handle",
                previous=str(previous.path),
                replacement=str(store.path),
            )
        self._current = store

    async def close_current(self) -> bool:
        """Close and forget the current handle.

        Returns:
            True if a handle was closed, False if none was registered.
        """
        store = self._current
        if store is None:
            return False
        self._current = None
        store.close()
        return True
