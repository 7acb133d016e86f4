"""Non-blocking probe for files held open by another process."""

from __future__ import annotations

import errno
import fcntl
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_LOCKED_ERRNOS = frozenset({errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK})


def is_locked(path: Path | str) -> bool:
    """Return True if another process holds an exclusive lock on *path*.

    Tries ``LOCK_EX | LOCK_NB`` and releases it immediately.  A missing
    file is not locked.  Errors other than lock contention are logged and
    reported as not locked.
    """
    path = Path(path)
    if not path.is_file():
        return False
    try:
        with open(path, "rb") as fh:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as exc:
                if exc.errno in _LOCKED_ERRNOS:
                    return True
                raise
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
    except OSError as exc:
        logger.warning("Lock check failed for %s: %s", path, exc)
    return False
