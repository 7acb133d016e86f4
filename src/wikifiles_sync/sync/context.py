"""Request-scoped sync context and per-project serialization.

``SyncContext`` is created by the host for each request and passed to
every engine entry point and store mutation.  While one direction of the
sync writes to the other side, :meth:`SyncContext.suppress_write_back`
marks the context as syncing; lifecycle hooks receiving that context
return without doing anything.

``ProjectLockRegistry`` hands out one mutex per project identifier so two
passes never run git against the same working tree at once.  The locks
are in-process only.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .models import Actor


@dataclass
class SyncContext:
    """State threaded through one request.

    Attributes:
        actor: The acting user.
        syncing: True while a sync write is in progress; hooks must not
            write back.
    """

    actor: Actor
    syncing: bool = False
    _depth: int = field(default=0, repr=False)

    @contextmanager
    def suppress_write_back(self) -> Iterator[SyncContext]:
        """Mark the context as syncing for the duration of the block.

        Nested use is allowed; the flag clears when the outermost block
        exits, including on exceptions.
        """
        self._depth += 1
        self.syncing = True
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0:
                self.syncing = False

    @classmethod
    def for_user(
        cls, login: str, name: str | None = None, email: str | None = None
    ) -> SyncContext:
        return cls(actor=Actor(login=login, name=name, email=email))


class ProjectLockRegistry:
    """One re-entrant lock per project identifier."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, identifier: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = threading.RLock()
                self._locks[identifier] = lock
            return lock

    @contextmanager
    def hold(self, identifier: str) -> Iterator[None]:
        lock = self.lock_for(identifier)
        with lock:
            yield
