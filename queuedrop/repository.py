"""Queue persistence contract and an in-memory implementation.

Writes are optimistic: `save()` succeeds only when the stored version still
equals the version the caller loaded, and then bumps it by one. A mismatch is
reported as a `version_conflict` failure; the caller reloads and decides
whether to retry.

Loads hand out private deep copies, so nothing a caller does to a snapshot is
visible to anyone else until it is saved.
"""

from __future__ import annotations

import copy
import threading
from typing import Protocol

from . import errors
from .aggregate import Queue
from .errors import Result


class QueueRepository(Protocol):
    def load(self, queue_id: str) -> tuple[Queue, int] | None: ...

    def save(self, queue: Queue, expected_version: int) -> Result[int]: ...

    def add(self, queue: Queue) -> Result[int]: ...

    def list_queue_ids(self, *, active_only: bool = True) -> list[str]: ...

    def find_queue_id_by_token(self, token: str) -> str | None: ...


class InMemoryQueueRepository:
    """Thread-safe compare-and-swap store of queue snapshots."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queues: dict[str, Queue] = {}
        self._tokens: dict[str, str] = {}  # customer token -> queue id

    def load(self, queue_id: str) -> tuple[Queue, int] | None:
        with self._lock:
            stored = self._queues.get(queue_id)
            if stored is None:
                return None
            snapshot = copy.deepcopy(stored)
        return snapshot, snapshot.version

    def add(self, queue: Queue) -> Result[int]:
        """Store a brand-new queue at version 1."""
        with self._lock:
            if queue.id in self._queues:
                current = self._queues[queue.id].version
                return Result.failure(errors.version_conflict(0, current))
            self._index_tokens(queue)
            queue.version = 1
            self._queues[queue.id] = copy.deepcopy(queue)
            return Result.success(1)

    def save(self, queue: Queue, expected_version: int) -> Result[int]:
        with self._lock:
            stored = self._queues.get(queue.id)
            if stored is None:
                return Result.failure(errors.queue_not_found(queue.id))
            if stored.version != expected_version:
                return Result.failure(errors.version_conflict(expected_version, stored.version))

            self._index_tokens(queue)
            new_version = expected_version + 1
            queue.version = new_version
            self._queues[queue.id] = copy.deepcopy(queue)
            return Result.success(new_version)

    def list_queue_ids(self, *, active_only: bool = True) -> list[str]:
        with self._lock:
            return [qid for qid, q in self._queues.items() if q.is_active or not active_only]

    def find_queue_id_by_token(self, token: str) -> str | None:
        with self._lock:
            return self._tokens.get(token)

    def _index_tokens(self, queue: Queue) -> None:
        # Caller holds the lock. Check every token before indexing any of them.
        for c in queue.customers:
            owner = self._tokens.get(c.token)
            if owner is not None and owner != queue.id:
                raise errors.QueueStateError(f"token already owned by queue {owner}")
        for c in queue.customers:
            self._tokens[c.token] = queue.id
