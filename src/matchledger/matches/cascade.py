"""Serialization and step journaling for multi-write match cascades."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Dict, List, TypeVar

from matchledger.persistence import StoreError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CascadeError(RuntimeError):
    """A cascade step failed after ``completed`` steps were already committed."""

    def __init__(self, kind: str, step: str, completed: List[str], message: str):
        super().__init__(f"{kind} failed at step '{step}': {message}")
        self.kind = kind
        self.step = step
        self.completed = list(completed)
        self.message = message


class KeyedLocks:
    """Lazily created asyncio locks addressed by string keys."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, key: str) -> asyncio.Lock:
        existing = self._locks.get(key)
        if existing is None:
            existing = asyncio.Lock()
            self._locks[key] = existing
        return existing

    def locked(self, key: str) -> bool:
        existing = self._locks.get(key)
        return existing is not None and existing.locked()

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Acquire the locks for ``keys`` in sorted order and release them in reverse."""

        ordered = sorted(set(keys))
        acquired: List[asyncio.Lock] = []
        try:
            for key in ordered:
                lock = self.lock(key)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class CascadeJournal:
    """Ordered record of the steps a cascade has committed.

    There is no compensation: when a step raises ``StoreError`` the journal
    logs what already landed and re-raises as ``CascadeError`` so callers can
    report the partially-applied state.
    """

    def __init__(self, kind: str, match_id: int | None = None):
        self.kind = kind
        self.match_id = match_id
        self.completed: List[str] = []

    async def run(self, step: str, action: Awaitable[T]) -> T:
        try:
            result = await action
        except StoreError as exc:
            logger.error(
                "%s of match %s failed at '%s' after %d committed steps: %s",
                self.kind,
                self.match_id,
                step,
                len(self.completed),
                ", ".join(self.completed) or "none",
            )
            raise CascadeError(self.kind, step, self.completed, exc.message) from exc
        self.completed.append(step)
        logger.debug("%s of match %s: %s done", self.kind, self.match_id, step)
        return result


__all__ = ["CascadeError", "CascadeJournal", "KeyedLocks"]
