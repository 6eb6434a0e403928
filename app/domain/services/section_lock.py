"""
Per-section mutual exclusion for generation and review.

One asyncio.Lock per (summons_id, section_key). Generate, approve and
reject each hold it; an operation on a section that is already busy
fails fast instead of queueing behind a multi-minute round trip.
Different sections never contend.

Process-local: the optimistic generation_count check in the repository
and the approved-row guard cover operations racing across processes.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple
from uuid import UUID

from app.domain.exceptions import ConcurrentModificationError

SectionId = Tuple[str, str]


class SectionLockRegistry:
    """Keyed locks for in-flight section operations."""

    def __init__(self):
        self._locks: Dict[SectionId, asyncio.Lock] = {}

    def _key(self, summons_id: UUID, section_key: str) -> SectionId:
        return (str(summons_id), section_key)

    def is_locked(self, summons_id: UUID, section_key: str) -> bool:
        lock = self._locks.get(self._key(summons_id, section_key))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, summons_id: UUID, section_key: str) -> AsyncIterator[None]:
        """
        Hold the section's lock for the duration of the block.

        Raises:
            ConcurrentModificationError: Another operation holds the lock
        """
        key = self._key(summons_id, section_key)
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            raise ConcurrentModificationError(
                summons_id, section_key, "another operation on this section is in progress"
            )
        try:
            async with lock:
                yield
        finally:
            self._locks.pop(key, None)
