"""Conversation-keyed store bridging retrieval and later citation extraction."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field

from woodchat.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PendingExtractionContext:
    context: str
    query: str
    answer: str | None = None
    created_at: float = field(default_factory=time.monotonic)


class PendingContextStore:
    """In-process map of conversation id -> pending context with TTL eviction.

    Each conversation owns its own slot, so concurrent users never see each
    other's context. Entries are consumed by ``take``.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, PendingExtractionContext] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: PendingExtractionContext) -> bool:
        return self._clock() - entry.created_at > self.ttl_seconds

    def _purge(self) -> None:
        stale = [key for key, entry in self._entries.items() if self._expired(entry)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Evicted %d expired pending contexts", len(stale))

    async def put(self, key: str, context: str, query: str) -> None:
        async with self._lock:
            self._purge()
            self._entries.pop(key, None)
            self._entries[key] = PendingExtractionContext(
                context=context, query=query, created_at=self._clock()
            )
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.warning("Pending context store full, evicted %s", evicted)

    async def attach_answer(self, key: str, answer: str) -> bool:
        """Record the finished answer; False if the entry is gone."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry):
                return False
            entry.answer = answer
            return True

    async def take(
        self, key: str, require_answer: bool = False
    ) -> PendingExtractionContext | None:
        """Remove and return the entry for ``key`` if present and not expired.

        With ``require_answer``, an entry whose answer is not attached yet is
        left in place and None is returned.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                del self._entries[key]
                return None
            if require_answer and entry.answer is None:
                return None
            del self._entries[key]
            return entry

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()


pending_contexts = PendingContextStore(
    ttl_seconds=settings.pending_context_ttl_seconds,
    max_entries=settings.pending_context_max_entries,
)
