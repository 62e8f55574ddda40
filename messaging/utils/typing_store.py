"""Ephemeral "user is typing" presence.

Entries live only in this process and expire after a short TTL; clients keep
re-sending the typing signal while the user is composing. Running several
service instances without a shared backend means typing indicators set on one
instance are invisible to callers routed to another.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)

DEFAULT_TYPING_TTL_SECONDS = 10.0

TypingKey = Tuple[str, str]


class TypingBackend(Protocol):
    """Storage for (conversation_id, user_id) -> expiry (monotonic seconds)."""

    def put(self, key: TypingKey, expires_at: float) -> None: ...

    def discard(self, key: TypingKey) -> None: ...

    def entries_for(self, conversation_id: str) -> List[Tuple[TypingKey, float]]: ...

    def all_entries(self) -> List[Tuple[TypingKey, float]]: ...


class MemoryTypingBackend:

    def __init__(self) -> None:
        # conversation_id -> {user_id: expires_at}
        self._entries: Dict[str, Dict[str, float]] = {}

    def put(self, key: TypingKey, expires_at: float) -> None:
        conversation_id, user_id = key
        self._entries.setdefault(conversation_id, {})[user_id] = expires_at

    def discard(self, key: TypingKey) -> None:
        conversation_id, user_id = key
        users = self._entries.get(conversation_id)
        if users is None:
            return
        users.pop(user_id, None)
        if not users:
            del self._entries[conversation_id]

    def entries_for(self, conversation_id: str) -> List[Tuple[TypingKey, float]]:
        users = self._entries.get(conversation_id, {})
        return [((conversation_id, u), exp) for u, exp in users.items()]

    def all_entries(self) -> List[Tuple[TypingKey, float]]:
        return [
            ((c, u), exp)
            for c, users in self._entries.items()
            for u, exp in users.items()
        ]


class TypingPresenceStore:

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TYPING_TTL_SECONDS,
        backend: Optional[TypingBackend] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._backend = backend if backend is not None else MemoryTypingBackend()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    async def set_typing(self, conversation_id: str, user_id: str) -> None:
        async with self._lock:
            self._backend.put((conversation_id, user_id), self._clock() + self.ttl_seconds)
        logger.debug("typing set conversation=%s user=%s", conversation_id, user_id)

    async def remove_typing(self, conversation_id: str, user_id: str) -> None:
        async with self._lock:
            self._backend.discard((conversation_id, user_id))

    async def get_typing_users(self, conversation_id: str) -> List[str]:
        """Users typing in the conversation; the caller filters out its own id."""
        now = self._clock()
        active: List[str] = []
        async with self._lock:
            for key, expires_at in self._backend.entries_for(conversation_id):
                if expires_at > now:
                    active.append(key[1])
                else:
                    self._backend.discard(key)
        return active

    async def sweep(self) -> int:
        now = self._clock()
        async with self._lock:
            expired = [key for key, expires_at in self._backend.all_entries() if expires_at <= now]
            for key in expired:
                self._backend.discard(key)
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever(interval_seconds))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = await self.sweep()
            if removed:
                logger.debug("swept %d expired typing entries", removed)
