"""Per-key locking façade over the SQLAlchemy session factory.

Every read-modify-write of a user or submission row goes through
user_tx()/submission_tx(): the key's asyncio.Lock is held only for the local
transaction, which commits on clean exit and rolls back otherwise. Network
calls (membership checks, rail transfers) belong outside these blocks.

Lock order: submission -> user, user -> fingerprint. Never the reverse.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Hashable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class KeyedLocks:
    """asyncio.Lock per key; entries are dropped once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class Store:
    def __init__(self, sessions: async_sessionmaker) -> None:
        self._sessions = sessions
        self.user_locks = KeyedLocks()
        self.submission_locks = KeyedLocks()
        self.fingerprint_locks = KeyedLocks()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Unlocked session for reads and append-only inserts."""
        async with self._sessions() as session:
            yield session
            await session.commit()

    @asynccontextmanager
    async def user_tx(self, user_id: int) -> AsyncIterator[AsyncSession]:
        async with self.user_locks.hold(user_id):
            async with self.session() as session:
                yield session

    @asynccontextmanager
    async def submission_tx(self, submission_id: int) -> AsyncIterator[AsyncSession]:
        async with self.submission_locks.hold(submission_id):
            async with self.session() as session:
                yield session

    @asynccontextmanager
    async def fingerprint_guard(self, fingerprint: str) -> AsyncIterator[None]:
        async with self.fingerprint_locks.hold(fingerprint):
            yield

    async def get(self, model: Any, key: Any) -> Any:
        async with self._sessions() as session:
            return await session.get(model, key)
