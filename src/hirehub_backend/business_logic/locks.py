"""Per-session asyncio locks shared by the HTTP transitions and the connection gateway."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class SessionLockRegistry:
    """
    One asyncio.Lock per session id while anyone holds or waits for it.

    Entries are reference counted: the last caller to leave `hold` removes
    the lock, so unknown ids and idle sessions leave nothing behind.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        self._holders[session_id] = self._holders.get(session_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            remaining = self._holders.get(session_id, 1) - 1
            if remaining > 0:
                self._holders[session_id] = remaining
            else:
                self._holders.pop(session_id, None)
                self._locks.pop(session_id, None)

    def reset(self) -> None:
        self._locks.clear()
        self._holders.clear()

    def __len__(self) -> int:
        return len(self._locks)


session_locks = SessionLockRegistry()
