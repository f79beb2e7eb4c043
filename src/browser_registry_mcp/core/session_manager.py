"""Host session management: named-slot stores holding the handle registries."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from .exceptions import SessionNotFoundError, SessionLimitError
from .handles import ResourceKind
from .registry import get_registry

logger = logging.getLogger(__name__)

SessionTeardown = Callable[["HostSession"], Awaitable[Any]]


@dataclass
class HostSession:
    """
    One interactive session: a store of named mutable slots.

    Registries for browsers, pages and elements live in slots and are
    created on first write. ``lock`` serializes commands that mutate the
    session's registries.
    """

    session_id: str
    created_at: float
    last_activity: float
    _slots: Dict[str, Any] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def touch(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = time.time()

    def get(self, key: str, default: Any = None) -> Any:
        return self._slots.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._slots[key] = value

    def release(self) -> int:
        """Drop every slot. Returns the number of slots released."""
        count = len(self._slots)
        self._slots.clear()
        return count

    def count(self, kind: ResourceKind) -> int:
        registry = get_registry(self, kind)
        return len(registry) if registry is not None else 0

    def to_dict(self) -> dict:
        """Convert session info to dictionary for API responses."""
        return {
            "session_id": self.session_id,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
            "browser_count": self.count(ResourceKind.BROWSER),
            "page_count": self.count(ResourceKind.PAGE),
            "element_count": self.count(ResourceKind.ELEMENT),
        }


class SessionManager:
    """
    Manager for host sessions.

    Uses asyncio.Lock for coroutine-safe access to the session table.
    Each session has its own lock for per-session commands.
    """

    def __init__(
        self,
        max_sessions: int = 10,
        max_lifetime_seconds: int = 3600,
        max_idle_seconds: int = 900,
        teardown: Optional[SessionTeardown] = None,
    ):
        self._max_sessions = max_sessions
        self._max_lifetime_seconds = max_lifetime_seconds
        self._max_idle_seconds = max_idle_seconds
        self._teardown = teardown
        self._sessions: Dict[str, HostSession] = {}
        self._lock = asyncio.Lock()

    async def create_session(self) -> HostSession:
        """
        Create a new, empty host session.

        Raises:
            SessionLimitError: If max sessions reached
        """
        async with self._lock:
            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitError(self._max_sessions)

            session_id = f"sess_{uuid.uuid4().hex[:16]}"
            now = time.time()
            session = HostSession(
                session_id=session_id,
                created_at=now,
                last_activity=now,
            )
            self._sessions[session_id] = session
            logger.info(f"Created session {session_id}")
            return session

    def get_session(self, session_id: str) -> HostSession:
        """
        Get a session by ID.

        Raises:
            SessionNotFoundError: If session doesn't exist
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.touch()
        return session

    async def close_session(self, session_id: str) -> bool:
        """
        Close a session: stop its browsers and release its registries.

        Returns:
            True if session was closed, False if not found
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return False

            async with session.lock:
                if self._teardown is not None:
                    try:
                        await self._teardown(session)
                    except Exception as e:
                        logger.warning(f"Error tearing down session {session_id}: {e}")
                released = session.release()

            logger.info(f"Closed session {session_id} ({released} registries released)")
            return True

    def list_sessions(self) -> list[dict]:
        """List all active sessions."""
        return [s.to_dict() for s in list(self._sessions.values())]

    async def get_expired_sessions(self) -> list[str]:
        """Find sessions that have exceeded lifetime or idle limits."""
        now = time.time()
        expired = []

        for session_id, session in list(self._sessions.items()):
            age = now - session.created_at
            idle = now - session.last_activity

            if age > self._max_lifetime_seconds:
                logger.info(f"Session {session_id} exceeded max lifetime ({age:.0f}s)")
                expired.append(session_id)
            elif idle > self._max_idle_seconds:
                logger.info(f"Session {session_id} exceeded max idle time ({idle:.0f}s)")
                expired.append(session_id)

        return expired

    async def sweep_expired(self) -> int:
        """Close all expired sessions. Returns number closed."""
        expired = await self.get_expired_sessions()
        count = 0
        for session_id in expired:
            if await self.close_session(session_id):
                count += 1
        return count

    async def close_all(self) -> int:
        """Close all sessions (for shutdown). Returns number closed."""
        session_ids = list(self._sessions.keys())
        count = 0
        for session_id in session_ids:
            if await self.close_session(session_id):
                count += 1
        logger.info(f"Closed all {count} sessions")
        return count

    @property
    def session_count(self) -> int:
        """Number of active sessions."""
        return len(self._sessions)


class SessionSweeper:
    """
    Background task closing host sessions past their lifetime or idle limit.

    Closing a session stops its browsers through the manager's teardown.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        interval_seconds: int = 60,
    ):
        self._session_manager = session_manager
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._stopping.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Session sweeper started (interval: {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")

    async def sweep_once(self) -> int:
        """Run one sweep. Errors are logged so the loop keeps going."""
        try:
            swept = await self._session_manager.sweep_expired()
        except Exception as e:
            logger.error(f"Error during session sweep: {e}")
            return 0
        if swept:
            logger.info(f"Swept {swept} expired session(s)")
        return swept

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                await self.sweep_once()
