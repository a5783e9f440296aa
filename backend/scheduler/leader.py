"""
Cluster-wide leader election for the scheduler, on a PostgreSQL advisory lock.

The lock is session-scoped: it lives exactly as long as the connection that
took it. A crashed leader therefore frees the lock as soon as Postgres notices
the dead connection, with no TTL or heartbeat to maintain.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from shared.config import Settings, get_settings
from shared.errors import LeadershipLostError
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import SCHEDULER_IS_LEADER

logger = get_logger(__name__)

# Two-int form of the advisory lock keeps the key inside int4 on every server.
_TRY_LOCK_SQL = text("SELECT pg_try_advisory_lock(hashtext(:namespace)::int, :key)")
_UNLOCK_SQL = text("SELECT pg_advisory_unlock(hashtext(:namespace)::int, :key)")
_HELD_SQL = text(
    """
    SELECT EXISTS (
        SELECT 1 FROM pg_locks
        WHERE locktype = 'advisory'
          AND pid = pg_backend_pid()
          AND granted
          AND classid = hashtext(:namespace)::int::oid
          AND objid = :key
          AND objsubid = 2
    )
    """
)


class LeadershipToken:
    """
    Proof that this process holds the scheduler lock.

    Owns the connection the lock lives on; releasing the token unlocks and
    closes that connection.
    """

    def __init__(self, conn: AsyncConnection, namespace: str, key: int) -> None:
        self._conn = conn
        self.namespace = namespace
        self.key = key
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def _params(self) -> dict[str, object]:
        return {"namespace": self.namespace, "key": self.key}

    async def ensure_held(self) -> None:
        """Raise LeadershipLostError unless the lock is still held on our session."""
        if self._released:
            raise LeadershipLostError(f"leadership token for {self.namespace!r} already released")
        try:
            held = (await self._conn.execute(_HELD_SQL, self._params())).scalar()
        except (SQLAlchemyError, OSError) as exc:
            raise LeadershipLostError(f"lock connection for {self.namespace!r} failed") from exc
        if not held:
            raise LeadershipLostError(f"advisory lock {self.namespace!r} no longer held")

    async def release(self) -> None:
        """Unlock and close. Safe to call more than once; never raises."""
        if self._released:
            return
        self._released = True
        SCHEDULER_IS_LEADER.set(0)
        try:
            await self._conn.execute(_UNLOCK_SQL, self._params())
            logger.info("leadership_released", namespace=self.namespace)
        except Exception as exc:
            logger.warning("leadership_release_failed", namespace=self.namespace, error=str(exc))
            # The session may still hold the lock; it must not go back to the pool.
            try:
                await self._conn.invalidate(exc)
            except Exception as inv_exc:
                logger.warning("lock_connection_invalidate_failed", error=str(inv_exc))
        finally:
            try:
                await self._conn.close()
            except Exception as exc:
                logger.warning("lock_connection_close_failed", error=str(exc))


class LeaderElectionGate:
    """Non-blocking acquisition of the scheduler lock."""

    def __init__(self, db: DatabaseManager, settings: Settings | None = None) -> None:
        self._db = db
        self._settings = settings or get_settings()

    @property
    def namespace(self) -> str:
        return self._settings.scheduler_lock_namespace

    async def try_acquire(self) -> Optional[LeadershipToken]:
        """
        Try to take the lock once, without waiting.

        Returns:
            A LeadershipToken if this process is now the leader, None if another
            session already holds the lock.
        """
        key = self._settings.scheduler_lock_key
        conn = await self._db.dedicated_connection()
        try:
            got_lock = (
                await conn.execute(_TRY_LOCK_SQL, {"namespace": self.namespace, "key": key})
            ).scalar()
        except BaseException:
            await conn.close()
            raise

        if not got_lock:
            await conn.close()
            logger.info("leadership_contended", namespace=self.namespace)
            return None

        SCHEDULER_IS_LEADER.set(1)
        logger.info("leadership_acquired", namespace=self.namespace, key=key)
        return LeadershipToken(conn, self.namespace, key)

    @asynccontextmanager
    async def leadership(self) -> AsyncIterator[Optional[LeadershipToken]]:
        """Yield the token (or None) and release it however the block exits."""
        token = await self.try_acquire()
        try:
            yield token
        finally:
            if token is not None:
                await token.release()
