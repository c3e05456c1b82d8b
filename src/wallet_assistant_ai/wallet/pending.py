"""Ledger of transfers awaiting user confirmation."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from wallet_assistant_ai.wallet.locks import UserLocks
from wallet_assistant_ai.wallet.models import PendingTransaction

logger = logging.getLogger("wallet_assistant_ai.wallet.pending")

DEFAULT_TTL = timedelta(minutes=5)
DEFAULT_SWEEP_INTERVAL = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingTransactionLedger:
    """Holds at most one live :class:`PendingTransaction` per user.

    The ledger also owns the periodic sweep that drops abandoned entries.
    The sweeper shares the caller's :class:`UserLocks` and leaves alone any
    user whose lock is held, so it never races a confirm or cancel in
    flight; such entries are picked up on a later tick.

    Parameters
    ----------
    locks:
        The per-user locks used by the orchestrator.
    ttl:
        Age after which an entry is swept.
    sweep_interval:
        Seconds between sweeps once :meth:`start` has been called.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        locks: UserLocks | None = None,
        ttl: timedelta = DEFAULT_TTL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._entries: dict[int, PendingTransaction] = {}
        self._locks = locks or UserLocks()
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sweeper: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------

    def put(self, user_id: int, pending: PendingTransaction) -> PendingTransaction | None:
        """Store *pending*, returning the entry it supersedes, if any."""
        previous = self._entries.get(user_id)
        self._entries[user_id] = pending
        if previous is not None:
            logger.info(f"Pending transfer for user {user_id} superseded")
        return previous

    def peek(self, user_id: int) -> PendingTransaction | None:
        return self._entries.get(user_id)

    def remove(self, user_id: int) -> PendingTransaction | None:
        return self._entries.pop(user_id, None)

    def take(self, user_id: int) -> PendingTransaction | None:
        """Read and remove the user's entry in one step.

        Whoever takes an entry is the only one that may act on it; a second
        caller gets ``None``.
        """
        return self._entries.pop(user_id, None)

    def now(self) -> datetime:
        return self._clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def sweep_expired(self, now: datetime | None = None, ttl: timedelta | None = None) -> int:
        """Drop entries created more than *ttl* before *now*.

        Returns the number of entries removed.
        """
        now = now or self._clock()
        cutoff = now - (ttl if ttl is not None else self.ttl)
        expired = [
            user_id
            for user_id, pending in self._entries.items()
            if pending.created_at < cutoff and not self._locks.locked(user_id)
        ]
        for user_id in expired:
            del self._entries[user_id]
        if expired:
            logger.info(f"Swept {len(expired)} expired pending transfer(s)")
        return len(expired)

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep_expired()
            except Exception as e:
                logger.error(f"Pending transfer sweep failed: {e}")

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_forever(), name="pending-transfer-sweeper"
        )
        logger.info(
            f"Pending transfer sweeper started (ttl={self.ttl}, "
            f"interval={self.sweep_interval}s)"
        )

    async def stop(self) -> None:
        """Cancel the sweeper task, if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()
