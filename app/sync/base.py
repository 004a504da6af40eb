# app/sync/base.py
"""
Plumbing shared by the cart and wishlist synchronizers: who is signed in,
the realtime subscription for that user, background refetch tasks and the
per-key pending counter.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.core.notifications import LoggingNotifier, Notice, Notifier
from app.sync.realtime import ChannelRegistry

logger = logging.getLogger(__name__)


class MutationState(str, Enum):
    IDLE = "idle"
    OPTIMISTICALLY_APPLIED = "optimistically_applied"
    RECONCILING = "reconciling"
    SETTLED = "settled"
    ROLLED_BACK = "rolled_back"
    BLOCKED = "blocked"


@dataclass
class MutationResult:
    """Where a single mutation ended up, and the states it passed through."""

    key: str
    states: tuple[MutationState, ...] = (MutationState.IDLE,)
    quantity: int = 0
    capped: bool = False
    notice: Notice | None = None
    outcome: str | None = None

    @property
    def state(self) -> MutationState:
        return self.states[-1]

    @property
    def ok(self) -> bool:
        return self.state == MutationState.SETTLED


class Synchronizer(ABC):
    """
    Base for a per-user collection mirrored from Supabase.

    Subclasses implement `_fetch(user_id)` and `_replace(items)`.
    """

    def __init__(self, registry: ChannelRegistry, notifier: Notifier | None = None):
        self.registry = registry
        self.notifier = notifier or LoggingNotifier()
        self.user_id: str | None = None
        self._pending: Counter[str] = Counter()
        self._subscribed = False
        self._tasks: set[asyncio.Task] = set()

    # ---- session ----

    async def set_user(self, user_id: str | None) -> None:
        """
        Follow a sign-in, sign-out or account switch. The previous user's
        subscription is released before the next one is acquired.
        """
        if user_id == self.user_id:
            return
        await self._unsubscribe()
        self.user_id = user_id
        self._pending.clear()
        self._replace([])
        if user_id is None:
            return
        await self._subscribe()
        await self.refresh()

    async def close(self) -> None:
        await self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    async def _subscribe(self) -> None:
        try:
            await self.registry.acquire(self.user_id, self._on_remote_change)
        except Exception:
            logger.exception(
                f"Could not subscribe to {self.registry.table} changes; "
                "continuing without realtime"
            )
            return
        self._subscribed = True

    async def _unsubscribe(self) -> None:
        if not self._subscribed or self.user_id is None:
            return
        self._subscribed = False
        await self.registry.release(self.user_id, self._on_remote_change)

    # ---- fetching ----

    async def refresh(self) -> bool:
        """
        Replace local state with the authoritative rows. On failure the
        current (possibly stale) state stays and False is returned.
        """
        user_id = self.user_id
        if user_id is None:
            return False
        try:
            items = await self._fetch(user_id)
        except Exception:
            logger.exception(f"Failed to fetch {self.registry.table} for {user_id}")
            return False
        if user_id != self.user_id:
            return False
        self._replace(items)
        return True

    def _on_remote_change(self, payload: dict[str, Any]) -> None:
        logger.debug(f"{self.registry.table} change: {payload.get('eventType', '?')}")
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for any refetches started by realtime events."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @abstractmethod
    async def _fetch(self, user_id: str) -> list:
        ...

    @abstractmethod
    def _replace(self, items: list) -> None:
        ...

    # ---- pending ----

    def is_pending(self, key: str) -> bool:
        return self._pending[key] > 0

    @property
    def pending(self) -> set[str]:
        return {key for key, count in self._pending.items() if count > 0}

    def _begin(self, key: str) -> None:
        self._pending[key] += 1

    def _finish(self, key: str) -> None:
        self._pending[key] -= 1
        if self._pending[key] <= 0:
            del self._pending[key]

    def _notify(self, notice: Notice) -> Notice:
        self.notifier.notify(notice)
        return notice
