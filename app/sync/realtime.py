# app/sync/realtime.py
"""
One realtime channel per user, shared by every consumer.

Several parts of a storefront (header badge, cart drawer, cart page) watch
the same user's rows. `ChannelRegistry` hands them a shared subscription:
the first `acquire()` for a user opens the channel, later ones only attach
a listener, and the last `release()` closes it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from supabase import AsyncClient

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]


class RealtimeGateway(Protocol):
    async def open(
        self, topic: str, table: str, user_id: str, on_event: Listener
    ) -> Any: ...

    async def close(self, handle: Any) -> None: ...


class SupabaseRealtimeGateway:
    """
    Opens `postgres_changes` channels on the Supabase realtime socket,
    filtered to one user's rows.
    """

    def __init__(self, client: AsyncClient, schema: str = "public"):
        self.client = client
        self.schema = schema

    async def open(self, topic: str, table: str, user_id: str, on_event: Listener):
        channel = self.client.channel(topic)
        channel.on_postgres_changes(
            "*",
            callback=on_event,
            table=table,
            schema=self.schema,
            filter=f"user_id=eq.{user_id}",
        )

        def on_status(status, err):
            if err:
                logger.error(f"Realtime channel {topic} error: {err}")
            else:
                logger.info(f"Realtime channel {topic}: {status}")

        await channel.subscribe(on_status)
        return channel

    async def close(self, handle) -> None:
        await self.client.remove_channel(handle)


@dataclass
class _Registration:
    topic: str
    listeners: list[Listener] = field(default_factory=list)
    opening: asyncio.Future | None = None


class ChannelRegistry:
    """
    Reference-counted channels keyed by user id.

    The registration is recorded before the channel finishes opening, so a
    second `acquire()` racing the first waits on the same open instead of
    starting another one.
    """

    def __init__(self, gateway: RealtimeGateway, table: str, topic_prefix: str | None = None):
        self.gateway = gateway
        self.table = table
        self.topic_prefix = topic_prefix or f"{table}_changes"
        self._registrations: dict[str, _Registration] = {}

    def topic_for(self, user_id: str) -> str:
        return f"{self.topic_prefix}_{user_id}"

    @property
    def active_users(self) -> list[str]:
        return list(self._registrations)

    def is_active(self, user_id: str) -> bool:
        return user_id in self._registrations

    def listener_count(self, user_id: str) -> int:
        reg = self._registrations.get(user_id)
        return len(reg.listeners) if reg else 0

    async def acquire(self, user_id: str, listener: Listener) -> None:
        """
        Attach `listener` to the user's channel, opening it if needed.

        Raises whatever the gateway raised if the channel could not be
        opened; in that case nothing stays registered.
        """
        reg = self._registrations.get(user_id)
        if reg is None:
            reg = _Registration(topic=self.topic_for(user_id), listeners=[listener])
            self._registrations[user_id] = reg
            reg.opening = asyncio.ensure_future(self._open(user_id, reg))
        else:
            reg.listeners.append(listener)

        try:
            await asyncio.shield(reg.opening)
        except Exception:
            if self._registrations.get(user_id) is reg:
                del self._registrations[user_id]
            raise

    async def release(self, user_id: str, listener: Listener) -> None:
        """
        Detach `listener`; the last one out closes the channel.
        Unknown users or listeners are ignored.
        """
        reg = self._registrations.get(user_id)
        if reg is None or listener not in reg.listeners:
            return
        reg.listeners.remove(listener)
        if reg.listeners:
            return

        del self._registrations[user_id]
        try:
            handle = await reg.opening
        except Exception:
            logger.debug(f"Channel {reg.topic} never opened; nothing to close")
            return
        await self.gateway.close(handle)
        logger.info(f"Closed realtime channel {reg.topic}")

    async def close_all(self) -> None:
        for user_id in list(self._registrations):
            reg = self._registrations[user_id]
            for listener in list(reg.listeners):
                await self.release(user_id, listener)

    async def _open(self, user_id: str, reg: _Registration):
        handle = await self.gateway.open(
            reg.topic,
            self.table,
            user_id,
            lambda payload: self.dispatch(user_id, payload),
        )
        logger.info(f"Opened realtime channel {reg.topic}")
        return handle

    def dispatch(self, user_id: str, payload: dict[str, Any]) -> None:
        """Fan a change event out to every listener of that user."""
        reg = self._registrations.get(user_id)
        if reg is None:
            return
        for listener in list(reg.listeners):
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Realtime listener failed on {reg.topic}")
