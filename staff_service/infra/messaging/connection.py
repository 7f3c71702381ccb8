"""Broker connection manager.

Owns the one AMQP connection and the one channel used by the publisher and
the consumer of this process. The manager is created at startup and passed
explicitly (``app.state`` for the API, a local in CLI workers).

Lifecycle:

    DISCONNECTED ──initialize()──> CONNECTING ──ok──> CONNECTED
         ^                             │                  │
         └────────── failure ──────────┘                  │ close/error event
         ^                                                v
         └──── close_connection() <── CLOSING      reconnect loop ──> initialize()

Concurrent ``initialize()`` calls share one in-flight attempt. A connection
or channel loss that we did not cause schedules a single reconnect loop,
which keeps calling ``initialize()`` according to the ``ReconnectPolicy``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import aio_pika

from .exceptions import BrokerConnectionError
from .policy import ReconnectPolicy
from .topology import DeclaredTopology, Topology, declare_topology

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractExchange, AbstractQueue

    from staff_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)

ConnectFactory = Callable[..., Awaitable["AbstractConnection"]]
ReconnectListener = Callable[[], Awaitable[None]]


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class BrokerConnectionManager:
    """Single connection/channel pair with topology declaration and reconnect.

    Args:
        settings: RabbitMQ settings (URL, timeouts, topology, reconnect policy).
        policy: Reconnect policy. Built from ``settings`` when omitted.
        topology: Topology to declare. Built from ``settings`` when omitted.
        connect: Coroutine function opening a connection; ``aio_pika.connect``
            by default. Called as ``connect(url, **settings.to_connection_kwargs())``.
    """

    def __init__(
        self,
        settings: RabbitSettings,
        *,
        policy: ReconnectPolicy | None = None,
        topology: Topology | None = None,
        connect: ConnectFactory | None = None,
    ) -> None:
        self.settings = settings
        self.policy = policy or ReconnectPolicy.from_settings(settings)
        self.topology = topology or Topology.from_settings(settings)
        self._connect = connect or aio_pika.connect

        self._state = ConnectionState.DISCONNECTED
        self._initialized = False
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._declared: DeclaredTopology | None = None
        # Connection left behind by a channel-level failure, closed before reconnecting
        self._stale_connection: AbstractConnection | None = None

        self._init_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[bool] | None = None
        self._reconnect_listeners: list[ReconnectListener] = []
        self._last_error: str | None = None
        self.connect_attempts = 0

    # ──────────────────────────────────────────────────────
    # State inspection
    # ──────────────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def channel(self) -> AbstractChannel | None:
        return self._channel

    @property
    def exchange(self) -> AbstractExchange | None:
        """The main event exchange, once declared."""
        return self._declared.exchange if self._declared else None

    @property
    def queues(self) -> dict[str, AbstractQueue]:
        return dict(self._declared.queues) if self._declared else {}

    @property
    def reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def is_connected(self) -> bool:
        return self._initialized and self._channel is not None

    def health(self) -> dict[str, Any]:
        """Snapshot used by the health endpoint and the CLI."""
        connected = self.is_connected()
        return {
            "status": "healthy" if connected else "unhealthy",
            "state": self._state.value,
            "is_connected": connected,
            "reconnecting": self.reconnecting,
            "url": self.settings.safe_url,
            "exchange": self.topology.exchange_name,
            "reason": None if connected else self._last_error,
        }

    def add_reconnect_listener(self, listener: ReconnectListener) -> None:
        """Register a coroutine called after the reconnect loop restores the channel."""
        self._reconnect_listeners.append(listener)

    # ──────────────────────────────────────────────────────
    # Connect
    # ──────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Connect, open a channel and declare the topology.

        Returns immediately when already connected. While an attempt is in
        flight every caller awaits that same attempt.

        Raises:
            BrokerConnectionError: If the attempt failed. The next call retries.
        """
        if self.is_connected():
            return

        task = self._init_task
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._open(), name="rabbitmq-initialize"
            )
            task.add_done_callback(self._clear_init_task)
            self._init_task = task

        await asyncio.shield(task)

    def _clear_init_task(self, task: asyncio.Task[None]) -> None:
        if self._init_task is task:
            self._init_task = None

    async def _open(self) -> None:
        self._state = ConnectionState.CONNECTING
        self.connect_attempts += 1
        await self._discard_stale_connection()

        logger.info(
            "Connecting to RabbitMQ",
            extra={"url": self.settings.safe_url, "attempt": self.connect_attempts},
        )

        connection: AbstractConnection | None = None
        try:
            connection = await self._connect(
                self.settings.get_url(), **self.settings.to_connection_kwargs()
            )
            channel = await connection.channel()
            declared = await declare_topology(channel, self.topology)
        except Exception as e:
            self._state = ConnectionState.DISCONNECTED
            self._last_error = str(e) or type(e).__name__
            if connection is not None:
                await self._close_quietly(connection, "connection")
            logger.error(
                "Failed to connect to RabbitMQ",
                extra={"url": self.settings.safe_url, "error": self._last_error},
            )
            raise BrokerConnectionError(f"Failed to connect to RabbitMQ: {e}") from e

        connection.close_callbacks.add(self._on_connection_closed)
        channel.close_callbacks.add(self._on_channel_closed)

        self._connection = connection
        self._channel = channel
        self._declared = declared
        self._initialized = True
        self._last_error = None
        self._state = ConnectionState.CONNECTED

        logger.info(
            "Connected to RabbitMQ",
            extra={"url": self.settings.safe_url, "exchange": self.topology.exchange_name},
        )

    async def ensure_connection(self) -> None:
        """Connect first if there is no usable channel."""
        if not self.is_connected():
            await self.initialize()

    # ──────────────────────────────────────────────────────
    # Loss detection and reconnect
    # ──────────────────────────────────────────────────────

    def _on_connection_closed(self, sender: Any, exc: BaseException | None = None) -> None:
        if sender is not self._connection:
            return
        self._handle_loss("connection", exc)

    def _on_channel_closed(self, sender: Any, exc: BaseException | None = None) -> None:
        if sender is not self._channel:
            return
        self._handle_loss("channel", exc)

    def _handle_loss(self, what: str, exc: BaseException | None) -> None:
        if self._state is ConnectionState.CLOSING:
            return

        self._last_error = f"{what} closed: {exc}" if exc else f"{what} closed"
        logger.warning(
            "RabbitMQ %s lost, scheduling reconnect",
            what,
            extra={"reason": self._last_error},
        )

        connection = self._connection
        if connection is not None and not connection.is_closed:
            self._stale_connection = connection

        self._initialized = False
        self._connection = None
        self._channel = None
        self._declared = None
        self._state = ConnectionState.DISCONNECTED
        self._schedule_reconnect()

    def start_reconnect(self) -> None:
        """Start the background reconnect loop unless one is already running.

        Used at startup when the first ``initialize()`` failed and the
        service is allowed to run without the broker.
        """
        if self._state is ConnectionState.CLOSING or self.is_connected():
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.reconnecting:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self.retry_connect(), name="rabbitmq-reconnect"
        )

    async def retry_connect(self) -> bool:
        """Keep calling ``initialize()`` until it succeeds.

        Failures are logged, never raised. Returns False only when the
        policy has a ``max_attempts`` limit and it was reached.
        """
        failed = 0
        while True:
            delay = self.policy.delay(failed)
            logger.info(
                f"Reconnecting to RabbitMQ in {delay:.1f}s",
                extra={"attempt": failed + 1, "delay": delay},
            )
            await asyncio.sleep(delay)

            try:
                await self.initialize()
            except Exception as e:
                failed += 1
                logger.warning(
                    "RabbitMQ reconnect attempt failed",
                    extra={"attempt": failed, "error": str(e)},
                )
                if self.policy.exhausted(failed):
                    logger.error(
                        "Giving up reconnecting to RabbitMQ",
                        extra={"attempts": failed, "policy": repr(self.policy)},
                    )
                    return False
                continue

            logger.info("Reconnected to RabbitMQ", extra={"failed_attempts": failed})
            await self._notify_reconnected()
            return True

    async def _notify_reconnected(self) -> None:
        for listener in list(self._reconnect_listeners):
            try:
                await listener()
            except Exception:
                logger.exception("Reconnect listener failed", extra={"listener": repr(listener)})

    # ──────────────────────────────────────────────────────
    # Close
    # ──────────────────────────────────────────────────────

    async def close_connection(self) -> None:
        """Stop reconnecting and close the channel, then the connection.

        Safe to call repeatedly and when nothing is open.
        """
        self._state = ConnectionState.CLOSING

        for task in (self._reconnect_task, self._init_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task
        self._reconnect_task = None
        self._init_task = None

        channel, connection = self._channel, self._connection
        self._initialized = False
        self._channel = None
        self._connection = None
        self._declared = None

        if channel is not None:
            await self._close_quietly(channel, "channel")
        if connection is not None:
            await self._close_quietly(connection, "connection")
        await self._discard_stale_connection()

        self._state = ConnectionState.DISCONNECTED
        logger.info("RabbitMQ connection closed")

    async def _discard_stale_connection(self) -> None:
        stale, self._stale_connection = self._stale_connection, None
        if stale is not None:
            await self._close_quietly(stale, "stale connection")

    @staticmethod
    async def _close_quietly(resource: Any, what: str) -> None:
        if resource.is_closed:
            return
        try:
            await resource.close()
        except Exception as e:
            logger.warning(f"Error closing RabbitMQ {what}", extra={"error": str(e)})
