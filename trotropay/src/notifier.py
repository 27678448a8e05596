"""
Delivery of payment events to the crew of a vehicle.

Delivery is best effort: a message for an account that has no open
connection is dropped, a failed send closes that connection, and nothing is
retried or ordered.
"""

import asyncio
from logging import getLogger
from typing import Dict, Iterable, Set

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

logger = getLogger(__name__)


class Notifier:
    """Interface the payment flow uses to reach other accounts."""

    def publish(self, accountIds: Iterable[int], message: dict) -> None:
        raise NotImplementedError


class ConnectionRegistry(Notifier):
    """
    Keeps one open WebSocket per account and pushes messages to it.

    Attributes:
        connections (Dict[int, WebSocket]): Open sockets keyed by account id.
            A second connection of the same account replaces the first.
    """

    def __init__(self):
        self.connections: Dict[int, WebSocket] = {}
        self.pending: Set[asyncio.Task] = set()

    async def register(self, accountId: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections[accountId] = websocket
        logger.info(f"Account {accountId} connected for notifications")

    def deregister(self, accountId: int, websocket: WebSocket | None = None) -> None:
        """Forget the socket of an account, only if it is still `websocket` when given."""
        current = self.connections.get(accountId)
        if current is None or (websocket is not None and current is not websocket):
            return
        del self.connections[accountId]
        logger.info(f"Account {accountId} disconnected from notifications")

    async def send(self, accountId: int, message: dict) -> None:
        websocket = self.connections.get(accountId)
        if websocket is None:
            return
        if websocket.application_state != WebSocketState.CONNECTED:
            self.deregister(accountId, websocket)
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"Notification to account {accountId} failed: {e}")
            self.deregister(accountId, websocket)

    def publish(self, accountIds: Iterable[int], message: dict) -> None:
        """
        Schedule `message` for every connected account in `accountIds`.

        Must be called from the event loop thread. Accounts without an open
        connection, and None ids for unassigned crew, are skipped.
        """
        recipients = {i for i in accountIds if i is not None and i in self.connections}
        if not recipients:
            return
        loop = asyncio.get_running_loop()
        for accountId in recipients:
            task = loop.create_task(self.send(accountId, message))
            self.pending.add(task)
            task.add_done_callback(self.pending.discard)


registry = ConnectionRegistry()
