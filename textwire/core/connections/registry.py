import asyncio
import logging
from typing import Iterator

from textwire.core.errors import InvalidOperationError
from textwire.core.transport.addr import format_addr
from textwire.core.transport.application import Application
from textwire.core.transport.connection import Connection


class Registry:
    """
    The set of live connections of a MessageServer.

    Members are kept in insertion order and are unique by identity. Every
    mutation and the whole broadcast iteration run under a single
    asyncio.Lock, so a member cannot leave the registry while a broadcast is
    sending to it: its removal waits until the broadcast releases the lock.

    Adding a connection binds the registry as its observer. Received messages
    are relayed unchanged to the Application together with the originating
    connection. A closed connection is removed, then reported to the
    Application through `on_disconnected`.
    """
    def __init__(
        self,
        app: Application,
        logger: logging.Logger | None = None,
    ) -> None:
        self._app = app
        self._members: list[Connection] = []
        self._lock = asyncio.Lock()
        self._logger = logger or logging.getLogger("core.connections.registry")

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, connection: object) -> bool:
        return any(member is connection for member in self._members)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._members))

    async def add(self, connection: Connection, limit: int | None = None) -> bool:
        """
        Register a connection and subscribe to its notifications.

        When `limit` is given and the registry already holds that many
        members, the connection is not added and False is returned.
        """
        async with self._lock:
            if connection in self:
                raise InvalidOperationError(f"{connection!r} is already registered")

            if limit is not None and len(self._members) >= limit:
                return False

            self._members.append(connection)

        connection.bind(self)
        return True

    async def remove(self, connection: Connection) -> bool:
        async with self._lock:
            for index, member in enumerate(self._members):
                if member is connection:
                    del self._members[index]
                    return True

        return False

    async def broadcast(self, message: str) -> int:
        """
        Send `message` to every open member. Returns the number of members
        the message was written to.
        """
        sent = 0
        async with self._lock:
            for connection in self._members:
                if not connection.is_open:
                    continue

                try:
                    await connection.send(message)
                except InvalidOperationError:
                    # closed while the broadcast was in progress
                    self._logger.debug(f"Skip closed connection {connection!r}")
                    continue

                sent += 1

        return sent

    async def close_all(self) -> None:
        """
        Empty the registry and close every former member. Each one is still
        reported to the Application as disconnected.
        """
        async with self._lock:
            members = list(self._members)
            self._members.clear()

        for connection in members:
            await connection.close()

    async def message_received(self, connection: Connection, message: str) -> None:
        await self._app.on_message(connection, message)

    async def connection_closed(self, connection: Connection) -> None:
        await self.remove(connection)
        self._logger.debug(
            f"{format_addr(connection.remote_address)} - Client disconnected"
        )
        await self._app.on_disconnected(connection)
