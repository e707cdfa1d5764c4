import asyncio
import logging
import socket
from typing import Callable

from textwire.core.connections.registry import Registry
from textwire.core.errors import InvalidOperationError
from textwire.core.helpers.spawn import TaskSpawner
from textwire.core.models.config import ConnectionConfig, ServerConfig
from textwire.core.models.state import ListenerState
from textwire.core.transport.addr import format_addr
from textwire.core.transport.connection import Connection


ConnectionFactory = Callable[
    [asyncio.StreamReader, asyncio.StreamWriter, ConnectionConfig],
    Connection,
]
"""
Builds the Connection wrapping an accepted stream pair. Defaults to the
Connection constructor; supply another callable to customise connections.
"""


def default_connection_factory(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    config: ConnectionConfig,
) -> Connection:
    return Connection(reader=reader, writer=writer, config=config)


class MessageServer:
    """
    Owns the listening socket of a textwire server and admits clients.

    `listen()` binds an IPv4 socket and starts the accept loop. The loop
    keeps exactly one accept outstanding. Each accepted socket is handed to
    a separate admission task and the next accept is armed immediately, so
    the loop never waits for per-connection setup.

    Admission wraps the socket in asyncio streams, builds a Connection with
    the connection factory and adds it to the Registry. When the Registry
    already holds `max_clients` members the connection is closed without a
    word to the peer; the TCP handshake has already completed at that point.
    Otherwise the connection starts receiving, and its messages flow to the
    configured Application through the Registry.

    An accept failure is fatal: the server stops listening and does not
    restart. `stop_listen()` closes the listening socket only; `close()`
    also closes every registered connection and waits for pending
    admissions, cancelling them after `timeout_graceful_shutdown`.
    """
    def __init__(
        self,
        config: ServerConfig,
        connection_factory: ConnectionFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._factory = connection_factory or default_connection_factory
        self._logger = logger or logging.getLogger("core.transport.server")
        self.registry = Registry(config.app)
        self.state = ListenerState.none

        self._sock: socket.socket | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._accept_task: asyncio.Task[None] | None = None
        self._spawner: TaskSpawner | None = None
        self.local_address: tuple[str, int] | None = None

    @property
    def connections(self) -> list[Connection]:
        return list(self.registry)

    async def listen(
        self,
        host: str | None = None,
        port: int | None = None,
        backlog: int | None = None,
    ) -> None:
        """
        Bind and start accepting. Arguments left to None fall back to the
        server configuration.
        """
        if self.state is ListenerState.listening:
            raise InvalidOperationError("Server is already listening")
        if self.state is ListenerState.stopped:
            raise InvalidOperationError("Server has been stopped")

        config = self._config
        host = config.host if host is None else host
        port = config.port if port is None else port
        backlog = config.backlog if backlog is None else backlog

        loop = asyncio.get_running_loop()
        sock = socket.create_server(
            (host, port),
            family=socket.AF_INET,
            backlog=backlog,
        )
        sock.setblocking(False)

        self._sock = sock
        self._loop = loop
        self.local_address = sock.getsockname()[:2]
        self._spawner = TaskSpawner(loop)
        self.state = ListenerState.listening
        self._accept_task = loop.create_task(self._accept_loop(sock))

        self._logger.info(f"Listening on {format_addr(self.local_address)}")

    def stop_listen(self) -> None:
        """Close the listening socket. Connected clients are left untouched."""
        if self.state is ListenerState.stopped:
            return

        self.state = ListenerState.stopped

        task, self._accept_task = self._accept_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        sock, self._sock = self._sock, None
        if sock is not None:
            # drop the pending accept registration before the descriptor is closed
            if self._loop is not None and not self._loop.is_closed():
                self._loop.remove_reader(sock.fileno())
            sock.close()
            self._logger.info(f"Stopped listening on {format_addr(self.local_address)}")

    async def close(self) -> None:
        self.stop_listen()

        if self.registry:
            self._logger.info("Closing client connections.")
        await self.registry.close_all()

        if self._spawner is not None:
            await self._spawner.join(self._config.timeout_graceful_shutdown)

    async def broadcast(self, message: str) -> int:
        return await self.registry.broadcast(message)

    async def _accept_loop(self, sock: socket.socket) -> None:
        loop = asyncio.get_running_loop()

        while self.state is ListenerState.listening:
            try:
                client, _ = await loop.sock_accept(sock)
            except OSError as exc:
                if self.state is ListenerState.listening:
                    self._logger.error(f"Accept failed, stop listening: {exc}")
                    self.stop_listen()
                return

            self._spawner.spawn(self._admit(client))

    async def _admit(self, client: socket.socket) -> None:
        try:
            reader, writer = await asyncio.open_connection(sock=client)
        except OSError as exc:
            self._logger.warning(f"Unable to set up accepted connection: {exc}")
            client.close()
            return

        connection = self._factory(reader, writer, self._config.connection)
        who = format_addr(connection.remote_address)

        if self.state is not ListenerState.listening:
            await connection.close()
            return

        if not await self.registry.add(connection, limit=self._config.max_clients):
            self._logger.warning(
                f"{who} - Max clients reached ({self._config.max_clients}), "
                f"connection rejected"
            )
            await connection.close()
            return

        # close() may have emptied the registry while add() waited for the lock
        if self.state is not ListenerState.listening:
            await connection.close()
            return

        self._logger.debug(f"{who} - Connection accepted")
        connection.start_receive()
