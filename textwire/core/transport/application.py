from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from textwire.core.transport.connection import Connection


class Application(Protocol):
    """
    This interface defines the handler a MessageServer notifies about its
    clients.

    `on_message` is awaited for every complete frame received on a
    connection, with the delimiter already stripped. The next frame of the
    same connection is not read until it returns, so messages of one
    connection are handled in arrival order. Messages of different
    connections are handled concurrently.

    `on_disconnected` is awaited once per registered connection, after it has
    been removed from the registry. No message is delivered for that
    connection afterwards.

    The Application may reply with `connection.send(text)` or reach every
    client through the server's broadcast. It does not handle framing or
    transport-level errors; these belong to the Connection.
    """
    async def on_message(self, connection: "Connection", message: str) -> None:
        ...

    async def on_disconnected(self, connection: "Connection") -> None:
        ...


class ConnectionObserver(Protocol):
    """
    Receiver of the notifications raised by a single Connection.

    The Registry implements it to relay notifications to the Application.
    A Connection has at most one observer, bound before it starts receiving.
    """
    async def message_received(self, connection: "Connection", message: str) -> None:
        ...

    async def connection_closed(self, connection: "Connection") -> None:
        ...
