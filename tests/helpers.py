import asyncio
from typing import Callable

from textwire.core.models.config import ConnectionConfig
from textwire.core.transport.connection import Connection
from tests.fake.fake_stream import FakeStreamWriter


DELIMITER = b"<<EOF>>"


class RecordingObserver:
    """ConnectionObserver keeping every notification it receives."""

    def __init__(self) -> None:
        self.messages: list[tuple[Connection, str]] = []
        self.closed: list[Connection] = []

    async def message_received(self, connection: Connection, message: str) -> None:
        self.messages.append((connection, message))

    async def connection_closed(self, connection: Connection) -> None:
        self.closed.append(connection)

    @property
    def texts(self) -> list[str]:
        return [message for _, message in self.messages]


class RecordingApp:
    """Application keeping every message and disconnection it is notified of."""

    def __init__(self, reply: Callable[[str], str | None] | None = None) -> None:
        self._reply = reply
        self.messages: list[tuple[Connection, str]] = []
        self.disconnected: list[Connection] = []

    async def on_message(self, connection: Connection, message: str) -> None:
        self.messages.append((connection, message))
        if self._reply is not None:
            answer = self._reply(message)
            if answer is not None:
                await connection.send(answer)

    async def on_disconnected(self, connection: Connection) -> None:
        self.disconnected.append(connection)


def make_connection(
    config: ConnectionConfig | None = None,
) -> tuple[Connection, asyncio.StreamReader, FakeStreamWriter]:
    """Build an inbound Connection over an in-memory stream pair."""
    reader = asyncio.StreamReader()
    writer = FakeStreamWriter(reader)
    connection = Connection(reader=reader, writer=writer, config=config)  # type: ignore[arg-type]
    return connection, reader, writer


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


async def read_frame(reader: asyncio.StreamReader, timeout: float = 2.0) -> str:
    data = await asyncio.wait_for(reader.readuntil(DELIMITER), timeout=timeout)
    return data[:-len(DELIMITER)].decode()
