import logging
from datetime import datetime

from textwire.core.transport.addr import format_addr
from textwire.core.transport.connection import Connection


class ClockApplication:
    """
    Sample Application answering every message with the current local time
    ("%H:%M:%S"), sent to the originating connection only.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger("bootstrap.handlers.clock")

    async def on_message(self, connection: Connection, message: str) -> None:
        self._logger.info(f"{format_addr(connection.remote_address)} - {message}")
        await connection.send(datetime.now().strftime("%H:%M:%S"))

    async def on_disconnected(self, connection: Connection) -> None:
        self._logger.info(f"{format_addr(connection.remote_address)} - Disconnected")
