import argparse
import asyncio
import sys

from textwire.core.errors import ConnectionFailedError
from textwire.core.models.config import ConnectionConfig
from textwire.core.transport.connection import Connection


class ReplyCollector:
    """Observer resolving a future with the first reply, or None on close."""

    def __init__(self) -> None:
        self.reply: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()

    async def message_received(self, connection: Connection, message: str) -> None:
        if not self.reply.done():
            self.reply.set_result(message)

    async def connection_closed(self, connection: Connection) -> None:
        if not self.reply.done():
            self.reply.set_result(None)


async def request(
    host: str,
    port: int,
    message: str,
    timeout: float = 5.0,
    config: ConnectionConfig | None = None,
) -> str | None:
    """
    Connect, send a single message and return the first reply.
    Returns None when the server disconnects without replying.
    """
    connection = Connection(config=config)
    collector = ReplyCollector()
    connection.bind(collector)

    await connection.connect(host, port)
    try:
        await connection.send(message)
        return await asyncio.wait_for(collector.reply, timeout=timeout)
    finally:
        await connection.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="textwire-send",
        description="Send one message to a textwire server and print the reply.",
    )
    parser.add_argument("message", help="Text to send")
    parser.add_argument("--host", default="127.0.0.1", help="Server address")
    parser.add_argument("--port", type=int, default=5500, help="Server port")
    parser.add_argument("--timeout", type=float, default=5.0, help="Seconds to wait for a reply")
    args = parser.parse_args()

    try:
        reply = asyncio.run(request(args.host, args.port, args.message, args.timeout))
    except ConnectionFailedError as ex:
        raise SystemExit(str(ex))
    except asyncio.TimeoutError:
        raise SystemExit(f"No reply within {args.timeout}s")

    if reply is None:
        print("Server disconnected.", file=sys.stderr)
        raise SystemExit(1)

    print(f"Received : {reply}")


if __name__ == "__main__":
    main()
