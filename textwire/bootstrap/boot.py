import asyncio

from textwire.bootstrap.config.loader import get_cli_args
from textwire.bootstrap.deps import get_server
from textwire.core.helpers.utils import setup_signal_handler, setup_logging
from textwire.core.transport.server import MessageServer


async def serve(server: MessageServer, stop_event: asyncio.Event) -> None:
    await server.listen()
    try:
        await stop_event.wait()
    finally:
        await server.close()


def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)

    server = get_server()
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        with setup_signal_handler(loop) as stop_event:
            loop.run_until_complete(serve(server, stop_event))
    except KeyboardInterrupt:
        pass
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


if __name__ == "__main__":
    main()
