import asyncio
import logging

from textwire.core.errors import (
    ConnectionFailedError,
    FrameTooLargeError,
    InvalidOperationError,
)
from textwire.core.models.config import ConnectionConfig
from textwire.core.models.state import ConnectionState
from textwire.core.transport.addr import format_addr, get_local_addr, get_remote_addr
from textwire.core.transport.application import ConnectionObserver
from textwire.core.transport.framing import FrameDecoder, encode_frame


class Connection:
    """
    One TCP endpoint exchanging delimiter-framed text messages.

    A Connection is either built around an accepted stream pair (inbound) or
    created empty and opened with `connect()` (outbound). It exclusively owns
    its StreamReader/StreamWriter from then on and releases them exactly
    once, on the first call to `close()`.

    `start_receive()` spawns the receive loop. The loop issues one read of at
    most `chunk_size` bytes at a time, feeds the bytes to a FrameDecoder and
    awaits the observer's `message_received` for each completed frame before
    reading again. Frames of a connection are therefore delivered in order
    and never concurrently.

    A zero-length read, a read error, or more than `max_buffer_size` unframed
    bytes close the connection. None of these conditions are reported as
    errors: the observer only sees `connection_closed`, exactly once, after
    which no notification fires.

    `send()` strips any delimiter from the payload, appends one, and writes
    the frame under the connection lock so concurrent sends never
    interleave. A write failure closes the connection instead of raising.
    """
    def __init__(
        self,
        reader: asyncio.StreamReader | None = None,
        writer: asyncio.StreamWriter | None = None,
        config: ConnectionConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or ConnectionConfig()
        self._reader = reader
        self._writer = writer
        self._observer: ConnectionObserver | None = None
        self._decoder: FrameDecoder | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._closer: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._closed = asyncio.Event()
        self._logger = logger or logging.getLogger("core.transport.connection")

        self.state = ConnectionState.new
        self.local_address: tuple[str, int] | None = None
        self.remote_address: tuple[str, int] | None = None
        if writer is not None:
            self._read_addresses(writer)

    def __repr__(self) -> str:
        return f"<Connection {format_addr(self.remote_address)} {self.state}>"

    @property
    def encoding(self) -> str:
        return self._config.encoding

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.open

    @property
    def is_closed(self) -> bool:
        return self.state in (ConnectionState.closing, ConnectionState.closed)

    @property
    def receiving(self) -> bool:
        return self._receive_task is not None

    def bind(self, observer: ConnectionObserver) -> None:
        """
        Attach the receiver of this connection's notifications.
        Must be called before `start_receive()`.
        """
        if self.receiving:
            raise InvalidOperationError("Cannot bind an observer once receiving")
        self._observer = observer

    async def connect(self, host: str, port: int) -> None:
        """
        Open an outbound connection to host:port and start receiving.
        """
        if self.is_closed:
            raise InvalidOperationError("Connection is closed")
        if self._writer is not None or self.state is not ConnectionState.new:
            raise InvalidOperationError("Connection is already connected")

        self.state = ConnectionState.connecting
        try:
            self._reader, self._writer = await asyncio.open_connection(host, port)
        except OSError as exc:
            self.state = ConnectionState.closed
            self._closed.set()
            raise ConnectionFailedError(f"Unable to connect to {host}:{port}: {exc}") from exc

        if self.state is not ConnectionState.connecting:
            # closed while connecting
            writer, self._writer, self._reader = self._writer, None, None
            writer.close()
            raise InvalidOperationError("Connection was closed while connecting")

        self._read_addresses(self._writer)
        self._logger.debug(f"{format_addr(self.remote_address)} - Connected")
        self.start_receive()

    def start_receive(self) -> asyncio.Task[None]:
        """
        Start the self-sustaining receive loop. Can only be called once.
        """
        if self.is_closed:
            raise InvalidOperationError("Connection is closed")
        if self.receiving:
            raise InvalidOperationError("start_receive() has already been called")
        if self._reader is None:
            raise InvalidOperationError("Connection is not connected")

        self._decoder = FrameDecoder(
            delimiter=self._config.delimiter,
            encoding=self._config.encoding,
            max_size=self._config.max_buffer_size,
        )
        self.state = ConnectionState.open
        self._receive_task = asyncio.get_running_loop().create_task(self._receive_loop())
        return self._receive_task

    async def send(self, message: str) -> None:
        """
        Send one message. Any delimiter inside `message` is removed.
        """
        if self.is_closed:
            raise InvalidOperationError("Connection is closed")
        if self._writer is None:
            raise InvalidOperationError("Connection is not connected")

        frame = encode_frame(message, self._config.delimiter, self._config.encoding)

        async with self._lock:
            writer = self._writer
            if writer is None or self.is_closed:
                raise InvalidOperationError("Connection is closed")

            try:
                writer.write(frame)
                await writer.drain()
            except OSError as exc:
                self._logger.warning(
                    f"{format_addr(self.remote_address)} - Failed to send message: {exc}"
                )
                # Closing notifies the observer, which may be waiting on a lock
                # held by our caller (broadcast), so it runs as its own task.
                if self._close_task is None:
                    self._close_task = asyncio.get_running_loop().create_task(self.close())

    async def close(self) -> None:
        """
        Close the connection. Calls made while another task is closing it
        return once that close has finished, observer notification included.
        """
        if self.is_closed:
            # the observer may close again from its own notification
            if self._closer is not asyncio.current_task():
                await self._closed.wait()
            return

        self._closer = asyncio.current_task()
        self.state = ConnectionState.closing
        writer, self._writer = self._writer, None
        self._reader = None

        if writer is not None:
            await self._release(writer)

        if self._decoder is not None:
            self._decoder.reset()
            self._decoder = None

        self.state = ConnectionState.closed
        self._logger.debug(f"{format_addr(self.remote_address)} - Connection closed")

        try:
            if self._observer is not None:
                await self._observer.connection_closed(self)
        except Exception as exc:
            self._logger.error(f"Error in close notification: {exc}", exc_info=exc)
        finally:
            self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until the connection is closed and its observer notified."""
        await self._closed.wait()

    async def _receive_loop(self) -> None:
        who = format_addr(self.remote_address)
        try:
            while self.is_open:
                reader = self._reader
                if reader is None:
                    break

                try:
                    data = await reader.read(self._config.chunk_size)
                except OSError as exc:
                    self._logger.debug(f"{who} - Read failed: {exc}")
                    break

                if not data:
                    self._logger.debug(f"{who} - Peer disconnected")
                    break

                # Closed while the read was pending
                if not self.is_open or self._decoder is None:
                    break

                try:
                    frames = self._decoder.feed(data)
                except FrameTooLargeError as exc:
                    self._logger.warning(f"{who} - Buffer overflow, closing connection: {exc}")
                    break

                for frame in frames:
                    if not self.is_open:
                        break
                    await self._dispatch(frame)
        finally:
            await self.close()

    async def _dispatch(self, message: str) -> None:
        if self._observer is None:
            return

        try:
            await self._observer.message_received(self, message)
        except Exception as exc:
            self._logger.error(f"Error in message handler: {exc}", exc_info=exc)

    async def _release(self, writer: asyncio.StreamWriter) -> None:
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=self._config.close_timeout)
        except asyncio.TimeoutError:
            self._logger.warning(
                f"{format_addr(self.remote_address)} - Close timed out, aborting transport"
            )
            writer.transport.abort()
        except OSError as exc:
            self._logger.debug(f"{format_addr(self.remote_address)} - Error while closing: {exc}")

    def _read_addresses(self, writer: asyncio.StreamWriter) -> None:
        self.local_address = get_local_addr(writer)
        self.remote_address = get_remote_addr(writer)
