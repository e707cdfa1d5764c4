from dataclasses import dataclass, field

from textwire.core.transport.application import Application


DEFAULT_DELIMITER = "<<EOF>>"


@dataclass
class ConnectionConfig:
    """
    Per-connection framing and resource settings.

    The same instance is shared by every Connection a MessageServer accepts.
    """
    encoding: str = "utf-8"
    """
    Text encoding used for both directions. The delimiter is encoded with it
    too, so encodings that emit a byte order mark should name the endianness
    explicitly (e.g. "utf-16-le").
    """

    delimiter: str = DEFAULT_DELIMITER
    """
    Literal sequence terminating every message on the wire.
    """

    chunk_size: int = 1024
    """
    Maximum number of bytes requested by a single read.
    """

    max_buffer_size: int | None = None
    """
    Maximum number of unframed bytes kept for one connection.
    None means unbounded. A peer exceeding it is disconnected.
    """

    close_timeout: float = 5.0
    """
    Time (in seconds) given to the transport to flush pending writes on
    close before it is aborted.
    """


@dataclass
class ServerConfig:
    """
    Static configuration for a textwire MessageServer.
    """
    app: Application
    """
    Application notified of every received message and every disconnected
    client. See textwire.core.transport.application.Application.
    """

    host: str = "0.0.0.0"
    """
    IPv4 address or hostname on which the server listens.
    """

    port: int = 5500
    """
    TCP port to bind. If set to 0, the OS selects an available port.
    """

    backlog: int = 100
    """
    Maximum number of pending TCP connections waiting for accept().
    """

    max_clients: int = 100
    """
    Maximum number of registered connections. Connections accepted beyond
    this limit are closed right away.
    """

    timeout_graceful_shutdown: float = 5.0
    """
    Maximum time (in seconds) close() waits for in-flight admissions to
    finish before cancelling them.
    """

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    """
    Settings applied to every accepted connection.
    """
