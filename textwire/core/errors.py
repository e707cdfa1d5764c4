class TextwireError(Exception):
    """Base class for every error raised by textwire."""


class InvalidOperationError(TextwireError, RuntimeError):
    """
    Raised when an operation is not allowed in the current lifecycle state:
    sending on a closed connection, starting a second receive loop, listening
    twice, registering a connection twice.
    """


class ConnectionFailedError(TextwireError, ConnectionError):
    """Raised when an outbound connection cannot be resolved or established."""


class FrameTooLargeError(TextwireError, ValueError):
    """Raised by the frame decoder when unframed data exceeds the buffer limit."""
