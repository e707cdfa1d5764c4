from enum import StrEnum


class ConnectionState(StrEnum):
    """
    Lifecycle of a single Connection.

    Inbound connections go new -> open -> closing -> closed. Outbound
    connections pass through connecting between new and open. closed is
    terminal: the transport has been released and no notification fires
    afterwards.
    """
    new = "new"
    connecting = "connecting"
    open = "open"
    closing = "closing"
    closed = "closed"


class ListenerState(StrEnum):
    """
    Lifecycle of a MessageServer listening socket.
    A stopped server cannot listen again.
    """
    none = "none"
    listening = "listening"
    stopped = "stopped"
