from typing import Any


def get_remote_addr(transport: Any) -> tuple[str, int] | None:
    """
    Return the (host, port) of the peer, or None when the transport does not
    expose a usable address. Works with asyncio transports and StreamWriters.
    """
    sock = transport.get_extra_info("socket")
    if sock is not None:
        try:
            info = sock.getpeername()
        except OSError:
            return None
    else:
        info = transport.get_extra_info("peername")

    return _as_addr(info)


def get_local_addr(transport: Any) -> tuple[str, int] | None:
    """
    Return the (host, port) the transport is bound to, or None.
    """
    sock = transport.get_extra_info("socket")
    if sock is not None:
        try:
            info = sock.getsockname()
        except OSError:
            return None
    else:
        info = transport.get_extra_info("sockname")

    return _as_addr(info)


def _as_addr(info: Any) -> tuple[str, int] | None:
    if isinstance(info, (list, tuple)) and len(info) >= 2:
        return str(info[0]), int(info[1])
    return None


def format_addr(addr: tuple[str, int] | None) -> str:
    return "%s:%d" % addr if addr else "-"
