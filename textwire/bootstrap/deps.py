import json
from functools import lru_cache

from pydantic import ValidationError

from textwire.bootstrap.config.settings import TextwireConfig
from textwire.bootstrap.handlers.clock import ClockApplication
from textwire.core.transport.server import MessageServer


@lru_cache
def get_server() -> MessageServer:
    config = get_config()
    return MessageServer(config=config.get_server_config(get_app()))


@lru_cache
def get_app() -> ClockApplication:
    return ClockApplication()


@lru_cache
def get_config() -> TextwireConfig:
    try:
        return TextwireConfig()
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))
