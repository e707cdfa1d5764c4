import pytest

from textwire.core.models.config import ConnectionConfig, ServerConfig
from tests.helpers import RecordingApp, RecordingObserver


@pytest.fixture
def connection_config():
    return ConnectionConfig()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def app():
    return RecordingApp()


@pytest.fixture
def server_config(app, connection_config):
    return ServerConfig(
        app=app,
        host="127.0.0.1",
        port=0,
        backlog=10,
        max_clients=10,
        timeout_graceful_shutdown=1.0,
        connection=connection_config,
    )
