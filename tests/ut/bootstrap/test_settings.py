import sys

import pytest
import yaml

from textwire.bootstrap.config.loader import get_cli_args, get_configfile
from textwire.bootstrap.config.settings import TextwireConfig
from textwire.bootstrap.handlers.clock import ClockApplication


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "argv", ["textwire"])
    monkeypatch.chdir(tmp_path)
    for name in ("TEXTWIRE_CONFIG", "TEXTWIRE_SERVER__PORT", "TEXTWIRE_CONNECTION__ENCODING"):
        monkeypatch.delenv(name, raising=False)

    get_cli_args.cache_clear()
    get_configfile.cache_clear()
    yield
    get_cli_args.cache_clear()
    get_configfile.cache_clear()


@pytest.mark.ut
def test_defaults_without_file():
    config = TextwireConfig()

    assert get_configfile() is None
    assert config.server.host == "0.0.0.0"
    assert config.server.port == 5500
    assert config.server.backlog == 100
    assert config.server.max_clients == 100
    assert config.connection.delimiter == "<<EOF>>"
    assert config.connection.encoding == "utf-8"
    assert config.connection.chunk_size == 1024
    assert config.connection.max_buffer_size is None


@pytest.mark.ut
def test_yaml_file_from_environment(monkeypatch, tmp_path):
    file = tmp_path / "custom.yaml"
    file.write_text(yaml.dump({
        "server": {"host": "127.0.0.1", "port": 6000, "max_clients": 3},
        "connection": {"max_buffer_size": 4096},
    }))
    monkeypatch.setenv("TEXTWIRE_CONFIG", str(file))

    config = TextwireConfig()

    assert config.server.host == "127.0.0.1"
    assert config.server.port == 6000
    assert config.server.max_clients == 3
    assert config.connection.max_buffer_size == 4096


@pytest.mark.ut
def test_default_file_in_working_directory(tmp_path):
    (tmp_path / "textwire.yaml").write_text(yaml.dump({"server": {"port": 7000}}))

    config = TextwireConfig()

    assert config.server.port == 7000


@pytest.mark.ut
def test_environment_overrides_file(monkeypatch, tmp_path):
    (tmp_path / "textwire.yaml").write_text(yaml.dump({"server": {"port": 7000}}))
    monkeypatch.setenv("TEXTWIRE_SERVER__PORT", "7100")

    config = TextwireConfig()

    assert config.server.port == 7100


@pytest.mark.ut
def test_missing_explicit_file_exits(monkeypatch, tmp_path):
    monkeypatch.setenv("TEXTWIRE_CONFIG", str(tmp_path / "missing.yaml"))

    with pytest.raises(SystemExit):
        get_configfile()


@pytest.mark.ut
def test_cli_config_has_priority(monkeypatch, tmp_path):
    file = tmp_path / "cli.yaml"
    file.write_text(yaml.dump({"server": {"port": 7200}}))
    monkeypatch.setattr(sys, "argv", ["textwire", "--config", str(file), "--log-level", "DEBUG"])

    assert get_cli_args().log_level == "DEBUG"
    assert TextwireConfig().server.port == 7200


@pytest.mark.ut
@pytest.mark.parametrize("override", [
    {"server": {"port": 70000}},
    {"server": {"max_clients": 0}},
    {"connection": {"encoding": "no-such-codec"}},
    {"connection": {"delimiter": ""}},
    {"connection": {"chunk_size": 0}},
    {"connection": {"max_buffer_size": -1}},
])
def test_invalid_values_are_rejected(tmp_path, override):
    from pydantic import ValidationError

    (tmp_path / "textwire.yaml").write_text(yaml.dump(override))

    with pytest.raises(ValidationError):
        TextwireConfig()


@pytest.mark.ut
def test_server_config_conversion(tmp_path):
    (tmp_path / "textwire.yaml").write_text(yaml.dump({
        "server": {"port": 0, "max_clients": 5, "timeout_graceful_shutdown": 1.5},
        "connection": {"encoding": "latin-1", "chunk_size": 512},
    }))
    app = ClockApplication()

    server_config = TextwireConfig().get_server_config(app)

    assert server_config.app is app
    assert server_config.port == 0
    assert server_config.max_clients == 5
    assert server_config.timeout_graceful_shutdown == 1.5
    assert server_config.connection.encoding == "latin-1"
    assert server_config.connection.chunk_size == 512
