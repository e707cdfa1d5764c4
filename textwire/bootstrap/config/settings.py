import codecs
from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from textwire.bootstrap.config.loader import get_configfile
from textwire.core.models.config import ConnectionConfig, ServerConfig, DEFAULT_DELIMITER
from textwire.core.transport.application import Application


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="IPv4 bind address of the listening socket.",
            default="0.0.0.0"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port to listen on. 0 lets the OS choose.",
            default=5500,
            ge=0,
            le=65535,
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=100,
            gt=0,
        )
    ]

    max_clients: Annotated[
        int,
        Field(
            description=(
                "Maximum number of simultaneously connected clients.\n"
                "Clients beyond this limit are disconnected right after accept."
            ),
            default=100,
            gt=0,
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for graceful shutdown.",
            default=5.0,
            ge=0,
        )
    ]


class ConnectionSettings(BaseModel):
    encoding: Annotated[
        str,
        Field(
            description="Text encoding of messages on the wire.",
            default="utf-8"
        )
    ]

    delimiter: Annotated[
        str,
        Field(
            description=(
                "Sequence terminating every message.\n"
                "Occurrences inside outgoing messages are removed before sending."
            ),
            default=DEFAULT_DELIMITER,
            min_length=1,
        )
    ]

    chunk_size: Annotated[
        int,
        Field(
            description="Maximum number of bytes requested by a single read.",
            default=1024,
            gt=0,
        )
    ]

    max_buffer_size: Annotated[
        int | None,
        Field(
            description=(
                "Maximum number of bytes buffered while waiting for a delimiter.\n"
                "Unbounded when unset. A client exceeding it is disconnected."
            ),
            default=None,
        )
    ]

    close_timeout: Annotated[
        float,
        Field(
            description="Time allowed to flush pending writes when closing.",
            default=5.0,
            ge=0,
        )
    ]

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding '{v}'")
        return v

    @field_validator("max_buffer_size")
    @classmethod
    def validate_max_buffer_size(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("max_buffer_size must be a positive number of bytes")
        return v


class TextwireConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TEXTWIRE_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "Listener configuration.\n"
                "Controls where the server listens and how many clients it admits."
            ),
            default_factory=ServerSettings
        )
    ]

    connection: Annotated[
        ConnectionSettings,
        Field(
            description=(
                "Per-connection configuration.\n"
                "Controls message framing, text encoding and buffer limits."
            ),
            default_factory=ConnectionSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: tuple[PydanticBaseSettingsSource, ...] = (init_settings, env_settings)
        configfile = get_configfile()
        if configfile is not None:
            sources += (YamlConfigSettingsSource(settings_cls, yaml_file=configfile),)
        return sources

    def get_connection_config(self) -> ConnectionConfig:
        settings = self.connection
        return ConnectionConfig(
            encoding=settings.encoding,
            delimiter=settings.delimiter,
            chunk_size=settings.chunk_size,
            max_buffer_size=settings.max_buffer_size,
            close_timeout=settings.close_timeout,
        )

    def get_server_config(self, app: Application) -> ServerConfig:
        settings = self.server
        return ServerConfig(
            app=app,
            host=settings.host,
            port=settings.port,
            backlog=settings.backlog,
            max_clients=settings.max_clients,
            timeout_graceful_shutdown=settings.timeout_graceful_shutdown,
            connection=self.get_connection_config(),
        )
