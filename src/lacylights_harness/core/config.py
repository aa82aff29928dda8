"""
Configuration Management for the LacyLights test harness.

Uses Pydantic Settings for type-safe configuration with environment
variable support and YAML file loading. Library classes only ever take
the config models below; reading the process environment happens here.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lacylights_harness.core.exceptions import ConfigError

DEFAULT_GRAPHQL_ENDPOINT = "http://localhost:4001/graphql"
DEFAULT_ARTNET_PORT = 6454


class ArtNetConfig(BaseModel):
    """Art-Net capture configuration."""
    listen_host: str = ""  # "" = all interfaces
    listen_port: int = Field(default=DEFAULT_ARTNET_PORT, ge=0, le=65535)  # 0 = ephemeral
    read_timeout_s: float = Field(default=0.1, gt=0)
    buffer_size: int = Field(default=1024, ge=18)
    reuse_address: bool = False


class GraphQLConfig(BaseModel):
    """GraphQL server under test."""
    endpoint: str = DEFAULT_GRAPHQL_ENDPOINT
    timeout_s: float = Field(default=30.0, gt=0)
    handshake_timeout_s: float = Field(default=10.0, gt=0)


class ComparatorConfig(BaseModel):
    """Frame comparison tolerance."""
    tolerance: int = Field(default=0, ge=0)


class TimingConfig(BaseModel):
    """Settle times used before asserting on captured output."""
    fade_tick_s: float = 0.025  # 40Hz fade engine
    settle_time_s: float = 0.5
    capture_timeout_s: float = 1.0


class Settings(BaseSettings):
    """
    Main harness settings.

    Can be configured via:
    - Environment variables (prefixed with LACYLIGHTS_)
    - YAML config file
    - Direct instantiation
    """

    artnet: ArtNetConfig = Field(default_factory=ArtNetConfig)
    graphql: GraphQLConfig = Field(default_factory=GraphQLConfig)
    comparator: ComparatorConfig = Field(default_factory=ComparatorConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="LACYLIGHTS_",
        env_nested_delimiter="__",
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings, then apply the harness's historical environment names.

    ``GRAPHQL_ENDPOINT``, ``ARTNET_LISTEN_HOST`` and ``ARTNET_LISTEN_PORT``
    win over both the YAML file and the LACYLIGHTS_ prefixed variables.
    """
    env = os.environ if environ is None else environ
    settings = Settings.from_yaml(config_path) if config_path else Settings()

    endpoint = env.get("GRAPHQL_ENDPOINT")
    if endpoint:
        settings.graphql.endpoint = endpoint

    host = env.get("ARTNET_LISTEN_HOST")
    if host is not None:
        settings.artnet.listen_host = host

    port = env.get("ARTNET_LISTEN_PORT")
    if port:
        try:
            port_number = int(port.lstrip(":"))
        except ValueError:
            raise ConfigError("ARTNET_LISTEN_PORT", f"not a port number: {port!r}")
        if not 0 <= port_number <= 65535:
            raise ConfigError("ARTNET_LISTEN_PORT", f"out of range: {port_number}")
        settings.artnet.listen_port = port_number

    return settings
