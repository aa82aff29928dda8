"""Core harness components: configuration and exceptions."""

from lacylights_harness.core.config import (
    ArtNetConfig,
    ComparatorConfig,
    GraphQLConfig,
    Settings,
    TimingConfig,
    load_settings,
)
from lacylights_harness.core.exceptions import (
    ArtNetBindError,
    ArtNetError,
    ConfigError,
    GraphQLError,
    GraphQLResponseError,
    GraphQLTransportError,
    HarnessError,
    SubscriptionError,
)

__all__ = [
    "ArtNetConfig",
    "ComparatorConfig",
    "GraphQLConfig",
    "Settings",
    "TimingConfig",
    "load_settings",
    "HarnessError",
    "ArtNetError",
    "ArtNetBindError",
    "GraphQLError",
    "GraphQLTransportError",
    "GraphQLResponseError",
    "SubscriptionError",
    "ConfigError",
]
