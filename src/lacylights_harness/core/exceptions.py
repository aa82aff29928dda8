"""
Custom Exceptions for the LacyLights test harness.

Provides a hierarchy of exceptions for the harness components so that
test code can tell infrastructure problems (skip) from real defects (fail).
"""

from __future__ import annotations

from typing import Any, Optional


class HarnessError(Exception):
    """Base exception for all harness errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# =============================================================================
# Art-Net Errors
# =============================================================================


class ArtNetError(HarnessError):
    """Base exception for Art-Net capture errors."""
    pass


class ArtNetBindError(ArtNetError):
    """Failed to bind the Art-Net listening socket."""

    def __init__(self, address: tuple[str, int], reason: str):
        host, port = address
        super().__init__(
            f"Failed to bind Art-Net receiver on {host or '0.0.0.0'}:{port}: {reason}",
            recoverable=True,
        )
        self.address = address
        self.reason = reason


# =============================================================================
# GraphQL Errors
# =============================================================================


class GraphQLError(HarnessError):
    """Base exception for GraphQL client errors."""
    pass


class GraphQLTransportError(GraphQLError):
    """The request never produced a usable GraphQL response."""

    def __init__(self, endpoint: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"GraphQL request to {endpoint} failed: {reason}")
        self.endpoint = endpoint
        self.reason = reason
        self.status_code = status_code


class GraphQLResponseError(GraphQLError):
    """The server answered with a non-empty ``errors`` list."""

    def __init__(self, errors: list[Any]):
        messages = "; ".join(getattr(e, "message", str(e)) for e in errors)
        super().__init__(f"graphql errors: {messages}")
        self.errors = errors


class SubscriptionError(GraphQLError):
    """WebSocket subscription handshake or stream failure."""

    def __init__(self, reason: str, subscription_id: Optional[str] = None):
        prefix = f"Subscription '{subscription_id}'" if subscription_id else "Subscription"
        super().__init__(f"{prefix} error: {reason}")
        self.reason = reason
        self.subscription_id = subscription_id


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(HarnessError):
    """Invalid harness configuration."""

    def __init__(self, setting: str, reason: str):
        super().__init__(f"Invalid setting '{setting}': {reason}", recoverable=False)
        self.setting = setting
