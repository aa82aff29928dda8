"""pytest helpers for contract tests that need a live server or the Art-Net port."""

from __future__ import annotations

from typing import Optional

import pytest
import structlog

from lacylights_harness.core.config import ArtNetConfig
from lacylights_harness.core.exceptions import ArtNetBindError
from lacylights_harness.dmx.receiver import ArtNetReceiver
from lacylights_harness.graphql.client import GraphQLClient

logger = structlog.get_logger()


def start_receiver_or_skip(config: Optional[ArtNetConfig] = None) -> ArtNetReceiver:
    """
    Start an ArtNetReceiver, skipping the calling test if the port is taken.

    A bind conflict means something else on the host owns the Art-Net
    port, which says nothing about the server under test.
    """
    receiver = ArtNetReceiver(config)
    try:
        receiver.start()
    except ArtNetBindError as e:
        logger.warning("Art-Net port unavailable", reason=e.reason, address=e.address)
        pytest.skip(f"Could not start Art-Net receiver (port may be in use): {e.message}")
    return receiver


def require_server(client: GraphQLClient) -> None:
    """Skip the calling test when the GraphQL server does not answer."""
    if not client.ping():
        pytest.skip(f"GraphQL server not reachable at {client.endpoint}")
