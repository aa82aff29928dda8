"""
Contract test configuration.

These tests talk to a running LacyLights server. They skip, rather than
fail, when the server is unreachable or the Art-Net port is taken.
Configure with GRAPHQL_ENDPOINT / ARTNET_LISTEN_PORT or LACYLIGHTS_*.
"""

from typing import Iterator

import pytest

from lacylights_harness.core.config import Settings, load_settings
from lacylights_harness.dmx.receiver import ArtNetReceiver
from lacylights_harness.graphql.client import GraphQLClient
from lacylights_harness.testing import require_server, start_receiver_or_skip


@pytest.fixture(scope="session")
def settings() -> Settings:
    return load_settings()


@pytest.fixture
def client(settings: Settings) -> Iterator[GraphQLClient]:
    client = GraphQLClient(settings.graphql)
    require_server(client)
    yield client
    client.close()


@pytest.fixture
def receiver(settings: Settings) -> Iterator[ArtNetReceiver]:
    receiver = start_receiver_or_skip(settings.artnet)
    yield receiver
    receiver.stop()
