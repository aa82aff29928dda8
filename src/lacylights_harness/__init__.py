"""
LacyLights Harness: contract testing for a lighting-control server.

Drives the server under test over GraphQL (HTTP and WebSocket
subscriptions) and captures the Art-Net DMX frames it transmits, so tests
can check that what the API reports is what actually goes out on the wire.
"""

__version__ = "0.1.0"

from lacylights_harness.core.config import Settings
from lacylights_harness.dmx.compare import FrameComparator
from lacylights_harness.dmx.frames import ChannelDiff, Frame, FrameStore
from lacylights_harness.dmx.receiver import ArtNetReceiver
from lacylights_harness.graphql.client import GraphQLClient

__all__ = [
    "ArtNetReceiver",
    "ChannelDiff",
    "Frame",
    "FrameComparator",
    "FrameStore",
    "GraphQLClient",
    "Settings",
    "__version__",
]
