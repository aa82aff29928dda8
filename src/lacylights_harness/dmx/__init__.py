"""DMX capture: Art-Net codec, frame store, receiver and comparison."""

from lacylights_harness.dmx.analysis import (
    channel_series,
    first_matching_index,
    is_monotonic,
    sequence_gaps,
)
from lacylights_harness.dmx.artnet import (
    ARTNET_PORT,
    ArtNetTransmitter,
    build_artdmx_packet,
    parse_artdmx_packet,
)
from lacylights_harness.dmx.compare import FrameComparator
from lacylights_harness.dmx.frames import ChannelDiff, Frame, FrameStore
from lacylights_harness.dmx.receiver import ArtNetReceiver
from lacylights_harness.dmx.universe import (
    DMX_CHANNEL_COUNT,
    DMX_CHANNEL_MAX,
    DMX_CHANNEL_MIN,
    api_to_artnet_universe,
    artnet_to_api_universe,
    is_valid_dmx_channel,
    is_valid_dmx_value,
)

__all__ = [
    "ARTNET_PORT",
    "ArtNetReceiver",
    "ArtNetTransmitter",
    "ChannelDiff",
    "DMX_CHANNEL_COUNT",
    "DMX_CHANNEL_MAX",
    "DMX_CHANNEL_MIN",
    "Frame",
    "FrameComparator",
    "FrameStore",
    "api_to_artnet_universe",
    "artnet_to_api_universe",
    "build_artdmx_packet",
    "channel_series",
    "first_matching_index",
    "is_monotonic",
    "is_valid_dmx_channel",
    "is_valid_dmx_value",
    "parse_artdmx_packet",
    "sequence_gaps",
]
