"""Canonical DMX universe sizing and indexing helpers."""

from __future__ import annotations

DMX_CHANNEL_COUNT = 512
DMX_CHANNEL_MIN = 1
DMX_CHANNEL_MAX = DMX_CHANNEL_COUNT
DMX_VALUE_MIN = 0
DMX_VALUE_MAX = 255

# The GraphQL API numbers universes from 1; Art-Net puts them on the wire from 0.
API_UNIVERSE_OFFSET = 1


def is_valid_dmx_channel(channel: int) -> bool:
    """Return True when a channel index is a valid 1-based DMX slot."""
    return DMX_CHANNEL_MIN <= channel <= DMX_CHANNEL_MAX


def is_valid_dmx_value(value: int) -> bool:
    """Return True when a level fits in one DMX slot."""
    return DMX_VALUE_MIN <= value <= DMX_VALUE_MAX


def api_to_artnet_universe(universe: int) -> int:
    """Map a 1-indexed API universe to the 0-indexed Art-Net wire universe."""
    if universe < API_UNIVERSE_OFFSET:
        raise ValueError(f"API universes start at 1, got {universe}")
    return universe - API_UNIVERSE_OFFSET


def artnet_to_api_universe(universe: int) -> int:
    """Map a 0-indexed Art-Net wire universe to the 1-indexed API universe."""
    if universe < 0:
        raise ValueError(f"Art-Net universes start at 0, got {universe}")
    return universe + API_UNIVERSE_OFFSET
