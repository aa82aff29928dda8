"""
Captured DMX frames and the thread-safe store they accumulate in.

The receive loop appends from its own thread while test code snapshots
and queries from the caller's thread; every access goes through one lock
held only for the length of an append or a list copy.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from lacylights_harness.dmx.universe import DMX_CHANNEL_COUNT, is_valid_dmx_channel


@dataclass(frozen=True)
class Frame:
    """One decoded ArtDMX packet."""

    timestamp: float  # capture-local wall clock, not on the wire
    universe: int  # 0-indexed wire universe
    sequence: int  # diagnostics only
    channels: bytes  # always DMX_CHANNEL_COUNT long

    def __post_init__(self) -> None:
        if len(self.channels) != DMX_CHANNEL_COUNT:
            raise ValueError(
                f"Frame needs {DMX_CHANNEL_COUNT} channels, got {len(self.channels)}"
            )

    def channel_value(self, channel: int) -> Optional[int]:
        """Return the level of a 1-indexed channel, or None when out of range."""
        if not is_valid_dmx_channel(channel):
            return None
        return self.channels[channel - 1]


@dataclass(frozen=True)
class ChannelDiff:
    """A single channel where two frames disagree beyond tolerance."""

    universe: int
    channel: int  # 1-indexed
    value_a: int
    value_b: int
    diff: int

    def __str__(self) -> str:
        return (
            f"Universe {self.universe} Channel {self.channel}: "
            f"{self.value_a} vs {self.value_b} (diff: {self.diff})"
        )


class FrameStore:
    """
    Append-only, arrival-ordered collection of frames.

    Frames are never reordered or deduplicated, even when sequence numbers
    repeat or run backwards.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frames: list[Frame] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)

    def append(self, frame: Frame) -> None:
        with self._lock:
            self._frames.append(frame)

    def snapshot(self, universe: Optional[int] = None) -> list[Frame]:
        """Return an independent copy of the stored frames, optionally for one universe."""
        with self._lock:
            frames = list(self._frames)
        if universe is None:
            return frames
        return [f for f in frames if f.universe == universe]

    def clear(self) -> None:
        with self._lock:
            self._frames = []

    def latest(self, universe: int) -> Optional[Frame]:
        """Most recently appended frame for a universe, scanning back from the tail."""
        with self._lock:
            for frame in reversed(self._frames):
                if frame.universe == universe:
                    return frame
        return None

    def channel_value(self, universe: int, channel: int) -> Optional[int]:
        """Latest level of a 1-indexed channel, or None if unknown."""
        frame = self.latest(universe)
        if frame is None:
            return None
        return frame.channel_value(channel)
