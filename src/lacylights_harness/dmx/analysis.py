"""
Helpers for reasoning about a captured window of frames.

Fade and snap checks look at how a channel evolves across many frames
rather than at one snapshot: when it first reached its target, whether it
moved in one direction, and whether the sender skipped sequence numbers.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import numpy as np

from lacylights_harness.dmx.frames import Frame
from lacylights_harness.dmx.universe import is_valid_dmx_channel

# Art-Net sequence 0 means "sequencing disabled"; live values run 1..255.
SEQUENCE_DISABLED = 0
SEQUENCE_MAX = 255


def channel_series(frames: Sequence[Frame], universe: int, channel: int) -> np.ndarray:
    """Levels of one 1-indexed channel across the frames of a universe, in arrival order."""
    if not is_valid_dmx_channel(channel):
        raise ValueError(f"Invalid DMX channel {channel}")
    return np.array(
        [f.channels[channel - 1] for f in frames if f.universe == universe],
        dtype=np.int16,
    )


def first_matching_index(
    frames: Sequence[Frame],
    universe: int,
    expected: Mapping[int, int],
    tolerance: int = 0,
) -> Optional[int]:
    """Index into ``frames`` of the first frame meeting a sparse expectation."""
    for channel in expected:
        if not is_valid_dmx_channel(channel):
            raise ValueError(f"Invalid DMX channel {channel}")
    for i, frame in enumerate(frames):
        if frame.universe != universe:
            continue
        if all(
            abs(frame.channels[ch - 1] - value) <= tolerance
            for ch, value in expected.items()
        ):
            return i
    return None


def is_monotonic(series: np.ndarray, increasing: bool = True) -> bool:
    """True when the series never steps backwards."""
    if len(series) < 2:
        return True
    steps = np.diff(series)
    return bool(np.all(steps >= 0) if increasing else np.all(steps <= 0))


def _next_sequence(sequence: int) -> int:
    return 1 if sequence >= SEQUENCE_MAX else sequence + 1


def sequence_gaps(frames: Sequence[Frame], universe: int) -> list[tuple[int, int]]:
    """
    (previous, current) sequence pairs that did not advance by exactly one.

    Frames with sequencing disabled are skipped. The receiver never
    corrects for these; reporting them is left to the test.
    """
    gaps = []
    previous: Optional[int] = None
    for frame in frames:
        if frame.universe != universe or frame.sequence == SEQUENCE_DISABLED:
            continue
        if previous is not None and frame.sequence != _next_sequence(previous):
            gaps.append((previous, frame.sequence))
        previous = frame.sequence
    return gaps
