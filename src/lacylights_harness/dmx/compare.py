"""Channel-by-channel comparison of captured DMX frames."""

from __future__ import annotations

from typing import Mapping, Optional

import numpy as np

from lacylights_harness.dmx.frames import ChannelDiff, Frame
from lacylights_harness.dmx.universe import is_valid_dmx_channel


def _levels(frame: Frame) -> np.ndarray:
    # int16 so that subtraction of two uint8 levels cannot wrap
    return np.frombuffer(frame.channels, dtype=np.uint8).astype(np.int16)


class FrameComparator:
    """
    Compares DMX frames within a per-channel tolerance.

    Captured frames may be sampled a tick before or after a fade step
    lands, so tests usually allow a small difference rather than exact
    equality. A returned diff list is data; whether it fails a test is up
    to the caller.
    """

    def __init__(self, tolerance: int = 0):
        if tolerance < 0:
            raise ValueError(f"Tolerance must be non-negative, got {tolerance}")
        self.tolerance = tolerance

    def compare(self, a: Optional[Frame], b: Optional[Frame]) -> list[ChannelDiff]:
        """Return every channel where |a - b| exceeds the tolerance."""
        if a is None or b is None:
            return []

        levels_a = _levels(a)
        levels_b = _levels(b)
        delta = np.abs(levels_a - levels_b)

        return [
            ChannelDiff(
                universe=a.universe,
                channel=int(i) + 1,
                value_a=int(levels_a[i]),
                value_b=int(levels_b[i]),
                diff=int(delta[i]),
            )
            for i in np.flatnonzero(delta > self.tolerance)
        ]

    def compare_expected(
        self,
        frame: Optional[Frame],
        expected: Mapping[int, int],
        universe: Optional[int] = None,
    ) -> list[ChannelDiff]:
        """
        Diff a frame against a sparse {1-indexed channel: level} expectation.

        value_a is the captured level and value_b the expected one. With no
        frame, every expected channel is reported against a level of 0 and
        the universe must be given explicitly.
        """
        if frame is not None:
            universe = frame.universe
        elif universe is None:
            raise ValueError("universe is required when no frame was captured")
        diffs = []
        for channel in sorted(expected):
            if not is_valid_dmx_channel(channel):
                raise ValueError(f"Invalid DMX channel {channel}")
            want = expected[channel]
            got = frame.channels[channel - 1] if frame is not None else 0
            if abs(got - want) > self.tolerance:
                diffs.append(
                    ChannelDiff(
                        universe=universe,
                        channel=channel,
                        value_a=got,
                        value_b=want,
                        diff=abs(got - want),
                    )
                )
        return diffs
