"""
Art-Net Receiver: captures ArtDMX frames transmitted by the server under test.

A dedicated thread reads the UDP socket with a short timeout so that
stop() is noticed within one read interval, decodes each datagram, and
appends good frames to a FrameStore. Everything else talks to the store.
"""

from __future__ import annotations

import socket
import threading
import time
from typing import Callable, Mapping, Optional

import structlog

from lacylights_harness.core.config import ArtNetConfig
from lacylights_harness.core.exceptions import ArtNetBindError
from lacylights_harness.dmx.artnet import parse_artdmx_packet
from lacylights_harness.dmx.frames import Frame, FrameStore

logger = structlog.get_logger()

DiscardCallback = Callable[[bytes], None]


class ArtNetReceiver:
    """
    Listens for Art-Net packets and captures DMX frames.

    Lifecycle is Stopped -> Listening -> Stopped. Bind failures surface as
    ArtNetBindError from start(); tests treat that as a reason to skip,
    since the standard Art-Net port is often held by other software.

    Universes are the 0-indexed wire values. The GraphQL API calls the
    same physical universe by its 1-indexed number.
    """

    def __init__(
        self,
        config: Optional[ArtNetConfig] = None,
        *,
        on_discard: Optional[DiscardCallback] = None,
        store: Optional[FrameStore] = None,
    ):
        self.config = config or ArtNetConfig()
        self.on_discard = on_discard
        self._store = store if store is not None else FrameStore()

        self._lock = threading.Lock()
        self._socket: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._address: Optional[tuple[str, int]] = None

        # Stats
        self._packets_received = 0
        self._frames_captured = 0
        self._packets_discarded = 0

    def __enter__(self) -> "ArtNetReceiver":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """Bound (host, port) while listening; resolves an ephemeral port."""
        return self._address

    def start(self) -> None:
        """Bind the UDP socket and start the receive thread."""
        with self._lock:
            if self._socket is not None:
                return

            bind_address = (self.config.listen_host, self.config.listen_port)
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                if self.config.reuse_address:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind(bind_address)
            except OSError as e:
                sock.close()
                raise ArtNetBindError(bind_address, str(e)) from e

            sock.settimeout(self.config.read_timeout_s)
            self._packets_received = 0
            self._frames_captured = 0
            self._packets_discarded = 0
            self._socket = sock
            self._address = sock.getsockname()[:2]

            self._thread = threading.Thread(
                target=self._receive_loop,
                args=(sock,),
                name="ArtNet-Receive",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "Art-Net receiver listening",
            host=self._address[0],
            port=self._address[1],
        )

    def stop(self) -> None:
        """Close the socket; the receive loop exits within one read timeout."""
        with self._lock:
            sock, self._socket = self._socket, None
            thread, self._thread = self._thread, None
            self._address = None

        if sock is None:
            return

        sock.close()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.read_timeout_s * 2)

        logger.info(
            "Art-Net receiver stopped",
            packets_received=self._packets_received,
            frames_captured=self._frames_captured,
            packets_discarded=self._packets_discarded,
        )

    def _receive_loop(self, sock: socket.socket) -> None:
        while True:
            try:
                data, _ = sock.recvfrom(self.config.buffer_size)
            except socket.timeout:
                if sock.fileno() == -1:
                    return
                continue
            except OSError:
                # Closed by stop()
                return

            self._packets_received += 1
            frame = parse_artdmx_packet(data)
            if frame is None:
                self._discard(data)
                continue

            self._frames_captured += 1
            self._store.append(frame)

    def _discard(self, data: bytes) -> None:
        self._packets_discarded += 1
        logger.debug("Discarded non-ArtDMX packet", size=len(data))
        if self.on_discard is not None:
            try:
                self.on_discard(data)
            except Exception:
                logger.warning("on_discard callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_frames(self, universe: Optional[int] = None) -> list[Frame]:
        return self._store.snapshot(universe)

    def clear_frames(self) -> None:
        self._store.clear()

    def get_latest_frame(self, universe: int) -> Optional[Frame]:
        return self._store.latest(universe)

    def get_channel_value(self, universe: int, channel: int) -> Optional[int]:
        return self._store.channel_value(universe, channel)

    # ------------------------------------------------------------------
    # Capture helpers
    # ------------------------------------------------------------------

    def capture_frames(self, duration_s: float) -> list[Frame]:
        """
        Capture a fresh window of frames.

        Starts the receiver if it is not already listening and stops it
        again afterwards in that case.
        """
        started_here = not self.is_running
        if started_here:
            self.start()
        try:
            self.clear_frames()
            time.sleep(duration_s)
            return self.get_frames()
        finally:
            if started_here:
                self.stop()

    def wait_for_frames(
        self,
        count: int = 1,
        timeout_s: float = 1.0,
        universe: Optional[int] = None,
        poll_interval_s: float = 0.01,
    ) -> bool:
        """Poll until at least ``count`` frames are stored."""
        deadline = time.monotonic() + timeout_s
        while True:
            if len(self._store.snapshot(universe)) >= count:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval_s)

    def wait_for_channel(
        self,
        universe: int,
        channel: int,
        value: int,
        timeout_s: float = 1.0,
        tolerance: int = 0,
        poll_interval_s: float = 0.01,
    ) -> bool:
        """Poll until the latest frame for ``universe`` carries ``value`` on ``channel``."""
        deadline = time.monotonic() + timeout_s
        while True:
            current = self._store.channel_value(universe, channel)
            if current is not None and abs(current - value) <= tolerance:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval_s)

    def wait_for_channels(
        self,
        universe: int,
        expected: Mapping[int, int],
        timeout_s: float = 1.0,
        tolerance: int = 0,
        poll_interval_s: float = 0.01,
    ) -> bool:
        """Like wait_for_channel, for a sparse 1-indexed {channel: value} map."""
        deadline = time.monotonic() + timeout_s
        while True:
            frame = self._store.latest(universe)
            if frame is not None and _frame_matches(frame, expected, tolerance):
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval_s)

    def get_stats(self) -> dict:
        """Capture statistics since the last start()."""
        return {
            "running": self.is_running,
            "packets_received": self._packets_received,
            "frames_captured": self._frames_captured,
            "packets_discarded": self._packets_discarded,
        }


def _frame_matches(frame: Frame, expected: Mapping[int, int], tolerance: int) -> bool:
    for channel, value in expected.items():
        level = frame.channel_value(channel)
        if level is None or abs(level - value) > tolerance:
            return False
    return True
