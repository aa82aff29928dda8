"""Art-Net ArtDMX packet codec and transmitter."""

from __future__ import annotations

import socket
import struct
import time
from typing import Optional

from lacylights_harness.dmx.frames import Frame
from lacylights_harness.dmx.universe import DMX_CHANNEL_COUNT

ARTNET_PORT = 6454
ARTNET_HEADER = b"Art-Net\x00"
ARTNET_OPCODE_DMX = 0x5000
ARTNET_PROTOCOL_VERSION = 14
ARTNET_HEADER_SIZE = 18

# Byte offsets inside the ArtDMX header.
_OPCODE_OFFSET = 8
_VERSION_OFFSET = 10
_SEQUENCE_OFFSET = 12
_PHYSICAL_OFFSET = 13
_UNIVERSE_OFFSET = 14
_LENGTH_OFFSET = 16


def build_artdmx_packet(
    universe: int,
    dmx_data: bytes,
    sequence: int = 0,
    physical: int = 0,
) -> bytes:
    """
    Build an ArtDMX packet carrying a full 512-slot universe.

    Shorter payloads are zero-padded; the declared length is always 512.
    Sequence 0 tells receivers that sequencing is disabled.
    """
    if len(dmx_data) > DMX_CHANNEL_COUNT:
        raise ValueError(f"ArtDMX payload too large: {len(dmx_data)} bytes")

    packet = bytearray(ARTNET_HEADER_SIZE + DMX_CHANNEL_COUNT)
    packet[:_OPCODE_OFFSET] = ARTNET_HEADER
    struct.pack_into("<H", packet, _OPCODE_OFFSET, ARTNET_OPCODE_DMX)
    struct.pack_into(">H", packet, _VERSION_OFFSET, ARTNET_PROTOCOL_VERSION)
    packet[_SEQUENCE_OFFSET] = sequence & 0xFF
    packet[_PHYSICAL_OFFSET] = physical & 0xFF
    struct.pack_into("<H", packet, _UNIVERSE_OFFSET, universe & 0x7FFF)
    struct.pack_into(">H", packet, _LENGTH_OFFSET, DMX_CHANNEL_COUNT)
    packet[ARTNET_HEADER_SIZE:ARTNET_HEADER_SIZE + len(dmx_data)] = dmx_data
    return bytes(packet)


def parse_artdmx_packet(data: bytes, timestamp: Optional[float] = None) -> Optional[Frame]:
    """
    Decode a raw UDP payload into a Frame.

    Returns None for anything that is not a complete ArtDMX packet; the
    capture port routinely sees other Art-Net opcodes and stray traffic.
    Opcode and universe are little-endian, the length is big-endian.
    """
    if len(data) < ARTNET_HEADER_SIZE:
        return None
    if data[:_OPCODE_OFFSET] != ARTNET_HEADER:
        return None

    (opcode,) = struct.unpack_from("<H", data, _OPCODE_OFFSET)
    if opcode != ARTNET_OPCODE_DMX:
        return None

    sequence = data[_SEQUENCE_OFFSET]
    (universe,) = struct.unpack_from("<H", data, _UNIVERSE_OFFSET)
    (length,) = struct.unpack_from(">H", data, _LENGTH_OFFSET)

    end = ARTNET_HEADER_SIZE + length
    if len(data) < end:
        return None

    slots = bytes(data[ARTNET_HEADER_SIZE:min(end, ARTNET_HEADER_SIZE + DMX_CHANNEL_COUNT)])
    return Frame(
        timestamp=time.time() if timestamp is None else timestamp,
        universe=universe,
        sequence=sequence,
        channels=slots.ljust(DMX_CHANNEL_COUNT, b"\x00"),
    )


class ArtNetTransmitter:
    """
    Sends ArtDMX packets at a receiver, usually one under test on loopback.

    When no sequence is given, an internal counter runs 1..255 and wraps
    back to 1, as a real console would.
    """

    def __init__(
        self,
        host: str,
        port: int = ARTNET_PORT,
        broadcast: bool = False,
    ):
        self.host = host
        self.port = port
        self.broadcast = broadcast
        self._socket: Optional[socket.socket] = None
        self._sequence = 0

    def __enter__(self) -> "ArtNetTransmitter":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        if self._socket is not None:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        if self.broadcast:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        self._socket = sock

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def _next_sequence(self) -> int:
        self._sequence = self._sequence % 255 + 1
        return self._sequence

    def send_dmx(self, universe: int, dmx_data: bytes, sequence: Optional[int] = None) -> None:
        if sequence is None:
            sequence = self._next_sequence()
        self.send_raw(build_artdmx_packet(universe, dmx_data, sequence=sequence))

    def send_frame(self, frame: Frame) -> None:
        """Replay a captured frame with its original universe and sequence."""
        self.send_raw(build_artdmx_packet(frame.universe, frame.channels, sequence=frame.sequence))

    def send_raw(self, packet: bytes) -> None:
        """Send an arbitrary datagram, e.g. a deliberately malformed packet."""
        if self._socket is None:
            raise RuntimeError("ArtNetTransmitter is not open")
        self._socket.sendto(packet, (self.host, self.port))
