import struct

import pytest

from lacylights_harness.dmx.artnet import (
    ARTNET_HEADER_SIZE,
    build_artdmx_packet,
    parse_artdmx_packet,
)
from lacylights_harness.dmx.universe import DMX_CHANNEL_COUNT


def _raw_packet(
    universe: int,
    payload: bytes,
    sequence: int = 0,
    opcode: int = 0x5000,
    length: int | None = None,
    header: bytes = b"Art-Net\x00",
) -> bytes:
    """Hand-assembled ArtDMX packet that does not pad the payload."""
    declared = len(payload) if length is None else length
    return (
        header
        + struct.pack("<H", opcode)
        + b"\x00\x0e"
        + bytes([sequence, 0])
        + struct.pack("<H", universe)
        + struct.pack(">H", declared)
        + payload
    )


def test_build_artdmx_packet_layout() -> None:
    data = bytes([7] * 512)
    packet = build_artdmx_packet(universe=0x0123, dmx_data=data, sequence=5)

    assert packet[:8] == b"Art-Net\x00"
    assert packet[8:10] == b"\x00\x50"  # OpOutput / ArtDMX
    assert packet[10:12] == b"\x00\x0e"  # Protocol version 14
    assert packet[12] == 5
    assert packet[13] == 0
    assert packet[14:16] == b"\x23\x01"  # little-endian universe address
    assert packet[16:18] == b"\x02\x00"  # 512 slots
    assert packet[-512:] == data


def test_build_artdmx_packet_rejects_oversized_payload() -> None:
    with pytest.raises(ValueError):
        build_artdmx_packet(universe=0, dmx_data=bytes(513))


def test_parse_known_good_bytes() -> None:
    # universe 0x0102 (LE), length 3 (BE), sequence 9
    packet = bytes.fromhex("4172742d4e6574000050000e090002010003") + b"\x0a\x14\x1e"

    frame = parse_artdmx_packet(packet, timestamp=123.0)

    assert frame is not None
    assert frame.universe == 0x0102
    assert frame.sequence == 9
    assert frame.timestamp == 123.0
    assert frame.channels[:3] == b"\x0a\x14\x1e"
    assert frame.channels[3:] == bytes(DMX_CHANNEL_COUNT - 3)


def test_parse_short_payload_zero_fills_remaining_channels() -> None:
    payload = bytes(range(1, 25))
    frame = parse_artdmx_packet(_raw_packet(universe=0, payload=payload))

    assert frame is not None
    assert len(frame.channels) == DMX_CHANNEL_COUNT
    for i in range(1, 25):
        assert frame.channel_value(i) == i
    for i in (25, 100, 512):
        assert frame.channel_value(i) == 0


def test_parse_round_trips_builder_output() -> None:
    data = bytes((i * 7) % 256 for i in range(512))
    frame = parse_artdmx_packet(build_artdmx_packet(universe=3, dmx_data=data, sequence=200))

    assert frame is not None
    assert frame.universe == 3
    assert frame.sequence == 200
    assert frame.channels == data


def test_parse_stamps_capture_time() -> None:
    frame = parse_artdmx_packet(build_artdmx_packet(universe=0, dmx_data=b"\x01"))

    assert frame is not None
    assert frame.timestamp > 0


@pytest.mark.parametrize("size", [0, 1, 8, 17])
def test_parse_rejects_buffers_shorter_than_header(size: int) -> None:
    packet = build_artdmx_packet(universe=0, dmx_data=b"")[:size]
    assert parse_artdmx_packet(packet) is None


def test_parse_rejects_bad_signature() -> None:
    assert parse_artdmx_packet(_raw_packet(0, b"\x01", header=b"Art-Nex\x00")) is None
    # Terminator byte is part of the signature
    assert parse_artdmx_packet(_raw_packet(0, b"\x01", header=b"Art-Net!")) is None


@pytest.mark.parametrize("opcode", [0x2000, 0x2100, 0x9700, 0x0050])
def test_parse_rejects_other_opcodes(opcode: int) -> None:
    assert parse_artdmx_packet(_raw_packet(0, bytes(512), opcode=opcode)) is None


def test_parse_rejects_length_overrunning_buffer() -> None:
    packet = _raw_packet(0, bytes(10), length=11)
    assert parse_artdmx_packet(packet) is None


def test_parse_accepts_header_only_packet_with_zero_length() -> None:
    frame = parse_artdmx_packet(_raw_packet(5, b""))

    assert frame is not None
    assert frame.universe == 5
    assert frame.channels == bytes(DMX_CHANNEL_COUNT)


def test_parse_truncates_declared_length_beyond_512() -> None:
    payload = bytes([1] * 512) + bytes([9] * 20)
    frame = parse_artdmx_packet(_raw_packet(0, payload))

    assert frame is not None
    assert frame.channels == bytes([1] * 512)


def test_parse_ignores_trailing_bytes_after_declared_length() -> None:
    packet = _raw_packet(0, b"\x05\x06", length=1)
    frame = parse_artdmx_packet(packet)

    assert frame is not None
    assert frame.channel_value(1) == 5
    assert frame.channel_value(2) == 0


def test_header_size_constant_matches_builder() -> None:
    packet = build_artdmx_packet(universe=0, dmx_data=b"")
    assert len(packet) == ARTNET_HEADER_SIZE + DMX_CHANNEL_COUNT
