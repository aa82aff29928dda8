"""Loopback tests for the Art-Net capture engine."""

from __future__ import annotations

import socket
import threading
import time
from typing import Iterator

import pytest

from lacylights_harness.core.config import ArtNetConfig
from lacylights_harness.core.exceptions import ArtNetBindError
from lacylights_harness.dmx.artnet import ArtNetTransmitter, build_artdmx_packet
from lacylights_harness.dmx.frames import FrameStore
from lacylights_harness.dmx.receiver import ArtNetReceiver
from lacylights_harness.dmx.universe import DMX_CHANNEL_COUNT

LOOPBACK = "127.0.0.1"


def _levels(**channels: int) -> bytes:
    data = bytearray(DMX_CHANNEL_COUNT)
    for key, value in channels.items():
        data[int(key[2:]) - 1] = value
    return bytes(data)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind((LOOPBACK, 0))
        return s.getsockname()[1]


@pytest.fixture
def receiver() -> Iterator[ArtNetReceiver]:
    rx = ArtNetReceiver(ArtNetConfig(listen_host=LOOPBACK, listen_port=0))
    rx.start()
    yield rx
    rx.stop()


@pytest.fixture
def transmitter(receiver: ArtNetReceiver) -> Iterator[ArtNetTransmitter]:
    host, port = receiver.address
    tx = ArtNetTransmitter(host, port)
    tx.open()
    yield tx
    tx.close()


def test_captures_crafted_packet_within_one_second(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_dmx(0, _levels(ch1=177))

    assert receiver.wait_for_channel(0, 1, 177, timeout_s=1.0)
    frame = receiver.get_latest_frame(0)
    assert frame is not None
    assert frame.channels[0] == 177
    assert receiver.get_channel_value(0, 1) == 177


def test_stop_right_after_start_leaves_no_frames_or_threads() -> None:
    rx = ArtNetReceiver(ArtNetConfig(listen_host=LOOPBACK, listen_port=0))
    rx.start()
    thread = rx._thread
    rx.stop()

    assert rx.get_frames() == []
    assert not rx.is_running
    assert thread is not None
    thread.join(timeout=rx.config.read_timeout_s * 3)
    assert not thread.is_alive()


def test_stop_is_idempotent() -> None:
    rx = ArtNetReceiver(ArtNetConfig(listen_host=LOOPBACK, listen_port=0))
    rx.stop()
    rx.start()
    rx.stop()
    rx.stop()

    assert not rx.is_running
    assert rx.address is None


def test_start_twice_spawns_one_loop(receiver: ArtNetReceiver) -> None:
    thread = receiver._thread
    address = receiver.address

    receiver.start()

    assert receiver._thread is thread
    assert receiver.address == address


def test_bind_conflict_raises_and_stays_stopped(receiver: ArtNetReceiver) -> None:
    host, port = receiver.address
    other = ArtNetReceiver(ArtNetConfig(listen_host=host, listen_port=port))

    with pytest.raises(ArtNetBindError) as excinfo:
        other.start()

    assert excinfo.value.address == (host, port)
    assert excinfo.value.recoverable
    assert not other.is_running
    other.stop()


def test_malformed_packets_are_discarded(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    discarded: list[bytes] = []
    receiver.on_discard = discarded.append

    transmitter.send_raw(b"hello")
    transmitter.send_raw(b"Art-Net\x00" + b"\x00\x20" + bytes(10))  # ArtPoll
    transmitter.send_dmx(2, _levels(ch5=9))

    assert receiver.wait_for_frames(1, timeout_s=1.0)
    # Datagrams on loopback arrive in order, so the junk has been seen too
    frames = receiver.get_frames()
    assert len(frames) == 1
    assert frames[0].universe == 2
    assert len(discarded) == 2

    stats = receiver.get_stats()
    assert stats["running"] is True
    assert stats["packets_received"] == 3
    assert stats["frames_captured"] == 1
    assert stats["packets_discarded"] == 2


def test_frames_keep_arrival_order_and_repeated_sequences(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    for seq in (4, 4, 2, 9):
        transmitter.send_dmx(0, _levels(ch1=seq), sequence=seq)

    assert receiver.wait_for_frames(4, timeout_s=1.0)
    assert [f.sequence for f in receiver.get_frames()] == [4, 4, 2, 9]


def test_clear_frames_isolates_capture_window(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_dmx(0, _levels(ch1=1))
    assert receiver.wait_for_frames(1, timeout_s=1.0)

    receiver.clear_frames()
    transmitter.send_dmx(0, _levels(ch1=2))

    assert receiver.wait_for_channel(0, 1, 2, timeout_s=1.0)
    assert [f.channel_value(1) for f in receiver.get_frames()] == [2]


def test_get_frames_by_universe(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_dmx(0, _levels(ch1=1))
    transmitter.send_dmx(1, _levels(ch1=2))
    transmitter.send_dmx(0, _levels(ch1=3))

    assert receiver.wait_for_frames(3, timeout_s=1.0)
    assert [f.channel_value(1) for f in receiver.get_frames(universe=0)] == [1, 3]


def test_wait_for_channel_times_out(receiver: ArtNetReceiver) -> None:
    start = time.monotonic()
    assert not receiver.wait_for_channel(0, 1, 255, timeout_s=0.1)
    assert time.monotonic() - start >= 0.1


def test_wait_for_channels_with_tolerance(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_dmx(0, _levels(ch1=100, ch2=52))

    assert receiver.wait_for_channels(0, {1: 100, 2: 50}, timeout_s=1.0, tolerance=2)
    assert not receiver.wait_for_channels(0, {1: 100, 2: 50}, timeout_s=0.05, tolerance=1)


def test_capture_frames_on_running_receiver(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_dmx(0, _levels(ch1=1))
    assert receiver.wait_for_frames(1, timeout_s=1.0)

    timer = threading.Timer(0.1, transmitter.send_dmx, args=(0, _levels(ch1=42)))
    timer.start()
    frames = receiver.capture_frames(0.5)
    timer.join()

    assert [f.channel_value(1) for f in frames] == [42]
    assert receiver.is_running


def test_capture_frames_starts_and_stops_receiver() -> None:
    port = _free_port()
    rx = ArtNetReceiver(ArtNetConfig(listen_host=LOOPBACK, listen_port=port))

    def send() -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.sendto(build_artdmx_packet(0, _levels(ch3=33)), (LOOPBACK, port))

    timer = threading.Timer(0.15, send)
    timer.start()
    frames = rx.capture_frames(0.5)
    timer.join()

    assert not rx.is_running
    assert len(frames) == 1
    assert frames[0].channel_value(3) == 33


def test_context_manager_starts_and_stops() -> None:
    with ArtNetReceiver(ArtNetConfig(listen_host=LOOPBACK, listen_port=0)) as rx:
        assert rx.is_running
        assert rx.address[1] != 0

    assert not rx.is_running


def test_restart_after_stop(receiver: ArtNetReceiver) -> None:
    receiver.stop()
    receiver.start()

    host, port = receiver.address
    with ArtNetTransmitter(host, port) as tx:
        tx.send_dmx(0, _levels(ch1=5))

    assert receiver.wait_for_channel(0, 1, 5, timeout_s=1.0)


def test_transmitter_advances_sequence_and_wraps(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    for _ in range(3):
        transmitter.send_dmx(0, _levels(ch1=1))
    transmitter._sequence = 254
    for _ in range(2):
        transmitter.send_dmx(0, _levels(ch1=1))

    assert receiver.wait_for_frames(5, timeout_s=1.0)
    assert [f.sequence for f in receiver.get_frames()] == [1, 2, 3, 255, 1]


def test_captured_frame_can_be_replayed(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_dmx(4, _levels(ch7=70, ch512=12), sequence=33)
    assert receiver.wait_for_frames(1, timeout_s=1.0)
    original = receiver.get_latest_frame(4)
    receiver.clear_frames()

    transmitter.send_frame(original)

    assert receiver.wait_for_frames(1, timeout_s=1.0)
    replayed = receiver.get_latest_frame(4)
    assert replayed.sequence == 33
    assert replayed.channels == original.channels


def test_caller_supplied_store_receives_frames() -> None:
    store = FrameStore()
    rx = ArtNetReceiver(ArtNetConfig(listen_host=LOOPBACK, listen_port=0), store=store)
    assert rx._store is store

    with rx:
        host, port = rx.address
        with ArtNetTransmitter(host, port) as tx:
            tx.send_dmx(0, _levels(ch1=177))
        assert rx.wait_for_channel(0, 1, 177, timeout_s=1.0)

    assert len(store) == 1
    assert store.channel_value(0, 1) == 177


def test_failing_discard_callback_does_not_stop_capture(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    def explode(data: bytes) -> None:
        raise RuntimeError("callback bug")

    receiver.on_discard = explode

    transmitter.send_raw(b"junk")
    transmitter.send_dmx(0, _levels(ch1=177))

    assert receiver.wait_for_channel(0, 1, 177, timeout_s=1.0)
    assert receiver._thread is not None and receiver._thread.is_alive()
    assert receiver.get_stats()["packets_discarded"] == 1


def test_stats_reset_on_restart(
    receiver: ArtNetReceiver, transmitter: ArtNetTransmitter
) -> None:
    transmitter.send_raw(b"junk")
    transmitter.send_dmx(0, _levels(ch1=1))
    assert receiver.wait_for_frames(1, timeout_s=1.0)
    assert receiver.get_stats()["packets_received"] == 2

    receiver.stop()
    receiver.start()

    assert receiver.get_stats() == {
        "running": True,
        "packets_received": 0,
        "frames_captured": 0,
        "packets_discarded": 0,
    }
