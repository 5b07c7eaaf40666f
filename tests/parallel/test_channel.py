# tests/parallel/test_channel.py
from __future__ import annotations

import os
import signal
import threading
import time

import pytest

from segscan.errors import ChannelTimeout, LostWorker
from segscan.parallel.channel import MESSAGE, ResultChannel


@pytest.fixture
def channel():
    ch = ResultChannel.open(index=3)
    yield ch
    ch.close()


def _raw_write(ch: ResultChannel, data: bytes) -> None:
    os.write(ch._write_fd, data)


def test_send_then_receive(channel):
    channel.send(123456789012)
    assert channel._write_fd is None  # send closes the write end
    assert channel.receive(timeout_s=1.0) == 123456789012


def test_counts_beyond_32_bits_fit(channel):
    channel.send(2**40 + 7)
    assert channel.receive(timeout_s=1.0) == 2**40 + 7


def test_close_without_data_is_lost_worker(channel):
    channel.close_writer()
    with pytest.raises(LostWorker) as excinfo:
        channel.receive(timeout_s=1.0)
    assert excinfo.value.index == 3
    assert excinfo.value.received == 0


def test_partial_message_then_close_is_lost_worker(channel):
    _raw_write(channel, MESSAGE.pack(42)[:3])
    channel.close_writer()
    with pytest.raises(LostWorker) as excinfo:
        channel.receive(timeout_s=1.0)
    assert excinfo.value.received == 3


def test_short_reads_are_reassembled(channel):
    payload = MESSAGE.pack(77)
    _raw_write(channel, payload[:2])

    def finish():
        _raw_write(channel, payload[2:5])
        time.sleep(0.05)
        _raw_write(channel, payload[5:])

    t = threading.Timer(0.05, finish)
    t.start()
    try:
        assert channel.receive(timeout_s=2.0) == 77
    finally:
        t.join()


def test_silent_open_channel_times_out(channel):
    start = time.monotonic()
    with pytest.raises(ChannelTimeout) as excinfo:
        channel.receive(timeout_s=0.1)
    elapsed = time.monotonic() - start

    assert excinfo.value.index == 3
    assert excinfo.value.timeout_s == 0.1
    assert 0.09 <= elapsed < 1.0


def test_signal_during_wait_does_not_restart_timeout(channel):
    fired = []

    def on_alarm(signum, frame):
        fired.append(time.monotonic())

    previous = signal.signal(signal.SIGALRM, on_alarm)
    try:
        signal.setitimer(signal.ITIMER_REAL, 0.15)
        start = time.monotonic()
        with pytest.raises(ChannelTimeout):
            channel.receive(timeout_s=0.3)
        elapsed = time.monotonic() - start
    finally:
        signal.setitimer(signal.ITIMER_REAL, 0)
        signal.signal(signal.SIGALRM, previous)

    assert len(fired) == 1
    assert elapsed < 0.45


def test_result_sent_from_signal_handler_is_received(channel):
    def on_alarm(signum, frame):
        channel.send(9)

    previous = signal.signal(signal.SIGALRM, on_alarm)
    try:
        signal.setitimer(signal.ITIMER_REAL, 0.05)
        assert channel.receive(timeout_s=2.0) == 9
    finally:
        signal.setitimer(signal.ITIMER_REAL, 0)
        signal.signal(signal.SIGALRM, previous)


def test_send_on_closed_writer_raises(channel):
    channel.close_writer()
    with pytest.raises(OSError):
        channel.send(1)


def test_context_manager_releases_both_ends():
    ch = ResultChannel.open(index=0)
    with ch:
        pass
    assert ch.closed
    with pytest.raises(LostWorker):
        ch.receive(timeout_s=0.1)
    ch.close()  # idempotent


def test_context_manager_releases_on_error():
    ch = ResultChannel.open(index=0)
    with pytest.raises(ChannelTimeout):
        with ch:
            ch.receive(timeout_s=0.01)
    assert ch.closed


@pytest.fixture
def high_fd_limit():
    resource = pytest.importorskip("resource")
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    wanted = 1200
    if hard != resource.RLIM_INFINITY and hard < wanted:
        pytest.skip("hard descriptor limit too low")
    if soft != resource.RLIM_INFINITY and soft < wanted:
        resource.setrlimit(resource.RLIMIT_NOFILE, (wanted, hard))
    yield 1100
    resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))


def test_receive_on_descriptor_above_1024(high_fd_limit):
    r, w = os.pipe()
    high = os.dup2(r, high_fd_limit)
    os.close(r)
    ch = ResultChannel(index=0, read_fd=high, write_fd=w)
    try:
        ch.send(9)
        assert ch.receive(timeout_s=1.0) == 9
    finally:
        ch.close()
