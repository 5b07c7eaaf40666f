# tests/parallel/test_signals.py
from __future__ import annotations

import os
import signal
import threading

import pytest

from segscan.parallel.signals import (
    Debouncer,
    LiveWorkerCount,
    SignalBridge,
    blocked_signals,
)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def status_pipe():
    r, w = os.pipe()
    os.set_blocking(r, False)
    yield r, w
    os.close(r)
    os.close(w)


def _drain(fd: int) -> str:
    chunks = []
    while True:
        try:
            chunk = os.read(fd, 4096)
        except BlockingIOError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode()


# --- LiveWorkerCount ---------------------------------------------------------


def test_live_count_decrements_to_zero_and_no_further():
    live = LiveWorkerCount(3)
    assert [live.decrement() for _ in range(3)] == [2, 1, 0]
    with pytest.raises(RuntimeError):
        live.decrement()
    assert live.value == 0


def test_live_count_rejects_negative_start():
    with pytest.raises(ValueError):
        LiveWorkerCount(-1)


# --- Debouncer ---------------------------------------------------------------


def test_debounce_drops_triggers_inside_window():
    clock = FakeClock()
    d = Debouncer(1.0, clock)
    assert d.should_fire()
    clock.now += 0.5
    assert not d.should_fire()
    clock.now += 0.4
    assert not d.should_fire()


def test_debounce_fires_again_after_window():
    clock = FakeClock()
    d = Debouncer(1.0, clock)
    assert d.should_fire()
    clock.now += 1.5
    assert d.should_fire()


def test_debounce_window_measured_from_last_report():
    clock = FakeClock()
    d = Debouncer(1.0, clock)
    assert d.should_fire()
    clock.now += 0.9
    assert not d.should_fire()
    clock.now += 0.2  # 1.1s after the report, 0.2s after the dropped trigger
    assert d.should_fire()


# --- status query -------------------------------------------------------------


def test_status_query_writes_one_line_per_window(status_pipe):
    r, w = status_pipe
    clock = FakeClock()
    bridge = SignalBridge(LiveWorkerCount(3), lambda: 0, status_fd=w, clock=clock)

    bridge.on_status_query()
    clock.now += 0.3
    bridge.on_status_query()
    out = _drain(r)
    assert out.count("status:") == 1
    assert "3 workers still scanning" in out

    clock.now += 1.0
    bridge.on_status_query()
    assert _drain(r).count("status:") == 1


def test_status_query_survives_unwritable_fd():
    r, w = os.pipe()
    os.close(r)
    clock = FakeClock()
    bridge = SignalBridge(LiveWorkerCount(2), lambda: 0, status_fd=w, clock=clock)
    try:
        bridge.on_status_query()  # reader gone: EPIPE
        clock.now += 5.0
        bridge.on_status_query()
    finally:
        os.close(w)


def test_status_line_shows_total_when_known(status_pipe):
    r, w = status_pipe
    bridge = SignalBridge(LiveWorkerCount(2), lambda: 0, total_workers=4, status_fd=w)
    bridge.on_status_query()
    assert "2/4 workers still scanning" in _drain(r)


def test_installed_bridge_turns_sigint_into_status_line(status_pipe):
    r, w = status_pipe
    before = signal.getsignal(signal.SIGINT)
    bridge = SignalBridge(LiveWorkerCount(5), lambda: 0, status_fd=w)

    with bridge:
        os.kill(os.getpid(), signal.SIGINT)  # must not raise KeyboardInterrupt
        for _ in range(1000):
            out = _drain(r)
            if out:
                break

    assert "5 workers still scanning" in out
    assert signal.getsignal(signal.SIGINT) is before


# --- completion ----------------------------------------------------------------


def test_completion_decrements_once_per_reaped_worker():
    live = LiveWorkerCount(4)
    results = iter([3, 0])
    bridge = SignalBridge(live, lambda: next(results))
    bridge.on_child_exit()
    assert live.value == 1


def test_spurious_completion_does_not_decrement():
    live = LiveWorkerCount(2)
    calls = []

    def reap():
        calls.append(1)
        return 0

    bridge = SignalBridge(live, reap)
    bridge.on_child_exit()
    bridge.on_child_exit()
    assert live.value == 2
    assert len(calls) == 2


def test_nested_completion_is_coalesced_into_another_pass():
    live = LiveWorkerCount(3)
    passes = []

    def reap():
        passes.append(1)
        if len(passes) == 1:
            # another SIGCHLD arrives while the first pass is running
            bridge.on_child_exit()
            return 1
        if len(passes) == 2:
            return 2
        return 0

    bridge = SignalBridge(live, reap)
    bridge.on_child_exit()

    assert len(passes) == 2
    assert live.value == 0


def test_drain_runs_completion_synchronously():
    live = LiveWorkerCount(1)
    bridge = SignalBridge(live, iter([1]).__next__)
    bridge.drain()
    assert live.value == 0


# --- blocked_signals ----------------------------------------------------------------


def test_blocked_signal_is_delivered_after_block():
    received = []
    previous = signal.signal(signal.SIGUSR1, lambda s, f: received.append(s))
    try:
        with blocked_signals(signal.SIGUSR1):
            # The mask is per thread; aim the signal at this one
            signal.pthread_kill(threading.get_ident(), signal.SIGUSR1)
            assert received == []
        for _ in range(1000):
            if received:
                break
        assert received == [signal.SIGUSR1]
    finally:
        signal.signal(signal.SIGUSR1, previous)
