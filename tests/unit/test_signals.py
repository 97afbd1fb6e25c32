"""Unit tests for the signal listener."""

import os
import signal
import threading

import pytest

from quiesce.core.errors import SignalSubscriptionError
from quiesce.core.signals import ShutdownSignal, SignalListener, resolve_signal

posix_only = pytest.mark.skipif(not hasattr(signal, "SIGKILL"), reason="POSIX signals required")


def test_shutdown_signals_compare_equal():
    """All shutdown events are the same event regardless of source."""
    assert ShutdownSignal("SIGINT") == ShutdownSignal("SIGTERM")
    assert ShutdownSignal("SIGINT") == ShutdownSignal()


@pytest.mark.parametrize("name", ["SIGTERM", "sigterm", "TERM", " term "])
def test_resolve_signal_accepts_common_spellings(name):
    assert resolve_signal(name) is signal.SIGTERM


def test_resolve_signal_rejects_unknown_names():
    with pytest.raises(SignalSubscriptionError):
        resolve_signal("SIGNOPE")


def test_wait_times_out_without_events(listener):
    assert listener.wait(timeout=0.05) is None


def test_notify_produces_one_event_per_call(listener):
    """wait() returns once for every raised event."""
    listener.notify("first")
    listener.notify("second")

    assert listener.wait(timeout=1.0).source == "first"
    assert listener.wait(timeout=1.0).source == "second"
    assert listener.wait(timeout=0.05) is None
    assert listener.received == 2


def test_received_counts_concurrent_notifications(listener):
    """Every notify() is counted when many threads raise events at once."""
    threads_count, per_thread = 8, 250
    barrier = threading.Barrier(threads_count)

    def burst():
        barrier.wait()
        for _ in range(per_thread):
            listener.notify("burst")

    threads = [threading.Thread(target=burst) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert listener.received == threads_count * per_thread


def test_wait_unblocks_on_notify_from_other_thread(listener):
    timer = threading.Timer(0.05, listener.notify, kwargs={"source": "timer"})
    timer.start()
    event = listener.wait(timeout=5.0)
    timer.join()
    assert event == ShutdownSignal("timer")


def test_subscribe_installs_and_close_restores_handlers(listener):
    before = signal.getsignal(signal.SIGTERM)
    listener.subscribe()
    assert listener.subscribed
    assert signal.getsignal(signal.SIGTERM) is not before

    listener.close()
    assert not listener.subscribed
    assert signal.getsignal(signal.SIGTERM) is before


def test_subscribe_is_idempotent(listener):
    listener.subscribe()
    listener.subscribe()
    assert listener.subscribed


def test_subscribe_rejects_unknown_signal():
    """A bad signal name aborts subscription and leaves nothing installed."""
    before = signal.getsignal(signal.SIGINT)
    listener = SignalListener(signals=["SIGINT", "SIGBOGUS"])
    with pytest.raises(SignalSubscriptionError):
        listener.subscribe()
    assert not listener.subscribed
    assert signal.getsignal(signal.SIGINT) is before


def test_subscribe_rejects_empty_signal_list():
    with pytest.raises(SignalSubscriptionError):
        SignalListener(signals=[]).subscribe()


@posix_only
def test_subscribe_rejects_uncatchable_signal():
    with pytest.raises(SignalSubscriptionError):
        SignalListener(signals=["SIGKILL"]).subscribe()


def test_subscribe_outside_main_thread_fails():
    """Signal handlers can only be installed from the main thread."""
    errors = []

    def subscribe():
        try:
            SignalListener().subscribe()
        except SignalSubscriptionError as e:
            errors.append(e)

    thread = threading.Thread(target=subscribe)
    thread.start()
    thread.join()
    assert len(errors) == 1


@posix_only
@pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
def test_os_signal_becomes_shutdown_event(signum):
    """SIGINT and SIGTERM both collapse into a ShutdownSignal."""
    with SignalListener(poll_interval=0.05) as listener:
        os.kill(os.getpid(), signum)
        event = listener.wait(timeout=5.0)
    assert event == ShutdownSignal()
    assert event.source == signal.Signals(signum).name


def test_context_manager_restores_handlers():
    before = signal.getsignal(signal.SIGINT)
    with SignalListener() as listener:
        assert listener.subscribed
    assert signal.getsignal(signal.SIGINT) is before
