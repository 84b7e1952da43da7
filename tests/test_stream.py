"""Tests for the thread-based logcat stream."""

import gc
import subprocess
import threading
import time
from unittest.mock import Mock

import pytest

from droidscope.exceptions import (
    LogStreamInternalError,
    LogStreamStartError,
    LogStreamStateError,
    LogStreamTimeoutError,
)
from droidscope.filters import LogcatFilter
from droidscope.models import LogcatBuffer, LogcatEntry, LogLevel
from droidscope.streams import (
    LogcatStream,
    StreamCloseReason,
    StreamState,
    stream_logcat,
)

MATCHING = [
    "01-15 10:30:45.100  1234  5678 I ActivityManager: Start proc 1\n",
    "01-15 10:30:45.200  1234  5678 W ActivityManager: Slow start 2\n",
    "01-15 10:30:45.300  1234  5678 E ActivityManager: Died 3\n",
]
NON_MATCHING = [
    "01-15 10:30:45.150  1000  1000 I WindowManager: Focus changed\n",
    "01-15 10:30:45.250  1000  1000 D PackageManager: Scanning\n",
]


def make_process(lines, block=True):
    """Build a fake logcat process.

    Once ``lines`` are exhausted, stdout either reports EOF or blocks until
    the process is terminated.
    """
    released = threading.Event()
    pending = list(lines)

    def readline():
        if pending:
            return pending.pop(0)
        if block:
            released.wait(timeout=5.0)
        return ""

    process = Mock()
    process.stdout.readline.side_effect = readline
    process.stderr.readline.return_value = ""
    process.poll.return_value = None
    process.terminate.side_effect = released.set
    process.kill.side_effect = released.set
    process.wait.return_value = 0
    return process


@pytest.fixture
def mock_popen(mocker):
    """Mock subprocess.Popen."""
    return mocker.patch("subprocess.Popen")


def test_stream_delivers_filtered_entries_then_cancels(mock_popen) -> None:
    """Test that only matching entries arrive and cancel ends the stream."""
    lines = [MATCHING[0], NON_MATCHING[0], MATCHING[1], NON_MATCHING[1], MATCHING[2]]
    process = make_process(lines)
    mock_popen.return_value = process

    stream = LogcatStream(adb_path="adb", filter_by=LogcatFilter(tag="ActivityManager"))
    stream.start()
    assert stream.state == StreamState.STREAMING

    received = [stream.get(timeout=2.0) for _ in range(3)]
    assert [entry.message for entry in received] == ["Start proc 1", "Slow start 2", "Died 3"]
    assert all(isinstance(entry, LogcatEntry) for entry in received)

    stream.cancel()

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CANCELLED
    assert stream.get(timeout=1.0) is None
    process.terminate.assert_called_once()
    stream.join(timeout=1.0)


def test_stream_end_of_stream(mock_popen) -> None:
    """Test that logcat exiting closes the stream after delivering entries."""
    mock_popen.return_value = make_process(MATCHING + ["\n"], block=False)

    stream = LogcatStream(adb_path="adb").start()
    entries = list(stream)
    stream.join(timeout=1.0)

    assert [entry.level for entry in entries] == [
        LogLevel.INFO,
        LogLevel.WARNING,
        LogLevel.ERROR,
    ]
    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.END_OF_STREAM


def test_stream_cancel_keeps_queued_entries(mock_popen) -> None:
    """Test that entries queued before cancel stay readable."""
    mock_popen.return_value = make_process(MATCHING)

    stream = LogcatStream(adb_path="adb").start()
    first = stream.get(timeout=2.0)
    assert first is not None

    # Let the worker queue the remaining lines before cancelling
    while stream._queue.qsize() < 2:
        time.sleep(0.01)
    stream.cancel()

    assert [entry.message for entry in stream] == ["Slow start 2", "Died 3"]


def test_stream_close_discards_queue(mock_popen) -> None:
    """Test that closing ends iteration immediately."""
    mock_popen.return_value = make_process(MATCHING)

    stream = LogcatStream(adb_path="adb").start()
    assert stream.get(timeout=2.0) is not None
    stream.close()

    assert stream.close_reason == StreamCloseReason.CONSUMER_CLOSED
    assert stream.get() is None
    assert list(stream) == []


def test_stream_backpressure_keeps_order(mock_popen) -> None:
    """Test that a full queue blocks the worker instead of dropping entries."""
    lines = [
        f"01-15 10:30:45.{i:03d}  1234  5678 I Counter: value {i}\n" for i in range(20)
    ]
    mock_popen.return_value = make_process(lines, block=False)

    stream = LogcatStream(adb_path="adb", max_queue_size=2, poll_interval=0.01).start()
    messages = [entry.message for entry in stream]

    assert messages == [f"value {i}" for i in range(20)]


def test_stream_start_failure(mock_popen) -> None:
    """Test that a spawn failure leaves the stream FAILED."""
    mock_popen.side_effect = OSError("No such file")

    stream = LogcatStream(adb_path="adb")
    with pytest.raises(LogStreamStartError):
        stream.start()

    assert stream.state == StreamState.FAILED


def test_stream_adb_not_found(mock_popen, mocker) -> None:
    """Test that a missing adb is a start failure."""
    mocker.patch(
        "droidscope.streams.sync.resolve_adb", side_effect=FileNotFoundError("no adb")
    )

    stream = LogcatStream()
    with pytest.raises(LogStreamStartError):
        stream.start()

    assert stream.state == StreamState.FAILED
    mock_popen.assert_not_called()


def test_stream_cannot_restart(mock_popen) -> None:
    """Test that start is only valid once."""
    mock_popen.return_value = make_process([], block=False)

    stream = LogcatStream(adb_path="adb").start()
    with pytest.raises(LogStreamStateError):
        stream.start()

    stream.join(timeout=1.0)
    with pytest.raises(LogStreamStateError):
        stream.start()


def test_stream_get_before_start() -> None:
    """Test reading from a stream that was never started."""
    with pytest.raises(LogStreamStateError):
        LogcatStream(adb_path="adb").get()


def test_stream_cancel_before_start() -> None:
    """Test cancelling an idle stream."""
    stream = LogcatStream(adb_path="adb")
    stream.cancel()

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CANCELLED


def test_stream_get_timeout(mock_popen) -> None:
    """Test waiting on a quiet stream."""
    mock_popen.return_value = make_process([])

    stream = LogcatStream(adb_path="adb", poll_interval=0.01).start()
    with pytest.raises(LogStreamTimeoutError):
        stream.get(timeout=0.05)

    stream.cancel()


def test_stream_worker_error(mock_popen) -> None:
    """Test that a worker failure is re-raised by join."""
    mock_popen.return_value = make_process(MATCHING, block=False)
    parser = Mock()
    parser.parse.side_effect = RuntimeError("boom")

    stream = LogcatStream(adb_path="adb", parser=parser).start()

    with pytest.raises(LogStreamInternalError) as excinfo:
        stream.join(timeout=1.0)

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert stream.close_reason == StreamCloseReason.ERROR
    assert stream.state == StreamState.CLOSED


def test_stream_state_callback(mock_popen) -> None:
    """Test that every transition is reported in order."""
    mock_popen.return_value = make_process(MATCHING, block=False)
    states = []

    stream = LogcatStream(adb_path="adb", on_state=states.append).start()
    list(stream)
    stream.join(timeout=1.0)

    assert states == [
        StreamState.STARTING,
        StreamState.STREAMING,
        StreamState.DRAINING,
        StreamState.CLOSED,
    ]


def test_stream_kills_stubborn_process(mock_popen) -> None:
    """Test that a process ignoring terminate is killed."""
    process = make_process([])
    process.terminate.side_effect = None
    process.wait.side_effect = [subprocess.TimeoutExpired(cmd="adb", timeout=0.1), 0]
    mock_popen.return_value = process

    stream = LogcatStream(adb_path="adb", terminate_timeout=0.1).start()
    stream.cancel()
    stream.join(timeout=1.0)

    process.terminate.assert_called_once()
    process.kill.assert_called_once()


def test_stream_collects_stderr(mock_popen) -> None:
    """Test that stderr lines are kept for diagnostics."""
    process = make_process([], block=False)
    process.stderr.readline.side_effect = ["error: device offline\n", ""]
    mock_popen.return_value = process

    stream = LogcatStream(adb_path="adb").start()
    stream.join(timeout=1.0)

    assert stream.stderr_tail == ["error: device offline"]


def test_stream_context_manager(mock_popen) -> None:
    """Test using LogcatStream as a context manager."""
    process = make_process(MATCHING)
    mock_popen.return_value = process

    with LogcatStream(adb_path="adb") as stream:
        assert stream.state == StreamState.STREAMING
        entry = stream.get(timeout=2.0)
        assert entry is not None

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CONSUMER_CLOSED
    process.terminate.assert_called_once()


def test_stream_command(mock_popen) -> None:
    """Test the adb command line."""
    mock_popen.return_value = make_process([], block=False)

    stream = LogcatStream(
        adb_path="adb",
        device_id="emulator-5554",
        buffer=LogcatBuffer.CRASH,
        logcat_args=["-T", "1"],
    )
    assert stream.command == [
        "adb", "-s", "emulator-5554", "logcat", "-v", "threadtime", "-b", "crash", "-T", "1",
    ]

    stream.start()
    stream.join(timeout=1.0)

    args, kwargs = mock_popen.call_args
    assert args[0] == stream.command
    assert kwargs["stdout"] == subprocess.PIPE
    assert kwargs["text"] is True


def test_stream_default_buffer_command() -> None:
    """Test that the default buffer selects main."""
    assert LogcatStream(adb_path="adb").command == [
        "adb", "logcat", "-v", "threadtime", "-b", "main",
    ]


def test_stream_logcat_helper(mock_popen, mocker) -> None:
    """Test the convenience constructor."""
    mocker.patch("droidscope.streams.sync.resolve_adb", return_value="adb")
    mock_popen.return_value = make_process([MATCHING[0]], block=False)

    stream = stream_logcat(device_id="emulator-5554", filter_by=LogcatFilter(level="I"))

    assert [entry.tag for entry in stream] == ["ActivityManager"]
    args, _ = mock_popen.call_args
    assert args[0][:3] == ["adb", "-s", "emulator-5554"]


def test_stream_breaking_out_of_iteration_closes(mock_popen) -> None:
    """Test that leaving a for loop early stops logcat."""
    process = make_process(MATCHING)
    mock_popen.return_value = process

    stream = LogcatStream(adb_path="adb").start()
    for entry in stream:
        assert entry.message == "Start proc 1"
        break

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CONSUMER_CLOSED
    process.terminate.assert_called_once()
    stream.join(timeout=1.0)


def test_stream_dropped_iterator_closes(mock_popen) -> None:
    """Test that discarding a partly consumed iterator stops logcat."""
    process = make_process(MATCHING)
    mock_popen.return_value = process

    stream = LogcatStream(adb_path="adb").start()
    entries = iter(stream)
    assert next(entries).message == "Start proc 1"
    del entries
    gc.collect()

    assert stream.close_reason == StreamCloseReason.CONSUMER_CLOSED
    process.terminate.assert_called_once()


def test_stream_exhausted_iteration_keeps_reason(mock_popen) -> None:
    """Test that reading to the end is not reported as a consumer close."""
    process = make_process(MATCHING, block=False)
    mock_popen.return_value = process

    stream = LogcatStream(adb_path="adb").start()
    assert len(list(stream)) == 3

    assert stream.close_reason == StreamCloseReason.END_OF_STREAM
