"""Tests for the asyncio logcat stream."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from droidscope.exceptions import (
    LogStreamInternalError,
    LogStreamStartError,
    LogStreamStateError,
    LogStreamTimeoutError,
)
from droidscope.filters import LogcatFilter
from droidscope.models import LogLevel
from droidscope.streams import AsyncLogcatStream, StreamCloseReason, StreamState

LINES = [
    b"01-15 10:30:45.100  1234  5678 I ActivityManager: Start proc 1\n",
    b"01-15 10:30:45.150  1000  1000 I WindowManager: Focus changed\n",
    b"01-15 10:30:45.200  1234  5678 W ActivityManager: Slow start 2\n",
    b"01-15 10:30:45.250  1000  1000 D PackageManager: Scanning\n",
    b"01-15 10:30:45.300  1234  5678 E ActivityManager: Died 3\n",
]


def make_process(lines, block=True):
    """Build a fake asyncio logcat process.

    Once ``lines`` are exhausted, stdout either reports EOF or waits until
    the process is terminated.
    """
    released = asyncio.Event()
    pending = list(lines)

    async def readuntil(separator=b"\n"):
        if pending:
            return pending.pop(0)
        if block:
            await released.wait()
        return b""

    process = MagicMock()
    process.returncode = None
    process.stdout = MagicMock()
    process.stdout.readuntil = AsyncMock(side_effect=readuntil)
    process.stderr = MagicMock()
    process.stderr.readuntil = AsyncMock(return_value=b"")
    process.terminate = MagicMock(side_effect=released.set)
    process.kill = MagicMock(side_effect=released.set)
    process.wait = AsyncMock(return_value=0)
    return process


@pytest.fixture
def mock_create_subprocess():
    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock:
        yield mock


@pytest.mark.asyncio
async def test_delivers_filtered_entries_then_cancels(mock_create_subprocess):
    """Test that only matching entries arrive and cancel ends the stream."""
    process = make_process(LINES)
    mock_create_subprocess.return_value = process

    stream = AsyncLogcatStream(
        adb_path="adb", filter_by=LogcatFilter(tag="ActivityManager")
    )
    await stream.start()
    assert stream.state == StreamState.STREAMING

    received = [await stream.get(timeout=2.0) for _ in range(3)]
    assert [entry.message for entry in received] == [
        "Start proc 1",
        "Slow start 2",
        "Died 3",
    ]

    await stream.cancel()

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CANCELLED
    assert await stream.get(timeout=1.0) is None
    process.terminate.assert_called_once()


@pytest.mark.asyncio
async def test_end_of_stream(mock_create_subprocess):
    """Test that logcat exiting closes the stream after delivering entries."""
    mock_create_subprocess.return_value = make_process(LINES, block=False)

    stream = AsyncLogcatStream(adb_path="adb", filter_by=LogcatFilter(level="W"))
    await stream.start()
    entries = [entry async for entry in stream]
    await stream.join(timeout=1.0)

    assert [entry.level for entry in entries] == [LogLevel.WARNING, LogLevel.ERROR]
    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.END_OF_STREAM


@pytest.mark.asyncio
async def test_spawn_arguments(mock_create_subprocess):
    """Test the command passed to the subprocess."""
    mock_create_subprocess.return_value = make_process([], block=False)

    stream = AsyncLogcatStream(adb_path="adb", device_id="emulator-5554")
    await stream.start()
    await stream.join(timeout=1.0)

    mock_create_subprocess.assert_called_once_with(
        "adb",
        "-s",
        "emulator-5554",
        "logcat",
        "-v",
        "threadtime",
        "-b",
        "main",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        limit=1024 * 1024,
    )


@pytest.mark.asyncio
async def test_start_failure(mock_create_subprocess):
    """Test that a spawn failure leaves the stream FAILED."""
    mock_create_subprocess.side_effect = FileNotFoundError("adb")

    stream = AsyncLogcatStream(adb_path="adb")
    with pytest.raises(LogStreamStartError):
        await stream.start()

    assert stream.state == StreamState.FAILED


@pytest.mark.asyncio
async def test_cannot_restart(mock_create_subprocess):
    """Test that start is only valid once."""
    mock_create_subprocess.return_value = make_process([], block=False)

    stream = AsyncLogcatStream(adb_path="adb")
    await stream.start()
    with pytest.raises(LogStreamStateError):
        await stream.start()
    await stream.join(timeout=1.0)


@pytest.mark.asyncio
async def test_get_before_start():
    """Test reading from a stream that was never started."""
    with pytest.raises(LogStreamStateError):
        await AsyncLogcatStream(adb_path="adb").get()


@pytest.mark.asyncio
async def test_get_timeout(mock_create_subprocess):
    """Test waiting on a quiet stream."""
    mock_create_subprocess.return_value = make_process([])

    stream = AsyncLogcatStream(adb_path="adb", poll_interval=0.01)
    await stream.start()
    with pytest.raises(LogStreamTimeoutError):
        await stream.get(timeout=0.05)

    await stream.cancel()
    assert stream.state == StreamState.CLOSED


@pytest.mark.asyncio
async def test_worker_error(mock_create_subprocess):
    """Test that a worker failure is re-raised by join."""
    mock_create_subprocess.return_value = make_process(LINES, block=False)
    parser = MagicMock()
    parser.parse.side_effect = RuntimeError("boom")

    stream = AsyncLogcatStream(adb_path="adb", parser=parser)
    await stream.start()

    with pytest.raises(LogStreamInternalError):
        await stream.join(timeout=1.0)

    assert stream.close_reason == StreamCloseReason.ERROR


@pytest.mark.asyncio
async def test_kills_stubborn_process(mock_create_subprocess):
    """Test that a process ignoring terminate is killed."""
    process = make_process([])
    process.terminate = MagicMock()
    hang = asyncio.Event()

    async def wait():
        if not process.kill.called:
            await hang.wait()
        return -9

    process.wait = AsyncMock(side_effect=wait)
    mock_create_subprocess.return_value = process

    stream = AsyncLogcatStream(adb_path="adb", terminate_timeout=0.05)
    await stream.start()
    await stream.cancel()

    process.terminate.assert_called_once()
    process.kill.assert_called_once()


@pytest.mark.asyncio
async def test_state_callback(mock_create_subprocess):
    """Test that every transition is reported in order."""
    mock_create_subprocess.return_value = make_process(LINES[:1], block=False)
    states = []

    async def on_state(state):
        states.append(state)

    stream = AsyncLogcatStream(adb_path="adb", on_state=on_state)
    await stream.start()
    await stream.join(timeout=1.0)

    assert states == [
        StreamState.STARTING,
        StreamState.STREAMING,
        StreamState.DRAINING,
        StreamState.CLOSED,
    ]


@pytest.mark.asyncio
async def test_context_manager(mock_create_subprocess):
    """Test using AsyncLogcatStream as a context manager."""
    process = make_process(LINES)
    mock_create_subprocess.return_value = process

    async with AsyncLogcatStream(adb_path="adb") as stream:
        entry = await stream.get(timeout=2.0)
        assert entry.tag == "ActivityManager"

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CONSUMER_CLOSED
    process.terminate.assert_called_once()


@pytest.mark.asyncio
async def test_oversized_line_becomes_one_entry(mock_create_subprocess):
    """Test that a line longer than the reader limit does not end the stream."""
    reader = asyncio.StreamReader()
    reader.feed_data(b"x" * 100_000 + b"\n")
    reader.feed_data(LINES[0])
    reader.feed_data(LINES[2])
    reader.feed_eof()
    process = make_process([], block=False)
    process.stdout = reader
    mock_create_subprocess.return_value = process

    stream = AsyncLogcatStream(adb_path="adb")
    await stream.start()
    entries = [entry async for entry in stream]
    await stream.join(timeout=1.0)

    assert len(entries) == 3
    assert entries[0].message == "x" * 100_000
    assert [entry.message for entry in entries[1:]] == ["Start proc 1", "Slow start 2"]
    assert stream.close_reason == StreamCloseReason.END_OF_STREAM


@pytest.mark.asyncio
async def test_breaking_out_of_iteration_closes(mock_create_subprocess):
    """Test that leaving async iteration early stops logcat."""
    process = make_process(LINES)
    mock_create_subprocess.return_value = process

    stream = AsyncLogcatStream(adb_path="adb")
    await stream.start()
    async for entry in stream:
        assert entry.message == "Start proc 1"
        break

    await stream.join(timeout=1.0)

    assert stream.state == StreamState.CLOSED
    assert stream.close_reason == StreamCloseReason.CONSUMER_CLOSED
    process.terminate.assert_called_once()


@pytest.mark.asyncio
async def test_backpressure_keeps_order(mock_create_subprocess):
    """Test that a full queue neither drops nor repeats entries."""
    lines = [
        f"01-15 10:30:45.{i:03d}  1234  5678 I Counter: value {i}\n".encode()
        for i in range(50)
    ]
    mock_create_subprocess.return_value = make_process(lines, block=False)

    stream = AsyncLogcatStream(adb_path="adb", max_queue_size=2, poll_interval=0.001)
    await stream.start()
    messages = [entry.message async for entry in stream]

    assert messages == [f"value {i}" for i in range(50)]


@pytest.mark.asyncio
async def test_timed_out_gets_lose_nothing(mock_create_subprocess):
    """Test that gets giving up on a slow producer leave entries queued."""
    pending = [
        f"01-15 10:30:45.{i:03d}  1234  5678 I Counter: value {i}\n".encode()
        for i in range(5)
    ]

    async def readuntil(separator=b"\n"):
        await asyncio.sleep(0.02)
        return pending.pop(0) if pending else b""

    process = make_process([], block=False)
    process.stdout.readuntil = AsyncMock(side_effect=readuntil)
    mock_create_subprocess.return_value = process

    stream = AsyncLogcatStream(adb_path="adb", poll_interval=0.005)
    await stream.start()
    messages = []
    while True:
        try:
            entry = await stream.get(timeout=0.005)
        except LogStreamTimeoutError:
            continue
        if entry is None:
            break
        messages.append(entry.message)

    assert messages == [f"value {i}" for i in range(5)]
