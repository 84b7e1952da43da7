"""Asyncio logcat stream."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

from ..exceptions import (
    LogStreamError,
    LogStreamInternalError,
    LogStreamStartError,
    LogStreamStateError,
    LogStreamTimeoutError,
)
from ..filters import EntryPredicate
from ..models import LogcatBuffer, LogcatEntry
from ..parsers import LogcatParser
from ..utils import resolve_adb
from .common import (
    STDERR_TAIL_SIZE,
    STREAM_READ_LIMIT,
    TERMINAL_STATES,
    StreamCloseReason,
    StreamState,
    build_logcat_command,
)

# Configure module logger
logger = logging.getLogger(__name__)

AsyncStateCallback = Callable[[StreamState], Awaitable[None]]


async def read_line(reader: asyncio.StreamReader) -> bytes:
    """Read one line of any length, including its newline.

    `StreamReader.readline` gives up on lines longer than the reader limit and
    throws the buffered data away. This keeps reading in limit-sized chunks
    instead, so an oversized line comes back whole.

    Returns:
        The line, or b"" at EOF.
    """
    chunks = []
    while True:
        try:
            chunks.append(await reader.readuntil(b"\n"))
            break
        except asyncio.LimitOverrunError as e:
            chunks.append(await reader.readexactly(e.consumed))
        except asyncio.IncompleteReadError as e:
            # EOF without a trailing newline
            chunks.append(e.partial)
            break
    return b"".join(chunks)


class AsyncLogcatStream:
    """Asyncio counterpart of `LogcatStream`.

    Runs logcat with `asyncio.create_subprocess_exec` and delivers entries
    through an async iterator. The worker is a task on the running loop and
    waits on the bounded queue instead of dropping entries.

    Usage:
        ```python
        async with AsyncLogcatStream(filter_by=LogcatFilter(tag="MyApp")) as stream:
            async for entry in stream:
                print(entry.message)
        ```
    """

    def __init__(
        self,
        adb_path: str | None = None,
        device_id: str | None = None,
        buffer: LogcatBuffer = LogcatBuffer.DEFAULT,
        filter_by: EntryPredicate | None = None,
        parser: LogcatParser | None = None,
        logcat_args: Sequence[str] | None = None,
        max_queue_size: int = 10000,
        poll_interval: float = 0.1,
        terminate_timeout: float = 2.0,
        on_state: AsyncStateCallback | None = None,
    ) -> None:
        """Initialize the AsyncLogcatStream.

        Args:
            adb_path: Path to ADB executable. If None, resolved on start.
            device_id: Target device serial ID.
            buffer: Logcat buffer to follow.
            filter_by: Predicate applied to each entry.
            parser: Parser for logcat lines. Defaults to `LogcatParser()`.
            logcat_args: Additional arguments for `adb logcat`.
            max_queue_size: Capacity of the delivery queue.
            poll_interval: Seconds between cancellation checks while waiting.
            terminate_timeout: Seconds to wait after terminating the child
                before killing it.
            on_state: Async hook called on every state change.
        """
        self.adb_path = adb_path
        self.device_id = device_id
        self.buffer = buffer
        self.filter_by = filter_by
        self.parser = parser or LogcatParser()
        self.logcat_args = list(logcat_args) if logcat_args else []
        self.max_queue_size = max_queue_size
        self.poll_interval = poll_interval
        self.terminate_timeout = terminate_timeout
        self.on_state = on_state

        self._queue: asyncio.Queue[LogcatEntry] = asyncio.Queue(maxsize=max_queue_size)
        self._exceptions: list[Exception] = []
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_SIZE)

        self._process: asyncio.subprocess.Process | None = None
        self._worker_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None

        self._state = StreamState.IDLE
        self._close_reason: StreamCloseReason | None = None
        self._cancel_event = asyncio.Event()
        self._consumer_closed = asyncio.Event()
        self._finished = asyncio.Event()
        self._terminated = False

    @property
    def state(self) -> StreamState:
        """Current state of the stream."""
        return self._state

    @property
    def close_reason(self) -> StreamCloseReason | None:
        """Why the stream stopped streaming, or None while it is running."""
        return self._close_reason

    @property
    def stderr_tail(self) -> list[str]:
        """The last lines logcat wrote to stderr."""
        return list(self._stderr_tail)

    @property
    def command(self) -> list[str]:
        """The adb command line this stream runs."""
        return build_logcat_command(
            self.adb_path or "adb", self.device_id, self.buffer, self.logcat_args
        )

    async def _set_state(self, new_state: StreamState) -> None:
        """Update state and trigger callback."""
        if self._state == new_state or self._state in TERMINAL_STATES:
            return
        logger.debug(f"AsyncLogcatStream state: {self._state.name} -> {new_state.name}")
        self._state = new_state

        if self.on_state:
            try:
                await self.on_state(new_state)
            except Exception as e:
                logger.error(f"Error in on_state callback: {e}")

    async def _begin_drain(self, reason: StreamCloseReason) -> None:
        if self._close_reason is not None:
            return
        self._close_reason = reason
        await self._set_state(StreamState.DRAINING)

    async def start(self) -> AsyncLogcatStream:
        """Spawn logcat and start the worker task.

        Raises:
            LogStreamStateError: If the stream is not IDLE.
            LogStreamStartError: If adb cannot be found or spawned.
        """
        if self._state != StreamState.IDLE:
            raise LogStreamStateError(
                f"Cannot start stream from state {self._state.name}"
            )
        await self._set_state(StreamState.STARTING)

        try:
            if self.adb_path is None:
                self.adb_path = resolve_adb()
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_READ_LIMIT,
            )
        except (OSError, ValueError) as e:
            await self._fail()
            raise LogStreamStartError(f"Failed to start logcat: {e}") from e

        self._process = process
        if process.stdout is None:
            await self._terminate_process()
            await self._fail()
            raise LogStreamStartError("Failed to capture logcat stdout")

        await self._set_state(StreamState.STREAMING)

        if process.stderr is not None:
            self._stderr_task = asyncio.create_task(
                self._drain_stderr(process.stderr), name="AsyncLogcatStream-Stderr"
            )
        self._worker_task = asyncio.create_task(
            self._read_loop(process.stdout), name="AsyncLogcatStream-Worker"
        )
        return self

    async def _fail(self) -> None:
        await self._set_state(StreamState.FAILED)
        self._finished.set()

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Worker: read, parse, filter and deliver until told to stop."""
        reason = StreamCloseReason.END_OF_STREAM
        try:
            while not self._cancel_event.is_set():
                line_bytes = await read_line(reader)
                if not line_bytes:
                    # EOF
                    break

                line = line_bytes.decode("utf-8", errors="replace")
                if not line.strip():
                    continue

                entry = self.parser.parse(line)
                if self.filter_by is not None and not self.filter_by(entry):
                    continue
                if not await self._send(entry):
                    break
        except Exception as e:
            logger.error(f"AsyncLogcatStream worker failed: {e}")
            self._exceptions.append(e)
            reason = StreamCloseReason.ERROR
        finally:
            if self._consumer_closed.is_set():
                reason = StreamCloseReason.CONSUMER_CLOSED
            elif self._cancel_event.is_set() and reason is not StreamCloseReason.ERROR:
                reason = StreamCloseReason.CANCELLED
            await self._begin_drain(reason)
            await self._terminate_process()
            if self._stderr_task is not None:
                try:
                    await asyncio.wait_for(self._stderr_task, timeout=self.terminate_timeout)
                except asyncio.TimeoutError:
                    logger.debug("Gave up waiting for logcat stderr")
            self._finished.set()
            await self._set_state(StreamState.CLOSED)

    async def _send(self, entry: LogcatEntry) -> bool:
        """Put an entry on the queue, waiting while it is full.

        Returns:
            False if the consumer closed the stream or it was cancelled.
        """
        if self._consumer_closed.is_set() or self._cancel_event.is_set():
            return False
        try:
            self._queue.put_nowait(entry)
            return True
        except asyncio.QueueFull:
            pass

        # One put task for the whole wait. Cancelling it before it completes
        # leaves the queue untouched.
        putter = asyncio.ensure_future(self._queue.put(entry))
        try:
            while not putter.done():
                if self._consumer_closed.is_set() or self._cancel_event.is_set():
                    return False
                await asyncio.wait({putter}, timeout=self.poll_interval)
            putter.result()
            return True
        finally:
            if not putter.done():
                putter.cancel()

    async def _drain_stderr(self, reader: asyncio.StreamReader) -> None:
        try:
            while True:
                line_bytes = await read_line(reader)
                if not line_bytes:
                    break
                line = line_bytes.decode("utf-8", errors="replace").rstrip()
                if line:
                    self._stderr_tail.append(line)
                    logger.debug(f"logcat stderr: {line}")
        except OSError as e:
            logger.debug(f"Stopped reading logcat stderr: {e}")

    async def _terminate_process(self) -> None:
        """Terminate the child, killing it if it does not exit in time.

        Safe to call more than once. Failures are logged, not raised.
        """
        process = self._process
        if process is None or self._terminated:
            return
        self._terminated = True

        if process.returncode is not None:
            return
        try:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
            except asyncio.TimeoutError:
                logger.warning("logcat did not exit after terminate. Killing it.")
                process.kill()
                await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
        except ProcessLookupError:
            pass
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to terminate logcat process: {e}")

    async def _stop(self, reason: StreamCloseReason) -> None:
        if self._state in TERMINAL_STATES:
            return
        if self._state == StreamState.IDLE:
            self._close_reason = reason
            self._finished.set()
            await self._set_state(StreamState.CLOSED)
            return

        self._cancel_event.set()
        await self._begin_drain(reason)
        await self._terminate_process()

        task = self._worker_task
        if task is not None and task is not asyncio.current_task():
            try:
                await asyncio.wait_for(
                    asyncio.shield(task),
                    timeout=self.terminate_timeout + self.poll_interval,
                )
            except asyncio.TimeoutError:
                logger.warning("AsyncLogcatStream worker did not exit in time")

    async def cancel(self) -> None:
        """Stop streaming and wait for the worker. Queued entries stay readable."""
        await self._stop(StreamCloseReason.CANCELLED)

    async def close(self) -> None:
        """Stop streaming because the consumer no longer reads."""
        self._consumer_closed.set()
        await self._stop(StreamCloseReason.CONSUMER_CLOSED)

    async def get(self, timeout: float | None = None) -> LogcatEntry | None:
        """Wait for the next entry.

        Returns:
            The next entry, or None once the stream has ended and every
            queued entry has been read.

        Raises:
            LogStreamStateError: If the stream was never started.
            LogStreamTimeoutError: If no entry arrives within ``timeout``.
        """
        if self._state == StreamState.IDLE:
            raise LogStreamStateError("Stream has not been started")

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        getter: asyncio.Future[LogcatEntry] | None = None
        try:
            while not self._consumer_closed.is_set():
                if getter is None:
                    if not self._queue.empty():
                        return self._queue.get_nowait()
                    if self._finished.is_set():
                        return None
                    getter = asyncio.ensure_future(self._queue.get())
                if deadline is not None and loop.time() >= deadline:
                    raise LogStreamTimeoutError(f"No log entry within {timeout}s")

                wait = self.poll_interval
                if deadline is not None:
                    wait = min(wait, max(deadline - loop.time(), 0.0))
                done, _ = await asyncio.wait({getter}, timeout=wait)
                if done:
                    return getter.result()
                # The worker sets _finished only after its last put
                if self._finished.is_set() and self._queue.empty():
                    return None
            return None
        finally:
            # A get cancelled before it completes leaves the entry queued
            if getter is not None and not getter.done():
                getter.cancel()

    async def __aiter__(self) -> AsyncIterator[LogcatEntry]:
        """Yield entries until the stream ends.

        Leaving the loop early closes the stream once the iterator is
        finalized.
        """
        try:
            while True:
                entry = await self.get()
                if entry is None:
                    return
                yield entry
        except GeneratorExit:
            await self.close()
            raise
    async def join(self, timeout: float | None = None) -> None:
        """Wait for the worker task to finish.

        Raises:
            LogStreamTimeoutError: If timeout expires.
            LogStreamInternalError: If the worker failed.
        """
        if self._worker_task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._worker_task), timeout=timeout)
            except asyncio.TimeoutError:
                raise LogStreamTimeoutError("Timeout waiting for stream worker")

        if self._exceptions:
            exc = self._exceptions[0]
            if isinstance(exc, LogStreamError):
                raise exc
            raise LogStreamInternalError(
                f"Internal error in stream task: {exc}"
            ) from exc

    async def __aenter__(self) -> AsyncLogcatStream:
        """Start the stream if needed and return it."""
        if self._state == StreamState.IDLE:
            await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the stream on exit."""
        await self.close()
        try:
            await self.join(timeout=self.terminate_timeout)
        except LogStreamTimeoutError:
            pass
