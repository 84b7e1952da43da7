"""Thread-based logcat stream."""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
import time
from collections import deque
from collections.abc import Iterator, Sequence
from typing import Any, TextIO

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
    TERMINAL_STATES,
    StateCallback,
    StreamCloseReason,
    StreamState,
    build_logcat_command,
)

logger = logging.getLogger(__name__)


class LogcatStream:
    """Follows a logcat buffer and delivers parsed, filtered entries.

    `start()` spawns ``adb logcat -v threadtime -b <buffer>``. One worker
    thread reads stdout, parses each non-blank line, applies the filter and
    puts accepted entries on a bounded queue. When the queue is full the
    worker waits, so entries are never dropped or reordered. A second thread
    drains stderr into the log.

    The stream ends on `cancel()`, on `close()` or when logcat exits. In each
    case the child process is terminated before the worker is joined.
    Entries accepted before the end stay readable; iteration stops once they
    are consumed. A stream cannot be restarted.

    Usage:
        ```python
        from droidscope import LogcatFilter, LogcatStream

        with LogcatStream(device_id="emulator-5554",
                          filter_by=LogcatFilter(level="E")) as stream:
            for entry in stream:
                print(entry.tag, entry.message)
                if "FATAL" in entry.message:
                    break
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
        on_state: StateCallback | None = None,
    ) -> None:
        """Initialize the LogcatStream.

        Args:
            adb_path: Path to ADB executable. If None, resolved on start.
            device_id: Target device serial ID.
            buffer: Logcat buffer to follow.
            filter_by: Predicate applied to each entry, typically a
                LogcatFilter. None accepts everything.
            parser: Parser for logcat lines. Defaults to `LogcatParser()`.
            logcat_args: Additional arguments for `adb logcat`.
            max_queue_size: Capacity of the delivery queue. When full, the
                worker blocks until the consumer catches up.
            poll_interval: Seconds between cancellation checks while blocked.
            terminate_timeout: Seconds to wait after terminating the child
                before killing it.
            on_state: Hook called on every state change.
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

        self._queue: queue.Queue[LogcatEntry] = queue.Queue(maxsize=max_queue_size)
        self._exceptions: queue.Queue[Exception] = queue.Queue()
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_SIZE)

        self._process: subprocess.Popen[str] | None = None
        self._worker_thread: threading.Thread | None = None
        self._stderr_thread: threading.Thread | None = None

        self._state = StreamState.IDLE
        self._state_lock = threading.RLock()
        self._close_reason: StreamCloseReason | None = None
        self._cancel_event = threading.Event()
        self._consumer_closed = threading.Event()
        self._finished = threading.Event()
        self._terminated = False

    @property
    def state(self) -> StreamState:
        """Current state of the stream."""
        with self._state_lock:
            return self._state

    @property
    def close_reason(self) -> StreamCloseReason | None:
        """Why the stream stopped streaming, or None while it is running."""
        with self._state_lock:
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

    def _set_state(self, new_state: StreamState) -> None:
        with self._state_lock:
            if self._state == new_state or self._state in TERMINAL_STATES:
                return
            logger.debug(f"LogcatStream state: {self._state.name} -> {new_state.name}")
            self._state = new_state

        if self.on_state:
            try:
                self.on_state(new_state)
            except Exception as e:
                logger.error(f"Error in on_state callback: {e}")

    def _begin_drain(self, reason: StreamCloseReason) -> bool:
        """Record the close reason and enter DRAINING.

        Returns:
            False if the stream was already draining or closed.
        """
        with self._state_lock:
            if self._close_reason is not None:
                return False
            self._close_reason = reason
        self._set_state(StreamState.DRAINING)
        return True

    def start(self) -> LogcatStream:
        """Spawn logcat and start the worker.

        Returns:
            The stream itself, for chaining.

        Raises:
            LogStreamStateError: If the stream is not IDLE.
            LogStreamStartError: If adb cannot be found or spawned. The
                stream is left in the FAILED state.
        """
        with self._state_lock:
            if self._state != StreamState.IDLE:
                raise LogStreamStateError(
                    f"Cannot start stream from state {self._state.name}"
                )
            self._set_state(StreamState.STARTING)

        try:
            if self.adb_path is None:
                self.adb_path = resolve_adb()
            process = subprocess.Popen(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,  # Line buffered
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as e:
            self._fail()
            raise LogStreamStartError(f"Failed to start logcat: {e}") from e

        self._process = process
        if process.stdout is None:
            self._terminate_process()
            self._fail()
            raise LogStreamStartError("Failed to capture logcat stdout")

        self._set_state(StreamState.STREAMING)

        self._stderr_thread = threading.Thread(
            target=self._drain_stderr,
            args=(process.stderr,),
            name="LogcatStream-Stderr",
            daemon=True,
        )
        self._worker_thread = threading.Thread(
            target=self._read_loop,
            args=(process.stdout,),
            name="LogcatStream-Worker",
            daemon=True,
        )
        self._stderr_thread.start()
        self._worker_thread.start()
        return self

    def _fail(self) -> None:
        self._set_state(StreamState.FAILED)
        self._finished.set()

    def _read_loop(self, pipe: TextIO) -> None:
        """Worker: read, parse, filter and deliver until told to stop."""
        reason = StreamCloseReason.END_OF_STREAM
        try:
            while not self._cancel_event.is_set():
                line = pipe.readline()
                if not line:
                    # EOF
                    break
                if not line.strip():
                    continue

                entry = self.parser.parse(line)
                if self.filter_by is not None and not self.filter_by(entry):
                    continue
                if not self._send(entry):
                    break
        except Exception as e:
            logger.error(f"LogcatStream worker failed: {e}")
            self._exceptions.put(e)
            reason = StreamCloseReason.ERROR
        finally:
            if self._consumer_closed.is_set():
                reason = StreamCloseReason.CONSUMER_CLOSED
            elif self._cancel_event.is_set() and reason is not StreamCloseReason.ERROR:
                reason = StreamCloseReason.CANCELLED
            self._begin_drain(reason)
            self._terminate_process()
            if self._stderr_thread is not None:
                self._stderr_thread.join(timeout=self.terminate_timeout)
            self._finished.set()
            self._set_state(StreamState.CLOSED)

    def _send(self, entry: LogcatEntry) -> bool:
        """Put an entry on the queue, waiting while it is full.

        Returns:
            False if the consumer closed the stream or it was cancelled.
        """
        while True:
            if self._consumer_closed.is_set() or self._cancel_event.is_set():
                return False
            try:
                self._queue.put(entry, timeout=self.poll_interval)
                return True
            except queue.Full:
                continue

    def _drain_stderr(self, pipe: TextIO | None) -> None:
        if pipe is None:
            return
        try:
            for line in iter(pipe.readline, ""):
                line = line.rstrip()
                if line:
                    self._stderr_tail.append(line)
                    logger.debug(f"logcat stderr: {line}")
        except (OSError, ValueError) as e:
            logger.debug(f"Stopped reading logcat stderr: {e}")

    def _terminate_process(self) -> None:
        """Terminate the child, killing it if it does not exit in time.

        Safe to call more than once. Failures are logged, not raised.
        """
        with self._state_lock:
            process = self._process
            if process is None or self._terminated:
                return
            self._terminated = True

        try:
            if process.poll() is not None:
                return
            process.terminate()
            try:
                process.wait(timeout=self.terminate_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("logcat did not exit after terminate. Killing it.")
                process.kill()
                process.wait(timeout=self.terminate_timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Failed to terminate logcat process: {e}")

    def _stop(self, reason: StreamCloseReason) -> None:
        with self._state_lock:
            state = self._state
        if state in TERMINAL_STATES:
            return
        if state == StreamState.IDLE:
            with self._state_lock:
                self._close_reason = reason
            self._finished.set()
            self._set_state(StreamState.CLOSED)
            return

        self._cancel_event.set()
        self._begin_drain(reason)
        self._terminate_process()

        worker = self._worker_thread
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=self.terminate_timeout + self.poll_interval)
            if worker.is_alive():
                logger.warning("LogcatStream worker did not exit in time")

    def cancel(self) -> None:
        """Stop streaming and wait for the worker to exit.

        Entries already queued remain readable.
        """
        self._stop(StreamCloseReason.CANCELLED)

    def close(self) -> None:
        """Stop streaming because the consumer no longer reads.

        Queued entries are discarded and iteration ends immediately.
        """
        self._consumer_closed.set()
        self._stop(StreamCloseReason.CONSUMER_CLOSED)

    def get(self, timeout: float | None = None) -> LogcatEntry | None:
        """Wait for the next entry.

        Args:
            timeout: Maximum time to wait in seconds. None waits until an
                entry arrives or the stream ends.

        Returns:
            The next entry, or None once the stream has ended and every
            queued entry has been read.

        Raises:
            LogStreamStateError: If the stream was never started.
            LogStreamTimeoutError: If no entry arrives within ``timeout``.
        """
        if self.state == StreamState.IDLE:
            raise LogStreamStateError("Stream has not been started")

        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._consumer_closed.is_set():
            wait = self.poll_interval
            if deadline is not None:
                wait = min(wait, max(deadline - time.monotonic(), 0.0))
            try:
                return self._queue.get(timeout=wait)
            except queue.Empty:
                # The worker sets _finished only after its last put
                if self._finished.is_set() and self._queue.empty():
                    return None
                if deadline is not None and time.monotonic() >= deadline:
                    raise LogStreamTimeoutError(
                        f"No log entry within {timeout}s"
                    ) from None
        return None

    def __iter__(self) -> Iterator[LogcatEntry]:
        """Yield entries until the stream ends.

        Leaving the loop early, or dropping the iterator, closes the stream
        so logcat does not keep running in the background.
        """
        try:
            while True:
                entry = self.get()
                if entry is None:
                    return
                yield entry
        except GeneratorExit:
            self.close()
            raise

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker to finish.

        Args:
            timeout: Maximum time to wait in seconds.

        Raises:
            LogStreamTimeoutError: If timeout expires.
            LogStreamInternalError: If the worker failed.
        """
        if self._worker_thread is not None:
            self._worker_thread.join(timeout=timeout)
            if self._worker_thread.is_alive():
                raise LogStreamTimeoutError("Timeout waiting for stream worker")

        if not self._exceptions.empty():
            exc = self._exceptions.get()
            if isinstance(exc, LogStreamError):
                raise exc
            raise LogStreamInternalError(
                f"Internal error in stream worker: {exc}"
            ) from exc

    def __enter__(self) -> LogcatStream:
        """Start the stream if needed and return it."""
        if self.state == StreamState.IDLE:
            self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the stream on exit."""
        self.close()
        try:
            self.join(timeout=self.terminate_timeout)
        except LogStreamTimeoutError:
            pass


def stream_logcat(
    device_id: str | None = None,
    buffer: LogcatBuffer = LogcatBuffer.DEFAULT,
    filter_by: EntryPredicate | None = None,
    **kwargs: Any,
) -> LogcatStream:
    """Create and start a LogcatStream.

    Args:
        device_id: Target device serial ID.
        buffer: Logcat buffer to follow.
        filter_by: Predicate applied to each entry.
        **kwargs: Further LogcatStream arguments.

    Returns:
        The started stream.

    Raises:
        LogStreamStartError: If logcat cannot be spawned.
    """
    stream = LogcatStream(
        device_id=device_id, buffer=buffer, filter_by=filter_by, **kwargs
    )
    return stream.start()
