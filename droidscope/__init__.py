"""droidscope package.

This package turns the free-form output of Android diagnostic commands into
typed records (memory, battery, CPU, storage, packages, processes, logcat
entries) and follows logcat as a filtered, cancellable stream of entries.

Quick Start:
    ```python
    import logging
    from droidscope import (
        AdbShellExecutor,
        LogcatFilter,
        LogcatStream,
        TelemetryCollector,
    )

    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    collector = TelemetryCollector(AdbShellExecutor(serial="emulator-5554"))
    memory = collector.get_memory_info()
    logger.info("RAM: %d kB free of %d kB", memory.free_kb, memory.total_kb)

    snapshot = collector.device_snapshot()
    if snapshot.battery.ok:
        logger.info("Battery: %s%%", snapshot.battery.value)

    # Follow errors until a crash shows up
    with LogcatStream(device_id="emulator-5554",
                      filter_by=LogcatFilter(level="E")) as stream:
        for entry in stream:
            logger.info("[%s] %s: %s", entry.level, entry.tag, entry.message)
            if "FATAL EXCEPTION" in entry.message:
                logger.warning("Stopping stream...")
                break
    ```
"""

__version__ = "0.1.0"

from .exceptions import (
    DeviceFileNotFoundError,
    DroidScopeError,
    ExecutionError,
    LogStreamError,
    LogStreamInternalError,
    LogStreamStartError,
    LogStreamStateError,
    LogStreamTimeoutError,
    MissingFieldError,
    OutputDecodeError,
    PackageNotFoundError,
    ParseError,
    ProcessNotFoundError,
    TransportError,
)
from .executor import AdbShellExecutor, CommandExecutor
from .filters import LogcatFilter, filter_entries
from .models import LogcatBuffer, LogcatEntry, LogLevel
from .parsers import LogcatParser, parse_logcat_line, parse_logcat_output
from .streams import (
    AsyncLogcatStream,
    LogcatStream,
    StreamCloseReason,
    StreamState,
    stream_logcat,
)
from .telemetry import (
    DeviceSnapshot,
    Outcome,
    OutcomeStatus,
    PerformanceSnapshot,
    TelemetryCollector,
)
from .utils import enable_debug, resolve_adb

__all__ = [
    "AdbShellExecutor",
    "AsyncLogcatStream",
    "CommandExecutor",
    "DeviceFileNotFoundError",
    "DeviceSnapshot",
    "DroidScopeError",
    "ExecutionError",
    "LogLevel",
    "LogStreamError",
    "LogStreamInternalError",
    "LogStreamStartError",
    "LogStreamStateError",
    "LogStreamTimeoutError",
    "LogcatBuffer",
    "LogcatEntry",
    "LogcatFilter",
    "LogcatParser",
    "LogcatStream",
    "MissingFieldError",
    "Outcome",
    "OutcomeStatus",
    "OutputDecodeError",
    "PackageNotFoundError",
    "ParseError",
    "PerformanceSnapshot",
    "ProcessNotFoundError",
    "StreamCloseReason",
    "StreamState",
    "TelemetryCollector",
    "TransportError",
    "enable_debug",
    "filter_entries",
    "parse_logcat_line",
    "parse_logcat_output",
    "resolve_adb",
    "stream_logcat",
]
