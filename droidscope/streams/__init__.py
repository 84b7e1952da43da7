from .async_stream import AsyncLogcatStream
from .common import StreamCloseReason, StreamState, build_logcat_command
from .sync import LogcatStream, stream_logcat

__all__ = [
    "AsyncLogcatStream",
    "LogcatStream",
    "StreamCloseReason",
    "StreamState",
    "build_logcat_command",
    "stream_logcat",
]
