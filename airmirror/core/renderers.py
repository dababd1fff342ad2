"""Built-in renderers that accept and discard decoded media.

They let the receiver shell run without a media pipeline: frames are
counted and reported at debug level. Real renderers are plugged in through
the 'airmirror.backends' entry points.
"""

import asyncio
import threading
from typing import Callable, Optional

from .models import VideoFlip, VideoRotate
from .subsystems import AudioRenderer, LogLevel, VideoRenderer


class RenderLogger:
    """Log sink handed to renderers, forwarding to the bridge's log handler."""

    def __init__(self, callback: Callable[[int, str], None], level: LogLevel = LogLevel.INFO):
        self.callback = callback
        self.level = level
        self.active = False

    def init(self) -> bool:
        self.active = True
        return True

    def set_level(self, level: LogLevel):
        self.level = level

    def log(self, level: LogLevel, message: str):
        if self.active and level >= self.level:
            self.callback(level, message)

    def destroy(self):
        self.active = False


class DiscardVideoRenderer(VideoRenderer):

    def __init__(self, render_logger: RenderLogger, name: str,
                 flip: VideoFlip = VideoFlip.NONE, rotate: VideoRotate = VideoRotate.NONE,
                 sink: str = "autovideosink"):
        self.render_logger = render_logger
        self.name = name
        self.flip = flip
        self.rotate = rotate
        self.sink = sink

        self.frames = 0
        self.flushes = 0
        self.foreground = False
        self.running = False

        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_terminate: Optional[Callable[[str], None]] = None

    def init(self) -> bool:
        self.render_logger.log(
            LogLevel.DEBUG,
            f"Video renderer '{self.sink}' for {self.name} "
            f"(flip: {self.flip.name}, rotate: {self.rotate.name})"
        )
        return True

    def start(self):
        self.running = True

    def render_buffer(self, timestamp: int, payload: bytes, frame_kind: int):
        with self._lock:
            self.frames += 1
        self.render_logger.log(
            LogLevel.DEBUG,
            f"video frame pts={timestamp} size={len(payload)} kind={frame_kind}"
        )

    def flush(self):
        with self._lock:
            self.flushes += 1

    def set_foreground(self, foreground: bool):
        self.foreground = foreground

    def listen(self, loop: asyncio.AbstractEventLoop, on_terminate: Callable[[str], None]):
        with self._lock:
            self._loop = loop
            self._on_terminate = on_terminate

    def unlisten(self):
        with self._lock:
            self._loop = None
            self._on_terminate = None

    def end_of_stream(self):
        """Report end of stream; the event loop stops."""
        self._post("eos")

    def report_error(self, message: str):
        """Report a pipeline error; the event loop stops."""
        self.render_logger.log(LogLevel.ERROR, f"Video renderer error: {message}")
        self._post("error")

    def _post(self, kind: str):
        # may run on a pipeline thread
        with self._lock:
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._on_event, kind)

    def _on_event(self, kind: str):
        self.render_logger.log(LogLevel.INFO, f"Video renderer event: {kind}")
        if kind in ("eos", "error") and self._on_terminate:
            self._on_terminate(kind)

    def destroy(self):
        self.running = False
        self.unlisten()


class DiscardAudioRenderer(AudioRenderer):

    def __init__(self, render_logger: RenderLogger,
                 video_renderer: Optional[VideoRenderer] = None,
                 sink: str = "autoaudiosink"):
        self.render_logger = render_logger
        self.video_renderer = video_renderer
        self.sink = sink

        self.frames = 0
        self.flushes = 0
        self.volume = 0.0
        self.running = False
        self._lock = threading.Lock()

    def init(self) -> bool:
        self.render_logger.log(LogLevel.DEBUG, f"Audio renderer '{self.sink}'")
        return True

    def start(self):
        self.running = True

    def render_buffer(self, timestamp: int, payload: bytes):
        with self._lock:
            self.frames += 1

    def flush(self):
        with self._lock:
            self.flushes += 1

    def set_volume(self, level: float):
        self.volume = level
        self.render_logger.log(LogLevel.DEBUG, f"Audio volume set to {level}")

    def destroy(self):
        self.running = False
        self.video_renderer = None
