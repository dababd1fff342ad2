"""Callback bridge between the protocol engine and the rest of the stack."""

from typing import Dict

from .state import RuntimeState
from .subsystems import LogLevel, MediaType
from ..utils import logger

AUDIO_FORMATS: Dict[int, str] = {
    0x1000000: "AAC_ELD",
    0x40000: "ALAC",
    0x400000: "AAC",
    0x0: "PCM",
}


def audio_format_label(code: int) -> str:
    return AUDIO_FORMATS.get(code, "UNKNOWN")


class CallbackBridge:
    """Notification handlers the protocol engine calls, bound to one run's state.

    Handlers may be invoked from the engine's threads. They only read the
    subsystem handles; creating and destroying them is the controller's job.
    """

    def __init__(self, state: RuntimeState):
        """Initialize bridge.

        Args:
            state: RuntimeState of the run attempt this bridge serves
        """
        self.state = state

    def on_connection_open(self):
        count = self.state.connections.opened()
        logger.info(f"Open connections: {count}")
        if self.state.video_renderer is not None:
            self.state.video_renderer.set_foreground(True)

    def on_connection_close(self):
        if self.state.video_renderer is not None:
            self.state.video_renderer.set_foreground(False)
        count = self.state.connections.closed()
        logger.info(f"Open connections: {count}")

    def on_audio_frame(self, timestamp: int, payload: bytes):
        renderer = self.state.audio_renderer
        if renderer is not None:
            renderer.render_buffer(timestamp, payload)

    def on_video_frame(self, timestamp: int, payload: bytes, frame_kind: int):
        renderer = self.state.video_renderer
        if renderer is not None:
            renderer.render_buffer(timestamp, payload, frame_kind)

    def on_flush(self, media_type: MediaType):
        if media_type is MediaType.AUDIO:
            renderer = self.state.audio_renderer
        else:
            renderer = self.state.video_renderer
        if renderer is not None:
            renderer.flush()

    def on_volume_change(self, level: float):
        renderer = self.state.audio_renderer
        if renderer is not None:
            renderer.set_volume(level)

    def on_format_negotiated(self, code: int) -> str:
        label = audio_format_label(code)
        logger.info(f"New audio connection with audio format 0x{code:X} {label}")
        return label

    def on_log(self, level: int, message: str):
        if level < LogLevel.DEBUG:
            return
        logger.log(level, message)
