"""Per-run mutable state owned by the lifecycle controller."""

import threading
from typing import Optional

from .subsystems import AudioRenderer, DiscoveryRegistrar, ProtocolEngine, VideoRenderer
from .renderers import RenderLogger
from ..utils import logger


class ConnectionTracker:
    """Open-connection counter and idle-second accounting.

    Connection events arrive from the protocol engine's threads while the
    watchdog tick reads the counters from the event loop thread, so every
    access goes through one lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._open_connections = 0
        self._idle_seconds = 0
        self._idle_watch_active = True

    @property
    def open_connections(self) -> int:
        with self._lock:
            return self._open_connections

    @property
    def idle_seconds(self) -> int:
        with self._lock:
            return self._idle_seconds

    @property
    def idle_watch_active(self) -> bool:
        with self._lock:
            return self._idle_watch_active

    def opened(self) -> int:
        """Record a new client connection.

        Returns:
            int: Number of open connections afterwards
        """
        with self._lock:
            self._open_connections += 1
            self._idle_watch_active = False
            self._idle_seconds = 0
            return self._open_connections

    def closed(self) -> int:
        """Record a closed client connection.

        Returns:
            int: Number of open connections afterwards
        """
        with self._lock:
            if self._open_connections == 0:
                logger.warn("Connection closed while none were open")
                return 0
            self._open_connections -= 1
            if self._open_connections == 0:
                self._idle_watch_active = True
            return self._open_connections

    def tick(self) -> int:
        """Advance idle accounting by one tick.

        Returns:
            int: Seconds without an open connection
        """
        with self._lock:
            if self._open_connections > 0 or not self._idle_watch_active:
                self._idle_seconds = 0
            else:
                self._idle_seconds += 1
            return self._idle_seconds

    def reset(self):
        with self._lock:
            self._open_connections = 0
            self._idle_seconds = 0
            self._idle_watch_active = True


class RuntimeState:
    """Subsystem handles and connection accounting for one run attempt."""

    def __init__(self):
        self.engine: Optional[ProtocolEngine] = None
        self.registrar: Optional[DiscoveryRegistrar] = None
        self.video_renderer: Optional[VideoRenderer] = None
        self.audio_renderer: Optional[AudioRenderer] = None
        self.render_logger: Optional[RenderLogger] = None
        self.connections = ConnectionTracker()
        self.relaunch_requested = False

    def is_empty(self) -> bool:
        return all(handle is None for handle in (
            self.engine, self.registrar, self.video_renderer,
            self.audio_renderer, self.render_logger,
        ))
