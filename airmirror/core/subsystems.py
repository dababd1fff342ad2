"""Interfaces of the external subsystems driven by the controller.

The protocol engine, the discovery registrar and the renderers are opaque
to airmirror: it only initializes, starts and destroys them, and forwards
data between them through the callback bridge.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Callable

from .models import DisplaySettings, PortTriple


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class MediaType(Enum):
    AUDIO = "audio"
    VIDEO = "video"


class ProtocolEngine(ABC):
    """Streaming protocol engine; reports to a CallbackBridge given at construction."""

    @abstractmethod
    def init(self) -> bool:
        pass

    @abstractmethod
    def set_display(self, display: DisplaySettings) -> None:
        pass

    @abstractmethod
    def set_ports(self, tcp: PortTriple, udp: PortTriple) -> None:
        pass

    @abstractmethod
    def set_log_level(self, level: LogLevel) -> None:
        pass

    @abstractmethod
    def start(self) -> int:
        """Start listening and return the port actually bound."""

    @abstractmethod
    def destroy(self) -> None:
        pass


class DiscoveryRegistrar(ABC):
    """Advertises the receiver on the local network."""

    @abstractmethod
    def init(self) -> bool:
        pass

    @abstractmethod
    def register_raop(self, port: int) -> None:
        pass

    @abstractmethod
    def register_airplay(self, port: int) -> None:
        pass

    @abstractmethod
    def unregister_raop(self) -> None:
        pass

    @abstractmethod
    def unregister_airplay(self) -> None:
        pass

    @abstractmethod
    def destroy(self) -> None:
        pass


class VideoRenderer(ABC):

    @abstractmethod
    def init(self) -> bool:
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def render_buffer(self, timestamp: int, payload: bytes, frame_kind: int) -> None:
        pass

    @abstractmethod
    def flush(self) -> None:
        pass

    @abstractmethod
    def set_foreground(self, foreground: bool) -> None:
        pass

    @abstractmethod
    def listen(self, loop: asyncio.AbstractEventLoop, on_terminate: Callable[[str], None]) -> None:
        """Deliver the renderer's own events to the event loop.

        Args:
            loop: Event loop of the current run attempt
            on_terminate: Called on the loop thread with a reason when the
                          renderer wants the loop to stop
        """

    @abstractmethod
    def unlisten(self) -> None:
        """Stop delivering events; called before the loop is closed."""

    @abstractmethod
    def destroy(self) -> None:
        pass


class AudioRenderer(ABC):

    @abstractmethod
    def init(self) -> bool:
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def render_buffer(self, timestamp: int, payload: bytes) -> None:
        pass

    @abstractmethod
    def flush(self) -> None:
        pass

    @abstractmethod
    def set_volume(self, level: float) -> None:
        pass

    @abstractmethod
    def destroy(self) -> None:
        pass
