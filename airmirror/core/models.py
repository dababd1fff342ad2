"""Validated configuration model shared by the parser and the controller."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Tuple

LOWEST_ALLOWED_PORT = 1024
HIGHEST_PORT = 65535

MAX_DIMENSION = 9999
MAX_REFRESH_RATE = 255
MAX_FPS = 255
MAX_IDLE_TIMEOUT = 2 ** 32 - 1

HW_ADDR_LENGTH = 6

DEFAULT_NAME = "AirMirror"
DEFAULT_VIDEO_SINK = "autovideosink"
DEFAULT_AUDIO_SINK = "autoaudiosink"

# Sink name that turns the corresponding media type off
DISABLED_SINK = "0"


class VideoFlip(Enum):
    NONE = "none"
    HORIZONTAL = "H"
    VERTICAL = "V"
    INVERT = "I"


class VideoRotate(Enum):
    NONE = "none"
    LEFT = "L"
    RIGHT = "R"


@dataclass(frozen=True)
class DisplaySettings:
    """Display geometry and frame rate advertised to clients."""
    width: int = 1920
    height: int = 1080
    refresh_rate: int = 60
    max_fps: int = 30
    overscan: bool = False

    def __post_init__(self):
        if not 1 <= self.width <= MAX_DIMENSION:
            raise ValueError(f"display width {self.width} out of range [1, {MAX_DIMENSION}]")
        if not 1 <= self.height <= MAX_DIMENSION:
            raise ValueError(f"display height {self.height} out of range [1, {MAX_DIMENSION}]")
        if not 1 <= self.refresh_rate <= MAX_REFRESH_RATE:
            raise ValueError(f"refresh rate {self.refresh_rate} out of range [1, {MAX_REFRESH_RATE}]")
        if not 0 <= self.max_fps <= MAX_FPS:
            raise ValueError(f"max fps {self.max_fps} out of range [0, {MAX_FPS}]")


@dataclass(frozen=True)
class PortTriple:
    """Three ports of one family (TCP or UDP); 0 means dynamically assigned."""
    first: int = 0
    second: int = 0
    third: int = 0

    def __post_init__(self):
        explicit = []
        for port in self:
            if port == 0:
                continue
            if not LOWEST_ALLOWED_PORT <= port <= HIGHEST_PORT:
                raise ValueError(f"port {port} out of range [{LOWEST_ALLOWED_PORT}, {HIGHEST_PORT}]")
            if port in explicit:
                raise ValueError(f"port {port} used twice")
            explicit.append(port)

    @classmethod
    def from_iterable(cls, ports) -> 'PortTriple':
        ports = tuple(ports)
        if len(ports) != 3:
            raise ValueError(f"expected 3 ports, got {len(ports)}")
        return cls(*ports)

    @classmethod
    def legacy_tcp(cls) -> 'PortTriple':
        return cls(7100, 7000, 7001)

    @classmethod
    def legacy_udp(cls) -> 'PortTriple':
        return cls(7011, 6001, 6000)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.first, self.second, self.third)

    def is_dynamic(self) -> bool:
        return self.as_tuple() == (0, 0, 0)

    def __iter__(self) -> Iterator[int]:
        return iter(self.as_tuple())

    def __getitem__(self, index: int) -> int:
        return self.as_tuple()[index]

    def __len__(self) -> int:
        return 3

    def __str__(self) -> str:
        return " ".join(str(port) for port in self)


@dataclass(frozen=True)
class Config:
    """Runtime configuration, built once and reused across relaunches."""
    name: str = DEFAULT_NAME
    hw_addr: bytes = bytes(HW_ADDR_LENGTH)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    tcp_ports: PortTriple = field(default_factory=PortTriple)
    udp_ports: PortTriple = field(default_factory=PortTriple)
    video_flip: VideoFlip = VideoFlip.NONE
    video_rotate: VideoRotate = VideoRotate.NONE
    video_sink: str = DEFAULT_VIDEO_SINK
    audio_sink: str = DEFAULT_AUDIO_SINK
    use_audio: bool = True
    debug_log: bool = False
    idle_timeout: int = 0

    def __post_init__(self):
        if len(self.hw_addr) != HW_ADDR_LENGTH:
            raise ValueError(f"hardware address must be {HW_ADDR_LENGTH} bytes, got {len(self.hw_addr)}")
        if not 0 <= self.idle_timeout <= MAX_IDLE_TIMEOUT:
            raise ValueError(f"idle timeout {self.idle_timeout} out of range")

    @property
    def use_video(self) -> bool:
        return self.video_sink != DISABLED_SINK

    @property
    def hw_addr_string(self) -> str:
        return ":".join(f"{octet:02x}" for octet in self.hw_addr)
