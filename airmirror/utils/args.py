"""Command line parsing and validation.

Every option value is validated where it is read. Any problem raises
ArgumentError naming the option and the offending value; no partially
parsed configuration is ever returned.
"""

import platform
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..core.models import (
    Config, DisplaySettings, PortTriple, VideoFlip, VideoRotate,
    DEFAULT_NAME, DEFAULT_VIDEO_SINK, DEFAULT_AUDIO_SINK, DISABLED_SINK,
    LOWEST_ALLOWED_PORT, HIGHEST_PORT, MAX_FPS, MAX_IDLE_TIMEOUT, MAX_REFRESH_RATE,
)
from .hwaddr import resolve_hw_addr

NPORTS = 3

FLIP_CODES = {
    "H": VideoFlip.HORIZONTAL,
    "V": VideoFlip.VERTICAL,
    "I": VideoFlip.INVERT,
}

ROTATE_CODES = {
    "L": VideoRotate.LEFT,
    "R": VideoRotate.RIGHT,
}

_DIGITS = frozenset("0123456789")


class ArgumentError(Exception):
    """Malformed, out-of-range, unknown or missing command line value."""

    def __init__(self, option: str, value: Optional[str], reason: str):
        self.option = option
        self.value = value
        self.reason = reason
        if value is None:
            super().__init__(f"invalid \"{option}\": {reason}")
        else:
            super().__init__(f"invalid \"{option} {value}\": {reason}")


class HelpRequested(Exception):
    """Raised for -h / -v; the caller prints usage and exits successfully."""


def _decimal(text: str, max_digits: int) -> Optional[int]:
    """Unsigned decimal with at most max_digits digits, or None."""
    if not text or len(text) > max_digits or text[0] == '-':
        return None
    if any(c not in _DIGITS for c in text):
        return None
    return int(text)


def option_has_value(tokens: Sequence[str], index: int) -> bool:
    """Check that the option at index is followed by a value.

    A following token that starts with '-' is another option, not a value.
    """
    return index + 1 < len(tokens) and not tokens[index + 1].startswith('-')


def parse_display(value: str, option: str = "-s") -> Tuple[int, int, Optional[int]]:
    """Parse 'wxh' or 'wxh@r'.

    Args:
        value: Display geometry text
        option: Option name used in diagnostics

    Returns:
        Tuple of width, height and refresh rate (None when not given)
    """
    hint = f"-s wxh : max w,h=9999; -s wxh@r : max r={MAX_REFRESH_RATE}"
    if 'x' not in value:
        raise ArgumentError(option, value, hint)

    width_text, rest = value.split('x', 1)
    width = _decimal(width_text, 4)
    if not width:
        raise ArgumentError(option, value, hint)

    refresh_rate = None
    if '@' in rest:
        rest, refresh_text = rest.split('@', 1)
        refresh_rate = _decimal(refresh_text, 3)
        if not refresh_rate or refresh_rate > MAX_REFRESH_RATE:
            raise ArgumentError(option, value, hint)

    height = _decimal(rest, 4)
    if not height:
        raise ArgumentError(option, value, hint)

    return width, height, refresh_rate


def parse_value(value: str, ceiling: int, option: str) -> int:
    """Parse a positive decimal no larger than ceiling (0 means no ceiling)."""
    number = _decimal(value, 10)
    if not number or (ceiling > 0 and number > ceiling):
        if ceiling > 0:
            raise ArgumentError(option, value, f"must be a positive integer <= {ceiling}")
        raise ArgumentError(option, value, "must be a positive integer")
    return number


def parse_ports(value: str, option: str, nports: int = NPORTS) -> Tuple[int, ...]:
    """Parse 'p1[,p2[,p3]]' into nports distinct ports.

    Missing trailing ports are consecutive to the last given one. At least
    one port must be given.

    Args:
        value: Comma-separated port list
        option: Option name used in diagnostics
        nports: Number of ports in the family

    Returns:
        Tuple of nports ports
    """
    reason = (f"all {nports} ports must be distinct and in range "
              f"[{LOWEST_ALLOWED_PORT},{HIGHEST_PORT}]")
    ports: List[int] = []
    remaining = value
    for index in range(nports):
        token, separator, remaining = remaining.partition(',')
        port = _decimal(token, 5)
        if port is None or not LOWEST_ALLOWED_PORT <= port <= HIGHEST_PORT:
            raise ArgumentError(option, value, reason)
        if port in ports:
            raise ArgumentError(option, value, reason)
        ports.append(port)

        if not separator:
            if port + (nports - index - 1) > HIGHEST_PORT:
                raise ArgumentError(option, value, reason)
            while len(ports) < nports:
                ports.append(ports[-1] + 1)
            if len(set(ports)) != nports:
                raise ArgumentError(option, value, reason)
            return tuple(ports)

    # more than nports values
    raise ArgumentError(option, value, reason)


def parse_flip(value: str, option: str = "-f") -> VideoFlip:
    if len(value) != 1 or value not in FLIP_CODES:
        raise ArgumentError(option, value, "unknown flip type, choices are H, V, I")
    return FLIP_CODES[value]


def parse_rotate(value: str, option: str = "-r") -> VideoRotate:
    if len(value) != 1 or value not in ROTATE_CODES:
        raise ArgumentError(option, value, "unknown rotation type, choices are R, L")
    return ROTATE_CODES[value]


def usage(program: str, version: str) -> str:
    lines = [
        f"airmirror {version}: An open-source AirPlay mirroring receiver shell",
        f"Usage: {program} [-n name] [-s wxh] [-p [n]]",
        "Options:",
        "-n name   Specify the network name of the AirPlay server",
        "-s wxh[@r]Set display resolution [refresh_rate] default 1920x1080[@60]",
        "-o        Set mirror \"overscanned\" mode on (not usually needed)",
        f"-fps n    Set maximum allowed streaming framerate, default 30, max {MAX_FPS}",
        "-f {H|V|I}Horizontal|Vertical flip, or both=Inversion=rotate 180 deg",
        "-r {R|L}  Rotate 90 degrees Right (cw) or Left (ccw)",
        "-p        Use legacy ports UDP 6000:6001:7011 TCP 7000:7001:7100",
        f"-p n      Use TCP and UDP ports n,n+1,n+2. range {LOWEST_ALLOWED_PORT}-{HIGHEST_PORT}",
        "          use \"-p n1,n2,n3\" to set each port, \"n1,n2\" for n3 = n2+1",
        "          \"-p tcp n\" or \"-p udp n\" sets TCP or UDP ports only",
        "-m        Use random MAC address (use for concurrent receivers)",
        "-t n      Relaunch server if no connection existed in last n seconds",
        f"-vs sink  Choose the videosink; default \"{DEFAULT_VIDEO_SINK}\"",
        "-vs 0     Streamed audio only, with no video display window",
        f"-as sink  Choose the audiosink; default \"{DEFAULT_AUDIO_SINK}\"",
        "-as 0     (or -a)  Turn audio off, video output only",
        "-d        Enable debug logging",
        "-v or -h  Displays this help and version information",
    ]
    return "\n".join(lines)


class CommandLineParser:
    """Turns a token list into a validated Config."""

    def __init__(self, hostname: Optional[str] = None,
                 resolver: Callable[..., bytes] = resolve_hw_addr):
        """Initialize parser.

        Args:
            hostname: Suffix appended to the server name; None looks up the
                      local host name, empty string appends nothing
            resolver: Hardware address resolver, called with force_random
        """
        self.hostname = hostname
        self.resolver = resolver
        self._handlers: Dict[str, Callable[[Sequence[str], int], int]] = {
            "-n": self._name,
            "-s": self._display,
            "-fps": self._fps,
            "-o": self._overscan,
            "-f": self._flip,
            "-r": self._rotate,
            "-p": self._ports,
            "-m": self._random_hw_addr,
            "-a": self._no_audio,
            "-d": self._debug,
            "-vs": self._video_sink,
            "-as": self._audio_sink,
            "-t": self._timeout,
            "-h": self._help,
            "-v": self._help,
        }
        self._reset()

    def _reset(self):
        self.name = DEFAULT_NAME
        self.width = None
        self.height = None
        self.refresh_rate = None
        self.max_fps = None
        self.overscan = False
        self.tcp_ports = PortTriple()
        self.udp_ports = PortTriple()
        self.video_flip = VideoFlip.NONE
        self.video_rotate = VideoRotate.NONE
        self.video_sink = DEFAULT_VIDEO_SINK
        self.audio_sink = DEFAULT_AUDIO_SINK
        self.use_audio = True
        self.use_random_hw_addr = False
        self.debug_log = False
        self.idle_timeout = 0

    def parse(self, tokens: Sequence[str]) -> Config:
        """Parse command line tokens (without the program name).

        Raises:
            ArgumentError: On any invalid option or value
            HelpRequested: When -h or -v is given
        """
        self._reset()
        tokens = list(tokens)
        index = 0
        while index < len(tokens):
            option = tokens[index]
            handler = self._handlers.get(option)
            if handler is None:
                raise ArgumentError(option, None, "unknown option")
            index = handler(tokens, index) + 1
        return self._build()

    def _value(self, tokens: Sequence[str], index: int) -> str:
        if not option_has_value(tokens, index):
            raise ArgumentError(tokens[index], None, "had no argument")
        return tokens[index + 1]

    def _name(self, tokens, index):
        self.name = self._value(tokens, index)
        return index + 1

    def _display(self, tokens, index):
        value = self._value(tokens, index)
        self.width, self.height, refresh_rate = parse_display(value, tokens[index])
        if refresh_rate is not None:
            self.refresh_rate = refresh_rate
        return index + 1

    def _fps(self, tokens, index):
        value = self._value(tokens, index)
        self.max_fps = parse_value(value, MAX_FPS, tokens[index])
        return index + 1

    def _overscan(self, tokens, index):
        self.overscan = True
        return index

    def _flip(self, tokens, index):
        self.video_flip = parse_flip(self._value(tokens, index), tokens[index])
        return index + 1

    def _rotate(self, tokens, index):
        self.video_rotate = parse_rotate(self._value(tokens, index), tokens[index])
        return index + 1

    def _ports(self, tokens, index):
        if not option_has_value(tokens, index):
            self.tcp_ports = PortTriple.legacy_tcp()
            self.udp_ports = PortTriple.legacy_udp()
            return index

        value = tokens[index + 1]
        if value in ("tcp", "udp"):
            option = f"{tokens[index]} {value}"
            if not option_has_value(tokens, index + 1):
                raise ArgumentError(option, None, "had no argument")
            ports = PortTriple.from_iterable(parse_ports(tokens[index + 2], option))
            if value == "tcp":
                self.tcp_ports = ports
            else:
                self.udp_ports = ports
            return index + 2

        ports = PortTriple.from_iterable(parse_ports(value, tokens[index]))
        self.tcp_ports = ports
        self.udp_ports = ports
        return index + 1

    def _random_hw_addr(self, tokens, index):
        self.use_random_hw_addr = True
        return index

    def _no_audio(self, tokens, index):
        self.use_audio = False
        return index

    def _debug(self, tokens, index):
        self.debug_log = not self.debug_log
        return index

    def _video_sink(self, tokens, index):
        self.video_sink = self._value(tokens, index)
        return index + 1

    def _audio_sink(self, tokens, index):
        self.audio_sink = self._value(tokens, index)
        return index + 1

    def _timeout(self, tokens, index):
        value = self._value(tokens, index)
        if _decimal(value, 10) == 0:
            self.idle_timeout = 0
        else:
            self.idle_timeout = parse_value(value, MAX_IDLE_TIMEOUT, tokens[index])
        return index + 1

    def _help(self, tokens, index):
        raise HelpRequested()

    def _build(self) -> Config:
        defaults = DisplaySettings()
        max_fps = self.max_fps if self.max_fps is not None else defaults.max_fps
        if self.video_sink == DISABLED_SINK:
            # audio only: the client is asked for one frame per second
            max_fps = 1

        display = DisplaySettings(
            width=self.width or defaults.width,
            height=self.height or defaults.height,
            refresh_rate=self.refresh_rate or defaults.refresh_rate,
            max_fps=max_fps,
            overscan=self.overscan,
        )

        hostname = platform.node() if self.hostname is None else self.hostname
        name = f"{self.name}@{hostname}" if hostname else self.name

        return Config(
            name=name,
            hw_addr=self.resolver(force_random=self.use_random_hw_addr),
            display=display,
            tcp_ports=self.tcp_ports,
            udp_ports=self.udp_ports,
            video_flip=self.video_flip,
            video_rotate=self.video_rotate,
            video_sink=self.video_sink,
            audio_sink=self.audio_sink,
            use_audio=self.use_audio and self.audio_sink != DISABLED_SINK,
            debug_log=self.debug_log,
            idle_timeout=self.idle_timeout,
        )


def parse_args(tokens: Sequence[str], hostname: Optional[str] = None,
               resolver: Callable[..., bytes] = resolve_hw_addr) -> Config:
    return CommandLineParser(hostname=hostname, resolver=resolver).parse(tokens)
