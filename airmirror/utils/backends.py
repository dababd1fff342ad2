"""Subsystem backend selection.

Backends are looked up by kind and name: built-in ones first, then the
'airmirror.backends' entry-point group, whose entries are named
'<kind>.<name>' (for example 'engine.raop' or 'video.gstreamer').
"""

from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Callable, Dict, Optional

from ..core.discovery import ZeroconfRegistrar
from ..core.engine import TcpListenerEngine
from ..core.renderers import DiscardAudioRenderer, DiscardVideoRenderer, RenderLogger

ENTRY_POINT_GROUP = "airmirror.backends"

BUILTIN_BACKENDS: Dict[str, Dict[str, Callable]] = {
    "engine": {"tcp": TcpListenerEngine},
    "discovery": {"zeroconf": ZeroconfRegistrar},
    "video": {"discard": DiscardVideoRenderer},
    "audio": {"discard": DiscardAudioRenderer},
}

# Keys accepted in the 'backends' section of the startup file
DEFAULT_BACKEND_NAMES = {
    "engine": "tcp",
    "discovery": "zeroconf",
    "renderer": "discard",
}


class BackendError(Exception):
    """Unknown or unloadable backend."""


@dataclass
class Backends:
    """Factories the lifecycle controller uses to create subsystems."""
    engine: Callable = TcpListenerEngine
    registrar: Callable = ZeroconfRegistrar
    video_renderer: Callable = DiscardVideoRenderer
    audio_renderer: Callable = DiscardAudioRenderer
    render_logger: Callable = RenderLogger


def find_backend(kind: str, name: str) -> Callable:
    """Resolve a backend factory.

    Args:
        kind: 'engine', 'discovery', 'video' or 'audio'
        name: Backend name

    Returns:
        Callable: Factory for the subsystem

    Raises:
        BackendError: If no such backend exists or it cannot be imported
    """
    builtin = BUILTIN_BACKENDS.get(kind, {}).get(name)
    if builtin is not None:
        return builtin

    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        if entry_point.name == f"{kind}.{name}":
            try:
                return entry_point.load()
            except Exception as e:
                raise BackendError(f"Could not load {kind} backend '{name}': {e}") from e

    raise BackendError(f"Unknown {kind} backend '{name}'")


def load_backends(names: Optional[Dict[str, str]] = None) -> Backends:
    """Build the factory set from backend names.

    Args:
        names: Mapping with optional 'engine', 'discovery' and 'renderer' keys

    Returns:
        Backends: Resolved factories
    """
    selected = dict(DEFAULT_BACKEND_NAMES)
    for key, value in (names or {}).items():
        if key not in DEFAULT_BACKEND_NAMES:
            raise BackendError(f"Unknown backend kind '{key}'")
        selected[key] = str(value)

    return Backends(
        engine=find_backend("engine", selected["engine"]),
        registrar=find_backend("discovery", selected["discovery"]),
        video_renderer=find_backend("video", selected["renderer"]),
        audio_renderer=find_backend("audio", selected["renderer"]),
    )
