"""airmirror - supervisor shell for an AirPlay mirroring receiver."""

__version__ = "1.0.0"
__description__ = "Configuration validation and lifecycle watchdog for an AirPlay mirroring receiver"

from .core.daemon import MirrorDaemon

__all__ = ["MirrorDaemon"]
