"""Command line interface for the airmirror receiver."""

import os
import sys
from importlib.metadata import version
from typing import List, Optional

from .core.daemon import MirrorDaemon
from .utils import logger
from .utils.args import ArgumentError, HelpRequested, parse_args, usage
from .utils.backends import BackendError, load_backends
from .utils.config import get_config, suppress_avahi_warning


def package_version() -> str:
    try:
        return version("airmirror")
    except Exception:
        # Fallback if package not installed or metadata unavailable
        return "development"


def main(argv: Optional[List[str]] = None):
    argv = sys.argv if argv is None else argv
    program = os.path.basename(argv[0]) if argv else "airmirror"

    suppress_avahi_warning()

    config_manager = get_config()
    tokens = config_manager.get_startup_args() + list(argv[1:])

    try:
        config = parse_args(tokens)
    except HelpRequested:
        print(usage(program, package_version()))
        sys.exit(0)
    except ArgumentError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.set_debug(config.debug_log)

    try:
        backends = load_backends(config_manager.get_backend_names())
    except BackendError as e:
        logger.error(str(e))
        sys.exit(1)

    if not config.udp_ports.is_dynamic() or not config.tcp_ports.is_dynamic():
        logger.info(f"Using network ports UDP {config.udp_ports} TCP {config.tcp_ports}")
    logger.debug(f"Server name '{config.name}', hardware address {config.hw_addr_string}")

    daemon = MirrorDaemon(config, backends)
    sys.exit(daemon.run())


if __name__ == "__main__":
    main()
