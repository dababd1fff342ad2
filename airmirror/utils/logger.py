"""
Logging utility for airmirror.

- DEBUG: Only shown when DEBUG=1 environment variable is set or -d was given
- INFO, WARN: General information
- ERROR: Print to STDERR
"""

import os
import sys
from typing import Any

_debug_enabled = False


def set_debug(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = enabled


def is_debug() -> bool:
    return _debug_enabled or os.environ.get('DEBUG', '0') == '1'


def debug(message: str, *args: Any) -> None:
    if is_debug():
        formatted_message = message % args if args else message
        print(formatted_message, file=sys.stdout)


def info(message: str, *args: Any) -> None:
    formatted_message = message % args if args else message
    print(formatted_message, file=sys.stdout)


def warn(message: str, *args: Any) -> None:
    formatted_message = message % args if args else message
    print(f"⚠️  {formatted_message}", file=sys.stdout)


def error(message: str, *args: Any) -> None:
    formatted_message = message % args if args else message
    print(f"❌  {formatted_message}", file=sys.stderr)


def log(level: int, message: str) -> None:
    """Route a message reported by a subsystem with a numeric level.

    Args:
        level: One of the LogLevel values (10 debug .. 40 error)
        message: Message text, already formatted
    """
    message = message.rstrip("\n")
    if level >= 40:
        error(message)
    elif level >= 30:
        warn(message)
    elif level >= 20:
        info(message)
    else:
        debug(message)
