"""Event loop driver deciding between relaunch and exit.

Every run attempt gets a fresh asyncio event loop carrying the idle tick,
the video renderer's events and the SIGTERM/SIGINT handlers. A stop signal
always wins over a relaunch requested in the same pass.
"""

import asyncio
import signal
import threading
from enum import Enum
from typing import Any, Dict, Optional

from .state import RuntimeState
from .subsystems import VideoRenderer
from ..utils import logger

# Loop passes run after the loop stopped, so wakeups already queued by a
# signal still reach their handler before the handlers are removed
DRAIN_PASSES = 3


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    RELAUNCH = "relaunch"
    EXIT = "exit"


class ExitReason(Enum):
    IDLE_TIMEOUT = "idle timeout"
    SIGINT = "SIGINT"
    SIGTERM = "SIGTERM"
    RENDERER = "renderer"
    REQUESTED = "requested"


SIGNAL_REASONS = (ExitReason.SIGINT, ExitReason.SIGTERM)


async def _settle():
    for _ in range(DRAIN_PASSES):
        await asyncio.sleep(0)


class Watchdog:
    """Runs one event loop per run attempt and records why it ended."""

    def __init__(self, state: RuntimeState, idle_timeout: int,
                 video_renderer: Optional[VideoRenderer] = None,
                 tick_interval: float = 1.0):
        """Initialize watchdog.

        Args:
            state: RuntimeState of the running stack
            idle_timeout: Seconds without connections before relaunch, 0 disables
            video_renderer: Renderer whose own events may end the loop
            tick_interval: Length of one idle-accounting tick in seconds
        """
        self.state = state
        self.idle_timeout = idle_timeout
        self.video_renderer = video_renderer
        self.tick_interval = tick_interval

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.phase = Phase.IDLE
        self.exit_reason: Optional[ExitReason] = None

        self._lock = threading.Lock()
        self._pending_stop: Optional[bool] = None
        self._signalled = False
        self._tick_handle: Optional[asyncio.TimerHandle] = None
        self._next_tick = 0.0
        self._previous_handlers: Dict[int, Any] = {}

    def run(self) -> bool:
        """Run until a signal, the idle timeout or the renderer ends the loop.

        Must be called from the main thread.

        Returns:
            bool: True if the stack should be relaunched
        """
        loop = asyncio.new_event_loop()
        loop.set_exception_handler(self._on_loop_error)
        with self._lock:
            self.loop = loop
            pending_stop, self._pending_stop = self._pending_stop, None
        self.exit_reason = None
        self._signalled = False

        if pending_stop is not None:
            loop.call_soon(self._stop, ExitReason.REQUESTED, pending_stop)

        try:
            if self.idle_timeout:
                self._next_tick = loop.time() + self.tick_interval
                self._tick_handle = loop.call_at(self._next_tick, self._on_tick)
            if self.video_renderer is not None:
                self.video_renderer.listen(loop, self._on_renderer_terminate)
            self._add_signal_handler(loop, signal.SIGTERM, self._on_sigterm)
            self._add_signal_handler(loop, signal.SIGINT, self._on_sigint)

            self.state.relaunch_requested = True
            self.phase = Phase.RUNNING
            loop.run_forever()
        finally:
            self.phase = Phase.STOPPING
            try:
                if self._tick_handle is not None:
                    self._tick_handle.cancel()
                    self._tick_handle = None
                loop.run_until_complete(_settle())
            finally:
                self._close(loop)

        self.phase = Phase.RELAUNCH if self.state.relaunch_requested else Phase.EXIT
        reason = self.exit_reason.value if self.exit_reason else "unknown"
        logger.debug(f"Event loop finished ({reason}), relaunch: {self.state.relaunch_requested}")
        return self.state.relaunch_requested

    def request_stop(self, relaunch: bool = False):
        """Stop the loop from any thread.

        A request made before run() has started the loop is applied as soon
        as it starts.
        """
        with self._lock:
            loop = self.loop
            if loop is None:
                self._pending_stop = relaunch
                return
            loop.call_soon_threadsafe(self._stop, ExitReason.REQUESTED, relaunch)

    def _add_signal_handler(self, loop: asyncio.AbstractEventLoop, signum: int, callback):
        self._previous_handlers[signum] = signal.getsignal(signum)
        loop.add_signal_handler(signum, callback)

    def _close(self, loop: asyncio.AbstractEventLoop):
        for signum, previous in self._previous_handlers.items():
            loop.remove_signal_handler(signum)
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous_handlers = {}

        if self.video_renderer is not None:
            self.video_renderer.unlisten()

        with self._lock:
            self.loop = None
        loop.close()

    def _stop(self, reason: ExitReason, relaunch: Optional[bool] = None):
        if reason in SIGNAL_REASONS:
            self._signalled = True
            self.exit_reason = reason
        elif self.exit_reason is None:
            self.exit_reason = reason

        if self._signalled:
            self.state.relaunch_requested = False
        elif relaunch is not None:
            self.state.relaunch_requested = relaunch

        if self.phase is Phase.RUNNING and self.loop is not None:
            self.loop.stop()

    def _on_tick(self):
        self._tick_handle = None
        idle_seconds = self.state.connections.tick()
        if idle_seconds >= self.idle_timeout:
            logger.info(f"No connections for {self.idle_timeout} seconds: relaunch server")
            self._stop(ExitReason.IDLE_TIMEOUT, relaunch=True)
            return

        now = self.loop.time()
        self._next_tick += self.tick_interval
        if self._next_tick <= now:
            # fell behind; do not fire a burst of catch-up ticks
            self._next_tick = now + self.tick_interval
        self._tick_handle = self.loop.call_at(self._next_tick, self._on_tick)

    def _on_sigterm(self):
        logger.info("Received SIGTERM, stopping")
        self._stop(ExitReason.SIGTERM, relaunch=False)

    def _on_sigint(self):
        logger.info("Received SIGINT, stopping")
        self._stop(ExitReason.SIGINT, relaunch=False)

    def _on_renderer_terminate(self, kind: str):
        logger.info(f"Renderer ended the session ({kind})")
        self._stop(ExitReason.RENDERER)

    def _on_loop_error(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]):
        error = context.get("exception") or context.get("message")
        logger.error(f"Error in event loop callback: {error}")
