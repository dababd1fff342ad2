"""Daemon driving the start, supervise and relaunch cycle of the receiver."""

import threading
import setproctitle
from typing import Optional

from .controller import LifecycleController
from .models import Config
from .watchdog import Watchdog
from ..utils.backends import Backends, load_backends
from ..utils import logger


class MirrorDaemon:
    """Top-level driver: start the stack, supervise it, relaunch or exit."""

    def __init__(self, config: Config, backends: Optional[Backends] = None,
                 tick_interval: float = 1.0):
        """Initialize daemon.

        Args:
            config: Validated configuration, identical for every relaunch
            backends: Subsystem factories
            tick_interval: Idle-accounting tick length in seconds
        """
        self.config = config
        self.backends = backends or load_backends()
        self.tick_interval = tick_interval

        self.controller: Optional[LifecycleController] = None
        self.watchdog: Optional[Watchdog] = None
        self.relaunch_count = 0
        self.running = False
        self._exit_requested = threading.Event()

    def run(self) -> int:
        """Run until a stop signal or a start failure.

        Returns:
            int: Process exit status
        """
        # Set recognizable process title
        setproctitle.setproctitle("airmirror")

        self.running = True
        self._exit_requested.clear()
        try:
            while True:
                self.controller = LifecycleController(self.config, self.backends)
                if not self.controller.start():
                    logger.error(f"Failed to start {self.controller.failed_subsystem}")
                    return 1

                relaunch = self._supervise()

                if relaunch and not self._exit_requested.is_set():
                    logger.info("Re-launching server...")
                    self.controller.stop()
                    self.relaunch_count += 1
                    continue

                logger.info("Stopping...")
                self.controller.stop()
                return 0
        finally:
            # no-op after a normal stop; tears down a stack left by an exception
            if self.controller is not None:
                self.controller.stop()
            self.running = False
            self.watchdog = None

    def stop(self):
        """End the current run without relaunch; callable from any thread."""
        self._exit_requested.set()
        watchdog = self.watchdog
        if watchdog is not None:
            watchdog.request_stop(relaunch=False)

    def _supervise(self) -> bool:
        state = self.controller.state
        self.watchdog = Watchdog(
            state,
            self.config.idle_timeout,
            video_renderer=state.video_renderer,
            tick_interval=self.tick_interval,
        )
        if self._exit_requested.is_set():
            return False
        return self.watchdog.run()
