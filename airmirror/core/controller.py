"""Ordered start-up and teardown of the receiver subsystems."""

from typing import Callable, Optional

from .bridge import CallbackBridge
from .models import Config, PortTriple, HIGHEST_PORT
from .state import RuntimeState
from .subsystems import LogLevel
from ..utils import logger
from ..utils.backends import Backends, load_backends


class SubsystemInitError(Exception):
    """One of the ordered subsystem initializations failed."""

    def __init__(self, subsystem: str, reason: str = "initialization failed", exit_code: int = 1):
        self.subsystem = subsystem
        self.reason = reason
        self.exit_code = exit_code
        super().__init__(f"Could not init {subsystem}: {reason}")


def companion_port(bound_port: int, tcp_ports: PortTriple) -> int:
    """Port advertised for the companion (AirPlay) service record.

    An explicit third TCP port wins; otherwise the port next to the bound one,
    stepping down only when the bound port is the highest possible port.
    """
    if tcp_ports[2]:
        return tcp_ports[2]
    return bound_port + 1 if bound_port != HIGHEST_PORT else bound_port - 1


class LifecycleController:
    """Starts and stops the protocol engine, discovery and renderers.

    Sole owner of all subsystem handles. Each start() builds a fresh
    RuntimeState; stop() tears it down and may be called any number of times.
    """

    def __init__(self, config: Config, backends: Optional[Backends] = None):
        """Initialize lifecycle controller.

        Args:
            config: Validated configuration, reused verbatim across relaunches
            backends: Subsystem factories; defaults to the built-in backends
        """
        self.config = config
        self.backends = backends or load_backends()

        self.state: Optional[RuntimeState] = None
        self.bridge: Optional[CallbackBridge] = None
        self.bound_port: Optional[int] = None
        self.companion_port: Optional[int] = None
        self.failed_subsystem: Optional[str] = None
        self.exit_code = 0

    @property
    def running(self) -> bool:
        return self.state is not None

    def start(self) -> bool:
        """Initialize all subsystems in order, rolling back on the first failure.

        Returns:
            bool: True if the whole stack is running
        """
        if self.state is not None:
            return True

        self.state = RuntimeState()
        self.bridge = CallbackBridge(self.state)
        self.failed_subsystem = None
        self.exit_code = 0

        try:
            self._start_subsystems()
        except SubsystemInitError as e:
            logger.error(str(e))
            self.failed_subsystem = e.subsystem
            self.exit_code = e.exit_code
            self.stop()
            return False

        logger.info(f"Server '{self.config.name}' running on port {self.bound_port}")
        return True

    def stop(self):
        """Destroy every subsystem that exists. No-op when nothing is running."""
        state = self.state
        if state is None:
            return

        if state.engine is not None:
            self._teardown("protocol engine", state.engine.destroy)
            state.engine = None

        if state.registrar is not None:
            self._teardown("discovery registrar", state.registrar.unregister_raop)
            self._teardown("discovery registrar", state.registrar.unregister_airplay)
            self._teardown("discovery registrar", state.registrar.destroy)
            state.registrar = None

        if state.audio_renderer is not None:
            self._teardown("audio renderer", state.audio_renderer.destroy)
            state.audio_renderer = None

        if state.video_renderer is not None:
            self._teardown("video renderer", state.video_renderer.destroy)
            state.video_renderer = None

        if state.render_logger is not None:
            self._teardown("render logger", state.render_logger.destroy)
            state.render_logger = None

        self.state = None
        self.bridge = None
        self.bound_port = None
        self.companion_port = None
        logger.debug("All subsystems stopped")

    def _start_subsystems(self):
        config = self.config
        state = self.state
        log_level = LogLevel.DEBUG if config.debug_log else LogLevel.INFO

        engine = self._create("engine", "protocol engine", self.backends.engine, self.bridge)

        self._step("protocol engine", engine.set_display, config.display)
        self._step("protocol engine", engine.set_ports, config.tcp_ports, config.udp_ports)
        self._step("protocol engine", engine.set_log_level, log_level)

        render_logger = self._create(
            "render_logger", "render logger",
            self.backends.render_logger, self.bridge.on_log, log_level
        )

        if config.use_video:
            self._create(
                "video_renderer", "video renderer",
                self.backends.video_renderer, render_logger, config.name,
                config.video_flip, config.video_rotate, config.video_sink
            )
        else:
            logger.info("Video disabled")

        if config.use_audio:
            self._create(
                "audio_renderer", "audio renderer",
                self.backends.audio_renderer, render_logger,
                state.video_renderer, config.audio_sink
            )
        else:
            logger.info("Audio disabled")

        if state.video_renderer is not None:
            self._step("video renderer", state.video_renderer.start)
        if state.audio_renderer is not None:
            self._step("audio renderer", state.audio_renderer.start)

        self.bound_port = self._step("protocol engine", engine.start)

        registrar = self._create(
            "registrar", "discovery registrar",
            self.backends.registrar, config.name, config.hw_addr, exit_code=2
        )
        self.companion_port = companion_port(self.bound_port, config.tcp_ports)
        self._step("discovery registrar", registrar.register_raop, self.bound_port, exit_code=2)
        self._step("discovery registrar", registrar.register_airplay, self.companion_port, exit_code=2)

    def _create(self, attribute: str, subsystem: str, factory: Callable, *args, exit_code: int = 1):
        """Construct a subsystem, store its handle in the state, then init it.

        The handle is stored before init() so a failed init is still
        destroyed by the rollback.
        """
        try:
            handle = factory(*args)
        except Exception as e:
            raise SubsystemInitError(subsystem, str(e), exit_code) from e
        if handle is None:
            raise SubsystemInitError(subsystem, exit_code=exit_code)

        setattr(self.state, attribute, handle)
        if not self._step(subsystem, handle.init, exit_code=exit_code):
            raise SubsystemInitError(subsystem, exit_code=exit_code)
        logger.debug(f"Initialized {subsystem}")
        return handle

    def _step(self, subsystem: str, func: Callable, *args, exit_code: int = 1):
        try:
            return func(*args)
        except SubsystemInitError:
            raise
        except Exception as e:
            raise SubsystemInitError(subsystem, str(e), exit_code) from e

    def _teardown(self, subsystem: str, func: Callable):
        try:
            func()
        except Exception as e:
            logger.error(f"Error stopping {subsystem}: {e}")
