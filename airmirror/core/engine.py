"""Built-in protocol engine: a TCP listener with connection accounting only.

It speaks no streaming protocol. Each accepted connection is reported to the
callback bridge as opened, incoming bytes are discarded, and the connection is
reported as closed when the peer hangs up or the engine is destroyed.
"""

import socket
import socketserver
import threading
from typing import Optional, Set

from .models import DisplaySettings, PortTriple
from .subsystems import LogLevel, ProtocolEngine


class _ConnectionHandler(socketserver.BaseRequestHandler):

    def handle(self):
        server = self.server
        server.track(self.request)
        server.bridge.on_connection_open()
        try:
            while True:
                data = self.request.recv(4096)
                if not data:
                    break
        except OSError as e:
            server.bridge.on_log(LogLevel.DEBUG, f"Connection {self.client_address} ended: {e}")
        finally:
            server.untrack(self.request)
            server.bridge.on_connection_close()


class _ListenerServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address, bridge):
        self.bridge = bridge
        self.connections: Set[socket.socket] = set()
        self.connections_lock = threading.Lock()
        super().__init__(address, _ConnectionHandler)

    def track(self, sock: socket.socket):
        with self.connections_lock:
            self.connections.add(sock)

    def untrack(self, sock: socket.socket):
        with self.connections_lock:
            self.connections.discard(sock)

    def close_connections(self):
        with self.connections_lock:
            connections = list(self.connections)
        for sock in connections:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                # peer already gone
                pass


class TcpListenerEngine(ProtocolEngine):
    """Listens on the first TCP port (0 = any free port)."""

    def __init__(self, bridge, host: str = ""):
        """Initialize engine.

        Args:
            bridge: CallbackBridge receiving connection and log notifications
            host: Address to bind, all interfaces by default
        """
        self.bridge = bridge
        self.host = host
        self.display = DisplaySettings()
        self.tcp_ports = PortTriple()
        self.udp_ports = PortTriple()
        self.log_level = LogLevel.INFO

        self.server: Optional[_ListenerServer] = None
        self.thread: Optional[threading.Thread] = None

    def init(self) -> bool:
        return True

    def set_display(self, display: DisplaySettings):
        self.display = display

    def set_ports(self, tcp: PortTriple, udp: PortTriple):
        self.tcp_ports = tcp
        self.udp_ports = udp

    def set_log_level(self, level: LogLevel):
        self.log_level = level

    def start(self) -> int:
        self.server = _ListenerServer((self.host, self.tcp_ports[0]), self.bridge)
        self.thread = threading.Thread(
            target=self.server.serve_forever,
            daemon=True,
            name="EngineListener"
        )
        self.thread.start()

        port = self.server.server_address[1]
        self._log(LogLevel.DEBUG, f"Listening on TCP port {port}")
        return port

    def destroy(self):
        server = self.server
        if server is None:
            return
        server.shutdown()
        server.close_connections()
        server.server_close()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)
        self.server = None
        self.thread = None

    def _log(self, level: LogLevel, message: str):
        if level >= self.log_level:
            self.bridge.on_log(level, message)
