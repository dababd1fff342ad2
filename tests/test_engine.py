"""Tests for the built-in TCP listener engine."""

import socket
import time
import unittest
from unittest.mock import Mock

from airmirror.core.engine import TcpListenerEngine
from airmirror.core.models import PortTriple


def wait_for(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


class TestTcpListenerEngine(unittest.TestCase):
    """Test cases for TcpListenerEngine."""

    def setUp(self):
        """Set up test environment."""
        self.bridge = Mock()
        self.engine = TcpListenerEngine(self.bridge, host="127.0.0.1")
        self.assertTrue(self.engine.init())
        self.engine.set_ports(PortTriple(), PortTriple())

    def tearDown(self):
        """Clean up test environment."""
        self.engine.destroy()

    def test_dynamic_port(self):
        port = self.engine.start()
        self.assertGreater(port, 0)
        self.assertEqual(port, self.engine.server.server_address[1])

    def test_connection_reported(self):
        """Test a client connecting and hanging up is reported open then closed."""
        port = self.engine.start()

        client = socket.create_connection(("127.0.0.1", port))
        try:
            self.assertTrue(wait_for(lambda: self.bridge.on_connection_open.called))
            client.sendall(b"OPTIONS * RTSP/1.0\r\n\r\n")
        finally:
            client.close()

        self.assertTrue(wait_for(lambda: self.bridge.on_connection_close.called))
        self.bridge.on_connection_open.assert_called_once()

    def test_destroy_closes_connections(self):
        """Test destroy ends open client connections."""
        port = self.engine.start()
        client = socket.create_connection(("127.0.0.1", port))
        try:
            self.assertTrue(wait_for(lambda: self.bridge.on_connection_open.called))

            self.engine.destroy()

            self.assertTrue(wait_for(lambda: self.bridge.on_connection_close.called))
            self.assertIsNone(self.engine.server)
        finally:
            client.close()

    def test_destroy_without_start(self):
        self.engine.destroy()
        self.assertIsNone(self.engine.server)

    def test_port_in_use(self):
        """Test binding an occupied explicit port fails."""
        port = self.engine.start()
        other = TcpListenerEngine(Mock(), host="127.0.0.1")
        other.set_ports(PortTriple(port, 0, 0), PortTriple())

        with self.assertRaises(OSError):
            other.start()
        other.destroy()


if __name__ == '__main__':
    unittest.main()
