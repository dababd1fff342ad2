"""Tests for backend selection."""

import unittest
from unittest.mock import Mock, patch

from airmirror.core.discovery import ZeroconfRegistrar
from airmirror.core.engine import TcpListenerEngine
from airmirror.core.renderers import DiscardAudioRenderer, DiscardVideoRenderer, RenderLogger
from airmirror.utils.backends import BackendError, find_backend, load_backends


class TestBackends(unittest.TestCase):
    """Test cases for backend lookup."""

    def test_defaults(self):
        backends = load_backends()

        self.assertIs(backends.engine, TcpListenerEngine)
        self.assertIs(backends.registrar, ZeroconfRegistrar)
        self.assertIs(backends.video_renderer, DiscardVideoRenderer)
        self.assertIs(backends.audio_renderer, DiscardAudioRenderer)
        self.assertIs(backends.render_logger, RenderLogger)

    def test_explicit_builtin_names(self):
        backends = load_backends({"engine": "tcp", "discovery": "zeroconf", "renderer": "discard"})
        self.assertIs(backends.engine, TcpListenerEngine)

    @patch('airmirror.utils.backends.entry_points', return_value=[])
    def test_unknown_name(self, mock_entry_points):
        with self.assertRaises(BackendError):
            load_backends({"engine": "missing"})
        mock_entry_points.assert_called_with(group="airmirror.backends")

    def test_unknown_kind(self):
        with self.assertRaises(BackendError):
            load_backends({"display": "tcp"})

    @patch('airmirror.utils.backends.entry_points')
    def test_entry_point(self, mock_entry_points):
        """Test third-party backends are found by '<kind>.<name>'."""
        factory = Mock()
        entry_point = Mock()
        entry_point.name = "video.gstreamer"
        entry_point.load.return_value = factory
        mock_entry_points.return_value = [entry_point]

        self.assertIs(find_backend("video", "gstreamer"), factory)

    @patch('airmirror.utils.backends.entry_points')
    def test_entry_point_load_failure(self, mock_entry_points):
        entry_point = Mock()
        entry_point.name = "engine.broken"
        entry_point.load.side_effect = ImportError("no module")
        mock_entry_points.return_value = [entry_point]

        with self.assertRaises(BackendError) as ctx:
            find_backend("engine", "broken")
        self.assertIn("no module", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
