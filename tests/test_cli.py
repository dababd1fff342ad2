"""Tests for the command line entry point."""

import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

from airmirror import cli
from airmirror.utils import logger
from airmirror.utils.config import CONFIG_ENV_VAR, reset_config


class TestMain(unittest.TestCase):
    """Test cases for cli.main."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.temp_dir, "config.yaml")
        self.env = patch.dict(os.environ, {CONFIG_ENV_VAR: self.config_path})
        self.env.start()
        reset_config()

    def tearDown(self):
        """Clean up test environment."""
        self.env.stop()
        reset_config()
        logger.set_debug(False)
        shutil.rmtree(self.temp_dir)

    def test_help(self):
        output = io.StringIO()
        with redirect_stdout(output), self.assertRaises(SystemExit) as ctx:
            cli.main(["airmirror", "-h"])

        self.assertEqual(ctx.exception.code, 0)
        self.assertIn("Usage: airmirror", output.getvalue())

    @patch('airmirror.cli.logger')
    def test_invalid_option(self, mock_logger):
        with self.assertRaises(SystemExit) as ctx:
            cli.main(["airmirror", "-s", "0x1080"])

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("-s 0x1080", mock_logger.error.call_args[0][0])

    @patch('airmirror.cli.MirrorDaemon')
    def test_runs_daemon(self, mock_daemon):
        """Test startup-file options come first and the command line overrides them."""
        with open(self.config_path, 'w') as f:
            f.write("options:\n  n: FromFile\n  fps: 24\n")
        mock_daemon.return_value.run.return_value = 0

        with self.assertRaises(SystemExit) as ctx:
            cli.main(["airmirror", "-n", "FromCli", "-t", "5", "-d"])

        self.assertEqual(ctx.exception.code, 0)
        config = mock_daemon.call_args[0][0]
        self.assertTrue(config.name.startswith("FromCli"))
        self.assertEqual(config.display.max_fps, 24)
        self.assertEqual(config.idle_timeout, 5)
        self.assertTrue(logger.is_debug())

    @patch('airmirror.cli.MirrorDaemon')
    def test_daemon_exit_status(self, mock_daemon):
        mock_daemon.return_value.run.return_value = 1

        with self.assertRaises(SystemExit) as ctx:
            cli.main(["airmirror"])

        self.assertEqual(ctx.exception.code, 1)

    @patch('airmirror.cli.MirrorDaemon')
    def test_unknown_backend(self, mock_daemon):
        with open(self.config_path, 'w') as f:
            f.write("backends:\n  engine: nonexistent\n")

        with self.assertRaises(SystemExit) as ctx:
            cli.main(["airmirror"])

        self.assertEqual(ctx.exception.code, 1)
        mock_daemon.assert_not_called()


if __name__ == '__main__':
    unittest.main()
