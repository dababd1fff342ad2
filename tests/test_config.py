"""Tests for the YAML startup file."""

import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from airmirror.utils.config import (
    ConfigManager, get_config, reset_config, suppress_avahi_warning,
    AVAHI_NOWARN_ENV_VAR, CONFIG_ENV_VAR, default_config_path,
)


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.temp_dir, "config.yaml")
        reset_config()

    def tearDown(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir)
        reset_config()

    def _write(self, content):
        with open(self.config_path, 'w') as f:
            f.write(content)
        return ConfigManager(self.config_path)

    def test_missing_file_uses_defaults(self):
        manager = ConfigManager(self.config_path)

        self.assertEqual(manager.get_startup_args(), [])
        self.assertEqual(manager.get_backend_names(), {})

    def test_options_become_tokens(self):
        """Test each option kind turns into the matching command line tokens."""
        manager = self._write(
            "options:\n"
            "  n: Kitchen\n"
            "  fps: 24\n"
            "  o: true\n"
            "  a: false\n"
            "  m:\n"
            "  p: [tcp, 7000]\n"
            "  -vs: glimagesink\n"
        )

        self.assertEqual(manager.get_startup_args(), [
            "-n", "Kitchen", "-fps", "24", "-o", "-p", "tcp", "7000", "-vs", "glimagesink",
        ])

    def test_backend_names(self):
        manager = self._write("backends:\n  engine: tcp\n  renderer: discard\n")
        self.assertEqual(manager.get_backend_names(), {"engine": "tcp", "renderer": "discard"})

    @patch('airmirror.utils.config.logger')
    def test_malformed_file_falls_back(self, mock_logger):
        """Test unparsable YAML is reported and ignored."""
        manager = self._write("options: [unclosed\n")

        self.assertEqual(manager.get_startup_args(), [])
        mock_logger.error.assert_called_once()

    @patch('airmirror.utils.config.logger')
    def test_non_mapping_top_level(self, mock_logger):
        manager = self._write("- just\n- a list\n")

        self.assertEqual(manager.get_startup_args(), [])
        mock_logger.error.assert_called_once()

    @patch('airmirror.utils.config.logger')
    def test_unknown_and_invalid_sections(self, mock_logger):
        manager = self._write("colors:\n  red: 1\noptions: fast\nbackends:\n  engine: tcp\n")

        self.assertEqual(manager.get_startup_args(), [])
        self.assertEqual(manager.get_backend_names(), {"engine": "tcp"})
        self.assertEqual(mock_logger.warn.call_count, 2)

    def test_empty_file(self):
        manager = self._write("")
        self.assertEqual(manager.get_startup_args(), [])

    def test_reload(self):
        """Test reload_config picks up file changes."""
        manager = self._write("options:\n  n: First\n")
        self.assertEqual(manager.get_startup_args(), ["-n", "First"])

        with open(self.config_path, 'w') as f:
            f.write("options:\n  n: Second\n")
        self.assertEqual(manager.get_startup_args(), ["-n", "First"])

        manager.reload_config()
        self.assertEqual(manager.get_startup_args(), ["-n", "Second"])

    def test_env_var_selects_file(self):
        with patch.dict(os.environ, {CONFIG_ENV_VAR: self.config_path}):
            self.assertEqual(default_config_path(), self.config_path)
            self.assertEqual(ConfigManager().config_path, self.config_path)

    def test_global_instance(self):
        """Test get_config returns one shared instance until reset."""
        first = get_config(self.config_path)
        self.assertIs(get_config(), first)

        other_path = os.path.join(self.temp_dir, "other.yaml")
        self.assertIsNot(get_config(other_path), first)

        reset_config()
        self.assertIsNot(get_config(self.config_path), first)


class TestAvahiWarning(unittest.TestCase):

    def test_sets_when_unset(self):
        with patch.dict(os.environ, {}, clear=True):
            suppress_avahi_warning()
            self.assertEqual(os.environ[AVAHI_NOWARN_ENV_VAR], "1")

    def test_keeps_user_value(self):
        with patch.dict(os.environ, {AVAHI_NOWARN_ENV_VAR: "0"}):
            suppress_avahi_warning()
            self.assertEqual(os.environ[AVAHI_NOWARN_ENV_VAR], "0")


if __name__ == '__main__':
    unittest.main()
