"""Configuration parameters and startup file manager."""

import os
import yaml
from typing import Dict, Any, List, Optional
from . import logger

# Main configuration directory
CONFIG_DIR = os.path.expanduser("~/.config/airmirror")

# Points at an alternative startup file
CONFIG_ENV_VAR = "AIRMIRROR_CONFIG"

# Suppresses the avahi compatibility-layer warning when unset
AVAHI_NOWARN_ENV_VAR = "AVAHI_COMPAT_NOWARN"

# Default configuration values
DEFAULT_CONFIG = {
    'options': {},
    'backends': {},
}


def default_config_path() -> str:
    return os.environ.get(CONFIG_ENV_VAR) or os.path.join(CONFIG_DIR, 'config.yaml')


class ConfigManager:
    """Loads the optional YAML startup file.

    The 'options' section holds default command line options; they are turned
    into tokens placed before the real arguments, so the command line wins and
    the same validation applies. The 'backends' section names the subsystem
    backends to use.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config manager.

        Args:
            config_path: Startup file path, defaults to default_config_path()
        """
        self.config_path = config_path or default_config_path()
        self._config_cache: Optional[Dict[str, Any]] = None

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file or return defaults.

        Returns:
            Dict[str, Any]: Configuration dictionary with defaults applied
        """
        if self._config_cache is not None:
            return self._config_cache

        config = {key: dict(value) for key, value in DEFAULT_CONFIG.items()}

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    user_config = yaml.safe_load(f) or {}

                if not isinstance(user_config, dict):
                    raise ValueError("top level must be a mapping")

                # Update only defined settings, keep defaults for others
                for key, value in user_config.items():
                    if key not in DEFAULT_CONFIG:
                        logger.warn(f"Ignoring unknown section '{key}' in {self.config_path}")
                    elif not isinstance(value, dict):
                        logger.warn(f"Section '{key}' in {self.config_path} must be a mapping")
                    else:
                        config[key] = value

                logger.debug(f"Configuration loaded from {self.config_path}")

            except Exception as e:
                logger.error(f"Error loading config file {self.config_path}: {e}")
                logger.info("Using default configuration")
                config = {key: dict(value) for key, value in DEFAULT_CONFIG.items()}

        self._config_cache = config
        return config

    def get_startup_args(self) -> List[str]:
        """Translate the 'options' section into command line tokens.

        'fps: 24' becomes ['-fps', '24'], 'o: true' becomes ['-o'], false or
        empty values are skipped and lists supply several values
        ('p: [tcp, 7000]').

        Returns:
            List[str]: Tokens to place before the real arguments
        """
        options = self.load_config()['options']
        tokens = []
        for key, value in options.items():
            flag = str(key) if str(key).startswith('-') else f"-{key}"
            if value is True:
                tokens.append(flag)
            elif value is False or value is None:
                continue
            elif isinstance(value, (list, tuple)):
                tokens.append(flag)
                tokens.extend(str(item) for item in value)
            else:
                tokens.extend([flag, str(value)])
        return tokens

    def get_backend_names(self) -> Dict[str, str]:
        backends = self.load_config()['backends']
        return {str(key): str(value) for key, value in backends.items()}

    def reload_config(self):
        """Drop the cached configuration so the next access reads the file."""
        self._config_cache = None


def suppress_avahi_warning():
    """Set AVAHI_COMPAT_NOWARN=1 unless the user set it."""
    if not os.environ.get(AVAHI_NOWARN_ENV_VAR):
        os.environ[AVAHI_NOWARN_ENV_VAR] = "1"


# Global ConfigManager instance - module-level singleton
_config: Optional[ConfigManager] = None
_config_path: Optional[str] = None


def get_config(config_path: str = None) -> ConfigManager:
    """Get global config instance, creating it if necessary.

    Args:
        config_path: Startup file path. If None, uses default_config_path().
                     Only used when creating the instance for the first time.

    Returns:
        ConfigManager: Global ConfigManager instance
    """
    global _config, _config_path

    # If config doesn't exist yet, create it
    if _config is None:
        _config_path = config_path or default_config_path()
        _config = ConfigManager(_config_path)
    # If config exists but different path requested, recreate
    elif config_path is not None and config_path != _config_path:
        _config_path = config_path
        _config = ConfigManager(config_path)

    return _config


def reset_config():
    """Reset global config instance. Used for testing."""
    global _config, _config_path
    _config = None
    _config_path = None
