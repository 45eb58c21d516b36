"""
Metaload Configuration
Single source of truth for all settings.
Load once per invocation, pass to all components.
"""
import copy
import json
from pathlib import Path
from .utils.logger import get_logger


# Default config values
DEFAULTS = {
    "load": {
        "threads": 10,
        "encrypt_algo": "aes256gcm-rsa"
    },
    "decode": {
        "chunk_size_kb": 64
    },
    "encryption": {
        "passphrase_env": "METALOAD_RSA_PASSPHRASE"
    }
}

CONFIG_FILENAME = 'metaload.config.json'


class MetaloadConfig:
    def __init__(self, config_path: str = None, logger=None):
        self.logger = get_logger(logger)
        self._config = copy.deepcopy(DEFAULTS)

        if config_path:
            self.config_path = Path(config_path)
        else:
            # Look for config in the working directory
            self.config_path = Path.cwd() / CONFIG_FILENAME

        if self.config_path.exists():
            self._load()
        else:
            self.logger.debug(f"No config file found at {self.config_path} - using defaults")

    def _load(self):
        """Load and merge config file over defaults"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ValueError("top level must be an object")
            self._deep_merge(self._config, user_config)
            self.logger.debug(f"Loaded config from {self.config_path}")
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in config file: {e} - using defaults")
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load config: {e} - using defaults")

    def get(self, *keys, default=None):
        """
        Get a nested config value by key path.
        e.g. config.get('load', 'threads')
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys_and_value):
        """
        Set a nested config value.
        e.g. config.set('load', 'threads', 4)
        """
        *keys, value = keys_and_value
        target = self._config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def threads(self) -> int:
        return self.get('load', 'threads', default=10)

    @property
    def encrypt_algo(self) -> str:
        return self.get('load', 'encrypt_algo', default='aes256gcm-rsa')

    @property
    def passphrase_env(self) -> str:
        return self.get('encryption', 'passphrase_env', default='METALOAD_RSA_PASSPHRASE')

    @property
    def chunk_size(self) -> int:
        return self.get('decode', 'chunk_size_kb', default=64) * 1024

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _deep_merge(base: dict, override: dict):
        """Merge override into base recursively - modifies base in place"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                MetaloadConfig._deep_merge(base[key], value)
            else:
                base[key] = value


__all__ = ["MetaloadConfig", "DEFAULTS", "CONFIG_FILENAME"]
