"""
Configuration management for ChatTrail
"""

import copy
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from constants import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SOCKET_PATH,
    MIN_PROBLEM_SIMILARITY,
    MIN_RELEVANCE_SCORE,
    MIN_SIMILARITY_SCORE,
)

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ["text", "json", "markdown"]


class ConfigManager:
    """
    Manages ChatTrail configuration.

    Values are read with dot notation ('search.default_limit'); a user file
    only needs the keys it overrides.
    """

    DEFAULT_CONFIG = {
        "storage": {
            # Extra workspaceStorage directories; empty means platform defaults
            "workspace_dirs": []
        },
        "search": {
            "default_limit": DEFAULT_SEARCH_LIMIT,
            "min_relevance": MIN_RELEVANCE_SCORE,
            "min_similarity": MIN_SIMILARITY_SCORE,
            "min_problem_similarity": MIN_PROBLEM_SIMILARITY
        },
        "output": {
            "format": "text"  # "text", "json", "markdown"
        },
        "server": {
            "socket_path": DEFAULT_SOCKET_PATH
        },
        "logging": {
            "level": "WARNING"
        }
    }

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager"""
        if config_path:
            self.config_path = Path(config_path)
        else:
            # Try to find config in standard locations
            self.config_path = self._find_config_file()

        self.config = self.load()

    def _find_config_file(self) -> Path:
        """Find configuration file in standard locations"""
        # Check in order:
        # 1. .chattrail/config.json in current directory
        # 2. config.json in current directory
        # 3. ~/.chattrail/config.json (user home)

        candidates = [
            Path.cwd() / ".chattrail" / "config.json",
            Path.cwd() / "config.json",
            Path.home() / ".chattrail" / "config.json"
        ]

        for path in candidates:
            if path.exists():
                return path

        # Default to the user-level file; only written on save()
        return Path.home() / ".chattrail" / "config.json"

    def load(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults"""
        if not self.config_path.exists():
            return copy.deepcopy(self.DEFAULT_CONFIG)

        try:
            with open(self.config_path, 'r') as f:
                user_config = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Invalid config file %s, using defaults: %s", self.config_path, e)
            return copy.deepcopy(self.DEFAULT_CONFIG)

        if not isinstance(user_config, dict):
            logger.warning("Config file %s is not a JSON object, using defaults", self.config_path)
            return copy.deepcopy(self.DEFAULT_CONFIG)

        # Merge with defaults (user config overrides defaults)
        return self._merge_configs(self.DEFAULT_CONFIG, user_config)

    def _merge_configs(self, default: Dict, user: Dict) -> Dict:
        """Recursively merge user config with defaults"""
        result = copy.deepcopy(default)

        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def save(self):
        """Save current configuration to file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w') as f:
            json.dump(self.config, f, indent=2)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get('search.default_limit')
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any):
        """
        Set configuration value using dot notation
        Example: config.set('search.default_limit', 20)
        """
        keys = key_path.split('.')
        config = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if not isinstance(config.get(key), dict):
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value
        self.save()

    def workspace_dirs(self) -> List[Path]:
        """Configured extra workspaceStorage directories"""
        dirs = self.get('storage.workspace_dirs', []) or []
        if isinstance(dirs, str):
            dirs = [dirs]
        return [Path(d).expanduser() for d in dirs]

    def output_format(self) -> str:
        fmt = self.get('output.format', 'text')
        return fmt if fmt in OUTPUT_FORMATS else 'text'
