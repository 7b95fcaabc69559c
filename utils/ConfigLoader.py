#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import yaml
from pathlib import Path
from copy import deepcopy

# GLOBALS
_config = None

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "etc" / "config.yaml"
ENV_CONFIG_PATH = "PORTFORWARD_SETTINGS"

DEFAULTS = {
    "tool_name": "portforward",
    "version": "0.1.0",
    "Logging": {
        "logging_levels": "Success, Information, Warning, Error",
        "logging_file_levels": "Success, Information, Warning, Error",
        "log_dir": "logs",
        "log_file": "",
        "date_format": "%Y-%m-%dT%H:%M:%S",
    },
    "Relay": {
        "backlog": 128,
        "buffer_size": 65536,
        "accept_timeout": 1.0,
        "connect_timeout": 10.0,
        "reuse_address": True,
    },
    "Supervisor": {
        "max_relays": 20000,
        "raise_open_file_limit": True,
    },
}

SECTIONS = ("Logging", "Relay", "Supervisor")


def _merge_dicts(base: dict, override: dict) -> dict:
    """
    Shallow+nested merge: values in override win; dict values are merged recursively.
    """
    result = deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _merge_dicts(result[k], v)
        else:
            result[k] = deepcopy(v)
    return result


def _resolve_path(filepath) -> tuple[Path, bool]:
    """
    Returns the settings path and whether it was explicitly requested.
    Only an explicit path has to exist.
    """
    if filepath:
        return Path(filepath), True
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path), True
    return DEFAULT_CONFIG_PATH, False


class ConfigLoader:
    @staticmethod
    def get_config() -> dict:
        """
        Returns the cached settings, loading them on first use.
        """
        global _config
        if _config is None:
            _config = ConfigLoader.load_config()
        return _config

    @staticmethod
    def load_config(filepath=None) -> dict:
        """
        Loads the settings file if not already cached and merges it over DEFAULTS.
        """
        global _config

        if _config is None:
            path, explicit = _resolve_path(filepath)
            overlay = {}
            if path.is_file() or explicit:
                try:
                    with open(path, "r", encoding="utf-8") as file:
                        overlay = yaml.safe_load(file) or {}
                except FileNotFoundError:
                    raise RuntimeError(f"Configuration file not found at {path}.")
                except yaml.YAMLError as e:
                    raise RuntimeError(f"Error parsing YAML file: {e}")

            if not isinstance(overlay, dict):
                raise RuntimeError(f"Configuration file {path} must contain a mapping.")

            for section in SECTIONS:
                if section in overlay and not isinstance(overlay[section], dict):
                    raise RuntimeError(
                        f"Configuration file {path}: section '{section}' must be a mapping."
                    )

            _config = _merge_dicts(DEFAULTS, overlay)

        return _config

    @staticmethod
    def reload_config(filepath=None) -> dict:
        """
        Reload the configuration from disk.

        Returns:
            dict: The reloaded configuration dictionary.
        """

        global _config
        _config = None

        return ConfigLoader.load_config(filepath)
