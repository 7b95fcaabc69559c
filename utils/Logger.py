#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import threading
from colorama import init, Fore, Style
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path

from utils.ConfigLoader import DEFAULTS, ConfigLoader

init()

# Relays and sessions log from many threads at once
_lock = threading.Lock()


class DebugColorLevel(Enum):
    SUCCESS = Fore.GREEN + Style.BRIGHT
    INFO = Fore.BLUE + Style.BRIGHT
    WARNING = Fore.YELLOW + Style.BRIGHT
    ERROR = Fore.RED + Style.BRIGHT
    DEBUG = Fore.CYAN + Style.BRIGHT


class DebugLevel(IntEnum):
    NONE = 0x00
    SUCCESS = 0x01
    INFO = 0x02
    WARNING = 0x04
    ERROR = 0x08
    DEBUG = 0x10
    ALL = 0xff


LEVEL_MAP = {
    'none': DebugLevel.NONE,
    'success': DebugLevel.SUCCESS,
    'information': DebugLevel.INFO,
    'info': DebugLevel.INFO,
    'warning': DebugLevel.WARNING,
    'error': DebugLevel.ERROR,
    'debug': DebugLevel.DEBUG,
    'all': DebugLevel.ALL,
}


class Logger:
    """Unified colored console logger + file logger."""

    @staticmethod
    def _get_logging_mask(levels):
        mask = DebugLevel.NONE
        for level in levels:
            level = level.strip().lower()
            if level in LEVEL_MAP:
                mask |= LEVEL_MAP[level]

        return mask

    @staticmethod
    def _logging_config():
        try:
            return ConfigLoader.get_config().get('Logging', {})
        except RuntimeError:
            # settings failed to load; still able to report why
            return DEFAULTS['Logging']

    @staticmethod
    def _should_log(level: DebugLevel):
        levels = str(Logger._logging_config().get('logging_levels', 'All')).split(',')
        mask = Logger._get_logging_mask(levels)
        return (mask & level) != 0

    @staticmethod
    def _should_log_file(level: DebugLevel):
        if not Logger._logging_config().get('log_file'):
            return False
        levels = str(Logger._logging_config().get('logging_file_levels', 'All')).split(',')
        mask = Logger._get_logging_mask(levels)
        return (mask & level) != 0

    @staticmethod
    def _timestamp():
        return datetime.now().strftime(Logger._logging_config().get('date_format', '%Y-%m-%dT%H:%M:%S'))

    @staticmethod
    def _colorize(label, color, msg):
        return f"{color.value}{label}{Style.RESET_ALL} {Logger._timestamp()} {msg}"

    @staticmethod
    def log_path() -> Path:
        cfg = Logger._logging_config()
        return Path(cfg.get('log_dir') or '.') / cfg.get('log_file', '')

    @staticmethod
    def set_level(levels):
        """
        Replace the console level mask, e.g. "All" or "Warning, Error".
        """
        ConfigLoader.get_config().setdefault('Logging', {})['logging_levels'] = levels

    @staticmethod
    def add_to_log(msg, level_tag):
        path = Logger.log_path()
        line = f"[{level_tag}] {Logger._timestamp()} {msg}"

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding='utf-8', errors='replace') as log:
            log.write(line + "\n")

    @staticmethod
    def reset_log():
        if not Logger._logging_config().get('log_file'):
            return
        path = Logger.log_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        open(path, "w").close()

    @staticmethod
    def _emit(level: DebugLevel, color: DebugColorLevel, tag, msg):
        with _lock:
            if Logger._should_log(level):
                print(Logger._colorize(f"[{tag}]", color, msg), flush=True)
            if Logger._should_log_file(level):
                Logger.add_to_log(msg, tag)

    # ===================================================================
    # Console + File logging methods
    # ===================================================================

    @staticmethod
    def debug(msg):
        Logger._emit(DebugLevel.DEBUG, DebugColorLevel.DEBUG, "DEBUG", msg)

    @staticmethod
    def info(msg):
        Logger._emit(DebugLevel.INFO, DebugColorLevel.INFO, "INFO", msg)

    @staticmethod
    def warning(msg):
        Logger._emit(DebugLevel.WARNING, DebugColorLevel.WARNING, "WARNING", msg)

    @staticmethod
    def error(msg):
        Logger._emit(DebugLevel.ERROR, DebugColorLevel.ERROR, "ERROR", msg)

    @staticmethod
    def success(msg):
        Logger._emit(DebugLevel.SUCCESS, DebugColorLevel.SUCCESS, "SUCCESS", msg)
