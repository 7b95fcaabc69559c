#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import signal
import sys

from modules.forwarding.errors import ConfigurationError
from modules.forwarding.expander import expand_rules
from modules.forwarding.supervisor import Supervisor
from utils.CliArgs import parse_args
from utils.ConfigLoader import ConfigLoader
from utils.FileUtils import FileHandler
from utils.Logger import Logger
from utils.ResourceLimits import ensure_open_file_limit

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_NO_RELAY = 2


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = ConfigLoader.reload_config(args.settings) if args.settings else ConfigLoader.get_config()
    except RuntimeError as exc:
        Logger.error(str(exc))
        return EXIT_CONFIG_ERROR

    if args.debug:
        Logger.set_level("All")

    Logger.reset_log()
    Logger.info(f"{config['tool_name']} {config['version']}")

    # Nothing is bound unless the whole mapping file is valid
    try:
        rules = FileHandler.load_mapping_rules(args.config_path)
        pairs = expand_rules(rules)
        supervisor = Supervisor(pairs)
    except ConfigurationError as exc:
        Logger.error(f"Invalid configuration: {exc}")
        return EXIT_CONFIG_ERROR

    Logger.info(f"Loaded {len(rules)} mapping rules, {len(supervisor.pairs)} relays")

    if config.get("Supervisor", {}).get("raise_open_file_limit", True):
        ensure_open_file_limit(len(supervisor.pairs))

    def on_signal(signum, frame):
        Logger.info(f"Received signal {signum}, stopping...")
        supervisor.request_stop()

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        started = supervisor.start()
        if not started:
            Logger.error("No relay could be started")
            return EXIT_NO_RELAY
        supervisor.wait()
    finally:
        supervisor.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
