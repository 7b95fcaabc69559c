#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse

import argcomplete
from argcomplete.completers import FilesCompleter

from utils.ConfigLoader import DEFAULTS


def build_parser():
    config = DEFAULTS
    parser = argparse.ArgumentParser(
        prog=config["tool_name"],
        description="Configuration-driven TCP port forwarder",
    )
    parser.add_argument(
        "config_path", type=str, help="Path to the JSON mapping file"
    ).completer = FilesCompleter(allowednames=("json",))
    parser.add_argument("--debug", action="store_true", help="Display debug logs")
    parser.add_argument(
        "--settings", type=str, help="Alternative settings YAML (default etc/config.yaml)"
    ).completer = FilesCompleter(allowednames=("yaml", "yml"))
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {config['version']}"
    )
    return parser


def parse_args(argv=None):
    parser = build_parser()
    argcomplete.autocomplete(parser)
    return parser.parse_args(argv)
