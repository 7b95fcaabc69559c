#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json

from modules.forwarding.errors import ConfigurationError
from modules.forwarding.mapping import MappingRule


class FileHandler():
    """
    Utility class for loading the mapping file.

    The file is a JSON array of rules; every failure, from an unreadable path
    to a single bad rule, surfaces as a ConfigurationError.
    """

    @staticmethod
    def load_json_file(file_path: str):
        with open(file_path, "r", encoding="utf-8") as file:
            return json.load(file)

    @staticmethod
    def load_mapping_rules(file_path: str) -> list[MappingRule]:
        try:
            raw_rules = FileHandler.load_json_file(file_path)
        except OSError as exc:
            raise ConfigurationError(f"Unable to read mapping file {file_path}: {exc}")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"Mapping file {file_path} is not valid JSON: {exc}")

        if not isinstance(raw_rules, list):
            raise ConfigurationError(
                f"Mapping file {file_path} must contain a JSON array, got {type(raw_rules).__name__}"
            )
        if not raw_rules:
            raise ConfigurationError(f"Mapping file {file_path} contains no rules")

        return [MappingRule.from_dict(raw, index) for index, raw in enumerate(raw_rules)]
