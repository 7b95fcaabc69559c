#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Unit tests for mapping file loading."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from modules.forwarding.errors import ConfigurationError
from modules.forwarding.mapping import PortSpec
from utils.FileUtils import FileHandler


class LoadMappingRulesTest(unittest.TestCase):
    """Tests for FileHandler.load_mapping_rules."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write(self, content) -> str:
        path = self.root / "mappings.json"
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return str(path)

    def test_loads_rules_in_file_order(self) -> None:
        """Single and ranged rules parse into MappingRules."""
        path = self.write(
            [
                {"ip": "127.0.0.1", "port": 8000, "target_port": 9000},
                {
                    "ip": "10.0.0.1",
                    "port": {"start": 1, "end": 3},
                    "target_port": {"start": 101, "end": 103},
                },
            ]
        )
        rules = FileHandler.load_mapping_rules(path)
        self.assertEqual(len(rules), 2)
        self.assertEqual(rules[0].port, PortSpec.single(8000))
        self.assertEqual(rules[1].target_port, PortSpec.range(101, 103))

    def test_example_file_is_valid(self) -> None:
        """The shipped example mapping file loads."""
        example = Path(__file__).resolve().parent.parent / "etc" / "mappings.example.json"
        rules = FileHandler.load_mapping_rules(str(example))
        self.assertTrue(rules)

    def test_missing_file(self) -> None:
        """An unreadable path is a configuration error."""
        with self.assertRaises(ConfigurationError) as ctx:
            FileHandler.load_mapping_rules(str(self.root / "absent.json"))
        self.assertIn("Unable to read", str(ctx.exception))

    def test_invalid_json(self) -> None:
        """Malformed JSON is a configuration error."""
        with self.assertRaises(ConfigurationError) as ctx:
            FileHandler.load_mapping_rules(self.write("[{"))
        self.assertIn("not valid JSON", str(ctx.exception))

    def test_top_level_must_be_array(self) -> None:
        """An object at the top level is rejected."""
        with self.assertRaises(ConfigurationError):
            FileHandler.load_mapping_rules(
                self.write({"ip": "127.0.0.1", "port": 1, "target_port": 2})
            )

    def test_empty_array_rejected(self) -> None:
        """A file without rules would start nothing."""
        with self.assertRaises(ConfigurationError):
            FileHandler.load_mapping_rules(self.write([]))

    def test_bad_rule_reports_index(self) -> None:
        """The failing element is named by its position."""
        path = self.write(
            [
                {"ip": "127.0.0.1", "port": 8000, "target_port": 9000},
                {"ip": "127.0.0.1", "port": "eighty", "target_port": 9000},
            ]
        )
        with self.assertRaises(ConfigurationError) as ctx:
            FileHandler.load_mapping_rules(path)
        self.assertEqual(ctx.exception.rule_index, 1)


if __name__ == "__main__":
    unittest.main()
