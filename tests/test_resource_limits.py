#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Unit tests for the open file limit helper."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from support import RecordingLogger
from utils import ResourceLimits


def fake_resource(soft: int, hard: int) -> MagicMock:
    resource = MagicMock()
    resource.RLIMIT_NOFILE = 7
    resource.RLIM_INFINITY = -1
    resource.getrlimit.return_value = (soft, hard)
    return resource


class EnsureOpenFileLimitTest(unittest.TestCase):
    """Tests for ensure_open_file_limit."""

    def setUp(self) -> None:
        self.logger = RecordingLogger()

    def test_desired_limit(self) -> None:
        """Two descriptors per relay plus one."""
        self.assertEqual(ResourceLimits.desired_open_file_limit(100), 201)

    def test_sufficient_limit_left_alone(self) -> None:
        """Nothing changes when the soft limit is above the relay count."""
        resource = fake_resource(1024, 4096)
        with patch.object(ResourceLimits, "resource", resource):
            self.assertTrue(ResourceLimits.ensure_open_file_limit(100, self.logger))
        resource.setrlimit.assert_not_called()

    def test_low_limit_is_raised(self) -> None:
        """A low soft limit is raised to the desired value."""
        resource = fake_resource(64, 4096)
        with patch.object(ResourceLimits, "resource", resource):
            self.assertTrue(ResourceLimits.ensure_open_file_limit(100, self.logger))
        resource.setrlimit.assert_called_once_with(7, (201, 4096))
        self.assertEqual(len(self.logger.messages("debug")), 2)

    def test_raise_is_capped_by_hard_limit(self) -> None:
        """The hard limit caps the new soft limit."""
        resource = fake_resource(64, 80)
        with patch.object(ResourceLimits, "resource", resource):
            self.assertFalse(ResourceLimits.ensure_open_file_limit(100, self.logger))
        resource.setrlimit.assert_called_once_with(7, (80, 80))

    def test_setrlimit_failure_warns(self) -> None:
        """A refused raise is a warning, not an error."""
        resource = fake_resource(64, 4096)
        resource.setrlimit.side_effect = ValueError("not allowed")
        with patch.object(ResourceLimits, "resource", resource):
            self.assertFalse(ResourceLimits.ensure_open_file_limit(100, self.logger))
        self.assertIn("ulimit -n 201", self.logger.messages("warning")[0])

    def test_getrlimit_failure_warns(self) -> None:
        """An unreadable limit is a warning."""
        resource = fake_resource(0, 0)
        resource.getrlimit.side_effect = OSError("no")
        with patch.object(ResourceLimits, "resource", resource):
            self.assertFalse(ResourceLimits.ensure_open_file_limit(100, self.logger))
        self.assertEqual(len(self.logger.messages("warning")), 1)

    def test_platform_without_resource_module(self) -> None:
        """Platforms without resource limits are treated as sufficient."""
        with patch.object(ResourceLimits, "resource", None):
            self.assertTrue(ResourceLimits.ensure_open_file_limit(100, self.logger))


if __name__ == "__main__":
    unittest.main()
