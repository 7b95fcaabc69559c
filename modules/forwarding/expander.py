#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Expands mapping rules into concrete listen → target pairs."""

from __future__ import annotations

from typing import Iterable

from modules.forwarding.errors import ConfigurationError
from modules.forwarding.mapping import ConcretePair, MappingRule


def expand_rule(rule: MappingRule, index: int | None = None) -> list[ConcretePair]:
    """
    Pair the ports of ``rule.port`` with the ports of ``rule.target_port``
    position by position.

    Raises ConfigurationError when both sides do not cover the same number
    of ports; nothing of the rule is returned in that case.
    """
    listen_count = len(rule.port)
    target_count = len(rule.target_port)
    if listen_count != target_count:
        raise ConfigurationError(
            f"IP {rule.ip}: port {rule.port} covers {listen_count} port(s) "
            f"but target_port {rule.target_port} covers {target_count}",
            index,
        )

    target_ip = rule.destination_ip
    return [
        ConcretePair(rule.ip, listen_port, target_ip, target_port)
        for listen_port, target_port in zip(rule.port, rule.target_port)
    ]


def expand_rules(rules: Iterable[MappingRule]) -> list[ConcretePair]:
    """Expand every rule in order. The first invalid rule aborts the whole expansion."""
    pairs: list[ConcretePair] = []
    for index, rule in enumerate(rules):
        pairs.extend(expand_rule(rule, index))
    return pairs
