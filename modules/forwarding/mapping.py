#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mapping model: port specifications, configured rules and the concrete
listen → target pairs they resolve to.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any, Iterator, Union

from modules.forwarding.errors import ConfigurationError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

MIN_PORT = 1
MAX_PORT = 65535


def _format_endpoint(ip: IPAddress, port: int) -> str:
    if ip.version == 6:
        return f"[{ip}]:{port}"
    return f"{ip}:{port}"


@dataclass(frozen=True)
class PortSpec:
    """
    A single port or an inclusive port range.

    A single port is stored as a range of length one, so ``PortSpec.range(p, p)``
    and ``PortSpec.single(p)`` compare equal and iterate the same way.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Port range start {self.start} is after end {self.end}")

    @classmethod
    def single(cls, port: int) -> "PortSpec":
        return cls(port, port)

    @classmethod
    def range(cls, start: int, end: int) -> "PortSpec":
        return cls(start, end)

    @property
    def is_single(self) -> bool:
        return self.start == self.end

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        if self.is_single:
            return str(self.start)
        return f"{self.start}-{self.end}"

    @classmethod
    def from_raw(cls, value: Any, field: str, rule_index: int | None = None) -> "PortSpec":
        """
        Build a PortSpec from its JSON shape: an integer, or an object with
        integer ``start`` and ``end`` keys.
        """
        if isinstance(value, dict):
            missing = [key for key in ("start", "end") if key not in value]
            if missing:
                raise ConfigurationError(
                    f"'{field}' range is missing {', '.join(missing)}", rule_index
                )
            start = _check_port(value["start"], f"{field}.start", rule_index)
            end = _check_port(value["end"], f"{field}.end", rule_index)
            if start > end:
                raise ConfigurationError(
                    f"'{field}' range start {start} is after end {end}", rule_index
                )
            return cls(start, end)

        port = _check_port(value, field, rule_index)
        return cls.single(port)


def _check_port(value: Any, field: str, rule_index: int | None) -> int:
    # bool is an int subclass; JSON true/false is never a port
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"'{field}' must be an integer port or a {{start, end}} object, got {value!r}",
            rule_index,
        )
    if not MIN_PORT <= value <= MAX_PORT:
        raise ConfigurationError(
            f"'{field}' {value} is outside {MIN_PORT}-{MAX_PORT}", rule_index
        )
    return value


def _parse_ip(value: Any, field: str, rule_index: int | None) -> IPAddress:
    if not isinstance(value, str):
        raise ConfigurationError(f"'{field}' must be an IP address string, got {value!r}", rule_index)
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        raise ConfigurationError(f"'{field}' {value!r} is not a valid IPv4 or IPv6 address", rule_index)


@dataclass(frozen=True)
class MappingRule:
    """One configured entry of the mapping file."""

    ip: IPAddress
    port: PortSpec
    target_port: PortSpec
    target_ip: IPAddress | None = None

    @property
    def destination_ip(self) -> IPAddress:
        """Host the target ports live on; the listen IP unless overridden."""
        return self.target_ip if self.target_ip is not None else self.ip

    @classmethod
    def from_dict(cls, raw: Any, rule_index: int | None = None) -> "MappingRule":
        if not isinstance(raw, dict):
            raise ConfigurationError(f"expected an object, got {type(raw).__name__}", rule_index)

        missing = [key for key in ("ip", "port", "target_port") if key not in raw]
        if missing:
            raise ConfigurationError(f"missing required key(s): {', '.join(missing)}", rule_index)

        ip = _parse_ip(raw["ip"], "ip", rule_index)
        target_ip = None
        if raw.get("target_ip") is not None:
            target_ip = _parse_ip(raw["target_ip"], "target_ip", rule_index)

        return cls(
            ip=ip,
            port=PortSpec.from_raw(raw["port"], "port", rule_index),
            target_port=PortSpec.from_raw(raw["target_port"], "target_port", rule_index),
            target_ip=target_ip,
        )


@dataclass(frozen=True)
class ConcretePair:
    """One resolved single-port to single-port forwarding unit."""

    listen_ip: IPAddress
    listen_port: int
    target_ip: IPAddress
    target_port: int

    @property
    def listen_address(self) -> tuple[str, int]:
        return str(self.listen_ip), self.listen_port

    @property
    def target_address(self) -> tuple[str, int]:
        return str(self.target_ip), self.target_port

    @property
    def listen_label(self) -> str:
        return _format_endpoint(self.listen_ip, self.listen_port)

    @property
    def target_label(self) -> str:
        return _format_endpoint(self.target_ip, self.target_port)

    def __str__(self) -> str:
        return f"{self.listen_label} → {self.target_label}"
