#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Error taxonomy for the forwarding engine."""

from __future__ import annotations


class PortForwardError(Exception):
    """Base class for every forwarding error."""


class ConfigurationError(PortForwardError):
    """Malformed mapping file, rule or setting. Nothing is bound when this is raised."""

    def __init__(self, message: str, rule_index: int | None = None) -> None:
        if rule_index is not None:
            message = f"Mapping rule #{rule_index}: {message}"
        super().__init__(message)
        self.rule_index = rule_index


class RelayStartError(PortForwardError):
    """A relay could not bind its listening socket."""

    def __init__(self, pair, cause: BaseException) -> None:
        super().__init__(f"Unable to listen on {pair.listen_label}: {cause}")
        self.pair = pair
        self.cause = cause


class ConnectError(PortForwardError):
    """Outbound connection to the target failed for one accepted client."""

    def __init__(self, pair, peer, cause: BaseException) -> None:
        super().__init__(
            f"Connection to {pair.target_label} for client {peer} failed: {cause}"
        )
        self.pair = pair
        self.peer = peer
        self.cause = cause


class TransferError(PortForwardError):
    """I/O failure while copying one direction of a session."""

    def __init__(self, direction: str, cause: BaseException) -> None:
        super().__init__(f"{direction} transfer failed: {cause}")
        self.direction = direction
        self.cause = cause
