#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Starts and owns one relay per concrete pair."""

from __future__ import annotations

import threading
from typing import Iterable

from modules.forwarding.errors import ConfigurationError, RelayStartError
from modules.forwarding.mapping import ConcretePair
from modules.forwarding.relay import Relay, RelaySettings
from utils.ConfigLoader import ConfigLoader
from utils.Logger import Logger


class Supervisor:
    """
    Fans the pairs out into relays, each serving on its own thread.

    A relay that cannot bind is logged and recorded in ``failures``; the
    others are started regardless.
    """

    def __init__(
        self,
        pairs: Iterable[ConcretePair],
        settings: RelaySettings | None = None,
        logger=Logger,
        max_relays: int | None = None,
    ) -> None:
        self.logger = logger
        self.settings = settings or RelaySettings.from_config()
        if max_relays is None:
            section = ConfigLoader.get_config().get("Supervisor") or {}
            try:
                max_relays = int(section.get("max_relays", 0))
            except (AttributeError, TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid Supervisor.max_relays: {exc}") from exc

        self.pairs = self._unique(pairs)
        if max_relays and len(self.pairs) > max_relays:
            raise ConfigurationError(
                f"{len(self.pairs)} relays requested but Supervisor.max_relays is {max_relays}"
            )

        self.relays: list[Relay] = []
        self.failures: list[RelayStartError] = []
        self.stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    def _unique(self, pairs):
        seen = set()
        unique = []
        for pair in pairs:
            if pair in seen:
                self.logger.warning(f"[{pair}] Duplicate mapping ignored")
                continue
            seen.add(pair)
            unique.append(pair)
        return unique

    @property
    def running(self) -> int:
        return sum(1 for thread in self._threads if thread.is_alive())

    # ----------------------------------------------------------------------

    def start(self) -> list[Relay]:
        for pair in self.pairs:
            if self.stop_event.is_set():
                break

            relay = Relay(pair, self.settings, self.logger)
            try:
                relay.bind()
            except RelayStartError as exc:
                self.logger.error(str(exc))
                self.failures.append(exc)
                continue

            thread = threading.Thread(
                target=self._serve,
                args=(relay,),
                name=f"relay-{pair.listen_port}",
                daemon=True,
            )
            thread.start()
            self.relays.append(relay)
            self._threads.append(thread)

        if self.failures:
            self.logger.warning(
                f"Started {len(self.relays)} of {len(self.pairs)} relays, "
                f"{len(self.failures)} failed to bind"
            )
        elif self.relays:
            self.logger.success(f"Started {len(self.relays)} relays")

        return list(self.relays)

    def _serve(self, relay: Relay):
        try:
            relay.serve()
        except Exception as exc:
            # a crashing relay must not take its siblings down
            self.logger.error(f"[{relay.pair}] Relay crashed: {exc}")
            relay.stop()

    def wait(self, poll_interval: float = 1.0):
        """Block while any relay is serving and no stop was requested."""
        while not self.stop_event.is_set():
            if not any(thread.is_alive() for thread in self._threads):
                break
            self.stop_event.wait(poll_interval)

    def request_stop(self):
        """Wake up wait(). Safe to call from a signal handler."""
        self.stop_event.set()

    def stop(self, timeout: float | None = 5.0):
        self.stop_event.set()
        for relay in self.relays:
            relay.stop()
        for thread in self._threads:
            thread.join(timeout)
        self.logger.info("All relays stopped")

    def run(self) -> int:
        """Start every relay, then block until they are done. Returns the number started."""
        started = self.start()
        if started:
            self.wait()
        return len(started)
