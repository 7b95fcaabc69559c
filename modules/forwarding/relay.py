#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import errno
import socket
import threading
from dataclasses import dataclass

from modules.forwarding.errors import ConfigurationError, ConnectError, RelayStartError
from modules.forwarding.session import ConnectionSession
from utils.ConfigLoader import ConfigLoader
from utils.Logger import Logger

# accept() failures that say nothing about the listener itself
TRANSIENT_ACCEPT_ERRORS = frozenset(
    code
    for code in (
        getattr(errno, "EMFILE", None),
        getattr(errno, "ENFILE", None),
        getattr(errno, "ENOBUFS", None),
        getattr(errno, "ENOMEM", None),
        getattr(errno, "ECONNABORTED", None),
        getattr(errno, "EPROTO", None),
    )
    if code is not None
)
ACCEPT_RETRY_DELAY = 0.1


@dataclass(frozen=True)
class RelaySettings:
    backlog: int = 128
    buffer_size: int = 65536
    accept_timeout: float = 1.0
    connect_timeout: float | None = 10.0
    reuse_address: bool = True

    @classmethod
    def from_config(cls, cfg: dict | None = None) -> "RelaySettings":
        section = (cfg if cfg is not None else ConfigLoader.get_config()).get("Relay") or {}
        try:
            connect_timeout = section.get("connect_timeout", cls.connect_timeout)
            settings = cls(
                backlog=int(section.get("backlog", cls.backlog)),
                buffer_size=int(section.get("buffer_size", cls.buffer_size)),
                accept_timeout=float(section.get("accept_timeout", cls.accept_timeout)),
                connect_timeout=float(connect_timeout) if connect_timeout else None,
                reuse_address=bool(section.get("reuse_address", cls.reuse_address)),
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid Relay settings: {exc}") from exc

        # recv(0) and a zero accept timeout would both spin
        if settings.buffer_size <= 0 or settings.accept_timeout <= 0:
            raise ConfigurationError(
                "Invalid Relay settings: buffer_size and accept_timeout must be positive"
            )
        return settings


def _format_peer(addr) -> str:
    if isinstance(addr, tuple) and len(addr) >= 2:
        host, port = addr[0], addr[1]
        if ":" in host:
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(addr)


class Relay:
    """
    Owns the listening socket of one concrete pair and forwards every
    accepted connection to the pair's target.
    """

    def __init__(self, pair, settings: RelaySettings | None = None, logger=Logger):
        self.pair = pair
        self.settings = settings or RelaySettings.from_config()
        self.logger = logger
        self.stop_event = threading.Event()
        self.server_socket = None
        self.bound_address = None
        self.accepted = 0

        self._lock = threading.Lock()
        self._sessions: set[ConnectionSession] = set()

    @property
    def tag(self) -> str:
        return f"[{self.pair}]"

    @property
    def active_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ----------------------------------------------------------------------

    def bind(self):
        """Create, bind and listen. Raises RelayStartError on failure."""
        family = socket.AF_INET6 if self.pair.listen_ip.version == 6 else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            if self.settings.reuse_address:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if family == socket.AF_INET6 and hasattr(socket, "IPV6_V6ONLY"):
                # "::" must not also claim the IPv4 port of a "0.0.0.0" rule
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
            sock.bind(self.pair.listen_address)
            sock.listen(self.settings.backlog)
            # accept() wakes up regularly to look at stop_event
            sock.settimeout(self.settings.accept_timeout)
        except OSError as exc:
            sock.close()
            raise RelayStartError(self.pair, exc) from exc

        self.server_socket = sock
        self.bound_address = sock.getsockname()[:2]
        self.logger.info(f"{self.tag} Listening on {_format_peer(self.bound_address)}")
        return self.bound_address

    def start(self):
        """Bind and serve until stopped (blocking)."""
        self.bind()
        self.serve()

    def serve(self):
        listener = self.server_socket
        if listener is None:
            raise RuntimeError("Relay.serve() called before bind()")

        try:
            while not self.stop_event.is_set():
                try:
                    client_sock, addr = listener.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self.stop_event.is_set():
                        break
                    if exc.errno in TRANSIENT_ACCEPT_ERRORS:
                        self.logger.warning(f"{self.tag} Accept failed, retrying: {exc}")
                        self.stop_event.wait(ACCEPT_RETRY_DELAY)
                        continue
                    self.logger.error(f"{self.tag} Accept failed, relay stopped: {exc}")
                    break

                self.accepted += 1
                threading.Thread(
                    target=self.handle_client,
                    args=(client_sock, addr),
                    name=f"client-{self.pair.listen_port}",
                    daemon=True,
                ).start()
        finally:
            self._close_listener()

        self.logger.info(f"{self.tag} Relay stopped")

    # ----------------------------------------------------------------------

    def handle_client(self, client_sock, addr):
        """Connect to the target and relay until either side is done."""
        peer = _format_peer(addr)
        self.logger.debug(f"{self.tag} New client: {peer}")
        client_sock.settimeout(None)

        try:
            upstream_sock = self.open_upstream(peer)
        except ConnectError as exc:
            self.logger.error(f"{self.tag} {exc}")
            client_sock.close()
            return

        session = ConnectionSession(
            client_sock,
            peer,
            upstream_sock,
            self.pair,
            buffer_size=self.settings.buffer_size,
            logger=self.logger,
        )
        with self._lock:
            self._sessions.add(session)
        # stop() may have run between accept and registration
        if self.stop_event.is_set():
            session.shutdown()

        try:
            session.run()
        finally:
            with self._lock:
                self._sessions.discard(session)

    def open_upstream(self, peer):
        try:
            upstream_sock = socket.create_connection(
                self.pair.target_address, timeout=self.settings.connect_timeout
            )
        except OSError as exc:
            raise ConnectError(self.pair, peer, exc) from exc
        upstream_sock.settimeout(None)
        return upstream_sock

    # ----------------------------------------------------------------------

    def stop(self):
        """Stop accepting and cut every live session. No drain."""
        self.stop_event.set()
        self._close_listener()

        with self._lock:
            sessions = list(self._sessions)
        for session in sessions:
            session.shutdown()

    def _close_listener(self):
        with self._lock:
            sock, self.server_socket = self.server_socket, None
        if sock is not None:
            sock.close()
