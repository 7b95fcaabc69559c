#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Shared helpers for the network tests."""

from __future__ import annotations

import socket
import threading
import time
from typing import Callable


class RecordingLogger:
    """Stands in for utils.Logger.Logger and keeps every message."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def _record(self, level: str, msg: str) -> None:
        with self._lock:
            self.records.append((level, msg))

    def debug(self, msg: str) -> None:
        self._record("debug", msg)

    def info(self, msg: str) -> None:
        self._record("info", msg)

    def success(self, msg: str) -> None:
        self._record("success", msg)

    def warning(self, msg: str) -> None:
        self._record("warning", msg)

    def error(self, msg: str) -> None:
        self._record("error", msg)

    def messages(self, level: str) -> list[str]:
        with self._lock:
            return [msg for lvl, msg in self.records if lvl == level]


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def unused_port() -> int:
    """A loopback port nothing listens on (at the time of the call)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def recv_exactly(sock: socket.socket, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = sock.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class EchoServer:
    """
    Threaded loopback server writing back whatever it reads.

    ``closed_connections`` counts connections whose peer closed first;
    ``close_all()`` drops every live connection from the server side.
    """

    def __init__(self) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(16)
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.accepted = 0
        self.closed_connections = 0
        self.received = bytearray()
        self._conns: list[socket.socket] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self) -> "EchoServer":
        self._thread.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self._stop.set()
        self._thread.join(2)
        self.close_all()
        self.sock.close()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(None)
            with self._lock:
                self.accepted += 1
                self._conns.append(conn)
            threading.Thread(target=self._echo, args=(conn,), daemon=True).start()

    def _echo(self, conn: socket.socket) -> None:
        try:
            while True:
                data = conn.recv(65536)
                if not data:
                    with self._lock:
                        self.closed_connections += 1
                    break
                with self._lock:
                    self.received.extend(data)
                conn.sendall(data)
        except OSError:
            pass
        finally:
            conn.close()

    def close_all(self) -> None:
        with self._lock:
            conns, self._conns = self._conns, []
        for conn in conns:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()
