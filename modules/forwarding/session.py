#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import socket
import threading

from modules.forwarding.errors import TransferError
from utils.Logger import Logger

CLIENT_TO_TARGET = "C→S"
TARGET_TO_CLIENT = "S→C"


class ConnectionSession:
    """
    One accepted client paired with its outbound connection to the target.

    Both directions are copied on their own thread. As soon as one direction
    reaches end-of-stream or fails, both sockets are shut down so the other
    direction ends too; the sockets are closed once both copies returned.
    """

    def __init__(self, client_sock, peer, upstream_sock, pair, buffer_size=65536, logger=Logger):
        self.client_sock = client_sock
        self.upstream_sock = upstream_sock
        self.peer = peer
        self.pair = pair
        self.buffer_size = buffer_size
        self.logger = logger

        self.bytes_to_target = 0
        self.bytes_to_client = 0
        self.errors: list[TransferError] = []

        self._lock = threading.Lock()
        self._shutdown = threading.Event()

    @property
    def closed(self) -> bool:
        return self._shutdown.is_set()

    def run(self) -> tuple[int, int]:
        """Copy until either side is done. Returns (bytes to target, bytes to client)."""
        outbound = threading.Thread(
            target=self.forward,
            args=(self.client_sock, self.upstream_sock, CLIENT_TO_TARGET),
            name=f"session-{self.pair.listen_port}-out",
            daemon=True,
        )
        outbound.start()
        self.forward(self.upstream_sock, self.client_sock, TARGET_TO_CLIENT)
        outbound.join()

        self.client_sock.close()
        self.upstream_sock.close()

        self.logger.debug(
            f"[{self.pair}] {self.peer} closed: {self.bytes_to_target} bytes from client, "
            f"{self.bytes_to_client} bytes from target"
        )
        return self.bytes_to_target, self.bytes_to_client

    def forward(self, src, dst, direction):
        try:
            while True:
                buf = src.recv(self.buffer_size)
                if not buf:
                    break
                dst.sendall(buf)
                if direction == CLIENT_TO_TARGET:
                    self.bytes_to_target += len(buf)
                else:
                    self.bytes_to_client += len(buf)
        except OSError as exc:
            # errors caused by our own shutdown are expected
            if not self.closed:
                error = TransferError(direction, exc)
                self.errors.append(error)
                self.logger.warning(f"[{self.pair}] {self.peer} {error}")
        finally:
            self.shutdown()

    def shutdown(self):
        """Stop both directions. Safe to call from any thread, any number of times."""
        with self._lock:
            if self._shutdown.is_set():
                return
            self._shutdown.set()

        for sock in (self.client_sock, self.upstream_sock):
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                # peer already gone
                pass
