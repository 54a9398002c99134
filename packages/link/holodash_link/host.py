"""Single-peer development host that answers discovery and pushes status reports."""

from __future__ import annotations

import json
import logging
import select
import socket
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .models import DISCOVER, PING, SERVER, UDP_PORT, Endpoint


logger = logging.getLogger("holodash.host")

_HELLO = b"HELLO"
_FAN_PREFIX = b"FAN:"
_RECV_BYTES = 64


def encode_status(status: Mapping[str, Any]) -> bytes:
    # Compact separators: clients match on the exact `"key":` pattern.
    return json.dumps(dict(status), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass
class HostStats:
    discover_requests: int = 0
    pings: int = 0
    fan_commands: int = 0
    status_pushes: int = 0
    peer_timeouts: int = 0


class HostEmulator:
    """Tracks at most one client; a newer DISCOVER replaces the previous peer."""

    def __init__(
        self,
        status_source: Callable[[], Mapping[str, Any]],
        port: int = UDP_PORT,
        bind_host: str = "0.0.0.0",
        push_interval_ms: int = 100,
        client_timeout_s: float = 10.0,
        socket_factory: Callable[[], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.status_source = status_source
        self.port = port
        self.bind_host = bind_host
        self.push_interval_s = max(push_interval_ms, 1) / 1000
        self.client_timeout_s = client_timeout_s
        self._socket_factory = socket_factory or (lambda: socket.socket(socket.AF_INET, socket.SOCK_DGRAM))
        self._clock = clock
        self._sock: Any | None = None
        self.peer: Endpoint | None = None
        self.fan_mode: str | None = None
        self.stats = HostStats()
        self._last_seen = 0.0
        self._next_push = 0.0

    def open(self) -> None:
        if self._sock is not None:
            return
        sock = self._socket_factory()
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.bind_host, self.port))
        sock.setblocking(False)
        self._sock = sock
        logger.info("host emulator listening on %s:%s", self.bind_host, self.port, extra={"event": "host_listening"})

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass

    def _register(self, sender: Endpoint, now: float) -> None:
        if self.peer != sender:
            logger.info("client registered: %s", sender, extra={"event": "host_peer"})
        self.peer = sender
        self._last_seen = now

    def handle(self, payload: bytes, sender: Endpoint, now: float | None = None) -> bytes | None:
        """Apply one inbound datagram; returns the reply to send back, if any."""
        now = self._clock() if now is None else now
        if payload.startswith(DISCOVER):
            self.stats.discover_requests += 1
            self._register(sender, now)
            return SERVER
        if payload.startswith(PING) or payload.startswith(_HELLO):
            self.stats.pings += 1
            self._register(sender, now)
            return None
        if payload.startswith(_FAN_PREFIX):
            self.stats.fan_commands += 1
            mode = payload[len(_FAN_PREFIX) :].decode("ascii", errors="ignore").strip().lower()
            self.fan_mode = mode
            self._register(sender, now)
            logger.info("fan mode request: %s from %s", mode, sender, extra={"event": "host_fan_mode"})
            return f"FAN_OK:{mode}".encode("ascii")
        return None

    def expire_peer(self, now: float) -> None:
        if self.peer is not None and now - self._last_seen >= self.client_timeout_s:
            logger.info("client timed out: %s", self.peer, extra={"event": "host_peer_timeout"})
            self.stats.peer_timeouts += 1
            self.peer = None

    def push_due(self, now: float) -> bytes | None:
        """Status payload to push now, or None when nothing is due."""
        self.expire_peer(now)
        if self.peer is None or now < self._next_push:
            return None
        self._next_push = now + self.push_interval_s
        self.stats.status_pushes += 1
        return encode_status(self.status_source())

    def _send(self, payload: bytes, target: Endpoint) -> None:
        if self._sock is None:
            raise RuntimeError("host emulator is not open")
        try:
            self._sock.sendto(payload, target.as_address())
        except OSError as exc:
            logger.debug("host send to %s failed: %s", target, exc)

    def step(self, timeout: float = 0.01) -> None:
        if self._sock is None:
            raise RuntimeError("host emulator is not open")
        try:
            readable, _, _ = select.select([self._sock], [], [], max(timeout, 0.0))
        except (OSError, ValueError):
            readable = []
        if readable:
            try:
                data, address = self._sock.recvfrom(_RECV_BYTES)
            except (BlockingIOError, InterruptedError):
                data = None
            except OSError as exc:
                logger.debug("host receive failed: %s", exc)
                data = None
            if data is not None:
                sender = Endpoint.from_address(address)
                reply = self.handle(data, sender)
                if reply is not None:
                    self._send(reply, sender)

        payload = self.push_due(self._clock())
        if payload is not None and self.peer is not None:
            self._send(payload, self.peer)

    def serve(self, duration_s: float | None = None, should_stop: Callable[[], bool] | None = None) -> HostStats:
        self.open()
        deadline = None if duration_s is None else self._clock() + duration_s
        try:
            while True:
                if should_stop is not None and should_stop():
                    break
                if deadline is not None and self._clock() >= deadline:
                    break
                self.step(timeout=min(self.push_interval_s, 0.05))
        finally:
            self.close()
        return self.stats
