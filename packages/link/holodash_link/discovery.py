"""Discovery/heartbeat state machine for a single telemetry host."""

from __future__ import annotations

import logging
from typing import Protocol

from .models import (
    DISCOVER,
    HEARTBEAT_TICKS,
    PING,
    SERVER,
    STATUS_SENTINEL,
    Datagram,
    DiscoveryState,
    Endpoint,
    MessageKind,
)


logger = logging.getLogger("holodash.link")


class DatagramSender(Protocol):
    broadcast_address: Endpoint | None

    def send(self, payload: bytes, destination: Endpoint) -> bool: ...


def classify_payload(payload: bytes) -> MessageKind:
    if payload.startswith(SERVER):
        return MessageKind.ANNOUNCEMENT
    if payload.startswith(STATUS_SENTINEL):
        return MessageKind.STATUS
    return MessageKind.UNKNOWN


class DiscoveryEngine:
    """Idle -> Searching -> Connected. Connected is terminal; there is no liveness timeout."""

    def __init__(self, transport: DatagramSender, heartbeat_ticks: int = HEARTBEAT_TICKS) -> None:
        if heartbeat_ticks < 1:
            raise ValueError("heartbeat_ticks must be >= 1")
        self.transport = transport
        self.heartbeat_ticks = heartbeat_ticks
        self.state = DiscoveryState.IDLE
        self.endpoint: Endpoint | None = None
        self._counter = 0

    @property
    def connected(self) -> bool:
        return self.state == DiscoveryState.CONNECTED

    def start(self) -> None:
        if self.state == DiscoveryState.IDLE:
            self.state = DiscoveryState.SEARCHING
            logger.info("searching for telemetry host", extra={"event": "discovery_searching"})

    def on_tick(self) -> bytes | None:
        """Advance the heartbeat counter; returns the payload actually sent this tick, if any."""
        self.start()
        self._counter += 1
        if self._counter < self.heartbeat_ticks:
            return None
        self._counter = 0
        return self._heartbeat()

    def _heartbeat(self) -> bytes | None:
        if self.state == DiscoveryState.CONNECTED:
            payload, target = PING, self.endpoint
        else:
            payload, target = DISCOVER, self.transport.broadcast_address
        if target is None:
            return None
        if not self.transport.send(payload, target):
            logger.debug("heartbeat %s to %s not sent", payload.decode("ascii"), target)
            return None
        return payload

    def handle_datagram(self, datagram: Datagram) -> MessageKind:
        kind = classify_payload(datagram.payload)
        if kind == MessageKind.ANNOUNCEMENT and self.state != DiscoveryState.CONNECTED:
            self.start()
            self.endpoint = datagram.sender
            self.state = DiscoveryState.CONNECTED
            logger.info(
                "telemetry host found at %s",
                self.endpoint,
                extra={"event": "discovery_connected", "endpoint": str(self.endpoint)},
            )
        return kind
