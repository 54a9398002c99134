"""Typed models for the discovery/heartbeat link."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


UDP_PORT = 9001
RECV_FRAME_BYTES = 4096
HEARTBEAT_TICKS = 60

DISCOVER = b"DISCOVER"
PING = b"PING"
SERVER = b"SERVER"
STATUS_SENTINEL = b"{"


class DiscoveryState(str, Enum):
    IDLE = "Idle"
    SEARCHING = "Searching"
    CONNECTED = "Connected"


class MessageKind(str, Enum):
    ANNOUNCEMENT = "announcement"
    STATUS = "status"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    @classmethod
    def from_address(cls, address: tuple) -> "Endpoint":
        return cls(host=str(address[0]), port=int(address[1]))

    def as_address(self) -> tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Datagram:
    payload: bytes
    sender: Endpoint
    truncated: bool = False


@dataclass
class LinkStats:
    datagrams_sent: int = 0
    datagrams_received: int = 0
    send_errors: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
