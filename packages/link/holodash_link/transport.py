"""Non-blocking UDP transport with subnet broadcast support."""

from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import psutil

from .models import RECV_FRAME_BYTES, UDP_PORT, Datagram, Endpoint, LinkStats


logger = logging.getLogger("holodash.link")

_FALLBACK_PREFIX = 24
# Largest possible UDP payload; reading less makes Windows fail with WSAEMSGSIZE.
_MAX_DATAGRAM = 65535


def detect_local_ipv4() -> str | None:
    """Return the IPv4 address the default route would use, if any."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # connect() on UDP only selects a route, nothing is sent.
        probe.connect(("10.255.255.255", 1))
        address = probe.getsockname()[0]
    except OSError:
        return None
    finally:
        probe.close()
    if not address or address.startswith("127.") or address == "0.0.0.0":
        return None
    return address


def _netmask_for(local_ip: str, interfaces: Mapping[str, Any]) -> str | None:
    for addrs in interfaces.values():
        for item in addrs:
            if getattr(item, "family", None) == socket.AF_INET and item.address == local_ip:
                return item.netmask
    return None


def broadcast_for(local_ip: str, netmask: str | None) -> str:
    if netmask:
        network = ipaddress.IPv4Network(f"{local_ip}/{netmask}", strict=False)
    else:
        network = ipaddress.IPv4Network(f"{local_ip}/{_FALLBACK_PREFIX}", strict=False)
    return str(network.broadcast_address)


def resolve_broadcast_address(
    port: int = UDP_PORT,
    local_ip: str | None = None,
    interfaces: Mapping[str, Any] | None = None,
) -> Endpoint | None:
    """Local subnet broadcast endpoint, or ``None`` when no local address is known."""
    local_ip = local_ip or detect_local_ipv4()
    if not local_ip:
        return None
    if interfaces is None:
        try:
            interfaces = psutil.net_if_addrs()
        except Exception:
            interfaces = {}
    return Endpoint(host=broadcast_for(local_ip, _netmask_for(local_ip, interfaces)), port=port)


@dataclass
class TransportConfig:
    port: int = UDP_PORT
    bind_host: str = "0.0.0.0"
    recv_frame_bytes: int = RECV_FRAME_BYTES
    broadcast_override: str | None = None


class UdpTransport:
    """Best-effort datagram I/O. Never blocks and never raises on network errors."""

    def __init__(
        self,
        config: TransportConfig | None = None,
        socket_factory: Callable[[], Any] | None = None,
        broadcast_resolver: Callable[[int], Endpoint | None] | None = None,
    ) -> None:
        self.config = config or TransportConfig()
        self._socket_factory = socket_factory or (lambda: socket.socket(socket.AF_INET, socket.SOCK_DGRAM))
        self._broadcast_resolver = broadcast_resolver or resolve_broadcast_address
        self._sock: Any | None = None
        self.broadcast_address: Endpoint | None = None
        self.stats = LinkStats()
        self.last_error: str | None = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> bool:
        if self.is_open:
            return True
        sock = None
        try:
            sock = self._socket_factory()
            sock.setblocking(False)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.bind_host, self.config.port))
        except OSError as exc:
            self.last_error = str(exc)
            logger.warning("udp transport unavailable: %s", exc, extra={"event": "transport_open_failed"})
            if sock is not None:
                try:
                    sock.close()
                except OSError:
                    pass
            return False

        self._sock = sock
        self.broadcast_address = self._resolve_broadcast()
        if self.broadcast_address is None:
            logger.warning("no local address, discovery broadcast disabled", extra={"event": "broadcast_disabled"})
        logger.info(
            "udp transport bound on %s:%s",
            self.config.bind_host,
            self.config.port,
            extra={"event": "transport_open"},
        )
        return True

    def _resolve_broadcast(self) -> Endpoint | None:
        if self.config.broadcast_override:
            return Endpoint(host=self.config.broadcast_override, port=self.config.port)
        try:
            return self._broadcast_resolver(self.config.port)
        except OSError:
            return None

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass
            logger.info("udp transport closed", extra={"event": "transport_closed"})

    def send(self, payload: bytes, destination: Endpoint) -> bool:
        if self._sock is None:
            return False
        try:
            sent = self._sock.sendto(payload, destination.as_address())
        except OSError as exc:
            self.stats.send_errors += 1
            self.last_error = str(exc)
            logger.debug("send to %s dropped: %s", destination, exc)
            return False
        self.stats.datagrams_sent += 1
        self.stats.bytes_sent += int(sent)
        return True

    def poll_receive(self) -> Datagram | None:
        if self._sock is None:
            return None
        frame = self.config.recv_frame_bytes
        try:
            data, address = self._sock.recvfrom(_MAX_DATAGRAM)
        except (BlockingIOError, InterruptedError):
            return None
        except OSError as exc:
            # ICMP port unreachable surfaces here on some platforms.
            logger.debug("receive dropped: %s", exc)
            return None

        truncated = len(data) >= frame
        if truncated:
            # Last byte of the frame is reserved for the terminator.
            data = data[: frame - 1]
        self.stats.datagrams_received += 1
        self.stats.bytes_received += len(data)
        return Datagram(payload=bytes(data), sender=Endpoint.from_address(address), truncated=truncated)
