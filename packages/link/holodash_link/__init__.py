"""UDP discovery, heartbeat and command link to a telemetry host."""

from .commands import FAN_COMMANDS, CommandDispatcher, FanMode, command_for
from .discovery import DiscoveryEngine, classify_payload
from .host import HostEmulator, encode_status
from .models import Datagram, DiscoveryState, Endpoint, LinkStats, MessageKind
from .transport import TransportConfig, UdpTransport, resolve_broadcast_address

__all__ = [
    "CommandDispatcher",
    "Datagram",
    "DiscoveryEngine",
    "DiscoveryState",
    "Endpoint",
    "FAN_COMMANDS",
    "FanMode",
    "HostEmulator",
    "LinkStats",
    "MessageKind",
    "TransportConfig",
    "UdpTransport",
    "classify_payload",
    "command_for",
    "encode_status",
    "resolve_broadcast_address",
]
