"""Replay captured inbound datagrams through a real client session."""

from __future__ import annotations

import json
import re
from collections import deque
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from holodash_link import Datagram, Endpoint
from holodash_link.models import RECV_FRAME_BYTES, UDP_PORT

from .config import AppConfig
from .session import ClientContext, ClientSession


_HEX_CLEAN = re.compile(r"[^0-9a-fA-F]")
DEFAULT_SENDER = Endpoint(host="192.168.1.20", port=UDP_PORT)
DEFAULT_BROADCAST = Endpoint(host="192.168.1.255", port=UDP_PORT)


@dataclass(frozen=True)
class ReplayEvent:
    line: int
    tick: int
    payload: bytes | None = None
    sender: Endpoint = DEFAULT_SENDER
    select_mode: int | None = None


@dataclass
class ReplayReport:
    total_events: int = 0
    datagram_events: int = 0
    mode_events: int = 0
    ticks: int = 0
    announcements: int = 0
    status_messages: int = 0
    ignored: int = 0
    truncated: int = 0
    connected: bool = False
    endpoint: str | None = None
    fan_mode: int = 3
    outbound: list[str] = field(default_factory=list)
    snapshot: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


class ReplayTransport:
    """Scripted stand-in for the UDP transport.

    Each ``poll_receive`` call is one tick. A datagram becomes receivable on
    its scheduled tick and at most one is handed out per poll, so a burst
    scheduled on the same tick drains over the following ticks.
    """

    def __init__(
        self,
        events: list[ReplayEvent],
        broadcast_address: Endpoint | None = DEFAULT_BROADCAST,
        recv_frame_bytes: int = RECV_FRAME_BYTES,
    ) -> None:
        self._pending = deque(sorted((e for e in events if e.payload is not None), key=lambda e: (e.tick, e.line)))
        self.broadcast_address = broadcast_address
        self.recv_frame_bytes = recv_frame_bytes
        self.sent: list[tuple[bytes, Endpoint]] = []
        self.polls = 0
        self.is_open = False
        self.last_error: str | None = None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def open(self) -> bool:
        self.is_open = True
        return True

    def close(self) -> None:
        self.is_open = False

    def send(self, payload: bytes, destination: Endpoint) -> bool:
        if not self.is_open:
            return False
        self.sent.append((payload, destination))
        return True

    def poll_receive(self) -> Datagram | None:
        tick = self.polls
        self.polls += 1
        if not self.is_open or not self._pending or self._pending[0].tick > tick:
            return None
        event = self._pending.popleft()
        data = event.payload or b""
        truncated = len(data) >= self.recv_frame_bytes
        if truncated:
            data = data[: self.recv_frame_bytes - 1]
        return Datagram(payload=data, sender=event.sender, truncated=truncated)


class ReplayRunner:
    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()

    @staticmethod
    def _decode_hex(value: str) -> bytes:
        cleaned = _HEX_CLEAN.sub("", value)
        if len(cleaned) % 2 == 1:
            cleaned = cleaned[:-1]
        if not cleaned:
            return b""
        return bytes.fromhex(cleaned)

    @staticmethod
    def _parse_sender(value: Any) -> Endpoint:
        if not value:
            return DEFAULT_SENDER
        host, _, port = str(value).rpartition(":")
        if not host:
            return Endpoint(host=str(value), port=UDP_PORT)
        return Endpoint(host=host, port=int(port))

    def _parse_line(self, line_no: int, line: str, fallback_tick: int) -> ReplayEvent | None:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None
        obj = json.loads(stripped)
        tick = int(obj.get("tick", fallback_tick))

        if "select_mode" in obj:
            return ReplayEvent(line=line_no, tick=tick, select_mode=int(obj["select_mode"]))

        if "payload_hex" in obj:
            payload = self._decode_hex(str(obj["payload_hex"]))
        else:
            payload = str(obj.get("payload", "")).encode("utf-8")
        return ReplayEvent(line=line_no, tick=tick, payload=payload, sender=self._parse_sender(obj.get("from")))

    def parse(self, transcript_path: Path) -> list[ReplayEvent]:
        events: list[ReplayEvent] = []
        for idx, line in enumerate(transcript_path.read_text(encoding="utf-8").splitlines(), start=1):
            event = self._parse_line(idx, line, fallback_tick=events[-1].tick if events else 0)
            if event is not None:
                events.append(event)
        return events

    def run(self, transcript_path: Path, strict: bool = True, extra_ticks: int = 0) -> ReplayReport:
        events = self.parse(transcript_path)
        report = ReplayReport(total_events=len(events))
        modes: dict[int, list[int]] = {}
        for event in events:
            if event.select_mode is not None:
                report.mode_events += 1
                modes.setdefault(event.tick, []).append(event.select_mode)
            else:
                report.datagram_events += 1

        transport = ReplayTransport(events, recv_frame_bytes=self.config.network.recv_frame_bytes)
        session = ClientSession(ClientContext.from_config(self.config, transport=transport))
        last_tick = max((e.tick for e in events), default=0)
        limit = last_tick + 1 + max(0, extra_ticks)

        try:
            session.start()
            tick = 0
            while tick < limit or transport.pending:
                for mode in modes.get(tick, ()):
                    session.select_mode(mode)
                session.tick()
                tick += 1
        finally:
            session.close()

        status = session.status
        snapshot = session.snapshot
        report.ticks = status.ticks
        report.announcements = status.datagrams - status.status_messages - status.ignored
        report.status_messages = status.status_messages
        report.ignored = status.ignored
        report.truncated = status.truncated
        report.connected = snapshot.connected
        report.endpoint = status.endpoint
        report.fan_mode = status.fan_mode
        report.outbound = [f"{payload.decode('ascii', 'replace')} -> {dest}" for payload, dest in transport.sent]
        report.snapshot = asdict(snapshot)

        if strict:
            if report.announcements < 1:
                report.errors.append("missing_announcement")
            if report.status_messages < 1:
                report.errors.append("missing_status")

        return report
