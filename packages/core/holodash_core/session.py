"""Client tick loop: discovery, ingest, power sampling and frame build, in that order."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from holodash_link import (
    CommandDispatcher,
    Datagram,
    DiscoveryEngine,
    DiscoveryState,
    Endpoint,
    MessageKind,
    TransportConfig,
    UdpTransport,
)
from holodash_renderer import CommittedFrame, FrameGeometryPipeline, get_theme
from holodash_telemetry import SnapshotStore, TelemetryParser, TelemetrySnapshot

from .config import AppConfig


logger = logging.getLogger("holodash.session")


class SessionTransport(Protocol):
    broadcast_address: Endpoint | None

    def open(self) -> bool: ...

    def close(self) -> None: ...

    def send(self, payload: bytes, destination: Endpoint) -> bool: ...

    def poll_receive(self) -> Datagram | None: ...


@dataclass
class SessionStatus:
    online: bool = False
    state: DiscoveryState = DiscoveryState.IDLE
    endpoint: str | None = None
    ticks: int = 0
    datagrams: int = 0
    status_messages: int = 0
    ignored: int = 0
    truncated: int = 0
    heartbeats: int = 0
    fan_mode: int = 3
    last_error: str | None = None


@dataclass
class ClientContext:
    """Everything one client owns, created together and torn down together."""

    config: AppConfig
    transport: SessionTransport
    discovery: DiscoveryEngine
    parser: TelemetryParser
    store: SnapshotStore
    pipeline: FrameGeometryPipeline
    commands: CommandDispatcher

    @classmethod
    def from_config(cls, cfg: AppConfig, transport: SessionTransport | None = None) -> "ClientContext":
        if transport is None:
            transport = UdpTransport(
                TransportConfig(
                    port=cfg.network.port,
                    bind_host=cfg.network.bind_host,
                    recv_frame_bytes=cfg.network.recv_frame_bytes,
                    broadcast_override=cfg.network.broadcast_override,
                )
            )
        discovery = DiscoveryEngine(transport, heartbeat_ticks=cfg.loop.heartbeat_ticks)
        return cls(
            config=cfg,
            transport=transport,
            discovery=discovery,
            parser=TelemetryParser(),
            store=SnapshotStore(history_size=cfg.render.power_history),
            pipeline=FrameGeometryPipeline(
                capacity=cfg.render.vertex_capacity,
                theme=get_theme(cfg.render.theme),
                sprite_frames=cfg.render.sprite_frames,
            ),
            commands=CommandDispatcher(transport, discovery, initial_mode=cfg.control.initial_mode),
        )


class ClientSession:
    def __init__(
        self,
        context: ClientContext | None = None,
        config: AppConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        cfg = config or (context.config if context else AppConfig())
        self.context = context or ClientContext.from_config(cfg)
        self._clock = clock
        self._sleep = sleep
        self._status = SessionStatus(fan_mode=self.context.commands.current_mode)
        self._events: list[dict[str, Any]] = []
        self._max_events = self.context.config.diagnostics.max_events
        self._quit = False
        self._started = False
        self._closed = False

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def snapshot(self) -> TelemetrySnapshot:
        return self.context.store.snapshot

    @property
    def quit_requested(self) -> bool:
        return self._quit

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "state": self.context.discovery.state.value,
        }
        row.update(fields)
        self._events.append(row)
        if len(self._events) > self._max_events:
            self._events = self._events[-self._max_events :]

    def start(self) -> bool:
        """Open the transport and begin searching. Failure leaves the session offline."""
        if self._started:
            return self._status.online
        self._started = True
        online = self.context.transport.open()
        self._status.online = online
        if not online:
            self._status.last_error = getattr(self.context.transport, "last_error", None)
            self._log_event("offline", error=self._status.last_error)
            logger.warning("running offline, no telemetry will arrive", extra={"event": "session_offline"})
        self.context.discovery.start()
        self._status.state = self.context.discovery.state
        self._log_event("session_start", online=online)
        return online

    def tick(self) -> CommittedFrame:
        if not self._started:
            self.start()
        ctx = self.context
        discovery = ctx.discovery

        sent = discovery.on_tick()
        if sent is not None:
            self._status.heartbeats += 1
            self._log_event("heartbeat", payload=sent.decode("ascii"))

        datagram = ctx.transport.poll_receive()
        if datagram is not None:
            self._ingest(datagram)

        ctx.store.set_connected(discovery.connected)
        ctx.store.sample_power()

        snapshot = ctx.store.snapshot
        ctx.pipeline.tick(snapshot.fan_rpm, snapshot.cpu_usage)
        frame = ctx.pipeline.build(snapshot)

        self._status.ticks += 1
        self._status.state = discovery.state
        return frame

    def _ingest(self, datagram: Datagram) -> None:
        ctx = self.context
        self._status.datagrams += 1
        if datagram.truncated:
            self._status.truncated += 1
            self._log_event("datagram_truncated", sender=str(datagram.sender), size=len(datagram.payload))

        was_connected = ctx.discovery.connected
        kind = ctx.discovery.handle_datagram(datagram)
        if kind == MessageKind.ANNOUNCEMENT:
            if not was_connected and ctx.discovery.connected:
                self._status.endpoint = str(ctx.discovery.endpoint)
                self._log_event("connected", endpoint=self._status.endpoint)
        elif kind == MessageKind.STATUS:
            update = ctx.parser.parse(datagram.payload)
            ctx.store.merge(update)
            self._status.status_messages += 1
        else:
            self._status.ignored += 1
            logger.debug("ignoring datagram from %s", datagram.sender)

    def select_mode(self, mode: int) -> bool:
        sent = self.context.commands.on_mode_selected(mode)
        self._status.fan_mode = self.context.commands.current_mode
        if sent:
            self._log_event("fan_mode", mode=mode)
        return sent

    def request_quit(self) -> None:
        self._quit = True

    def run(self, max_ticks: int | None = None, duration_s: float | None = None) -> SessionStatus:
        """Tick at ``loop.tick_hz`` until quit, a tick limit or a time limit; always tears down."""
        period = 1.0 / self.context.config.loop.tick_hz
        started_at = self._clock()
        try:
            self.start()
            while not self._quit:
                tick_start = self._clock()
                self.tick()
                if max_ticks is not None and self._status.ticks >= max_ticks:
                    break
                if duration_s is not None and tick_start - started_at >= duration_s:
                    break
                remaining = period - (self._clock() - tick_start)
                if remaining > 0:
                    self._sleep(remaining)
        except KeyboardInterrupt:
            self.request_quit()
            self._log_event("interrupted")
        finally:
            self.close()
        return self._status

    def close(self) -> None:
        """Release in reverse acquisition order: geometry buffers, then the socket."""
        if self._closed:
            return
        self._closed = True
        try:
            self.context.pipeline.release()
        finally:
            self.context.transport.close()
            self._status.online = False
            self._log_event("session_closed", ticks=self._status.ticks)
            logger.info(
                "session closed after %s ticks",
                self._status.ticks,
                extra={"event": "session_closed", "tick": self._status.ticks, "endpoint": self._status.endpoint},
            )
