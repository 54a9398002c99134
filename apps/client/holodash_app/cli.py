"""CLI entrypoints for the HoloDash client, host emulator, preview, replay and diagnostics."""

from __future__ import annotations

import argparse
import json
import time
from dataclasses import asdict
from pathlib import Path

from holodash_core import (
    ClientSession,
    DiagnosticsExporter,
    ReplayRunner,
    build_doctor_payload,
    load_config,
)
from holodash_core.config import AppConfig
from holodash_core.logging_setup import configure_logging, install_crash_hooks
from holodash_link import FAN_COMMANDS, FanMode, HostEmulator
from holodash_renderer import FrameGeometryPipeline, get_theme, list_themes
from holodash_renderer.preview import PreviewRenderer
from holodash_telemetry import SnapshotStore, TelemetryParser
from holodash_telemetry.provider import HostMetricsProvider


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _parse_mode(value: str) -> int:
    if value.isdigit():
        mode = int(value)
        if mode not in FAN_COMMANDS:
            raise argparse.ArgumentTypeError(f"unknown fan mode index: {value}")
        return mode
    try:
        return int(FanMode[value.upper()])
    except KeyError:
        raise argparse.ArgumentTypeError(f"unknown fan mode: {value}") from None


def _wait_for_host(session: ClientSession, timeout_s: float) -> bool:
    cfg = session.context.config
    period = 1.0 / cfg.loop.tick_hz
    deadline = time.monotonic() + timeout_s
    session.start()
    while not session.context.discovery.connected and time.monotonic() < deadline:
        session.tick()
        time.sleep(period)
    return session.context.discovery.connected


def _session_payload(session: ClientSession) -> dict[str, object]:
    status = asdict(session.status)
    status["state"] = session.status.state.value
    return {
        "status": status,
        "snapshot": asdict(session.snapshot),
        "power_history": list(session.context.store.power_history.ordered()),
        "sprite_index": session.context.pipeline.sprite_index(),
    }


def cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config()
    install_crash_hooks()
    session = ClientSession(config=cfg)
    if args.mode is not None:
        session.select_mode(args.mode)
    session.run(max_ticks=args.ticks, duration_s=args.seconds)
    payload = _session_payload(session)

    if args.export:
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = DiagnosticsExporter().bundle(
            cfg=cfg,
            doctor_payload=build_doctor_payload(cfg),
            recent_session_events=session.recent_events(),
            output_dir=out_dir,
            session_summary=payload,
        )
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def cmd_discover(args: argparse.Namespace) -> int:
    cfg = load_config()
    session = ClientSession(config=cfg)
    try:
        found = _wait_for_host(session, args.timeout)
    finally:
        session.close()
    _print_json(
        {
            "found": found,
            "endpoint": session.status.endpoint,
            "broadcast": str(session.context.transport.broadcast_address)
            if session.context.transport.broadcast_address
            else None,
            "ticks": session.status.ticks,
        }
    )
    return 0 if found else 1


def cmd_mode(args: argparse.Namespace) -> int:
    cfg = load_config()
    session = ClientSession(config=cfg)
    try:
        found = _wait_for_host(session, args.timeout)
        sent = session.select_mode(args.mode) if found else False
    finally:
        session.close()
    _print_json(
        {
            "found": found,
            "endpoint": session.status.endpoint,
            "mode": FanMode(args.mode).name,
            "sent": sent,
        }
    )
    return 0 if sent else 1


def cmd_host(args: argparse.Namespace) -> int:
    cfg = load_config()
    provider = HostMetricsProvider()
    emulator = HostEmulator(
        status_source=provider.poll,
        port=args.port or cfg.network.port,
        bind_host=cfg.network.bind_host,
        push_interval_ms=cfg.host.push_interval_ms,
        client_timeout_s=cfg.host.client_timeout_s,
    )
    try:
        stats = emulator.serve(duration_s=args.seconds)
    except KeyboardInterrupt:
        emulator.close()
        stats = emulator.stats
    _print_json({"stats": asdict(stats), "fan_mode": emulator.fan_mode})
    return 0


def _preview_store(cfg: AppConfig, status_file: str | None) -> SnapshotStore:
    store = SnapshotStore(history_size=cfg.render.power_history)
    if status_file:
        payload = Path(status_file).expanduser().read_bytes()
        store.merge(TelemetryParser().parse(payload))
    return store


def cmd_preview(args: argparse.Namespace) -> int:
    cfg = load_config()
    theme_name = args.theme or cfg.render.theme
    store = _preview_store(cfg, args.status)
    pipeline = FrameGeometryPipeline(capacity=cfg.render.vertex_capacity, theme=get_theme(theme_name))
    frame = pipeline.active_frame()
    for _ in range(max(1, args.ticks)):
        store.sample_power()
        snapshot = store.snapshot
        pipeline.tick(snapshot.fan_rpm, snapshot.cpu_usage)
        frame = pipeline.build(snapshot)
    pipeline.release()

    renderer = PreviewRenderer(theme_name)
    options = {
        "power_samples": store.power_history.ordered(),
        "frame_number": args.ticks,
        "mode": cfg.control.initial_mode,
    }
    if args.out:
        out = Path(args.out).expanduser().resolve()
        renderer.save_png(out, frame, store.snapshot, **options)
        _print_json({"out": str(out), "vertex_count": frame.vertex_count, "generation": frame.generation})
    else:
        print(renderer.preview_data_url(frame, store.snapshot, **options))
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    runner = ReplayRunner(load_config())
    report = runner.run(Path(args.transcript), strict=not args.no_strict, extra_ticks=args.extra_ticks)
    payload = asdict(report)
    payload["success"] = len(report.errors) == 0
    _print_json(payload)
    return 0 if not report.errors else 2


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = load_config()
    payload = build_doctor_payload(cfg)

    if args.export:
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, recent_session_events=[], output_dir=out_dir)
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="holodash", description="HoloDash telemetry client and tools")
    parser.add_argument("--verbose", action="store_true", help="Also log to the console")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Run the dashboard client loop")
    run_cmd.add_argument("--ticks", type=int, default=None, help="Stop after this many ticks")
    run_cmd.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds")
    run_cmd.add_argument("--mode", type=_parse_mode, default=None, help="Fan mode to select at startup")
    run_cmd.add_argument("--export", action="store_true", help="Export a diagnostics bundle after the run")
    run_cmd.add_argument("--out-dir", default=None, help="Optional output directory for the bundle")
    run_cmd.set_defaults(func=cmd_run)

    discover_cmd = sub.add_parser("discover", help="Search the LAN for a telemetry host")
    discover_cmd.add_argument("--timeout", type=float, default=5.0)
    discover_cmd.set_defaults(func=cmd_discover)

    mode_cmd = sub.add_parser("mode", help="Discover the host and send one fan mode command")
    mode_cmd.add_argument("mode", type=_parse_mode, help="turbo, silent, custom, auto or 0-3")
    mode_cmd.add_argument("--timeout", type=float, default=5.0)
    mode_cmd.set_defaults(func=cmd_mode)

    host_cmd = sub.add_parser("host", help="Run a development telemetry host on this machine")
    host_cmd.add_argument("--seconds", type=float, default=None)
    host_cmd.add_argument("--port", type=int, default=None)
    host_cmd.set_defaults(func=cmd_host)

    preview_cmd = sub.add_parser("preview", help="Render a dashboard preview image")
    preview_cmd.add_argument("--status", default=None, help="Path to a status report JSON file")
    preview_cmd.add_argument("--ticks", type=int, default=1, help="Animation ticks to advance before capture")
    preview_cmd.add_argument("--theme", default=None, choices=list_themes())
    preview_cmd.add_argument("--out", default=None, help="PNG output path; prints a data URL when omitted")
    preview_cmd.set_defaults(func=cmd_preview)

    replay_cmd = sub.add_parser("replay", help="Replay a captured datagram transcript through a session")
    replay_cmd.add_argument("--transcript", required=True, help="Path to JSONL transcript")
    replay_cmd.add_argument("--extra-ticks", type=int, default=0, help="Ticks to run after the last event")
    replay_cmd.add_argument("--no-strict", action="store_true", help="Skip mandatory announcement/status checks")
    replay_cmd.set_defaults(func=cmd_replay)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics and network interfaces")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = load_config()
    configure_logging(keep_files=cfg.diagnostics.keep_log_files, console=args.verbose)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
