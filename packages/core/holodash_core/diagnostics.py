"""Doctor report and offline support bundles for the telemetry client."""

from __future__ import annotations

import json
import platform
import re
import socket
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from importlib import metadata
from pathlib import Path
from typing import Any

import psutil

from holodash_link import resolve_broadcast_address
from holodash_link.transport import detect_local_ipv4

from .config import AppConfig, config_path
from .logging_setup import log_dir


_SECRET_RE = re.compile(r"(token|secret|password|apikey|api_key|auth)", re.IGNORECASE)
_REDACTED = "***REDACTED***"
_LIBRARIES = ("holodash", "numpy", "Pillow", "psutil", "pynvml")


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _dump(value: Any) -> str:
    return json.dumps(redact(value), indent=2, sort_keys=True, default=_jsonable)


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _REDACTED if _SECRET_RE.search(str(k)) else redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


def library_versions() -> dict[str, str | None]:
    """Installed distribution versions; ``None`` for anything not installed."""
    versions: dict[str, str | None] = {}
    for name in _LIBRARIES:
        try:
            versions[name] = metadata.version(name)
        except metadata.PackageNotFoundError:
            versions[name] = None
    return versions


def list_interfaces() -> list[dict[str, Any]]:
    """IPv4 interfaces with the broadcast address each would use for discovery."""
    try:
        interfaces = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except OSError:
        return []
    rows: list[dict[str, Any]] = []
    for name, addrs in sorted(interfaces.items()):
        up = stats[name].isup if name in stats else None
        for item in addrs:
            if item.family != socket.AF_INET:
                continue
            rows.append(
                {
                    "interface": name,
                    "up": up,
                    "address": item.address,
                    "netmask": item.netmask,
                    "broadcast": item.broadcast,
                    "loopback": item.address.startswith("127."),
                }
            )
    return rows


def _discovery_target(cfg: AppConfig) -> str | None:
    if cfg.network.broadcast_override:
        return f"{cfg.network.broadcast_override}:{cfg.network.port}"
    resolved = resolve_broadcast_address(cfg.network.port)
    return str(resolved) if resolved else None


def build_doctor_payload(cfg: AppConfig) -> dict[str, Any]:
    local_ip = detect_local_ipv4()
    broadcast = _discovery_target(cfg)
    warnings: list[str] = []
    if local_ip is None:
        warnings.append("no_local_ipv4")
    if broadcast is None:
        warnings.append("discovery_broadcast_disabled")
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "libraries": library_versions(),
        "config_path": str(config_path()),
        "config": redact(asdict(cfg)),
        "udp_port": cfg.network.port,
        "local_ipv4": local_ip,
        "broadcast": broadcast,
        "interfaces": list_interfaces(),
        "warnings": warnings,
    }


class DiagnosticsExporter:
    """Zip a doctor report, redacted config, session state and local logs."""

    def __init__(self, app_name: str = "HoloDash") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_session_events: list[dict[str, Any]] | None = None,
        output_dir: Path | None = None,
        logs_dir: Path | None = None,
        session_summary: dict[str, Any] | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"holodash-diagnostics-{stamp}.zip"

        logs_root = logs_dir or log_dir()
        logs = sorted(p for p in logs_root.glob("*.log*") if p.is_file())
        events = recent_session_events or []

        manifest = {
            "app": self.app_name,
            "created_utc": datetime.now(timezone.utc).isoformat(),
            "libraries": doctor_payload.get("libraries") or library_versions(),
            "config_version": cfg.config_version,
            "udp_port": cfg.network.port,
            "broadcast": doctor_payload.get("broadcast"),
            "session_event_count": len(events),
            "has_session_summary": session_summary is not None,
            "log_files": [p.name for p in logs],
        }

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("manifest.json", _dump(manifest))
            zf.writestr("doctor.json", _dump(doctor_payload))
            zf.writestr("config.redacted.json", _dump(asdict(cfg)))
            zf.writestr("session_events.json", _dump(events))
            if session_summary is not None:
                zf.writestr("session_summary.json", _dump(session_summary))
            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
