"""Core client services: settings, logging, the tick loop, replay and diagnostics."""

from .config import AppConfig, load_config, save_config
from .diagnostics import DiagnosticsExporter, build_doctor_payload
from .replay import ReplayReport, ReplayRunner, ReplayTransport
from .session import ClientContext, ClientSession, SessionStatus

__all__ = [
    "AppConfig",
    "ClientContext",
    "ClientSession",
    "DiagnosticsExporter",
    "ReplayReport",
    "ReplayRunner",
    "ReplayTransport",
    "SessionStatus",
    "build_doctor_payload",
    "load_config",
    "save_config",
]
