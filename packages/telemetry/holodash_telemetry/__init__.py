"""Status report parsing and snapshot storage for HoloDash."""

from .models import SNAPSHOT_FIELDS, TelemetrySnapshot, TelemetryUpdate
from .parser import FIELD_TABLE, FieldSpec, TelemetryParser, is_status_payload
from .store import POWER_HISTORY_SIZE, PowerHistory, SnapshotStore

try:  # pragma: no cover - optional at import time for minimal test environments
    from .provider import HostMetricsProvider
except Exception:  # pragma: no cover
    HostMetricsProvider = None  # type: ignore[assignment]

__all__ = [
    "FIELD_TABLE",
    "FieldSpec",
    "POWER_HISTORY_SIZE",
    "PowerHistory",
    "SNAPSHOT_FIELDS",
    "SnapshotStore",
    "TelemetryParser",
    "TelemetrySnapshot",
    "TelemetryUpdate",
    "is_status_payload",
]

if HostMetricsProvider is not None:
    __all__.append("HostMetricsProvider")
