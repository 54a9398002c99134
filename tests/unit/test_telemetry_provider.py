import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from holodash_telemetry import TelemetryParser
from holodash_telemetry.provider import estimate_power_score

try:
    from holodash_telemetry.provider import HostMetricsProvider
except Exception:  # pragma: no cover
    HostMetricsProvider = None


class TelemetryProviderTests(unittest.TestCase):
    def test_power_estimate(self):
        self.assertAlmostEqual(estimate_power_score(0.0, 0.0), 200000.0)
        self.assertAlmostEqual(estimate_power_score(100.0, 50.0), (2.0 + 15.0 + 2.5) * 100000.0)

    def test_poll_returns_status_keys(self):
        if HostMetricsProvider is None:
            self.skipTest("psutil not installed")
        status = HostMetricsProvider().poll()
        self.assertGreaterEqual(status["cpu_usage"], 0.0)
        self.assertGreater(status["memory_total"], 0)
        self.assertIsInstance(status["fan_speeds"], list)
        self.assertGreater(status["power_score"], 0.0)

        parser_keys = {spec.key for spec in TelemetryParser().table}
        self.assertTrue(parser_keys.issubset(status.keys()))


if __name__ == "__main__":
    unittest.main()
