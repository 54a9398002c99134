import json
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
for rel in ("packages/link", "packages/telemetry", "packages/renderer", "packages/core"):
    sys.path.insert(0, str(ROOT / rel))

from holodash_core.replay import ReplayRunner


class ReplayTests(unittest.TestCase):
    def test_replay_report_tracks_session(self):
        runner = ReplayRunner()
        transcript = ROOT / "tests" / "transcripts" / "discovery_status.jsonl"
        report = runner.run(transcript, strict=True, extra_ticks=60)

        self.assertEqual(report.total_events, 6)
        self.assertEqual(report.datagram_events, 5)
        self.assertEqual(report.mode_events, 1)
        self.assertEqual(report.announcements, 1)
        self.assertEqual(report.status_messages, 2)
        self.assertEqual(report.ignored, 2)
        self.assertTrue(report.connected)
        self.assertEqual(report.endpoint, "192.168.1.20:9001")
        self.assertEqual(report.fan_mode, 0)
        self.assertEqual(report.snapshot["cpu_usage"], 42.0)
        self.assertEqual(report.snapshot["memory_usage"], 61.0)
        self.assertEqual(report.snapshot["fan_rpm"], 1850)
        self.assertEqual(report.snapshot["hostname"], "box.local")
        self.assertIn("FAN:TURBO -> 192.168.1.20:9001", report.outbound)
        self.assertIn("PING -> 192.168.1.20:9001", report.outbound)
        self.assertEqual(report.errors, [])

    def test_strict_flags_missing_host(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "empty.jsonl"
            path.write_text(json.dumps({"tick": 0, "payload": "noise"}) + "\n", encoding="utf-8")
            report = ReplayRunner().run(path, strict=True)
            self.assertEqual(report.errors, ["missing_announcement", "missing_status"])
            self.assertFalse(report.connected)

            relaxed = ReplayRunner().run(path, strict=False)
            self.assertEqual(relaxed.errors, [])

    def test_oversized_payload_is_truncated(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "big.jsonl"
            payload = '{"cpu_usage":12' + " " * 5000 + ',"memory_usage":90}'
            path.write_text(json.dumps({"payload": payload}) + "\n", encoding="utf-8")
            report = ReplayRunner().run(path, strict=False)
            self.assertEqual(report.truncated, 1)
            self.assertEqual(report.snapshot["cpu_usage"], 12.0)
            self.assertEqual(report.snapshot["memory_usage"], 45.0)


if __name__ == "__main__":
    unittest.main()
