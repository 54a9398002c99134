import json
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "link"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from holodash_link import Endpoint, HostEmulator, encode_status
from holodash_telemetry import TelemetryParser

CLIENT = Endpoint("192.168.1.50", 9001)


def _status():
    return {"cpu_usage": 37.5, "fan_speeds": [1850], "hostname": "box", "cpu_temp": None}


class HostEmulatorTests(unittest.TestCase):
    def setUp(self):
        self.host = HostEmulator(status_source=_status, push_interval_ms=100, client_timeout_s=10.0)

    def test_encoded_status_is_readable_by_client_parser(self):
        payload = encode_status(_status())
        self.assertEqual(json.loads(payload)["cpu_usage"], 37.5)
        self.assertNotIn(b": ", payload)
        update = TelemetryParser().parse(payload)
        self.assertEqual(update["cpu_usage"], 37.5)
        self.assertEqual(update["fan_rpm"], 1850)
        self.assertEqual(update["hostname"], "box")
        self.assertEqual(update["cpu_temp"], 0.0)

    def test_discover_gets_server_reply(self):
        self.assertEqual(self.host.handle(b"DISCOVER", CLIENT, now=0.0), b"SERVER")
        self.assertEqual(self.host.peer, CLIENT)

    def test_ping_refreshes_without_reply(self):
        self.host.handle(b"DISCOVER", CLIENT, now=0.0)
        self.assertIsNone(self.host.handle(b"PING", CLIENT, now=9.0))
        self.host.expire_peer(15.0)
        self.assertEqual(self.host.peer, CLIENT)

    def test_fan_command_acknowledged(self):
        reply = self.host.handle(b"FAN:TURBO", CLIENT, now=0.0)
        self.assertEqual(reply, b"FAN_OK:turbo")
        self.assertEqual(self.host.fan_mode, "turbo")

    def test_unknown_payload_ignored(self):
        self.assertIsNone(self.host.handle(b"whatever", CLIENT, now=0.0))
        self.assertIsNone(self.host.peer)

    def test_newer_discover_replaces_peer(self):
        other = Endpoint("192.168.1.51", 9001)
        self.host.handle(b"DISCOVER", CLIENT, now=0.0)
        self.host.handle(b"DISCOVER", other, now=1.0)
        self.assertEqual(self.host.peer, other)

    def test_push_schedule_and_timeout(self):
        self.assertIsNone(self.host.push_due(0.0))
        self.host.handle(b"DISCOVER", CLIENT, now=0.0)
        self.assertIsNotNone(self.host.push_due(0.0))
        self.assertIsNone(self.host.push_due(0.05))
        self.assertIsNotNone(self.host.push_due(0.1))
        self.assertIsNone(self.host.push_due(10.5))
        self.assertIsNone(self.host.peer)
        self.assertEqual(self.host.stats.peer_timeouts, 1)
        self.assertEqual(self.host.stats.status_pushes, 2)

    def test_step_requires_open(self):
        with self.assertRaises(RuntimeError):
            self.host.step()

    def test_send_requires_open(self):
        with self.assertRaises(RuntimeError):
            self.host._send(b"SERVER", CLIENT)


if __name__ == "__main__":
    unittest.main()
