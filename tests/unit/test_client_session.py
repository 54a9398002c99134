import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
for rel in ("packages/link", "packages/telemetry", "packages/renderer", "packages/core"):
    sys.path.insert(0, str(ROOT / rel))

from holodash_core.config import AppConfig
from holodash_core.session import ClientContext, ClientSession
from holodash_link import Datagram, DiscoveryState, Endpoint

HOST = Endpoint("192.168.1.20", 9001)
BROADCAST = Endpoint("192.168.1.255", 9001)


class FakeTransport:
    def __init__(self, online=True, inbox=None):
        self.online = online
        self.inbox = list(inbox or [])
        self.broadcast_address = BROADCAST
        self.sent = []
        self.is_open = False
        self.last_error = None if online else "bind failed"
        self.calls = []
        self.on_close = None

    def open(self):
        self.calls.append("open")
        self.is_open = self.online
        return self.online

    def close(self):
        self.calls.append("close")
        if self.on_close is not None:
            self.on_close()
        self.is_open = False

    def send(self, payload, destination):
        if not self.is_open:
            return False
        self.sent.append((payload, destination))
        return True

    def poll_receive(self):
        if not self.is_open or not self.inbox:
            return None
        payload = self.inbox.pop(0)
        if payload is None:
            return None
        return Datagram(payload=payload, sender=HOST)


def _session(transport, **overrides):
    cfg = AppConfig()
    for key, value in overrides.items():
        section, name = key.split("__")
        setattr(getattr(cfg, section), name, value)
    return ClientSession(ClientContext.from_config(cfg, transport=transport))


class ClientSessionTests(unittest.TestCase):
    def test_discovery_then_status(self):
        transport = FakeTransport(inbox=[b"SERVER", b'{"cpu_usage":37.5,"power_score":2000000}'])
        session = _session(transport)
        session.tick()
        self.assertEqual(session.status.state, DiscoveryState.CONNECTED)
        self.assertTrue(session.snapshot.connected)
        self.assertEqual(session.status.endpoint, "192.168.1.20:9001")
        session.tick()
        self.assertEqual(session.snapshot.cpu_usage, 37.5)
        self.assertAlmostEqual(session.snapshot.power_watts, 20.0)
        self.assertEqual(session.snapshot.memory_usage, 45.0)
        self.assertEqual(session.context.store.power_history.ordered()[-2:], (15.0, 20.0))

    def test_status_before_announcement_is_ingested(self):
        transport = FakeTransport(inbox=[b'{"cpu_usage":12}'])
        session = _session(transport)
        session.tick()
        self.assertEqual(session.snapshot.cpu_usage, 12.0)
        self.assertEqual(session.status.state, DiscoveryState.SEARCHING)
        self.assertFalse(session.snapshot.connected)

    def test_one_datagram_per_tick(self):
        transport = FakeTransport(inbox=[b'{"cpu_usage":1}', b'{"cpu_usage":2}', b'{"cpu_usage":3}'])
        session = _session(transport)
        session.tick()
        self.assertEqual(session.snapshot.cpu_usage, 1.0)
        session.tick()
        self.assertEqual(session.snapshot.cpu_usage, 2.0)
        self.assertEqual(len(transport.inbox), 1)

    def test_heartbeats(self):
        transport = FakeTransport()
        session = _session(transport, loop__heartbeat_ticks=3)
        for _ in range(3):
            session.tick()
        self.assertEqual(transport.sent, [(b"DISCOVER", BROADCAST)])
        transport.inbox.append(b"SERVER")
        for _ in range(3):
            session.tick()
        self.assertEqual(transport.sent[-1], (b"PING", HOST))
        self.assertEqual(session.status.heartbeats, 2)

    def test_offline_mode_keeps_ticking(self):
        transport = FakeTransport(online=False)
        session = _session(transport, loop__heartbeat_ticks=1)
        self.assertFalse(session.start())
        for _ in range(5):
            frame = session.tick()
        self.assertEqual(frame.vertex_count, 444)
        self.assertEqual(frame.generation, 5)
        self.assertEqual(session.snapshot.cpu_usage, 25.0)
        self.assertEqual(transport.sent, [])
        self.assertEqual(session.status.last_error, "bind failed")
        self.assertEqual(session.recent_events()[0]["event"], "offline")
        self.assertEqual(session.status.heartbeats, 0)
        self.assertNotIn("heartbeat", [row["event"] for row in session.recent_events()])

    def test_out_of_range_usage_keeps_animation_running(self):
        transport = FakeTransport(inbox=[b'{"cpu_usage":1e999}', b'{"cpu_usage":-1e999}'])
        session = _session(transport)
        session.tick()
        session.tick()
        pipeline = session.context.pipeline
        self.assertEqual(session.snapshot.cpu_usage, 0.0)
        self.assertIn(pipeline.sprite_index(), range(5))
        self.assertAlmostEqual(pipeline.clocks.cat_frame, 0.1)

    def test_unknown_payloads_are_ignored(self):
        transport = FakeTransport(inbox=[b"FAN_OK:turbo", b"garbage"])
        session = _session(transport)
        before = session.snapshot
        session.tick()
        session.tick()
        self.assertIs(session.snapshot, before)
        self.assertEqual(session.status.ignored, 2)

    def test_power_is_sampled_every_tick(self):
        session = _session(FakeTransport())
        for _ in range(4):
            session.tick()
        self.assertEqual(session.context.store.power_history.total_samples, 4)

    def test_select_mode_after_connect(self):
        transport = FakeTransport(inbox=[b"SERVER"])
        session = _session(transport)
        session.tick()
        self.assertTrue(session.select_mode(1))
        self.assertEqual(transport.sent[-1], (b"FAN:SILENT", HOST))
        self.assertEqual(session.status.fan_mode, 1)
        self.assertEqual(session.recent_events()[-1]["event"], "fan_mode")

    def test_teardown_releases_buffers_before_socket(self):
        transport = FakeTransport()
        session = _session(transport)
        seen = []
        transport.on_close = lambda: seen.append(session.context.pipeline.released)
        session.tick()
        session.close()
        session.close()
        self.assertEqual(seen, [True])
        self.assertEqual(transport.calls, ["open", "close"])

    def test_run_stops_after_current_tick_on_quit(self):
        transport = FakeTransport()
        session = _session(transport)
        now = [0.0]

        def clock():
            return now[0]

        def sleep(seconds):
            now[0] += seconds
            if session.status.ticks == 3:
                session.request_quit()

        session._clock = clock
        session._sleep = sleep
        status = session.run()
        self.assertEqual(status.ticks, 3)
        self.assertIn("close", transport.calls)
        self.assertFalse(status.online)

    def test_run_with_tick_limit(self):
        session = _session(FakeTransport())
        session._sleep = lambda _s: None
        status = session.run(max_ticks=10)
        self.assertEqual(status.ticks, 10)
        self.assertTrue(session.context.pipeline.released)

    def test_keyboard_interrupt_still_tears_down(self):
        transport = FakeTransport()
        session = _session(transport)

        def interrupt(_seconds):
            raise KeyboardInterrupt

        session._sleep = interrupt
        session.run()
        self.assertTrue(session.quit_requested)
        self.assertEqual(transport.calls[-1], "close")
        self.assertEqual(session.recent_events()[-2]["event"], "interrupted")

    def test_event_log_is_bounded(self):
        session = _session(FakeTransport(), diagnostics__max_events=5, loop__heartbeat_ticks=1)
        for _ in range(20):
            session.tick()
        self.assertEqual(len(session.recent_events()), 5)


if __name__ == "__main__":
    unittest.main()
