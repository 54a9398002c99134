import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "link"))

from holodash_link import CommandDispatcher, Datagram, DiscoveryEngine, Endpoint, FanMode, command_for


class FakeSender:
    broadcast_address = Endpoint("10.0.0.255", 9001)

    def __init__(self):
        self.sent = []

    def send(self, payload, destination):
        self.sent.append((payload, destination))
        return True


class CommandDispatcherTests(unittest.TestCase):
    def _connected(self):
        sender = FakeSender()
        discovery = DiscoveryEngine(sender)
        discovery.handle_datagram(Datagram(b"SERVER", Endpoint("10.0.0.5", 9001)))
        return sender, CommandDispatcher(sender, discovery)

    def test_command_literals(self):
        self.assertEqual(command_for(0), b"FAN:TURBO")
        self.assertEqual(command_for(1), b"FAN:SILENT")
        self.assertEqual(command_for(2), b"FAN:CUSTOM")
        self.assertEqual(command_for(3), b"FAN:AUTO")
        self.assertIsNone(command_for(4))

    def test_initial_mode_is_auto(self):
        _, dispatcher = self._connected()
        self.assertEqual(dispatcher.current_mode, FanMode.AUTO)

    def test_mode_change_sends_once_to_host(self):
        sender, dispatcher = self._connected()
        self.assertTrue(dispatcher.on_mode_selected(1))
        self.assertEqual(sender.sent, [(b"FAN:SILENT", Endpoint("10.0.0.5", 9001))])
        self.assertFalse(dispatcher.on_mode_selected(1))
        self.assertEqual(len(sender.sent), 1)

    def test_same_mode_sends_nothing(self):
        sender, dispatcher = self._connected()
        self.assertFalse(dispatcher.on_mode_selected(3))
        self.assertEqual(sender.sent, [])

    def test_unknown_mode_rejected(self):
        sender, dispatcher = self._connected()
        self.assertFalse(dispatcher.on_mode_selected(7))
        self.assertEqual(dispatcher.current_mode, 3)
        self.assertEqual(sender.sent, [])

    def test_not_connected_updates_mode_without_sending(self):
        sender = FakeSender()
        dispatcher = CommandDispatcher(sender, DiscoveryEngine(sender))
        self.assertFalse(dispatcher.on_mode_selected(0))
        self.assertEqual(dispatcher.current_mode, 0)
        self.assertEqual(sender.sent, [])

    def test_invalid_initial_mode(self):
        sender = FakeSender()
        with self.assertRaises(ValueError):
            CommandDispatcher(sender, DiscoveryEngine(sender), initial_mode=9)


if __name__ == "__main__":
    unittest.main()
