import json
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
for rel in ("packages/link", "packages/telemetry", "packages/renderer", "packages/core"):
    sys.path.insert(0, str(ROOT / rel))

from holodash_core.config import AppConfig, load_config, save_config


class ConfigTests(unittest.TestCase):
    def test_load_default_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg = load_config(Path(tmp) / "missing.json")
            self.assertIsInstance(cfg, AppConfig)
            self.assertEqual(cfg.network.port, 9001)
            self.assertEqual(cfg.loop.heartbeat_ticks, 60)
            self.assertEqual(cfg.render.vertex_capacity, 2000)
            self.assertEqual(cfg.control.initial_mode, 3)

    def test_corrupt_file_yields_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(path), AppConfig())

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            cfg = load_config(path)
            cfg.network.broadcast_override = "10.0.0.255"
            cfg.loop.tick_hz = 30
            save_config(cfg, path)
            reloaded = load_config(path)
            self.assertEqual(reloaded.network.broadcast_override, "10.0.0.255")
            self.assertEqual(reloaded.loop.tick_hz, 30)

    def test_normalization_clamps(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {
                "config_version": 2,
                "network": {"port": 0, "recv_frame_bytes": 65536},
                "render": {"vertex_capacity": 10, "sprite_frames": 0},
                "control": {"initial_mode": 9},
                "loop": {"heartbeat_ticks": -4},
                "unknown_section": {"x": 1},
            }
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.network.port, 9001)
            self.assertEqual(cfg.network.recv_frame_bytes, 4096)
            self.assertEqual(cfg.render.vertex_capacity, 444)
            self.assertEqual(cfg.render.sprite_frames, 1)
            self.assertEqual(cfg.control.initial_mode, 3)
            self.assertEqual(cfg.loop.heartbeat_ticks, 1)

    def test_migrate_v1_shape(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"port": 9100, "bind_host": "127.0.0.1"}), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.config_version, 2)
            self.assertEqual(cfg.network.port, 9100)
            self.assertEqual(cfg.network.bind_host, "127.0.0.1")
            self.assertEqual(cfg.host.push_interval_ms, 100)


if __name__ == "__main__":
    unittest.main()
