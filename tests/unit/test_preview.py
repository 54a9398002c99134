import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from holodash_renderer import FrameGeometryPipeline, get_theme, list_themes
from holodash_renderer.preview import PreviewRenderer
from holodash_renderer.themes import hex_to_rgb, hex_to_rgba
from holodash_telemetry import TelemetrySnapshot


class ThemeTests(unittest.TestCase):
    def test_themes(self):
        self.assertIn("Holo Night", list_themes())
        self.assertEqual(get_theme("missing").name, "Holo Night")
        self.assertEqual(hex_to_rgb("#9D4EDD"), (157, 78, 221))
        self.assertEqual(hex_to_rgba("#00FF88", 0.5), (0.0, 1.0, 136 / 255.0, 0.5))


class PreviewRendererTests(unittest.TestCase):
    def _frame(self, snap):
        pipeline = FrameGeometryPipeline()
        pipeline.tick(snap.fan_rpm, snap.cpu_usage)
        return pipeline.build(snap)

    def test_render_image_size_and_scene_pixels(self):
        snap = TelemetrySnapshot(cpu_usage=100.0, connected=True)
        renderer = PreviewRenderer()
        image = renderer.render_image(self._frame(snap), snap, power_samples=[15.0] * 50)
        self.assertEqual(image.size, (400, 480))
        # Middle of the full-height cpu bar front face.
        self.assertEqual(image.getpixel((37, 150)), (0, 255, 136))
        self.assertEqual(image.getpixel((399, 5)), hex_to_rgb(get_theme(None).background))

    def test_empty_frame_renders_overlays_only(self):
        snap = TelemetrySnapshot()
        pipeline = FrameGeometryPipeline()
        image = PreviewRenderer("Amber Console").render_image(pipeline.active_frame(), snap)
        self.assertEqual(image.size, (400, 480))

    def test_png_and_data_url(self):
        snap = TelemetrySnapshot()
        frame = self._frame(snap)
        renderer = PreviewRenderer()
        self.assertTrue(renderer.preview_data_url(frame, snap).startswith("data:image/png;base64,"))
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "preview.png"
            renderer.save_png(out, frame, snap)
            self.assertEqual(out.read_bytes()[:8], b"\x89PNG\r\n\x1a\n")


if __name__ == "__main__":
    unittest.main()
