import json
import logging
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
for rel in ("packages/link", "packages/telemetry", "packages/renderer", "packages/core"):
    sys.path.insert(0, str(ROOT / rel))

from holodash_core.logging_setup import JsonFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord(
        name="holodash.session",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg="session closed after %s ticks",
        args=(120,),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


class JsonFormatterTests(unittest.TestCase):
    def test_context_fields_keep_json_types(self):
        line = JsonFormatter().format(
            _record(event="session_closed", tick=120, endpoint="192.168.1.20:9001", unrelated="x")
        )
        row = json.loads(line)
        self.assertEqual(row["msg"], "session closed after 120 ticks")
        self.assertEqual(row["logger"], "holodash.session")
        self.assertEqual(row["event"], "session_closed")
        self.assertEqual(row["tick"], 120)
        self.assertEqual(row["endpoint"], "192.168.1.20:9001")
        self.assertNotIn("unrelated", row)
        self.assertTrue(row["src"].endswith(":42"))

    def test_missing_endpoint_is_null_and_objects_become_strings(self):
        row = json.loads(JsonFormatter().format(_record(endpoint=None, state=Path("x"))))
        self.assertIsNone(row["endpoint"])
        self.assertEqual(row["state"], "x")
        self.assertNotIn("mode", row)

    def test_child_logger_names(self):
        self.assertEqual(get_logger().name, "holodash")
        self.assertEqual(get_logger("link").name, "holodash.link")


if __name__ == "__main__":
    unittest.main()
