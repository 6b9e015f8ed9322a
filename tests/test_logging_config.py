from __future__ import annotations

import io
import json
import logging
import unittest

from observability.logging_config import SERVICE, JsonFormatter, configure_logging


class TestJsonFormatter(unittest.TestCase):
    def test_extras_become_fields(self) -> None:
        record = logging.makeLogRecord(
            {
                "name": "extraction.module",
                "levelname": "INFO",
                "levelno": logging.INFO,
                "msg": "extraction %s",
                "args": ("finished",),
                "request_id": "abc123",
                "elapsed_s": 1.5,
            }
        )
        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["service"], SERVICE)
        self.assertEqual(payload["logger"], "extraction.module")
        self.assertEqual(payload["msg"], "extraction finished")
        self.assertEqual(payload["request_id"], "abc123")
        self.assertEqual(payload["elapsed_s"], 1.5)
        self.assertNotIn("args", payload)


class TestConfigureLogging(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self._handlers = list(root.handlers)
        self._level = root.level

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.handlers[:] = self._handlers
        root.setLevel(self._level)

    def test_installs_single_json_handler(self) -> None:
        stream = io.StringIO()
        configure_logging("debug", stream=stream)
        configure_logging("debug", stream=stream)

        logging.getLogger("recipe_convert.module").debug("conversion failed", extra={"kind": "parsing-error"})

        self.assertEqual(len(logging.getLogger().handlers), 1)
        lines = stream.getvalue().strip().split("\n")
        self.assertEqual(len(lines), 1)
        self.assertEqual(json.loads(lines[0])["kind"], "parsing-error")


if __name__ == "__main__":
    unittest.main()
