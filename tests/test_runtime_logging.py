from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from shellward.runtime_logging import configure_runtime_logging, get_runtime_logger, parse_level


class RuntimeLoggingTests(unittest.TestCase):
    def tearDown(self) -> None:
        configure_runtime_logging(level="off")

    def test_writes_jsonl_and_filters_by_level(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "runtime.jsonl"
            logger = configure_runtime_logging(level="info", log_file=path)
            logger.debug("debug.hidden", foo="bar")
            logger.info("info.visible", foo="bar")

            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertGreaterEqual(len(lines), 2)  # includes logging.configured event
            payloads = [json.loads(line) for line in lines]
            self.assertTrue(any(item["event"] == "info.visible" for item in payloads))
            self.assertFalse(any(item["event"] == "debug.hidden" for item in payloads))

    def test_uses_environment_variables(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "from-env.jsonl"
            with patch.dict(
                os.environ,
                {"SHELLWARD_LOG_LEVEL": "debug", "SHELLWARD_LOG_FILE": str(path)},
                clear=False,
            ):
                logger = configure_runtime_logging()
                logger.debug("env.debug", alpha=1)

            lines = path.read_text(encoding="utf-8").splitlines()
            payloads = [json.loads(line) for line in lines]
            self.assertTrue(any(item["event"] == "env.debug" for item in payloads))

    def test_bound_context_is_stamped_on_events(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bound.jsonl"
            configure_runtime_logging(level="debug", log_file=path)
            logger = get_runtime_logger().bind(connection_id="conn-1")
            logger.info("queue.closed", rejected=2)

            payloads = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
            event = next(item for item in payloads if item["event"] == "queue.closed")
            self.assertEqual(event["connection_id"], "conn-1")
            self.assertEqual(event["rejected"], 2)
            self.assertNotIn("connection_id", payloads[0])

    def test_off_writes_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "off.jsonl"
            logger = configure_runtime_logging(level="off", log_file=path)
            logger.error("never.written")
            logger.bind(connection_id="x").error("never.written")

            self.assertFalse(path.exists())

    def test_parse_level_aliases(self) -> None:
        self.assertEqual(parse_level("WARN"), "warning")
        self.assertEqual(parse_level("disabled"), "off")
        self.assertEqual(parse_level("verbose", default="info"), "info")
        self.assertEqual(parse_level(None), "warning")


if __name__ == "__main__":
    unittest.main()
