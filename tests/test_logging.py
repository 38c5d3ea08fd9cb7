"""Tests for prbench.logging: logger configuration."""

from __future__ import annotations

import logging
import tempfile
import unittest
from pathlib import Path

from prbench.logging import console_level, get_logger, setup_logging


class TestConsoleLevel(unittest.TestCase):
    def test_default(self) -> None:
        self.assertEqual(console_level(), logging.INFO)

    def test_verbose_wins(self) -> None:
        self.assertEqual(console_level(verbose=True, quiet=True), logging.DEBUG)

    def test_quiet(self) -> None:
        self.assertEqual(console_level(quiet=True), logging.WARNING)


class TestSetupLogging(unittest.TestCase):
    def tearDown(self) -> None:
        logger = logging.getLogger("prbench")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_console_levels(self) -> None:
        self.assertEqual(setup_logging().handlers[0].level, logging.INFO)
        self.assertEqual(setup_logging(verbose=True).handlers[0].level, logging.DEBUG)
        self.assertEqual(setup_logging(quiet=True).handlers[0].level, logging.WARNING)

    def test_reconfigure_replaces_handlers(self) -> None:
        setup_logging()
        logger = setup_logging()
        self.assertEqual(len(logger.handlers), 1)

    def test_log_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "prbench.log"
            logger = setup_logging(quiet=True, log_file=path)
            get_logger("pipeline").debug("Stage: %s", "init")
            for handler in logger.handlers:
                handler.flush()
            self.assertIn("prbench.pipeline: Stage: init", path.read_text(encoding="utf-8"))
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()

    def test_child_logger_name(self) -> None:
        self.assertEqual(get_logger("gist").name, "prbench.gist")


if __name__ == "__main__":
    unittest.main()
