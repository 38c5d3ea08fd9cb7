"""Tests for prbench.config: configuration loading and validation."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from prbench.config import BenchConfig, config_from_mapping, load_config, validate_config


class TestLoadConfig(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, text: str) -> Path:
        path = self.tmpdir / "prbench.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_mapping(self) -> None:
        path = self._write('benchmark_command: "python bench.py --quick"\npublic: false\n')
        data = load_config(path)
        self.assertEqual(data, {"benchmark_command": "python bench.py --quick", "public": False})

    def test_empty_file(self) -> None:
        self.assertEqual(load_config(self._write("")), {})

    def test_not_mapping(self) -> None:
        with self.assertRaises(ValueError):
            load_config(self._write("- a\n- b\n"))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(self.tmpdir / "missing.yaml")


class TestConfigFromMapping(unittest.TestCase):
    def test_defaults(self) -> None:
        config = config_from_mapping({})
        self.assertEqual(config, BenchConfig())
        self.assertEqual(config.token_env, "GITHUB_AUTH")
        self.assertEqual(config.time_tolerance, 0.05)

    def test_file_values(self) -> None:
        config = config_from_mapping({"benchmark_timeout": 60, "public": False})
        self.assertEqual(config.benchmark_timeout, 60)
        self.assertFalse(config.public)

    def test_cli_overrides_file(self) -> None:
        config = config_from_mapping(
            {"benchmark_command": "python a.py"},
            cli_overrides={"benchmark_command": "python b.py"},
        )
        self.assertEqual(config.benchmark_command, "python b.py")

    def test_none_override_ignored(self) -> None:
        config = config_from_mapping(
            {"benchmark_timeout": 60}, cli_overrides={"benchmark_timeout": None}
        )
        self.assertEqual(config.benchmark_timeout, 60)

    def test_unknown_key(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            config_from_mapping({"benchmark_comand": "typo"})
        self.assertIn("benchmark_comand", str(ctx.exception))


class TestValidateConfig(unittest.TestCase):
    def test_defaults_valid(self) -> None:
        self.assertEqual(validate_config(BenchConfig()), [])

    def test_empty_command(self) -> None:
        errors = validate_config(BenchConfig(benchmark_command="  "))
        self.assertEqual([e.field for e in errors], ["benchmark_command"])

    def test_bad_timeout(self) -> None:
        errors = validate_config(BenchConfig(benchmark_timeout=0))
        self.assertEqual([e.field for e in errors], ["benchmark_timeout"])

    def test_bad_tolerance(self) -> None:
        errors = validate_config(BenchConfig(time_tolerance=1.5, memory_tolerance=-0.1))
        self.assertEqual([e.field for e in errors], ["time_tolerance", "memory_tolerance"])

    def test_bad_description_template(self) -> None:
        errors = validate_config(BenchConfig(description="{package} benchmarks"))
        self.assertEqual([e.field for e in errors], ["description"])

    def test_gist_description(self) -> None:
        self.assertEqual(
            BenchConfig().gist_description("MyPkg"), "MyPkg repository benchmark"
        )


if __name__ == "__main__":
    unittest.main()
