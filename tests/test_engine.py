"""Tests for prbench.engine: running the benchmark command."""

from __future__ import annotations

import json
import subprocess
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from prbench.engine import RESULTS_ENV, SubprocessBenchmarkEngine, resolve_command
from prbench.environment import PackageManager
from prbench.errors import BenchmarkError, MalformedRunError

from run_test_helpers import FakeRepository, make_run

BENCH_SCRIPT = textwrap.dedent(
    """\
    import json
    import os

    data = {DATA}
    with open(os.environ["PRBENCH_RESULTS"], "w") as f:
        json.dump(data, f)
    """
)


class TestResolveCommand(unittest.TestCase):
    def test_replaces_leading_python(self) -> None:
        self.assertEqual(
            resolve_command("python benchmarks.py --quick", Path("/venv/bin/python")),
            "/venv/bin/python benchmarks.py --quick",
        )

    def test_quotes_paths_with_spaces(self) -> None:
        self.assertEqual(
            resolve_command("python b.py", Path("/my venv/python")),
            "'/my venv/python' b.py",
        )

    def test_other_commands_untouched(self) -> None:
        self.assertEqual(resolve_command("make bench", Path("/x")), "make bench")
        self.assertEqual(resolve_command("python3 b.py", Path("/x")), "python3 b.py")


class EngineTestBase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.bmark_dir = Path(self._tmp.name)
        self.repository = FakeRepository(commit="cafe1234")
        self.packages = PackageManager(Path(sys.executable))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _engine(self, **kwargs: object) -> SubprocessBenchmarkEngine:
        return SubprocessBenchmarkEngine(
            self.bmark_dir,
            self.repository,  # type: ignore[arg-type]
            self.packages,
            **kwargs,  # type: ignore[arg-type]
        )

    def _write_script(self, data: object) -> None:
        script = BENCH_SCRIPT.replace("{DATA}", repr(data))
        (self.bmark_dir / "benchmarks.py").write_text(script, encoding="utf-8")


class TestEngineRun(EngineTestBase):
    def test_current_state(self) -> None:
        self._write_script(make_run("ignored").to_dict())
        run = self._engine().run("MyPkg")
        self.assertEqual(run.name, "MyPkg")
        self.assertEqual(run.commit, "cafe1234")
        self.assertEqual(run.n_cases, 2)
        self.assertEqual(self.repository.checkouts, [])

    def test_no_repository(self) -> None:
        self.repository.is_repo = False
        self._write_script(make_run().to_dict())
        self.assertIsNone(self._engine().run("MyPkg").commit)

    def test_reference_branch(self) -> None:
        self._write_script(make_run().to_dict())
        run = self._engine().run("MyPkg", "main")
        self.assertEqual(self.repository.checkouts, ["main"])
        self.assertEqual(run.name, "main")
        self.assertEqual(run.commit, "main-sha")

    def test_nonzero_exit(self) -> None:
        (self.bmark_dir / "benchmarks.py").write_text(
            "import sys\nsys.exit('suite exploded')\n", encoding="utf-8"
        )
        with self.assertRaises(BenchmarkError) as ctx:
            self._engine().run("MyPkg")
        self.assertIn("suite exploded", str(ctx.exception))

    def test_no_results_written(self) -> None:
        (self.bmark_dir / "benchmarks.py").write_text("pass\n", encoding="utf-8")
        with self.assertRaises(BenchmarkError) as ctx:
            self._engine().run("MyPkg")
        self.assertIn(RESULTS_ENV, str(ctx.exception))

    def test_malformed_results(self) -> None:
        self._write_script({"name": "x"})
        with self.assertRaises(MalformedRunError):
            self._engine().run("MyPkg")

    @patch("prbench.engine.subprocess.run")
    def test_timeout(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="python", timeout=1)
        with self.assertRaises(BenchmarkError) as ctx:
            self._engine(timeout=1).run("MyPkg")
        self.assertIn("timed out", str(ctx.exception))

    @patch("prbench.engine.subprocess.run")
    def test_results_path_in_environment(self, mock_run: MagicMock) -> None:
        def fake_run(command: str, **kwargs: object) -> subprocess.CompletedProcess[str]:
            env = kwargs["env"]
            assert isinstance(env, dict)
            Path(env[RESULTS_ENV]).write_text(
                json.dumps(make_run().to_dict()), encoding="utf-8"
            )
            return subprocess.CompletedProcess(command, 0, "", "")

        mock_run.side_effect = fake_run
        self._engine(command="python bench.py").run("MyPkg")
        command = mock_run.call_args.args[0]
        self.assertTrue(command.endswith(" bench.py"))
        self.assertEqual(mock_run.call_args.kwargs["cwd"], str(self.bmark_dir))


if __name__ == "__main__":
    unittest.main()
