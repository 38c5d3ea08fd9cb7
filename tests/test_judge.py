"""Tests for prbench.judge: comparing a run against a reference run."""

from __future__ import annotations

import math
import unittest

from prbench.judge import (
    IMPROVEMENT,
    INVARIANT,
    REGRESSION,
    judge,
    judgement_to_frames,
    ratio,
    verdict,
)

from run_test_helpers import make_run


class TestRatio(unittest.TestCase):
    def test_plain(self) -> None:
        self.assertAlmostEqual(ratio(12, 10), 1.2)

    def test_zero_over_zero(self) -> None:
        self.assertEqual(ratio(0, 0), 1.0)

    def test_nonzero_over_zero(self) -> None:
        self.assertTrue(math.isinf(ratio(5, 0)))


class TestVerdict(unittest.TestCase):
    def test_regression(self) -> None:
        self.assertEqual(verdict(1.10, 0.05), REGRESSION)

    def test_improvement(self) -> None:
        self.assertEqual(verdict(0.90, 0.05), IMPROVEMENT)

    def test_within_tolerance(self) -> None:
        self.assertEqual(verdict(1.04, 0.05), INVARIANT)
        self.assertEqual(verdict(0.96, 0.05), INVARIANT)

    def test_boundary_is_invariant(self) -> None:
        self.assertEqual(verdict(1.05, 0.05), INVARIANT)


class TestJudge(unittest.TestCase):
    def test_identical_runs(self) -> None:
        current = make_run("this_commit")
        reference = make_run("reference")
        judgement = judge(current, reference)
        self.assertEqual(list(judgement.suites), ["micro"])
        cases = judgement.suites["micro"]
        self.assertEqual([c.name for c in cases], ["foo", "bar"])
        for case in cases:
            self.assertEqual(case.time_ratio, 1.0)
            self.assertEqual(case.time_verdict, INVARIANT)
        self.assertEqual(judgement.regressions, [])
        self.assertEqual(judgement.improvements, [])

    def test_zero_gctime_ratio(self) -> None:
        judgement = judge(make_run("a"), make_run("b"))
        foo = judgement.suites["micro"][0]
        self.assertEqual(foo.gctime_ratio, 1.0)

    def test_regression_and_improvement(self) -> None:
        current = make_run("this_commit", times=[20, 10])
        reference = make_run("reference", times=[10, 20])
        judgement = judge(current, reference)
        foo, bar = judgement.suites["micro"]
        self.assertEqual(foo.time_verdict, REGRESSION)
        self.assertTrue(foo.regressed)
        self.assertEqual(bar.time_verdict, IMPROVEMENT)
        self.assertTrue(bar.improved)
        self.assertEqual([c.name for _, c in judgement.regressions], ["foo"])
        self.assertEqual([c.name for _, c in judgement.improvements], ["bar"])

    def test_memory_tolerance(self) -> None:
        current = make_run("a", memory=[103, 200])
        reference = make_run("b")
        strict = judge(current, reference, memory_tolerance=0.01)
        lenient = judge(current, reference, memory_tolerance=0.05)
        self.assertEqual(strict.suites["micro"][0].memory_verdict, REGRESSION)
        self.assertEqual(lenient.suites["micro"][0].memory_verdict, INVARIANT)

    def test_only_common_cases(self) -> None:
        current = make_run("a", cases=["foo", "new"])
        reference = make_run("b", cases=["foo", "old"])
        cases = judge(current, reference).suites["micro"]
        self.assertEqual([c.name for c in cases], ["foo"])

    def test_new_suite_not_judged(self) -> None:
        current = make_run("a", suite="fresh")
        reference = make_run("b", suite="micro")
        self.assertEqual(judge(current, reference).suites, {})

    def test_names_recorded(self) -> None:
        judgement = judge(make_run("this_commit"), make_run("reference"))
        self.assertEqual(judgement.current_name, "this_commit")
        self.assertEqual(judgement.reference_name, "reference")


class TestJudgementToFrames(unittest.TestCase):
    def test_columns_hold_ratios(self) -> None:
        current = make_run("a", times=[20, 20])
        frames = judgement_to_frames(judge(current, make_run("b")))
        frame = frames["micro"]
        self.assertEqual(
            list(frame.columns), ["name", "time", "memory", "gctime", "allocations"]
        )
        self.assertEqual(list(frame["time"]), [2.0, 1.0])


if __name__ == "__main__":
    unittest.main()
