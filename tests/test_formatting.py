"""Tests for prbench.formatting: shared text formatting helpers."""

from __future__ import annotations

import unittest

from prbench.formatting import format_gc_fraction, format_memory, format_ratio, format_time


class TestFormatTime(unittest.TestCase):
    def test_nanoseconds(self) -> None:
        self.assertEqual(format_time(812), "812.000 ns")

    def test_microseconds(self) -> None:
        self.assertEqual(format_time(1204), "1.204 μs")

    def test_milliseconds(self) -> None:
        self.assertEqual(format_time(15_320_000), "15.320 ms")

    def test_seconds(self) -> None:
        self.assertEqual(format_time(2.1e9), "2.100 s")

    def test_nan(self) -> None:
        self.assertEqual(format_time(float("nan")), "N/A")


class TestFormatMemory(unittest.TestCase):
    def test_bytes(self) -> None:
        self.assertEqual(format_memory(512), "512 bytes")

    def test_kib(self) -> None:
        self.assertEqual(format_memory(1536), "1.50 KiB")

    def test_mib(self) -> None:
        self.assertEqual(format_memory(3 * 1024**2), "3.00 MiB")

    def test_gib(self) -> None:
        self.assertEqual(format_memory(2 * 1024**3), "2.00 GiB")


class TestFormatRatio(unittest.TestCase):
    def test_plain(self) -> None:
        self.assertEqual(format_ratio(1.049), "1.05")

    def test_inf(self) -> None:
        self.assertEqual(format_ratio(float("inf")), "inf")

    def test_nan(self) -> None:
        self.assertEqual(format_ratio(float("nan")), "N/A")


class TestFormatGcFraction(unittest.TestCase):
    def test_fraction(self) -> None:
        self.assertEqual(format_gc_fraction(5, 20), "25.00%")

    def test_zero_time(self) -> None:
        self.assertEqual(format_gc_fraction(0, 0), "-")


if __name__ == "__main__":
    unittest.main()
