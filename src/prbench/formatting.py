"""Shared text formatting helpers for prbench.

Benchmark engines report times in nanoseconds and memory in bytes; these
helpers turn them into the short human-readable strings used in the
Markdown exports.
"""

from __future__ import annotations

import math


def format_time(nanoseconds: float, precision: int = 3) -> str:
    """Format a time given in nanoseconds with adaptive units.

    Examples: ``'812.000 ns'``, ``'1.204 μs'``, ``'15.320 ms'``, ``'2.100 s'``.
    """
    if math.isnan(nanoseconds):
        return "N/A"
    if nanoseconds < 1e3:
        return f"{nanoseconds:.{precision}f} ns"
    if nanoseconds < 1e6:
        return f"{nanoseconds / 1e3:.{precision}f} μs"
    if nanoseconds < 1e9:
        return f"{nanoseconds / 1e6:.{precision}f} ms"
    return f"{nanoseconds / 1e9:.{precision}f} s"


def format_memory(nbytes: float, precision: int = 2) -> str:
    """Format a byte count: ``'512 bytes'``, ``'1.50 KiB'``, ``'3.00 MiB'``."""
    if math.isnan(nbytes):
        return "N/A"
    if nbytes < 1024:
        return f"{int(nbytes)} bytes"
    if nbytes < 1024**2:
        return f"{nbytes / 1024:.{precision}f} KiB"
    if nbytes < 1024**3:
        return f"{nbytes / 1024**2:.{precision}f} MiB"
    return f"{nbytes / 1024**3:.{precision}f} GiB"


def format_ratio(ratio: float, precision: int = 2) -> str:
    """Format a current/reference ratio: ``'1.05'``, ``'inf'``, ``'N/A'``."""
    if math.isnan(ratio):
        return "N/A"
    if math.isinf(ratio):
        return "inf"
    return f"{ratio:.{precision}f}"


def format_gc_fraction(gctime: float, time: float) -> str:
    """Format GC time as a percentage of the total time."""
    if time == 0:
        return "-"
    return f"{gctime / time * 100:.2f}%"
