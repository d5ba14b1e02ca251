"""Low-level G-code line formatting helpers."""

from __future__ import annotations

from typing import Optional


def fmt(value: float, decimals: int = 3) -> str:
    """Format a float for G-code, stripping trailing zeros.

    Values that round to zero print as ``0``, never ``-0``.
    """
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def rapid(
    x: Optional[float] = None,
    y: Optional[float] = None,
    decimals: int = 3,
) -> str:
    """G0 rapid traverse (laser off)."""
    parts = ["G0"]
    if x is not None:
        parts.append(f"X{fmt(x, decimals)}")
    if y is not None:
        parts.append(f"Y{fmt(y, decimals)}")
    return " ".join(parts)


def linear(
    x: Optional[float] = None,
    y: Optional[float] = None,
    f: Optional[float] = None,
    decimals: int = 3,
) -> str:
    """G1 linear interpolation."""
    parts = ["G1"]
    if x is not None:
        parts.append(f"X{fmt(x, decimals)}")
    if y is not None:
        parts.append(f"Y{fmt(y, decimals)}")
    if f is not None:
        parts.append(f"F{fmt(f, 1)}")
    return " ".join(parts)


def arc(
    clockwise: bool,
    x: float,
    y: float,
    i: float,
    j: float,
    f: Optional[float] = None,
    decimals: int = 3,
) -> str:
    """G02/G03 circular interpolation with center offsets *i*, *j*."""
    parts = [
        "G02" if clockwise else "G03",
        f"X{fmt(x, decimals)}",
        f"Y{fmt(y, decimals)}",
        f"I{fmt(i, decimals)}",
        f"J{fmt(j, decimals)}",
    ]
    if f is not None:
        parts.append(f"F{fmt(f, 1)}")
    return " ".join(parts)


def laser_on(power: int) -> str:
    """M3 constant-power laser on, *power* on the 0-1000 scale."""
    return f"M3 S{power}"


def laser_off() -> str:
    return "M5"


def comment(text: str) -> str:
    """Semicolon comment line; newlines in *text* are flattened."""
    cleaned = " ".join(text.splitlines())
    return f"; {cleaned}" if cleaned else ";"
