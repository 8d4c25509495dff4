"""Number and memory-size normalization."""

from __future__ import annotations

from typing import TypeAlias

KilobytesValue: TypeAlias = int

_UNIT_FACTORS: dict[str, int] = {
    "K": 1,
    "M": 1024,
    "G": 1024 * 1024,
}


def memory_in_kb(value: int, unit: str) -> KilobytesValue:
    """Convert a JVM size quantity like (4115, 'M') into KB."""
    if unit == "B":
        return round(value / 1024)
    if factor := _UNIT_FACTORS.get(unit):
        return value * factor
    raise ValueError(f"Unsupported size unit: {unit}")


def parse_decimal(text: str) -> float:
    """Parse a decimal number that may use ',' as separator (JVM locale dependent)."""
    return float(text.strip().replace(",", "."))
