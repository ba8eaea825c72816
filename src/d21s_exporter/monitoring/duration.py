"""
Parsing of Go-style duration strings such as "250ms", "1.5s" or "1h2m3s"
"""

import re

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek small letter mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")

# Largest magnitude of a signed 64-bit nanosecond count
MAX_DURATION_NS = 2**63 - 1


def parse_duration_ns(value: str) -> int:
    """Parse a duration string into integer nanoseconds.

    Accepts an optional sign followed by one or more decimal numbers, each
    with a unit suffix (ns, us, µs, ms, s, m, h). A bare "0" is also valid.
    Fractions finer than a nanosecond are truncated.

    Raises:
        ValueError: If the string is not a valid duration
    """
    if not isinstance(value, str):
        raise ValueError(f"invalid duration {value!r}")

    text = value
    negative = False
    if text[:1] in ("+", "-"):
        negative = text[0] == "-"
        text = text[1:]

    if text == "0":
        return 0
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    total = 0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration {value!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {value!r}")
        if unit not in _UNITS:
            raise ValueError(f"unknown unit {unit!r} in duration {value!r}")

        scale = _UNITS[unit]
        total += int(whole or 0) * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        if total > MAX_DURATION_NS + (1 if negative else 0):
            raise ValueError(f"invalid duration {value!r}")
        pos = match.end()

    return -total if negative else total


def parse_duration(value: str) -> float:
    """Parse a duration string into fractional seconds"""
    nanos = parse_duration_ns(value)
    sign = -1 if nanos < 0 else 1
    whole, rest = divmod(abs(nanos), SECOND)
    return sign * (whole + rest / 1e9)


def duration_seconds(value: str | None) -> float:
    """Duration in seconds, or 0.0 when the value cannot be parsed"""
    if value is None:
        return 0.0
    try:
        return parse_duration(value)
    except ValueError:
        return 0.0
