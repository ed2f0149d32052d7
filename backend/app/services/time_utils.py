from __future__ import annotations

import re

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DAY_LABELS: dict[int, str] = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


class TimeParseError(ValueError):
    pass


class DayParseError(ValueError):
    pass


def to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` 24-hour wall-clock string to minutes since midnight."""
    if not isinstance(value, str):
        raise TimeParseError(f"Time must be a string in HH:MM format, got {value!r}")
    match = TIME_PATTERN.match(value.strip())
    if match is None:
        raise TimeParseError(f"Time must be in HH:MM 24-hour format, got {value!r}")
    hours, minutes = match.groups()
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    if total < 0 or total >= 24 * 60:
        raise ValueError(f"Minutes out of range for a single day: {total}")
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_day(value: int | str) -> int:
    if isinstance(value, bool):
        raise DayParseError(f"Day of week must be an integer 1-7, got {value!r}")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise DayParseError(f"Day of week must be an integer 1-7, got {value!r}")
        value = int(stripped)
    if not isinstance(value, int) or value not in DAY_LABELS:
        raise DayParseError(f"Day of week must be an integer 1-7, got {value!r}")
    return value


def day_label(day: int) -> str:
    return DAY_LABELS.get(day, str(day))
