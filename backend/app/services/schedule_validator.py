"""Validation of the weekly time slots proposed for a single class.

Rows come straight from the class form, so some may be blank placeholders and
some only partly filled. Checks run in a fixed order and stop at the first
failing class of problem:

1. rows with no day, start or end are ignored;
2. a partly filled row is ``IncompleteEntry``;
3. no complete row left is ``NoCompleteSchedule``;
4. a day outside 1-7 is ``InvalidDay``;
5. an unparsable time or ``start >= end`` is ``InvalidTimeRange``;
6. a repeated ``day|start|end`` triple is ``DuplicateEntry``;
7. two same-day slots whose half-open ranges intersect are ``OverlappingEntry``.

Slots that only touch (one ends when the next starts) do not overlap.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
import logging
from typing import NamedTuple

from app.core.exceptions import ScheduleRejectedError
from app.schemas.schedule import (
    CandidateEntry,
    ScheduleEntry,
    ValidationErrorKind,
    ValidationFailure,
    ValidResult,
)
from app.services.time_utils import DayParseError, TimeParseError, day_label, parse_day, to_minutes

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("day_of_week", "start_time", "end_time")


class _Slot(NamedTuple):
    index: int
    day: int
    start: int
    end: int
    entry: ScheduleEntry


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _coerce(candidate: CandidateEntry | ScheduleEntry | Mapping) -> CandidateEntry:
    if isinstance(candidate, CandidateEntry):
        return candidate
    if isinstance(candidate, ScheduleEntry):
        return CandidateEntry(
            day_of_week=candidate.day_of_week,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
            room=candidate.room,
        )
    return CandidateEntry.model_validate(candidate)


def _describe(slot: _Slot) -> str:
    return f"{day_label(slot.day)} {slot.entry.start_time}-{slot.entry.end_time}"


def validate_schedule(
    candidates: Iterable[CandidateEntry | ScheduleEntry | Mapping],
) -> ValidResult | ValidationFailure:
    rows = [_coerce(candidate) for candidate in candidates]

    filled: list[tuple[int, CandidateEntry]] = []
    for index, row in enumerate(rows):
        present = [not _is_blank(getattr(row, name)) for name in REQUIRED_FIELDS]
        if not any(present):
            continue
        if not all(present):
            missing = [name for name, ok in zip(REQUIRED_FIELDS, present) if not ok]
            return ValidationFailure(
                kind=ValidationErrorKind.IncompleteEntry,
                detail=f"Schedule row {index + 1} is missing {', '.join(missing)}",
                entries=[index],
            )
        filled.append((index, row))

    if not filled:
        return ValidationFailure(
            kind=ValidationErrorKind.NoCompleteSchedule,
            detail="A class needs at least one complete time slot",
        )

    days: dict[int, int] = {}
    for index, row in filled:
        try:
            days[index] = parse_day(row.day_of_week)
        except DayParseError as exc:
            return ValidationFailure(
                kind=ValidationErrorKind.InvalidDay,
                detail=f"Schedule row {index + 1}: {exc}",
                entries=[index],
            )

    slots: list[_Slot] = []
    for index, row in filled:
        start_text = row.start_time.strip()
        end_text = row.end_time.strip()
        try:
            start = to_minutes(start_text)
            end = to_minutes(end_text)
        except TimeParseError as exc:
            return ValidationFailure(
                kind=ValidationErrorKind.InvalidTimeRange,
                detail=f"Schedule row {index + 1}: {exc}",
                entries=[index],
            )
        if start >= end:
            return ValidationFailure(
                kind=ValidationErrorKind.InvalidTimeRange,
                detail=(
                    f"Schedule row {index + 1}: start time {start_text} "
                    f"must be before end time {end_text}"
                ),
                entries=[index],
            )
        room = row.room.strip() if row.room else None
        entry = ScheduleEntry(
            day_of_week=days[index],
            start_time=start_text,
            end_time=end_text,
            room=room or None,
        )
        slots.append(_Slot(index=index, day=entry.day_of_week, start=start, end=end, entry=entry))

    seen: dict[str, _Slot] = {}
    for slot in slots:
        first = seen.get(slot.entry.key)
        if first is not None:
            return ValidationFailure(
                kind=ValidationErrorKind.DuplicateEntry,
                detail=(
                    f"Schedule rows {first.index + 1} and {slot.index + 1} "
                    f"are the same slot ({_describe(slot)})"
                ),
                entries=[first.index, slot.index],
                key=slot.entry.key,
            )
        seen[slot.entry.key] = slot

    by_day: dict[int, list[_Slot]] = defaultdict(list)
    for slot in slots:
        by_day[slot.day].append(slot)

    for day in sorted(by_day):
        ordered = sorted(by_day[day], key=lambda item: (item.start, item.end))
        previous = ordered[0]
        for current in ordered[1:]:
            if current.start < previous.end:
                return ValidationFailure(
                    kind=ValidationErrorKind.OverlappingEntry,
                    detail=f"{_describe(previous)} overlaps {_describe(current)}",
                    entries=sorted([previous.index, current.index]),
                )
            previous = current

    return ValidResult(entries=[slot.entry for slot in slots])


class ScheduleValidator:
    """Object seam over :func:`validate_schedule` for the class edit flow."""

    def validate(self, candidates) -> ValidResult | ValidationFailure:
        return validate_schedule(candidates)

    def require_valid(self, candidates) -> list[ScheduleEntry]:
        result = validate_schedule(candidates)
        if isinstance(result, ValidationFailure):
            logger.info("Schedule rejected (%s): %s", result.kind.value, result.detail)
            raise ScheduleRejectedError(result.detail, details=result.as_details())
        return result.entries
