from collections import defaultdict

import pytest

from app.core.exceptions import ScheduleRejectedError
from app.schemas.schedule import ValidationErrorKind, ValidationFailure, ValidResult
from app.services.schedule_validator import ScheduleValidator, validate_schedule
from app.services.time_utils import to_minutes


def slot(day, start, end, room=None):
    return {"day_of_week": day, "start_time": start, "end_time": end, "room": room}


def test_overlapping_same_day_slots_are_rejected():
    result = validate_schedule([slot("1", "09:00", "10:00"), slot("1", "09:30", "10:30")])

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.OverlappingEntry
    assert result.entries == [0, 1]
    assert "Monday 09:00-10:00" in result.detail
    assert "Monday 09:30-10:30" in result.detail


def test_back_to_back_slots_are_valid():
    result = validate_schedule([slot("1", "09:00", "10:00"), slot("1", "10:00", "11:00")])

    assert isinstance(result, ValidResult)
    assert [(e.start_time, e.end_time) for e in result.entries] == [("09:00", "10:00"), ("10:00", "11:00")]


def test_identical_slots_are_duplicates():
    result = validate_schedule([slot("1", "09:00", "10:00"), slot("1", "09:00", "10:00")])

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.DuplicateEntry
    assert result.key == "1|09:00|10:00"
    assert result.entries == [0, 1]


def test_partial_row_blocks_save_even_with_a_complete_row():
    result = validate_schedule([slot("1", "", ""), slot("2", "09:00", "10:00")])

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.IncompleteEntry
    assert result.entries == [0]
    assert "start_time" in result.detail and "end_time" in result.detail


def test_blank_rows_are_ignored():
    result = validate_schedule([slot(None, None, None), slot("", " ", ""), slot("2", "09:00", "10:00")])

    assert isinstance(result, ValidResult)
    assert len(result.entries) == 1
    assert result.entries[0].day_of_week == 2


def test_no_complete_rows_is_reported():
    for candidates in ([], [slot("", "", "")]):
        result = validate_schedule(candidates)
        assert isinstance(result, ValidationFailure)
        assert result.kind == ValidationErrorKind.NoCompleteSchedule


@pytest.mark.parametrize(
    "start,end",
    [("10:00", "09:00"), ("10:00", "10:00"), ("25:00", "26:00"), ("9:00", "10:00")],
)
def test_bad_time_ranges_are_rejected(start, end):
    result = validate_schedule([slot("3", "08:00", "08:30"), slot("3", start, end)])

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.InvalidTimeRange
    assert result.entries == [1]


def test_day_outside_week_is_rejected():
    result = validate_schedule([slot("8", "09:00", "10:00")])

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.InvalidDay


def test_same_times_on_different_days_do_not_conflict():
    result = validate_schedule([slot("1", "09:00", "10:00"), slot("3", "09:00", "10:00")])

    assert isinstance(result, ValidResult)


def test_overlap_detected_regardless_of_input_order():
    result = validate_schedule(
        [slot("2", "13:00", "14:00"), slot("2", "08:00", "12:00"), slot("2", "11:00", "11:30")]
    )

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.OverlappingEntry
    assert result.entries == [1, 2]


def test_contained_slot_overlaps_longer_slot():
    result = validate_schedule([slot("4", "08:00", "12:00"), slot("4", "09:00", "09:30")])

    assert isinstance(result, ValidationFailure)
    assert result.kind == ValidationErrorKind.OverlappingEntry


def test_entries_are_trimmed_and_normalized():
    result = validate_schedule([slot(" 5 ", " 07:30 ", "09:00 ", "  Online  "), slot(6, "10:00", "11:00", "   ")])

    assert isinstance(result, ValidResult)
    first, second = result.entries
    assert (first.day_of_week, first.start_time, first.end_time, first.room) == (5, "07:30", "09:00", "Online")
    assert second.room is None
    assert first.model_dump()["day_of_week"] == "5"


def test_valid_output_has_ordered_non_overlapping_ranges():
    result = validate_schedule(
        [
            slot("1", "13:00", "14:30"),
            slot("1", "08:00", "09:00"),
            slot("1", "09:00", "10:15"),
            slot("2", "08:00", "09:00"),
            slot("5", "18:00", "21:00"),
        ]
    )

    assert isinstance(result, ValidResult)
    by_day = defaultdict(list)
    for entry in result.entries:
        start, end = to_minutes(entry.start_time), to_minutes(entry.end_time)
        assert start < end
        by_day[entry.day_of_week].append((start, end))
    for ranges in by_day.values():
        ranges.sort()
        for (_, previous_end), (next_start, _) in zip(ranges, ranges[1:]):
            assert previous_end <= next_start


def test_validation_is_idempotent():
    first = validate_schedule([slot("1", "08:00", "09:00", "Room 1"), slot("", "", ""), slot("2", "10:00", "11:00")])
    assert isinstance(first, ValidResult)

    second = validate_schedule(first.entries)
    assert isinstance(second, ValidResult)
    assert second.entries == first.entries

    third = validate_schedule([entry.model_dump() for entry in first.entries])
    assert isinstance(third, ValidResult)
    assert third.entries == first.entries


def test_require_valid_raises_with_details():
    validator = ScheduleValidator()

    with pytest.raises(ScheduleRejectedError) as exc_info:
        validator.require_valid([slot("1", "09:00", "10:00"), slot("1", "09:30", "10:30")])

    assert exc_info.value.status_code == 422
    assert exc_info.value.details["kind"] == "OverlappingEntry"
    assert exc_info.value.details["entries"] == [0, 1]
    assert len(validator.require_valid([slot("1", "09:00", "10:00")])) == 1
