from datetime import time

from class_attendance.schedules.conflicts import TimeConflictDetector, overlaps
from class_attendance.schedules.model import TimeSlotDraft

from fakes import CLASS_ID, PERIOD_ID, TEACHER_ID, make_slot


def _draft(**overrides) -> TimeSlotDraft:
    values = dict(
        teacher_id=TEACHER_ID,
        class_id=99,
        subject_id=4,
        academic_period_id=PERIOD_ID,
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(10, 0),
    )
    values.update(overrides)
    return TimeSlotDraft(**values)


def test_overlapping_teacher_slot_conflicts():
    existing = [make_slot(1, start_time=time(8, 0), end_time=time(9, 30))]

    result = TimeConflictDetector().check_conflict(_draft(), existing)

    assert result.conflict
    assert result.reason == "Teacher has conflicting schedule at 08:00:00-09:30:00"


def test_overlapping_class_slot_conflicts_for_other_teacher():
    existing = [make_slot(1)]

    result = TimeConflictDetector().check_conflict(_draft(teacher_id=50, class_id=CLASS_ID), existing)

    assert result.conflict
    assert result.reason.startswith("Class has conflicting schedule")


def test_teacher_reason_wins_when_both_sides_collide():
    existing = [make_slot(1)]

    result = TimeConflictDetector().check_conflict(_draft(class_id=CLASS_ID), existing)

    assert result.reason.startswith("Teacher")


def test_touching_intervals_do_not_conflict():
    existing = [make_slot(1, start_time=time(8, 0), end_time=time(9, 0))]

    result = TimeConflictDetector().check_conflict(_draft(start_time=time(9, 0)), existing)

    assert not result.conflict
    assert result.reason is None


def test_other_day_period_or_inactive_slots_are_ignored():
    existing = [
        make_slot(1, day_of_week=2),
        make_slot(2, academic_period_id=PERIOD_ID + 1),
        make_slot(3, is_active=False),
    ]

    assert not TimeConflictDetector().check_conflict(_draft(), existing).conflict


def test_excluded_slot_is_skipped():
    existing = [make_slot(1)]

    assert not TimeConflictDetector().check_conflict(make_slot(1), existing, exclude_slot_id=1).conflict


def test_same_room_does_not_conflict():
    existing = [make_slot(1, room="A101")]

    result = TimeConflictDetector().check_conflict(_draft(teacher_id=50, room="A101"), existing)

    assert not result.conflict


def test_overlaps_is_half_open():
    assert overlaps(time(8), time(9), time(8, 30), time(10))
    assert not overlaps(time(8), time(9), time(9), time(10))
    assert overlaps(time(8), time(12), time(9), time(10))
