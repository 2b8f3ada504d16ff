import threading
from datetime import date, datetime, timedelta

import pytest

from class_attendance.core.enums import AttendanceStatus, SessionStatus
from class_attendance.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

from fakes import CLASS_ID, MONDAY, OTHER_TEACHER_ID, TEACHER_ID, make_slot


def test_create_session_snapshots_roster_as_absent(container, roster):
    roster.students_by_class[CLASS_ID] = list(range(1000, 1030))

    created = container.session_manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)

    assert created.session.status == SessionStatus.ONGOING
    assert created.session.started_at == datetime(2025, 3, 3, 8, 0)
    assert created.total_students == 30
    assert all(r.status == AttendanceStatus.ABSENT for r in created.attendances)
    assert all(r.check_in_time is None for r in created.attendances)


def test_later_roster_changes_do_not_touch_existing_session(container, roster, attendance):
    created = container.session_manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)
    roster.students_by_class[CLASS_ID].append(104)

    rows = attendance.list_for_session(created.session.session_id)

    assert [r.student_id for r in rows] == [101, 102, 103]


def test_empty_roster_creates_session_without_rows(container, roster):
    roster.students_by_class[CLASS_ID] = []

    created = container.session_manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)

    assert created.attendances == []


def test_duplicate_session_for_same_date_conflicts(container, attendance):
    manager = container.session_manager
    manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)

    with pytest.raises(ConflictError):
        manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)
    assert len(attendance.rows) == 3


def test_create_session_requires_owned_active_slot(container, slots):
    manager = container.session_manager
    with pytest.raises(NotFoundError):
        manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=OTHER_TEACHER_ID)

    slots.slots[2] = make_slot(2, day_of_week=2, is_active=False)
    with pytest.raises(NotFoundError):
        manager.create_session(slot_id=2, session_date=date(2025, 3, 4), teacher_id=TEACHER_ID)


def test_create_session_rejects_dates_far_in_future(container):
    with pytest.raises(ValidationError):
        container.session_manager.create_session(
            slot_id=1, session_date=MONDAY + timedelta(days=400), teacher_id=TEACHER_ID
        )


def test_end_session_sets_completed_and_timestamp(container, clock):
    manager = container.session_manager
    created = manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)
    clock.advance(minutes=90)

    ended = manager.end_session(session_id=created.session.session_id, teacher_id=TEACHER_ID)

    assert ended.status == SessionStatus.COMPLETED
    assert ended.ended_at == datetime(2025, 3, 3, 9, 30)


def test_terminal_session_cannot_change_again(container):
    manager = container.session_manager
    sid = manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID).session.session_id
    manager.cancel_session(session_id=sid, teacher_id=TEACHER_ID)

    with pytest.raises(InvalidTransitionError):
        manager.end_session(session_id=sid, teacher_id=TEACHER_ID)


def test_update_status_checks_owner_and_target(container):
    manager = container.session_manager
    sid = manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID).session.session_id

    with pytest.raises(AuthorizationError):
        manager.end_session(session_id=sid, teacher_id=OTHER_TEACHER_ID)
    with pytest.raises(ValidationError):
        manager.update_status(session_id=sid, new_status="ongoing", teacher_id=TEACHER_ID)
    with pytest.raises(ValidationError):
        manager.update_status(session_id=sid, new_status="paused", teacher_id=TEACHER_ID)
    with pytest.raises(NotFoundError):
        manager.end_session(session_id=999, teacher_id=TEACHER_ID)

    assert manager.update_status(session_id=sid, new_status="cancelled", teacher_id=TEACHER_ID).status == SessionStatus.CANCELLED


def test_list_sessions_newest_first_with_counts(container):
    manager = container.session_manager
    manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)
    manager.create_session(slot_id=1, session_date=MONDAY + timedelta(days=7), teacher_id=TEACHER_ID)

    listed = manager.list_sessions(slot_id=1, teacher_id=TEACHER_ID)

    assert [o.session.session_date for o in listed] == [date(2025, 3, 10), MONDAY]
    assert listed[0].summary == {"present": 0, "absent": 3, "late": 0, "excused": 0, "total": 3}


def test_get_session_is_owner_only(container):
    manager = container.session_manager
    sid = manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID).session.session_id

    assert manager.get_session(session_id=sid, teacher_id=TEACHER_ID).total_students == 3
    with pytest.raises(AuthorizationError):
        manager.get_session(session_id=sid, teacher_id=OTHER_TEACHER_ID)


def test_active_sessions_per_role(container, teacher, student, admin):
    manager = container.session_manager
    sid = manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID).session.session_id

    assert [s.session.session_id for s in manager.active_sessions(actor=teacher)] == [sid]
    assert [o.session.session_id for o in manager.active_sessions(actor=student)] == [sid]

    container.attendance_engine.student_check_in(session_id=sid, student_id=student.actor_id)
    assert manager.active_sessions(actor=student) == []

    with pytest.raises(AuthorizationError):
        manager.active_sessions(actor=admin)


def test_create_session_rejects_non_text_notes(container, sessions, attendance):
    with pytest.raises(ValidationError):
        container.session_manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID, notes=5)

    assert sessions.sessions == {}
    assert attendance.rows == {}


def test_concurrent_create_session_has_single_winner(container, sessions, attendance):
    workers = 8
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []

    def attempt():
        barrier.wait()
        try:
            container.session_manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID)
            outcomes.append("ok")
        except ConflictError:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict"] * (workers - 1) + ["ok"]
    assert len(sessions.sessions) == 1
    assert len(attendance.rows) == 3


def test_statistics_by_status_and_class(container, slots, admin):
    slots.slots[2] = make_slot(2, class_id=11, day_of_week=2)
    manager = container.session_manager
    first = manager.create_session(slot_id=1, session_date=MONDAY, teacher_id=TEACHER_ID).session.session_id
    manager.create_session(slot_id=1, session_date=MONDAY + timedelta(days=7), teacher_id=TEACHER_ID)
    manager.create_session(slot_id=2, session_date=date(2025, 3, 4), teacher_id=TEACHER_ID)
    manager.end_session(session_id=first, teacher_id=TEACHER_ID)

    stats = manager.statistics(actor=admin)

    assert stats.total_sessions == 3
    assert stats.by_status == {"ongoing": 2, "completed": 1, "cancelled": 0}
    assert stats.by_class == {CLASS_ID: 2, 11: 1}
    assert stats.total_classes == 2

    assert manager.statistics(actor=admin, class_id=11).total_sessions == 1
    assert manager.statistics(actor=admin, start=MONDAY, end=date(2025, 3, 4)).total_sessions == 2
    assert manager.statistics(actor=admin, teacher_id=OTHER_TEACHER_ID).total_sessions == 0


def test_statistics_is_admin_only_and_checks_range(container, admin, teacher):
    manager = container.session_manager

    with pytest.raises(AuthorizationError):
        manager.statistics(actor=teacher)
    with pytest.raises(ValidationError):
        manager.statistics(actor=admin, start=date(2025, 3, 10), end=MONDAY)
