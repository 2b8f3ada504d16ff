from datetime import date, timedelta

import pytest

from class_attendance.attendance.model import AttendanceUpdate
from class_attendance.core.enums import AttendanceStatus, RiskLevel, Role, SummaryKind, TrendDirection
from class_attendance.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from class_attendance.core.identity import Actor

from fakes import CLASS_ID, MONDAY, OTHER_TEACHER_ID, TEACHER_ID


def _run_week(container, attendance, week: int, statuses: dict[int, str]) -> int:
    """Hold the Monday session ``week`` weeks after MONDAY and mark it."""
    created = container.session_manager.create_session(
        slot_id=1, session_date=MONDAY + timedelta(weeks=week), teacher_id=TEACHER_ID
    )
    sid = created.session.session_id
    by_student = {r.student_id: r.attendance_id for r in attendance.list_for_session(sid)}
    container.attendance_engine.bulk_mark(
        session_id=sid,
        updates=[AttendanceUpdate(by_student[s], status) for s, status in statuses.items()],
        teacher_id=TEACHER_ID,
    )
    return sid


def test_session_attendance_report(container, attendance, teacher, clock):
    clock.advance(minutes=5)
    sid = _run_week(container, attendance, 0, {101: "present", 102: "late"})
    clock.advance(minutes=85)
    container.session_manager.end_session(session_id=sid, teacher_id=TEACHER_ID)

    report = container.report_service.session_attendance(session_id=sid, actor=teacher)

    assert report.summary == {"present": 1, "absent": 1, "late": 1, "excused": 0, "total": 3}
    assert report.attendance_rate == 67
    assert set(report.arrivals.values()) == {"5 minutes late"}
    assert report.duration_minutes == 85


def test_session_attendance_access(container, attendance, student):
    sid = _run_week(container, attendance, 0, {101: "present"})

    with pytest.raises(AuthorizationError):
        container.report_service.session_attendance(session_id=sid, actor=Actor(OTHER_TEACHER_ID, Role.TEACHER))
    with pytest.raises(AuthorizationError):
        container.report_service.session_attendance(session_id=sid, actor=student)
    with pytest.raises(NotFoundError):
        container.report_service.session_attendance(session_id=999, actor=Actor(1, Role.ADMIN))


def test_student_history_filters_and_summary(container, attendance):
    _run_week(container, attendance, 0, {101: "present"})
    _run_week(container, attendance, 1, {101: "late"})
    _run_week(container, attendance, 2, {101: "absent"})

    report = container.report_service.student_history(student_id=101)
    assert [r.session_date for r in report.rows] == [date(2025, 3, 17), date(2025, 3, 10), MONDAY]
    assert report.summary["attendance_rate"] == 67

    only_late = container.report_service.student_history(student_id=101, status="late")
    assert [r.status for r in only_late.rows] == [AttendanceStatus.LATE]
    assert only_late.filters["status"] == "late"

    ranged = container.report_service.student_history(student_id=101, start=date(2025, 3, 10), end=date(2025, 3, 10))
    assert len(ranged.rows) == 1


def test_student_history_errors(container):
    with pytest.raises(NotFoundError):
        container.report_service.student_history(student_id=555)
    with pytest.raises(ValidationError):
        container.report_service.student_history(student_id=101, start=date(2025, 3, 10), end=MONDAY)


def test_student_risk_flags_absence_streak(container, attendance):
    for week, status in enumerate(["present", "present", "absent", "absent", "absent"]):
        _run_week(container, attendance, week, {101: status})

    risk = container.report_service.student_risk(student_id=101)

    assert risk.total_sessions == 5
    assert risk.attendance_rate == 40
    assert risk.consecutive_absences == 3
    assert risk.risk_level == RiskLevel.CRITICAL
    assert risk.trend.direction == TrendDirection.DECLINING
    assert risk.most_common_status == AttendanceStatus.ABSENT
    assert risk.needs_warning


def test_class_analytics_groups(container, attendance):
    _run_week(container, attendance, 0, {101: "present", 102: "present", 103: "late"})
    _run_week(container, attendance, 1, {101: "excused"})

    analytics = container.report_service.class_analytics(class_id=CLASS_ID, start=MONDAY, end=date(2025, 3, 31))

    assert analytics.overall["total"] == 6
    assert analytics.overall["attendance_rate"] == 50
    assert list(analytics.by_subject) == [3]
    assert analytics.by_weekday[1]["absent"] == 2
    assert analytics.by_date["2025-03-03"] == {"present": 2, "absent": 0, "late": 1, "excused": 0, "total": 3}

    with pytest.raises(ValidationError):
        container.report_service.class_analytics(class_id=CLASS_ID, start=date(2025, 3, 31), end=MONDAY)


def test_attendance_summary_by_class_teacher_and_student(container, attendance):
    _run_week(container, attendance, 0, {101: "present", 102: "late"})
    _run_week(container, attendance, 1, {101: "absent", 102: "excused", 103: "present"})
    reports = container.report_service

    by_class = reports.attendance_summary(kind="class", target_id=CLASS_ID)
    assert by_class.summary == {
        "present": 2,
        "absent": 2,
        "late": 1,
        "excused": 1,
        "total": 6,
        "attendance_rate": 50,
    }
    assert by_class.by_subject == {3: {"present": 2, "absent": 2, "late": 1, "excused": 1, "total": 6}}

    by_teacher = reports.attendance_summary(kind="teacher", target_id=TEACHER_ID)
    assert by_teacher.summary == by_class.summary

    one = reports.attendance_summary(kind=SummaryKind.STUDENT, target_id=101, start=MONDAY + timedelta(days=1))
    assert one.summary["absent"] == 1
    assert one.summary["total"] == 1
    assert one.summary["attendance_rate"] == 0
    assert one.filters == {"start_date": "2025-03-04", "end_date": None}


def test_attendance_summary_rejects_unknown_targets(container):
    reports = container.report_service

    with pytest.raises(ValidationError):
        reports.attendance_summary(kind="school", target_id=1)
    with pytest.raises(NotFoundError):
        reports.attendance_summary(kind="class", target_id=999)
    with pytest.raises(NotFoundError):
        reports.attendance_summary(kind="teacher", target_id=OTHER_TEACHER_ID)
    with pytest.raises(NotFoundError):
        reports.attendance_summary(kind="student", target_id=999)
    with pytest.raises(ValidationError):
        reports.attendance_summary(kind="class", target_id=CLASS_ID, start=date(2025, 3, 10), end=MONDAY)
