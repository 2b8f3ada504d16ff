from __future__ import annotations

from datetime import date, datetime

import pytest

from class_attendance.common.datetime_utils import FixedClock
from class_attendance.common.transaction import LocalTransactionManager
from class_attendance.container import build_services
from class_attendance.core.enums import Role
from class_attendance.core.identity import Actor
from class_attendance.schedules.model import AcademicPeriod

from fakes import (
    CLASS_ID,
    PERIOD_ID,
    TEACHER_ID,
    InMemoryAttendance,
    InMemoryPeriods,
    InMemoryRoster,
    InMemorySessions,
    InMemorySlots,
    make_slot,
)


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 3, 8, 0))


@pytest.fixture
def slots():
    return InMemorySlots([make_slot(1)])


@pytest.fixture
def periods():
    return InMemoryPeriods({PERIOD_ID: AcademicPeriod(PERIOD_ID, "2024/2025 S2", date(2025, 2, 1), date(2025, 6, 30))})


@pytest.fixture
def sessions(slots):
    return InMemorySessions(slots)


@pytest.fixture
def attendance(sessions, slots):
    return InMemoryAttendance(sessions, slots)


@pytest.fixture
def roster():
    return InMemoryRoster({CLASS_ID: [101, 102, 103], 11: [201]})


@pytest.fixture
def container(slots, periods, sessions, attendance, roster, clock):
    return build_services(
        slots_repo=slots,
        periods_repo=periods,
        sessions_repo=sessions,
        attendance_repo=attendance,
        roster=roster,
        transactions=LocalTransactionManager(),
        clock=clock,
    )


@pytest.fixture
def admin():
    return Actor(actor_id=1, role=Role.ADMIN)


@pytest.fixture
def teacher():
    return Actor(actor_id=TEACHER_ID, role=Role.TEACHER)


@pytest.fixture
def student():
    return Actor(actor_id=101, role=Role.STUDENT)
