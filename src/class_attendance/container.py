from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.factory import CheckInStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceMarkingEngine
from .common.datetime_utils import Clock, SystemClock
from .core.constants import DEFAULT_LATE_THRESHOLD_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .reports.service import ReportService
from .rosters.mysql_roster_repository import MySQLRosterRepository
from .schedules.conflicts import TimeConflictDetector
from .schedules.mysql_schedule_repository import MySQLAcademicPeriodRepository, MySQLScheduleRepository
from .schedules.service import ScheduleService
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.service import SessionLifecycleManager


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    slots_repo: Any
    periods_repo: Any
    sessions_repo: Any
    attendance_repo: Any
    roster: Any
    clock: Clock

    schedule_service: ScheduleService
    session_manager: SessionLifecycleManager
    attendance_engine: AttendanceMarkingEngine
    report_service: ReportService


def build_services(
    *,
    slots_repo,
    periods_repo,
    sessions_repo,
    attendance_repo,
    roster,
    transactions,
    clock: Optional[Clock] = None,
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any set of repositories (MySQL or in-memory)."""
    clock = clock or SystemClock()

    schedule_service = ScheduleService(
        slots_repo,
        periods_repo,
        sessions_repo,
        roster,
        attendance=attendance_repo,
        detector=TimeConflictDetector(),
        transactions=transactions,
    )
    session_manager = SessionLifecycleManager(
        sessions_repo,
        slots_repo,
        attendance_repo,
        roster,
        clock=clock,
        transactions=transactions,
    )
    attendance_engine = AttendanceMarkingEngine(
        attendance_repo,
        session_manager,
        slots_repo,
        clock=clock,
        transactions=transactions,
        strategy_factory=CheckInStrategyFactory(),
        late_threshold_minutes=late_threshold_minutes,
    )
    report_service = ReportService(sessions_repo, slots_repo, attendance_repo, roster)

    return Container(
        conn=conn,
        slots_repo=slots_repo,
        periods_repo=periods_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        roster=roster,
        clock=clock,
        schedule_service=schedule_service,
        session_manager=session_manager,
        attendance_engine=attendance_engine,
        report_service=report_service,
    )


def build_container(
    *,
    db_config: dict,
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    # The connection doubles as the transaction manager: one MySQL transaction
    # plus named locks per atomic block.
    return build_services(
        slots_repo=MySQLScheduleRepository(conn),
        periods_repo=MySQLAcademicPeriodRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        roster=MySQLRosterRepository(conn),
        transactions=conn,
        late_threshold_minutes=late_threshold_minutes,
        conn=conn,
    )
