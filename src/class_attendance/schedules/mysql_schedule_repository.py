from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import AcademicPeriod, TimeSlot, TimeSlotDraft
from .repository import AcademicPeriodRepository, TimeSlotRepository

_SLOT_COLUMNS = """
    slot_id, teacher_id, class_id, subject_id, academic_period_id,
    day_of_week, start_time, end_time, room, is_active
"""


def _to_slot(r: dict) -> TimeSlot:
    return TimeSlot(
        slot_id=int(r["slot_id"]),
        teacher_id=int(r["teacher_id"]),
        class_id=int(r["class_id"]),
        subject_id=int(r["subject_id"]),
        academic_period_id=int(r["academic_period_id"]),
        day_of_week=int(r["day_of_week"]),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        room=r.get("room"),
        is_active=bool(r["is_active"]),
    )


class MySQLScheduleRepository(TimeSlotRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, slot_id: int) -> Optional[TimeSlot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SLOT_COLUMNS} FROM class_schedules WHERE slot_id=%s", (int(slot_id),))
            r = fetchone(cur)
            return _to_slot(r) if r else None

    def list_active_for_day(self, *, day_of_week: int, academic_period_id: int) -> Sequence[TimeSlot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SLOT_COLUMNS}
                FROM class_schedules
                WHERE day_of_week=%s AND academic_period_id=%s AND is_active=1
                ORDER BY start_time ASC, slot_id ASC
                """,
                (int(day_of_week), int(academic_period_id)),
            )
            return [_to_slot(r) for r in fetchall(cur)]

    def list_for_teacher(
        self,
        *,
        teacher_id: int,
        academic_period_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[TimeSlot]:
        clauses = ["teacher_id=%s"]
        params: list[object] = [int(teacher_id)]
        if academic_period_id is not None:
            clauses.append("academic_period_id=%s")
            params.append(int(academic_period_id))
        if is_active is not None:
            clauses.append("is_active=%s")
            params.append(1 if is_active else 0)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SLOT_COLUMNS}
                FROM class_schedules
                WHERE {where}
                ORDER BY day_of_week ASC, start_time ASC
                """,
                tuple(params),
            )
            return [_to_slot(r) for r in fetchall(cur)]

    def list_for_class(
        self,
        *,
        class_id: int,
        academic_period_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[TimeSlot]:
        clauses = ["class_id=%s"]
        params: list[object] = [int(class_id)]
        if academic_period_id is not None:
            clauses.append("academic_period_id=%s")
            params.append(int(academic_period_id))
        if is_active is not None:
            clauses.append("is_active=%s")
            params.append(1 if is_active else 0)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SLOT_COLUMNS}
                FROM class_schedules
                WHERE {where}
                ORDER BY day_of_week ASC, start_time ASC
                """,
                tuple(params),
            )
            return [_to_slot(r) for r in fetchall(cur)]

    def create(self, draft: TimeSlotDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_schedules(
                    teacher_id, class_id, subject_id, academic_period_id,
                    day_of_week, start_time, end_time, room, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    int(draft.teacher_id),
                    int(draft.class_id),
                    int(draft.subject_id),
                    int(draft.academic_period_id),
                    int(draft.day_of_week),
                    draft.start_time,
                    draft.end_time,
                    draft.room,
                ),
            )
            return int(cur.lastrowid)

    def update(self, slot: TimeSlot) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_schedules
                SET teacher_id=%s, class_id=%s, subject_id=%s, academic_period_id=%s,
                    day_of_week=%s, start_time=%s, end_time=%s, room=%s, is_active=%s
                WHERE slot_id=%s
                """,
                (
                    int(slot.teacher_id),
                    int(slot.class_id),
                    int(slot.subject_id),
                    int(slot.academic_period_id),
                    int(slot.day_of_week),
                    slot.start_time,
                    slot.end_time,
                    slot.room,
                    1 if slot.is_active else 0,
                    int(slot.slot_id),
                ),
            )
            # MySQL reports 0 affected rows when nothing changed; treat "exists" as success.
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT slot_id FROM class_schedules WHERE slot_id=%s", (int(slot.slot_id),))
            return fetchone(cur) is not None

    def set_active(self, *, slot_id: int, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE class_schedules SET is_active=%s WHERE slot_id=%s",
                (1 if is_active else 0, int(slot_id)),
            )
            return cur.rowcount > 0

    def delete(self, *, slot_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM class_schedules WHERE slot_id=%s", (int(slot_id),))
            return cur.rowcount > 0


class MySQLAcademicPeriodRepository(AcademicPeriodRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, period_id: int) -> Optional[AcademicPeriod]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT period_id, name, start_date, end_date, is_active
                FROM academic_periods
                WHERE period_id=%s
                """,
                (int(period_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return AcademicPeriod(
                period_id=int(r["period_id"]),
                name=r["name"],
                start_date=r["start_date"],
                end_date=r["end_date"],
                is_active=bool(r["is_active"]),
            )
