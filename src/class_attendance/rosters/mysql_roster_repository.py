from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import RosterProvider


class MySQLRosterRepository(RosterProvider):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_enrolled_students(self, class_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id
                FROM students
                WHERE class_id=%s AND is_active=1
                ORDER BY full_name ASC, student_id ASC
                """,
                (int(class_id),),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]

    def class_of(self, student_id: int) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT class_id FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            if not r or r.get("class_id") is None:
                return None
            return int(r["class_id"])

    def student_exists(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM students WHERE student_id=%s", (int(student_id),))
            return fetchone(cur) is not None
