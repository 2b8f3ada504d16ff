from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import SessionStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Session
from .repository import SessionRepository

_SESSION_COLUMNS = "session_id, slot_id, session_date, status, started_at, ended_at, notes, created_by"


def _to_session(r: dict) -> Session:
    return Session(
        session_id=int(r["session_id"]),
        slot_id=int(r["slot_id"]),
        session_date=r["session_date"],
        status=SessionStatus(r["status"]),
        started_at=r["started_at"],
        created_by=int(r["created_by"]),
        ended_at=r.get("ended_at"),
        notes=r.get("notes"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM attendance_sessions WHERE session_id=%s", (int(session_id),))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_for_slot_and_date(self, *, slot_id: int, session_date: date) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE slot_id=%s AND session_date=%s
                """,
                (int(slot_id), session_date),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def create(
        self,
        *,
        slot_id: int,
        session_date: date,
        started_at: datetime,
        created_by: int,
        notes: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(slot_id, session_date, status, started_at, notes, created_by)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (int(slot_id), session_date, SessionStatus.ONGOING.value, started_at, notes, int(created_by)),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ConflictError("Session already exists for this date") from e
            raise

    def update_status(self, *, session_id: int, status: SessionStatus, ended_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_sessions SET status=%s, ended_at=%s WHERE session_id=%s",
                (status.value, ended_at, int(session_id)),
            )
            return cur.rowcount > 0

    def list_for_slot(self, slot_id: int) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE slot_id=%s
                ORDER BY session_date DESC
                """,
                (int(slot_id),),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_for_slots(self, *, slot_ids: Sequence[int], start_date: date, end_date: date) -> Sequence[Session]:
        if not slot_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE slot_id IN ({in_clause(slot_ids)}) AND session_date BETWEEN %s AND %s
                ORDER BY session_date ASC, slot_id ASC
                """,
                (*[int(s) for s in slot_ids], start_date, end_date),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_matching(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
    ) -> Sequence[Session]:
        clauses = ["1=1"]
        params: list[object] = []
        if start_date is not None:
            clauses.append("s.session_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("s.session_date <= %s")
            params.append(end_date)
        if class_id is not None:
            clauses.append("c.class_id=%s")
            params.append(int(class_id))
        if teacher_id is not None:
            clauses.append("s.created_by=%s")
            params.append(int(teacher_id))

        where = " AND ".join(clauses)
        columns = ", ".join(f"s.{c.strip()}" for c in _SESSION_COLUMNS.split(","))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {columns}
                FROM attendance_sessions s
                JOIN class_schedules c ON c.slot_id = s.slot_id
                WHERE {where}
                ORDER BY s.session_date DESC, s.session_id DESC
                """,
                tuple(params),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_ongoing_for_teacher(self, teacher_id: int) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE created_by=%s AND status=%s
                ORDER BY started_at DESC
                """,
                (int(teacher_id), SessionStatus.ONGOING.value),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def count_for_slot(self, slot_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM attendance_sessions WHERE slot_id=%s", (int(slot_id),))
            r = fetchone(cur)
            return int(r["n"]) if r else 0
