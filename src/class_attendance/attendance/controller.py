from __future__ import annotations

from flask import Flask, request

from ..common.http import current_actor, json_body, login_required, ok
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .model import AttendanceUpdate


def _update_from(item) -> AttendanceUpdate:
    if not isinstance(item, dict) or not item.get("attendance_id"):
        raise ValidationError("Attendance ID is required")
    try:
        attendance_id = int(item["attendance_id"])
    except (TypeError, ValueError):
        raise ValidationError("Attendance ID is required")
    return AttendanceUpdate(attendance_id=attendance_id, status=item.get("status"), notes=item.get("notes"))


def register(app: Flask, container: Container) -> None:
    engine = container.attendance_engine

    def _teacher_id() -> int:
        actor = current_actor()
        if not actor.is_teacher:
            raise AuthorizationError("Only teachers can mark attendance")
        return actor.actor_id

    @app.route("/api/attendance/sessions/<int:session_id>/mark", methods=["POST"], endpoint="attendance_bulk_mark")
    @login_required
    def attendance_bulk_mark(session_id: int):
        teacher_id = _teacher_id()
        items = json_body().get("attendances")
        if not isinstance(items, list):
            raise ValidationError("Attendances must be an array")

        updated = engine.bulk_mark(
            session_id=session_id,
            updates=[_update_from(i) for i in items],
            teacher_id=teacher_id,
        )
        return ok({"updated": len(updated), "attendances": updated})

    @app.route("/api/attendance/<int:attendance_id>", methods=["PATCH"], endpoint="attendance_mark_single")
    @login_required
    def attendance_mark_single(attendance_id: int):
        teacher_id = _teacher_id()
        data = json_body()
        record = engine.mark_single(
            attendance_id=attendance_id,
            status=data.get("status"),
            notes=data.get("notes"),
            teacher_id=teacher_id,
        )
        return ok(record)

    @app.route("/api/attendance/sessions/<int:session_id>/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    def attendance_check_in(session_id: int):
        actor = current_actor()
        if not actor.is_student:
            raise AuthorizationError("Only students can check in")

        data = request.get_json(silent=True) or {}
        record = engine.student_check_in(
            session_id=session_id,
            student_id=actor.actor_id,
            method=data.get("method"),
            confidence=data.get("confidence"),
        )
        return ok(record)
