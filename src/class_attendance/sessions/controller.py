from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_actor, json_body, login_required, ok, optional_date, optional_int
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    manager = container.session_manager

    def _teacher_id() -> int:
        actor = current_actor()
        if not actor.is_teacher:
            raise AuthorizationError("Only teachers can manage sessions")
        return actor.actor_id

    @app.route("/api/sessions", methods=["POST"], endpoint="sessions_create")
    @login_required
    def sessions_create():
        teacher_id = _teacher_id()
        data = json_body()
        if not data.get("slot_id") or not data.get("session_date"):
            raise ValidationError("slot_id and session_date are required")

        created = manager.create_session(
            slot_id=int(data["slot_id"]),
            session_date=parse_iso_date(str(data["session_date"])),
            teacher_id=teacher_id,
            notes=data.get("notes"),
        )
        return ok(created, 201)

    @app.route("/api/sessions", methods=["GET"], endpoint="sessions_list")
    @login_required
    def sessions_list():
        teacher_id = _teacher_id()
        slot_id = optional_int("slot_id")
        if slot_id is None:
            raise ValidationError("slot_id is required")
        return ok(manager.list_sessions(slot_id=slot_id, teacher_id=teacher_id))

    @app.route("/api/sessions/active", methods=["GET"], endpoint="sessions_active")
    @login_required
    def sessions_active():
        return ok(manager.active_sessions(actor=current_actor()))

    @app.route("/api/sessions/statistics", methods=["GET"], endpoint="sessions_statistics")
    @login_required
    def sessions_statistics():
        stats = manager.statistics(
            actor=current_actor(),
            start=optional_date("start_date"),
            end=optional_date("end_date"),
            class_id=optional_int("class_id"),
            teacher_id=optional_int("teacher_id"),
        )
        return ok(stats)

    @app.route("/api/sessions/<int:session_id>", methods=["GET"], endpoint="sessions_get")
    @login_required
    def sessions_get(session_id: int):
        return ok(manager.get_session(session_id=session_id, teacher_id=_teacher_id()))

    @app.route("/api/sessions/<int:session_id>/status", methods=["PATCH"], endpoint="sessions_update_status")
    @login_required
    def sessions_update_status(session_id: int):
        teacher_id = _teacher_id()
        status = json_body().get("status")
        return ok(manager.update_status(session_id=session_id, new_status=status, teacher_id=teacher_id))

    @app.route("/api/sessions/<int:session_id>/end", methods=["POST"], endpoint="sessions_end")
    @login_required
    def sessions_end(session_id: int):
        return ok(manager.end_session(session_id=session_id, teacher_id=_teacher_id()))

    @app.route("/api/sessions/<int:session_id>/cancel", methods=["POST"], endpoint="sessions_cancel")
    @login_required
    def sessions_cancel(session_id: int):
        return ok(manager.cancel_session(session_id=session_id, teacher_id=_teacher_id()))
