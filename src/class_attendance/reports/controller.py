from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_actor, login_required, ok, optional_date, optional_int
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .aggregator import summary_text


def register(app: Flask, container: Container) -> None:
    reports = container.report_service

    def _ensure_may_view_student(student_id: int) -> None:
        actor = current_actor()
        if actor.is_student and actor.actor_id != student_id:
            raise AuthorizationError("Students can only view their own attendance")

    @app.route("/api/reports/sessions/<int:session_id>", methods=["GET"], endpoint="reports_session")
    @login_required
    def reports_session(session_id: int):
        report = reports.session_attendance(session_id=session_id, actor=current_actor())
        return ok({"report": report, "summary_text": summary_text(report.summary)})

    @app.route("/api/reports/students/<int:student_id>/history", methods=["GET"], endpoint="reports_student_history")
    @login_required
    def reports_student_history(student_id: int):
        _ensure_may_view_student(student_id)
        report = reports.student_history(
            student_id=student_id,
            start=optional_date("start_date"),
            end=optional_date("end_date"),
            subject_id=optional_int("subject_id"),
            status=request.args.get("status") or None,
        )
        return ok(report)

    @app.route("/api/reports/students/<int:student_id>/risk", methods=["GET"], endpoint="reports_student_risk")
    @login_required
    def reports_student_risk(student_id: int):
        _ensure_may_view_student(student_id)
        return ok(reports.student_risk(student_id=student_id))

    @app.route("/api/reports/classes/<int:class_id>/analytics", methods=["GET"], endpoint="reports_class_analytics")
    @login_required
    def reports_class_analytics(class_id: int):
        if current_actor().is_student:
            raise AuthorizationError("Only administrators and teachers can view class analytics")

        start_raw = request.args.get("start_date")
        end_raw = request.args.get("end_date")
        if not start_raw or not end_raw:
            raise ValidationError("start_date and end_date are required")

        analytics = reports.class_analytics(
            class_id=class_id,
            start=parse_iso_date(start_raw),
            end=parse_iso_date(end_raw),
        )
        return ok(analytics)

    @app.route("/api/reports/summary", methods=["GET"], endpoint="reports_summary")
    @login_required
    def reports_summary():
        actor = current_actor()
        kind = request.args.get("type")
        target_id = optional_int("id")
        if not kind or target_id is None:
            raise ValidationError("type and id are required")

        if actor.is_student and (kind != "student" or target_id != actor.actor_id):
            raise AuthorizationError("Students can only view their own attendance")
        if actor.is_teacher and kind == "teacher" and target_id != actor.actor_id:
            raise AuthorizationError("Teachers can only view their own summary")

        report = reports.attendance_summary(
            kind=kind,
            target_id=target_id,
            start=optional_date("start_date"),
            end=optional_date("end_date"),
        )
        return ok({"report": report, "summary_text": summary_text(report.summary)})
