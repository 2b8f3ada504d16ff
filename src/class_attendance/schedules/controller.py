from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date, parse_time
from ..common.http import current_actor, json_body, login_required, ok, optional_date, optional_int
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .model import TimeSlotDraft

_TIME_FIELDS = ("start_time", "end_time")
_INT_FIELDS = ("teacher_id", "class_id", "subject_id", "academic_period_id", "day_of_week")
_TRUE_STRINGS = {"1", "true", "True"}


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value in _TRUE_STRINGS
    return bool(value)


def _coerce(data: dict) -> dict:
    out = dict(data)
    for name in _TIME_FIELDS:
        if name in out and isinstance(out[name], str):
            out[name] = parse_time(out[name])
    for name in _INT_FIELDS:
        if name in out and out[name] is not None:
            try:
                out[name] = int(out[name])
            except (TypeError, ValueError):
                raise ValidationError(f"{name} must be an integer")
    if "is_active" in out:
        out["is_active"] = _truthy(out["is_active"])
    return out


def _draft_from(data: dict) -> TimeSlotDraft:
    values = _coerce(data)
    missing = [n for n in _INT_FIELDS + _TIME_FIELDS if values.get(n) is None]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")
    return TimeSlotDraft(
        teacher_id=values["teacher_id"],
        class_id=values["class_id"],
        subject_id=values["subject_id"],
        academic_period_id=values["academic_period_id"],
        day_of_week=values["day_of_week"],
        start_time=values["start_time"],
        end_time=values["end_time"],
        room=values.get("room"),
    )


def register(app: Flask, container: Container) -> None:
    svc = container.schedule_service

    @app.route("/api/schedules", methods=["GET"], endpoint="schedules_list")
    @login_required
    def schedules_list():
        actor = current_actor()
        if actor.is_teacher:
            teacher_id = actor.actor_id
        elif actor.is_admin:
            teacher_id = optional_int("teacher_id")
            if teacher_id is None:
                raise ValidationError("teacher_id is required")
        else:
            raise AuthorizationError("Only administrators and teachers can list schedules")

        is_active = request.args.get("is_active")
        slots = svc.list_teacher_slots(
            teacher_id=teacher_id,
            academic_period_id=optional_int("academic_period_id"),
            is_active=None if is_active is None else _truthy(is_active),
        )
        return ok(slots)

    @app.route("/api/schedules", methods=["POST"], endpoint="schedules_create")
    @login_required
    def schedules_create():
        slot = svc.create_slot(actor=current_actor(), draft=_draft_from(json_body()))
        return ok(slot, 201)

    @app.route("/api/schedules/bulk", methods=["POST"], endpoint="schedules_bulk_create")
    @login_required
    def schedules_bulk_create():
        items = json_body().get("schedules")
        if not isinstance(items, list):
            raise ValidationError("schedules must be a list")
        slots = svc.bulk_create_slots(actor=current_actor(), drafts=[_draft_from(i) for i in items])
        return ok({"created": len(slots), "schedules": slots}, 201)

    @app.route("/api/schedules/check-conflict", methods=["POST"], endpoint="schedules_check_conflict")
    @login_required
    def schedules_check_conflict():
        data = json_body()
        exclude = data.get("exclude_slot_id")
        result = svc.check_conflict(_draft_from(data), exclude_slot_id=int(exclude) if exclude else None)
        return ok(result)

    @app.route("/api/schedules/<int:slot_id>", methods=["GET"], endpoint="schedules_get")
    @login_required
    def schedules_get(slot_id: int):
        return ok(svc.get_slot(slot_id))

    @app.route("/api/schedules/<int:slot_id>", methods=["PATCH"], endpoint="schedules_update")
    @login_required
    def schedules_update(slot_id: int):
        slot = svc.update_slot(actor=current_actor(), slot_id=slot_id, changes=_coerce(json_body()))
        return ok(slot)

    @app.route("/api/schedules/<int:slot_id>", methods=["DELETE"], endpoint="schedules_delete")
    @login_required
    def schedules_delete(slot_id: int):
        hard = _truthy(request.args.get("hard", ""))
        deleted = svc.delete_slot(actor=current_actor(), slot_id=slot_id, soft=not hard)
        return ok({"slot_id": slot_id, "deleted": deleted, "deactivated": not deleted})

    @app.route("/api/schedules/today", methods=["GET"], endpoint="schedules_today")
    @login_required
    def schedules_today():
        on_date = optional_date("date") or container.clock.now().date()
        return ok(svc.slots_for_date(actor=current_actor(), on_date=on_date))

    @app.route("/api/schedules/weekly", methods=["GET"], endpoint="schedules_weekly")
    @login_required
    def schedules_weekly():
        raw = request.args.get("week_of")
        week_of = parse_iso_date(raw) if raw else container.clock.now().date()
        return ok(svc.weekly_schedule(actor=current_actor(), week_of=week_of))

    @app.route("/api/schedules/periods/<int:period_id>", methods=["GET"], endpoint="schedules_by_period")
    @login_required
    def schedules_by_period(period_id: int):
        return ok(svc.period_schedule(actor=current_actor(), academic_period_id=period_id))
