from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime, time
from enum import Enum
from functools import wraps
from typing import Any

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..core.identity import Actor
from .datetime_utils import format_time, parse_iso_date

_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (AuthorizationError, 403),
    (InvalidTransitionError, 409),
    (ValidationError, 400),
)


def error_status(exc: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


def to_jsonable(value: Any) -> Any:
    """Dataclasses, enums and dates into plain JSON types."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return format_time(value)
    if isinstance(value, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def ok(payload: Any, status: int = 200):
    return jsonify({"error": False, "data": to_jsonable(payload)}), status


def current_actor() -> Actor:
    try:
        role = Role(session.get("role"))
    except ValueError:
        raise AuthorizationError("Invalid role")
    return Actor(actor_id=int(session["user_id"]), role=role)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": True, "message": "Authentication required"}), 401
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body is required")
    return data


def optional_date(name: str):
    raw = request.args.get(name)
    return parse_iso_date(raw) if raw else None


def optional_int(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
