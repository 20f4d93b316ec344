"""Flask helpers shared by the feature controllers."""

from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, session

from ..attendance.model import GeoPoint, Punch
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..core.principals import AdminPrincipal, EmployeePrincipal, Principal
from .datetime_utils import parse_iso_datetime


def current_principal() -> Principal:
    if "user_id" not in session or "tenant_id" not in session:
        raise AuthenticationError("Please log in to continue")
    user_id = int(session["user_id"])
    tenant_id = int(session["tenant_id"])
    if session.get("role") == Role.ADMIN.value:
        return AdminPrincipal(admin_id=user_id, tenant_id=tenant_id)
    return EmployeePrincipal(employee_id=user_id, tenant_id=tenant_id)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_principal()
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not isinstance(current_principal(), AdminPrincipal):
            raise AuthorizationError("Admin access required")
        return view(*args, **kwargs)

    return wrapper


def employee_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not isinstance(current_principal(), EmployeePrincipal):
            raise AuthorizationError("Employee access required")
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_location(data: dict) -> Optional[GeoPoint]:
    location = data.get("location")
    if not location:
        return None
    try:
        return GeoPoint.from_dict(location)
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("Invalid location")


def parse_punch(data: Optional[dict]) -> Optional[Punch]:
    """Build a requested punch from {"time": ISO-8601, "location": {...}, "note": ...}."""

    if not data:
        return None
    if isinstance(data, str):
        data = {"time": data}
    if not data.get("time"):
        return None
    try:
        at = parse_iso_datetime(str(data["time"]))
    except ValueError:
        raise ValidationError(f"Invalid timestamp {data['time']!r}")
    return Punch(time=at, location=parse_location(data), note=data.get("note"))


def parse_int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Query parameter {name!r} must be a number")


def status_code_for(error: DomainError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        return jsonify({"success": False, "message": str(error)}), status_code_for(error)
