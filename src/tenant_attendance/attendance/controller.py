from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import (
    admin_required,
    current_principal,
    employee_required,
    json_body,
    parse_int_arg,
    parse_location,
)
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @employee_required
    def check_in():
        data = json_body()
        record = container.attendance_service.check_in(
            current_principal(),
            location=parse_location(data),
            note=data.get("note"),
        )
        message = "Checked in successfully"
        if record.is_late:
            message = f"Checked in successfully. You are {record.late_by_minutes} minutes late."
        return jsonify({"success": True, "message": message, "attendance": record.to_dict()}), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @employee_required
    def check_out():
        data = json_body()
        record = container.attendance_service.check_out(
            current_principal(),
            location=parse_location(data),
            note=data.get("note"),
        )
        return jsonify({"success": True, "message": "Checked out successfully", "attendance": record.to_dict()})

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_attendance_today")
    @employee_required
    def today():
        record, status = container.attendance_service.today_status(current_principal())
        return jsonify(
            {
                "success": True,
                "status": status.value,
                "has_checked_in": bool(record and record.has_checked_in),
                "has_checked_out": bool(record and record.has_checked_out),
                "attendance": record.to_dict() if record else None,
            }
        )

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_attendance_history")
    @employee_required
    def history():
        limit = parse_int_arg("limit", DEFAULT_HISTORY_LIMIT)
        records = container.attendance_service.get_history(current_principal(), limit=limit)
        return jsonify({"success": True, "attendance": [r.to_dict() for r in records]})

    @app.route("/api/attendance/<int:attendance_id>/audit", methods=["GET"], endpoint="api_attendance_audit")
    @admin_required
    def attendance_audit(attendance_id: int):
        records = container.audit_service.for_attendance(current_principal(), attendance_id)
        return jsonify({"success": True, "audit": [r.to_dict() for r in records]})
