from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request

from ..common.web import (
    admin_required,
    current_principal,
    employee_required,
    json_body,
    login_required,
    parse_int_arg,
    parse_punch,
)
from ..container import Container
from ..core.enums import CorrectionStatus
from ..core.exceptions import ValidationError


def _status_arg() -> Optional[CorrectionStatus]:
    value = request.args.get("status")
    if not value:
        return None
    try:
        return CorrectionStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown correction status {value!r}")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/corrections", methods=["POST"], endpoint="api_submit_correction")
    @employee_required
    def submit_correction():
        data = json_body()
        if data.get("attendance_id") in (None, ""):
            raise ValidationError("Attendance ID is required")
        try:
            attendance_id = int(data["attendance_id"])
        except (TypeError, ValueError):
            raise ValidationError("Attendance ID must be a number")

        correction = container.correction_service.submit(
            current_principal(),
            attendance_id=attendance_id,
            request_type=data.get("request_type") or "",
            reason=data.get("reason") or "",
            requested_check_in=parse_punch(data.get("requested_check_in")),
            requested_check_out=parse_punch(data.get("requested_check_out")),
        )
        return (
            jsonify(
                {
                    "success": True,
                    "message": "Correction request submitted successfully",
                    "correction": correction.to_dict(),
                }
            ),
            201,
        )

    @app.route("/api/corrections/mine", methods=["GET"], endpoint="api_my_corrections")
    @employee_required
    def my_corrections():
        items = container.correction_service.list_for_employee(
            current_principal(),
            status=_status_arg(),
            limit=parse_int_arg("limit", 20),
            offset=parse_int_arg("offset", 0),
        )
        return jsonify({"success": True, "corrections": [c.to_dict() for c in items]})

    @app.route("/api/corrections/pending", methods=["GET"], endpoint="api_pending_corrections")
    @admin_required
    def pending_corrections():
        items = container.correction_service.list_pending(
            current_principal(),
            limit=parse_int_arg("limit", 50),
            offset=parse_int_arg("offset", 0),
        )
        return jsonify({"success": True, "corrections": [c.to_dict() for c in items]})

    @app.route("/api/corrections", methods=["GET"], endpoint="api_all_corrections")
    @admin_required
    def all_corrections():
        items = container.correction_service.list_for_tenant(
            current_principal(),
            status=_status_arg(),
            employee_id=parse_int_arg("employee_id"),
            limit=parse_int_arg("limit", 50),
            offset=parse_int_arg("offset", 0),
        )
        return jsonify({"success": True, "corrections": [c.to_dict() for c in items]})

    @app.route("/api/corrections/<int:correction_id>", methods=["GET"], endpoint="api_get_correction")
    @login_required
    def get_correction(correction_id: int):
        correction = container.correction_service.get(current_principal(), correction_id)
        return jsonify({"success": True, "correction": correction.to_dict()})

    @app.route("/api/corrections/<int:correction_id>/approve", methods=["POST"], endpoint="api_approve_correction")
    @admin_required
    def approve_correction(correction_id: int):
        correction, record = container.correction_service.approve(
            current_principal(),
            correction_id,
            notes=json_body().get("notes"),
        )
        return jsonify(
            {
                "success": True,
                "message": "Correction request approved successfully",
                "correction": correction.to_dict(),
                "attendance": record.to_dict(),
            }
        )

    @app.route("/api/corrections/<int:correction_id>/reject", methods=["POST"], endpoint="api_reject_correction")
    @admin_required
    def reject_correction(correction_id: int):
        correction = container.correction_service.reject(
            current_principal(),
            correction_id,
            notes=json_body().get("notes") or "",
        )
        return jsonify(
            {
                "success": True,
                "message": "Correction request rejected",
                "correction": correction.to_dict(),
            }
        )
