from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.web import admin_required, current_principal, json_body, parse_int_arg
from ..container import Container
from ..core.enums import AuditAction
from ..core.exceptions import ValidationError


def _action_arg():
    value = request.args.get("action")
    if not value:
        return None
    try:
        return AuditAction(value)
    except ValueError:
        raise ValidationError(f"Unknown audit action {value!r}")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tenant/settings", methods=["GET"], endpoint="api_tenant_settings")
    @admin_required
    def get_settings():
        tenant = container.tenant_settings_service.get_settings(current_principal())
        return jsonify({"success": True, "name": tenant.name, "settings": tenant.settings()})

    @app.route("/api/tenant/settings", methods=["PUT", "PATCH"], endpoint="api_update_tenant_settings")
    @admin_required
    def update_settings():
        tenant = container.tenant_settings_service.update_settings(current_principal(), **json_body())
        return jsonify(
            {
                "success": True,
                "message": "Settings updated successfully",
                "name": tenant.name,
                "settings": tenant.settings(),
            }
        )

    @app.route("/api/tenant/holidays", methods=["GET"], endpoint="api_list_holidays")
    @admin_required
    def list_holidays():
        holidays = container.tenant_settings_service.list_holidays(
            current_principal(),
            year=parse_int_arg("year"),
            month=parse_int_arg("month"),
        )
        return jsonify({"success": True, "holidays": [h.to_dict() for h in holidays]})

    @app.route("/api/tenant/holidays", methods=["POST"], endpoint="api_add_holiday")
    @admin_required
    def add_holiday():
        data = json_body()
        try:
            day = parse_iso_date(str(data.get("date") or ""))
        except ValueError:
            raise ValidationError("Holiday date must be YYYY-MM-DD")
        holiday = container.tenant_settings_service.add_holiday(
            current_principal(),
            holiday_date=day,
            description=data.get("description"),
        )
        return jsonify({"success": True, "holiday": holiday.to_dict()}), 201

    @app.route("/api/tenant/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="api_remove_holiday")
    @admin_required
    def remove_holiday(holiday_id: int):
        container.tenant_settings_service.remove_holiday(current_principal(), holiday_id)
        return jsonify({"success": True, "message": "Holiday removed"})

    @app.route("/api/audit", methods=["GET"], endpoint="api_audit_log")
    @admin_required
    def audit_log():
        records = container.audit_service.query(
            current_principal(),
            entity_type=request.args.get("entity_type") or None,
            entity_id=parse_int_arg("entity_id"),
            action=_action_arg(),
            performed_by=request.args.get("performed_by") or None,
            limit=parse_int_arg("limit", 50),
            offset=parse_int_arg("offset", 0),
        )
        return jsonify({"success": True, "audit": [r.to_dict() for r in records]})
