# Overview: Flask API routes for per-institution financial settings.

from flask import Blueprint, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import settings_service


settings_bp = Blueprint("finance_settings", __name__, url_prefix="/api/finance/settings")


@settings_bp.get("")
@require_tenant
def get_settings_route():
    try:
        return jsonify({"settings": settings_service.get_settings(g.institution_id).to_dict()})
    except Exception as exc:
        return json_error(exc, "get financial settings")


@settings_bp.patch("")
@require_tenant
def update_settings_route():
    try:
        settings = settings_service.update_settings(g.institution_id, **json_body())
        return jsonify({"settings": settings.to_dict()})
    except Exception as exc:
        return json_error(exc, "update financial settings")
