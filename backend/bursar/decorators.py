# Overview: Request decorators and shared JSON error mapping for finance API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services.tenant_service import TenantAccessError, require_institution
from .validation import ConflictError, NotFoundError, ValidationError


def _header_id(name: str) -> int | None:
    raw = request.headers.get(name, "").strip()
    if not raw.isdigit():
        return None
    value = int(raw)
    return value if value > 0 else None


def require_tenant(f):
    """
    Establish tenant and actor context from upstream identity headers.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.institution_id: from X-Institution-Id (REQUIRED)
    - g.actor_id: from X-Actor-Id (REQUIRED)
    - g.institution: the Institution row

    Identity is resolved and authorized upstream; this only checks that it
    is present and that the institution exists and is active.

    Returns 401 if a header is missing or malformed, 404 if the
    institution is unknown or deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        institution_id = _header_id("X-Institution-Id")
        actor_id = _header_id("X-Actor-Id")

        if institution_id is None or actor_id is None:
            return jsonify({"error": "X-Institution-Id and X-Actor-Id headers required"}), 401

        try:
            institution = require_institution(institution_id)
        except TenantAccessError:
            return jsonify({"error": f"Institution {institution_id} not found"}), 404

        g.institution_id = institution_id
        g.actor_id = actor_id
        g.institution = institution

        return f(*args, **kwargs)

    return decorated_function


def json_error(exc: Exception, action: str):
    """Map a service exception to a JSON error response."""
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, (NotFoundError, TenantAccessError)):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
