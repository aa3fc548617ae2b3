# Overview: Flask API routes for obligations; single and bulk creation, discounts, cancellation and stats.

"""
Obligation API Routes

DESIGN:
- Every mutation goes through obligation_service / bulk_obligation_service
- Money is accepted as decimal strings (or integers) and returned as strings
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import bulk_obligation_service, obligation_service, reporting_service
from ..validation import coerce_date, coerce_int


obligations_bp = Blueprint("obligations", __name__, url_prefix="/api/finance/obligations")

OVERRIDE_FIELDS = ("amount", "discount_amount", "discount_reason", "due_date", "notes")


def _overrides(data: dict) -> dict:
    return {k: data[k] for k in OVERRIDE_FIELDS if k in data}


def _optional_int_arg(name: str):
    value = request.args.get(name)
    return coerce_int(value, name, minimum=1) if value else None


@obligations_bp.post("")
@require_tenant
def create_obligation_route():
    """
    Charge a third party for a concept.

    Request body:
    {
        "third_party_id": 12,
        "concept_id": 3,
        "amount": "95000.00",  (optional, defaults to concept amount)
        "discount_amount": "5000.00",  (optional)
        "due_date": "2026-02-05"  (optional)
    }

    Returns:
        201: Obligation created
        400: Invalid input
        404: Concept or third party not found
    """
    try:
        data = json_body()
        obligation = obligation_service.create_obligation(
            g.institution_id,
            g.actor_id,
            coerce_int(data.get("third_party_id"), "third_party_id", minimum=1),
            coerce_int(data.get("concept_id"), "concept_id", minimum=1),
            **_overrides(data),
        )
        return jsonify({"obligation": obligation.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "create obligation")


@obligations_bp.post("/massive")
@require_tenant
def create_massive_route():
    """
    Bulk-generate obligations for a concept.

    Request body:
    {
        "concept_id": 3,
        "target_type": "GRADE",  (THIRD_PARTIES, GRADE or GROUP)
        "target_ids": [6, 7],
        "due_date": "2026-02-05"  (optional overrides as in single create)
    }

    Returns:
        200: {"created": n, "skipped": n, "errors": [...]}
    """
    try:
        data = json_body()
        result = bulk_obligation_service.create_massive(
            g.institution_id,
            g.actor_id,
            coerce_int(data.get("concept_id"), "concept_id", minimum=1),
            data.get("target_type"),
            data.get("target_ids"),
            **_overrides(data),
        )
        return jsonify(result.to_dict())
    except Exception as exc:
        return json_error(exc, "create obligations in bulk")


@obligations_bp.get("")
@require_tenant
def list_obligations_route():
    try:
        obligations = obligation_service.list_obligations(
            g.institution_id,
            third_party_id=_optional_int_arg("third_party_id"),
            concept_id=_optional_int_arg("concept_id"),
            status=request.args.get("status"),
            due_from=coerce_date(request.args.get("due_from"), "due_from"),
            due_to=coerce_date(request.args.get("due_to"), "due_to"),
        )
        return jsonify({"obligations": [o.to_dict() for o in obligations], "count": len(obligations)})
    except Exception as exc:
        return json_error(exc, "list obligations")


@obligations_bp.get("/stats")
@require_tenant
def obligation_stats_route():
    try:
        return jsonify(reporting_service.portfolio_stats(g.institution_id))
    except Exception as exc:
        return json_error(exc, "compute portfolio stats")


@obligations_bp.get("/<int:obligation_id>")
@require_tenant
def get_obligation_route(obligation_id: int):
    try:
        obligation = obligation_service.get_obligation(g.institution_id, obligation_id)
        return jsonify({"obligation": obligation.to_dict()})
    except Exception as exc:
        return json_error(exc, "get obligation")


@obligations_bp.post("/<int:obligation_id>/discount")
@require_tenant
def apply_discount_route(obligation_id: int):
    """
    Request body: {"discount_amount": "20000.00", "reason": "Sibling discount"}

    Returns:
        200: Updated obligation
        409: Obligation is PAID or CANCELLED
    """
    try:
        data = json_body()
        obligation = obligation_service.apply_discount(
            g.institution_id,
            obligation_id,
            data.get("discount_amount"),
            data.get("reason"),
            g.actor_id,
        )
        return jsonify({"obligation": obligation.to_dict()})
    except Exception as exc:
        return json_error(exc, "apply discount")


@obligations_bp.post("/<int:obligation_id>/cancel")
@require_tenant
def cancel_obligation_route(obligation_id: int):
    try:
        data = json_body()
        obligation = obligation_service.cancel_obligation(g.institution_id, obligation_id, data.get("reason"))
        return jsonify({"obligation": obligation.to_dict()})
    except Exception as exc:
        return json_error(exc, "cancel obligation")
