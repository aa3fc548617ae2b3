# Overview: Flask API routes for the charge concept catalog.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import concept_service
from ..validation import coerce_bool


concepts_bp = Blueprint("concepts", __name__, url_prefix="/api/finance/concepts")


@concepts_bp.post("")
@require_tenant
def create_concept_route():
    """
    Create a charge concept.

    Request body:
    {
        "name": "Monthly Tuition",
        "default_amount": "100000.00",
        "category": "TUITION",  (optional)
        "is_massive": true,  (optional)
        "due_date": "2026-03-05"  (optional)
    }

    Returns:
        201: Concept created
        400: Invalid input
        409: Name already used in this institution
    """
    try:
        data = json_body()
        fields = {k: v for k, v in data.items() if k not in ("name", "default_amount")}
        concept = concept_service.create_concept(
            g.institution_id,
            name=data.get("name"),
            default_amount=data.get("default_amount"),
            **fields,
        )
        return jsonify({"concept": concept.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "create concept")


@concepts_bp.get("")
@require_tenant
def list_concepts_route():
    try:
        concepts = concept_service.list_concepts(
            g.institution_id,
            category=request.args.get("category"),
            is_active=coerce_bool(request.args.get("is_active"), "is_active"),
            is_massive=coerce_bool(request.args.get("is_massive"), "is_massive"),
        )
        return jsonify({"concepts": [c.to_dict() for c in concepts], "count": len(concepts)})
    except Exception as exc:
        return json_error(exc, "list concepts")


@concepts_bp.get("/<int:concept_id>")
@require_tenant
def get_concept_route(concept_id: int):
    try:
        concept = concept_service.get_concept(g.institution_id, concept_id)
        return jsonify({"concept": concept.to_dict()})
    except Exception as exc:
        return json_error(exc, "get concept")


@concepts_bp.patch("/<int:concept_id>")
@require_tenant
def update_concept_route(concept_id: int):
    try:
        concept = concept_service.update_concept(g.institution_id, concept_id, **json_body())
        return jsonify({"concept": concept.to_dict()})
    except Exception as exc:
        return json_error(exc, "update concept")


@concepts_bp.delete("/<int:concept_id>")
@require_tenant
def delete_concept_route(concept_id: int):
    """Hard delete when unused, otherwise deactivate. Returns the outcome."""
    try:
        outcome = concept_service.delete_concept(g.institution_id, concept_id)
        return jsonify({"result": outcome})
    except Exception as exc:
        return json_error(exc, "delete concept")
