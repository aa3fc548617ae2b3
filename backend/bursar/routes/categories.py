# Overview: Flask API routes for income and expense categories.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import category_service
from ..validation import coerce_bool


categories_bp = Blueprint("categories", __name__, url_prefix="/api/finance/categories")


@categories_bp.post("")
@require_tenant
def create_category_route():
    """
    Create a category.

    Request body:
    {
        "name": "Papeleria",
        "type": "EXPENSE",  (optional, default EXPENSE)
        "budget_amount": "500000.00",  (optional)
        "color": "#64748B"  (optional)
    }

    Returns:
        201: Category created
        400: Invalid input
        409: Name already used in this institution
    """
    try:
        data = json_body()
        fields = {k: v for k, v in data.items() if k != "name"}
        category = category_service.create_category(g.institution_id, name=data.get("name"), **fields)
        return jsonify({"category": category.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "create category")


@categories_bp.post("/seed-defaults")
@require_tenant
def seed_categories_route():
    try:
        return jsonify(category_service.seed_default_categories(g.institution_id))
    except Exception as exc:
        return json_error(exc, "seed default categories")


@categories_bp.get("")
@require_tenant
def list_categories_route():
    try:
        categories = category_service.list_categories(
            g.institution_id,
            type=request.args.get("type"),
            is_active=coerce_bool(request.args.get("is_active"), "is_active"),
        )
        return jsonify({"categories": [c.to_dict() for c in categories], "count": len(categories)})
    except Exception as exc:
        return json_error(exc, "list categories")


@categories_bp.get("/<int:category_id>")
@require_tenant
def get_category_route(category_id: int):
    try:
        category = category_service.get_category(g.institution_id, category_id)
        return jsonify({"category": category.to_dict()})
    except Exception as exc:
        return json_error(exc, "get category")


@categories_bp.patch("/<int:category_id>")
@require_tenant
def update_category_route(category_id: int):
    try:
        category = category_service.update_category(g.institution_id, category_id, **json_body())
        return jsonify({"category": category.to_dict()})
    except Exception as exc:
        return json_error(exc, "update category")


@categories_bp.delete("/<int:category_id>")
@require_tenant
def delete_category_route(category_id: int):
    """Hard delete when unused, otherwise deactivate. Returns the outcome."""
    try:
        outcome = category_service.delete_category(g.institution_id, category_id)
        return jsonify({"result": outcome})
    except Exception as exc:
        return json_error(exc, "delete category")
