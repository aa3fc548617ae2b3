# Overview: Flask API routes for expenses; registration, approval, voids and expense stats.

"""
Expense API Routes

DESIGN:
- Register expenses against a category, optionally naming a provider
- Approve once; void with a reason (audit trail kept)
- Listings and stats exclude voided expenses unless asked
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import expense_service
from ..validation import coerce_bool, coerce_date, coerce_int


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/finance/expenses")


def _optional_int(value, name: str):
    return coerce_int(value, name, minimum=1) if value not in (None, "") else None


@expenses_bp.post("")
@require_tenant
def create_expense_route():
    """
    Register an expense.

    Request body:
    {
        "category_id": 3,
        "description": "Printer paper",
        "amount": "85000.00",
        "provider_id": 17,  (optional)
        "expense_date": "2026-02-03",  (optional, defaults to local today)
        "payment_method": "TRANSFER",  (optional)
        "invoice_number": "FV-2231"  (optional)
    }

    Returns:
        201: Expense created
        400: Invalid input or inactive category
        404: Category or provider not found
    """
    try:
        data = json_body()
        expense = expense_service.create_expense(
            g.institution_id,
            g.actor_id,
            coerce_int(data.get("category_id"), "category_id", minimum=1),
            data.get("description"),
            data.get("amount"),
            provider_id=_optional_int(data.get("provider_id"), "provider_id"),
            expense_date=data.get("expense_date"),
            invoice_date=data.get("invoice_date"),
            payment_method=data.get("payment_method"),
            invoice_number=data.get("invoice_number"),
            transaction_ref=data.get("transaction_ref"),
            notes=data.get("notes"),
        )
        return jsonify({"expense": expense.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "register expense")


@expenses_bp.post("/<int:expense_id>/approve")
@require_tenant
def approve_expense_route(expense_id: int):
    try:
        expense = expense_service.approve_expense(g.institution_id, expense_id, g.actor_id)
        return jsonify({"expense": expense.to_dict()})
    except Exception as exc:
        return json_error(exc, "approve expense")


@expenses_bp.post("/<int:expense_id>/void")
@require_tenant
def void_expense_route(expense_id: int):
    """
    Request body: {"reason": "Registered twice"}

    Returns:
        200: Voided expense
        409: Already voided
    """
    try:
        data = json_body()
        expense = expense_service.void_expense(g.institution_id, expense_id, g.actor_id, data.get("reason"))
        return jsonify({"expense": expense.to_dict()})
    except Exception as exc:
        return json_error(exc, "void expense")


@expenses_bp.get("")
@require_tenant
def list_expenses_route():
    try:
        expenses = expense_service.list_expenses(
            g.institution_id,
            category_id=_optional_int(request.args.get("category_id"), "category_id"),
            provider_id=_optional_int(request.args.get("provider_id"), "provider_id"),
            date_from=coerce_date(request.args.get("date_from"), "date_from"),
            date_to=coerce_date(request.args.get("date_to"), "date_to"),
            include_voided=bool(coerce_bool(request.args.get("include_voided"), "include_voided")),
        )
        return jsonify({"expenses": [e.to_dict() for e in expenses], "count": len(expenses)})
    except Exception as exc:
        return json_error(exc, "list expenses")


@expenses_bp.get("/stats")
@require_tenant
def expense_stats_route():
    try:
        stats = expense_service.expense_stats(
            g.institution_id,
            date_from=coerce_date(request.args.get("date_from"), "date_from"),
            date_to=coerce_date(request.args.get("date_to"), "date_to"),
        )
        return jsonify(stats)
    except Exception as exc:
        return json_error(exc, "compute expense stats")


@expenses_bp.get("/<int:expense_id>")
@require_tenant
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(g.institution_id, expense_id)
        return jsonify({"expense": expense.to_dict()})
    except Exception as exc:
        return json_error(exc, "get expense")
