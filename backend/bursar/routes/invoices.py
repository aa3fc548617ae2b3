# Overview: Flask API routes for invoices and their lifecycle.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import invoice_service
from ..validation import coerce_int


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/finance/invoices")


@invoices_bp.post("")
@require_tenant
def create_invoice_route():
    """
    Create a DRAFT invoice.

    Request body:
    {
        "third_party_id": 12,
        "invoice_type": "INCOME",
        "items": [{"description": "Tuition March", "quantity": 1, "unit_price": "100000.00", "obligation_id": 40}],
        "tax_amount": "0",  (optional)
        "discount_amount": "0",  (optional)
        "due_date": "2026-03-31"  (optional)
    }
    """
    try:
        data = json_body()
        invoice = invoice_service.create_invoice(
            g.institution_id,
            g.actor_id,
            coerce_int(data.get("third_party_id"), "third_party_id", minimum=1),
            data.get("items"),
            invoice_type=data.get("invoice_type") or invoice_service.INVOICE_INCOME,
            tax_amount=data.get("tax_amount", 0),
            discount_amount=data.get("discount_amount", 0),
            due_date=data.get("due_date"),
            notes=data.get("notes"),
        )
        return jsonify({"invoice": invoice.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "create invoice")


@invoices_bp.get("")
@require_tenant
def list_invoices_route():
    try:
        third_party_id = request.args.get("third_party_id")
        invoices = invoice_service.list_invoices(
            g.institution_id,
            third_party_id=coerce_int(third_party_id, "third_party_id", minimum=1) if third_party_id else None,
            status=request.args.get("status"),
            invoice_type=request.args.get("invoice_type"),
        )
        return jsonify({"invoices": [i.to_dict(include_items=False) for i in invoices], "count": len(invoices)})
    except Exception as exc:
        return json_error(exc, "list invoices")


@invoices_bp.get("/<int:invoice_id>")
@require_tenant
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.institution_id, invoice_id)
        return jsonify({"invoice": invoice.to_dict()})
    except Exception as exc:
        return json_error(exc, "get invoice")


@invoices_bp.post("/<int:invoice_id>/issue")
@require_tenant
def issue_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.issue_invoice(g.institution_id, invoice_id)
        return jsonify({"invoice": invoice.to_dict()})
    except Exception as exc:
        return json_error(exc, "issue invoice")


@invoices_bp.post("/<int:invoice_id>/pay")
@require_tenant
def pay_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.mark_invoice_paid(g.institution_id, invoice_id)
        return jsonify({"invoice": invoice.to_dict()})
    except Exception as exc:
        return json_error(exc, "mark invoice paid")


@invoices_bp.post("/<int:invoice_id>/cancel")
@require_tenant
def cancel_invoice_route(invoice_id: int):
    try:
        data = json_body()
        invoice = invoice_service.cancel_invoice(g.institution_id, invoice_id, g.actor_id, data.get("reason"))
        return jsonify({"invoice": invoice.to_dict()})
    except Exception as exc:
        return json_error(exc, "cancel invoice")
