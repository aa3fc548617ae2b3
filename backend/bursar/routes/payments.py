# Overview: Flask API routes for payments; registration, voids, daily register close and collection stats.

# backend/bursar/routes/payments.py
"""
Payment API Routes

DESIGN:
- Register payments, optionally applied to an obligation
- Void payments (audit trail kept, balance restored)
- Close the cash register for a day (idempotent per date)
- Collection stats exclude voided payments
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import cash_register_service, payment_service, reporting_service
from ..validation import ValidationError, coerce_bool, coerce_date, coerce_datetime, coerce_int


payments_bp = Blueprint("payments", __name__, url_prefix="/api/finance/payments")


def _optional_int(value, name: str):
    return coerce_int(value, name, minimum=1) if value not in (None, "") else None


# =============================================================================
# PAYMENT REGISTRATION
# =============================================================================

@payments_bp.post("")
@require_tenant
def register_payment_route():
    """
    Register a payment.

    Request body:
    {
        "third_party_id": 12,
        "obligation_id": 40,  (optional)
        "amount": "60000.00",
        "payment_method": "NEQUI",
        "transaction_ref": "NQ-99812",  (optional)
        "payment_date": "2026-02-03T14:10:00Z"  (optional, defaults to now)
    }

    Returns:
        201: Payment created (receipt_number assigned)
        400: Invalid input
        404: Third party or obligation not found
        409: Obligation is PAID or CANCELLED
    """
    try:
        data = json_body()
        payment = payment_service.register_payment(
            g.institution_id,
            g.actor_id,
            coerce_int(data.get("third_party_id"), "third_party_id", minimum=1),
            data.get("amount"),
            data.get("payment_method"),
            obligation_id=_optional_int(data.get("obligation_id"), "obligation_id"),
            transaction_ref=data.get("transaction_ref"),
            notes=data.get("notes"),
            payment_date=coerce_datetime(data.get("payment_date"), "payment_date"),
        )
        return jsonify({"payment": payment.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "register payment")


@payments_bp.post("/<int:payment_id>/void")
@require_tenant
def void_payment_route(payment_id: int):
    """
    Request body: {"reason": "Duplicated transfer"}

    Returns:
        200: Voided payment
        409: Already voided
    """
    try:
        data = json_body()
        payment = payment_service.void_payment(g.institution_id, payment_id, g.actor_id, data.get("reason"))
        return jsonify({"payment": payment.to_dict()})
    except Exception as exc:
        return json_error(exc, "void payment")


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("")
@require_tenant
def list_payments_route():
    try:
        payments = payment_service.list_payments(
            g.institution_id,
            third_party_id=_optional_int(request.args.get("third_party_id"), "third_party_id"),
            obligation_id=_optional_int(request.args.get("obligation_id"), "obligation_id"),
            method=request.args.get("method"),
            date_from=coerce_date(request.args.get("date_from"), "date_from"),
            date_to=coerce_date(request.args.get("date_to"), "date_to"),
            include_voided=bool(coerce_bool(request.args.get("include_voided"), "include_voided")),
        )
        return jsonify({"payments": [p.to_dict() for p in payments], "count": len(payments)})
    except Exception as exc:
        return json_error(exc, "list payments")


@payments_bp.get("/stats")
@require_tenant
def collection_stats_route():
    try:
        stats = reporting_service.collection_stats(
            g.institution_id,
            date_from=coerce_date(request.args.get("date_from"), "date_from"),
            date_to=coerce_date(request.args.get("date_to"), "date_to"),
        )
        return jsonify(stats)
    except Exception as exc:
        return json_error(exc, "compute collection stats")


@payments_bp.get("/<int:payment_id>")
@require_tenant
def get_payment_route(payment_id: int):
    try:
        payment = payment_service.get_payment(g.institution_id, payment_id)
        return jsonify({"payment": payment.to_dict()})
    except Exception as exc:
        return json_error(exc, "get payment")


# =============================================================================
# CASH REGISTER CLOSE
# =============================================================================

@payments_bp.post("/close-register")
@require_tenant
def close_register_route():
    """
    Close the register for a local calendar day.

    Request body:
    {
        "date": "2026-02-03",
        "physical_cash": "250000.00",  (optional)
        "notes": "..."  (optional)
    }
    """
    try:
        data = json_body()
        close_date = coerce_date(data.get("date"), "date")
        if close_date is None:
            raise ValidationError("date is required")
        record = cash_register_service.close_register(
            g.institution_id,
            g.actor_id,
            close_date,
            physical_cash=data.get("physical_cash"),
            notes=data.get("notes"),
        )
        return jsonify({"close": record.to_dict()})
    except Exception as exc:
        return json_error(exc, "close cash register")


@payments_bp.get("/close-register")
@require_tenant
def list_closes_route():
    try:
        closes = cash_register_service.list_closes(
            g.institution_id,
            date_from=coerce_date(request.args.get("date_from"), "date_from"),
            date_to=coerce_date(request.args.get("date_to"), "date_to"),
        )
        return jsonify({"closes": [c.to_dict() for c in closes], "count": len(closes)})
    except Exception as exc:
        return json_error(exc, "list cash register closes")


@payments_bp.get("/close-register/<close_date>")
@require_tenant
def get_close_route(close_date: str):
    try:
        record = cash_register_service.get_close(g.institution_id, coerce_date(close_date, "date"))
        return jsonify({"close": record.to_dict()})
    except Exception as exc:
        return json_error(exc, "get cash register close")
