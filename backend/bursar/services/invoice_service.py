# Overview: Service-layer operations for invoices; creation from line items and lifecycle transitions.

"""
Invoice Service

WHY: Institutions issue invoices for what they bill (INCOME) and record
invoices received from suppliers (EXPENSE).

LIFECYCLE:
    DRAFT -> ISSUED -> PAID
    DRAFT/ISSUED -> CANCELLED (reason required)

TOTALS:
    line_total = quantity * unit_price
    subtotal = sum(line_total)
    total = max(0, subtotal + tax_amount - discount_amount)
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import FinancialInvoice, FinancialInvoiceItem, FinancialObligation, ThirdParty
from ..money import ZERO, clamp_zero, to_money
from ..validation import ConflictError, ValidationError, coerce_date, coerce_int, require_choice, require_text
from bursar.time_utils import utcnow
from .concurrency import run_with_retry
from .sequence_service import SERIES_INVOICE, allocate
from .tenant_service import get_scoped, scoped_query


INVOICE_DRAFT = "DRAFT"
INVOICE_ISSUED = "ISSUED"
INVOICE_PAID = "PAID"
INVOICE_CANCELLED = "CANCELLED"

INVOICE_STATUSES = [INVOICE_DRAFT, INVOICE_ISSUED, INVOICE_PAID, INVOICE_CANCELLED]

INVOICE_INCOME = "INCOME"
INVOICE_EXPENSE = "EXPENSE"

INVOICE_TYPES = [INVOICE_INCOME, INVOICE_EXPENSE]


def create_invoice(
    institution_id: int,
    actor_id: int,
    third_party_id: int,
    items: list[dict],
    invoice_type: str = INVOICE_INCOME,
    tax_amount=0,
    discount_amount=0,
    due_date: date | None = None,
    notes: str | None = None,
) -> FinancialInvoice:
    """
    Create a DRAFT invoice with its line items.

    Each item: {"description", "quantity", "unit_price", "obligation_id"?}.
    A linked obligation must belong to the same institution.
    """
    kind = require_choice(invoice_type, INVOICE_TYPES, "invoice_type")
    tax = to_money(tax_amount, "tax_amount")
    discount = to_money(discount_amount, "discount_amount")
    lines = _parse_items(items)
    due = coerce_date(due_date, "due_date")

    def _op():
        get_scoped(ThirdParty, third_party_id, institution_id, "Third party")
        for line in lines:
            if line["obligation_id"] is not None:
                get_scoped(FinancialObligation, line["obligation_id"], institution_id, "Obligation")

        invoice_number = allocate(institution_id, SERIES_INVOICE)

        subtotal = sum((line["line_total"] for line in lines), ZERO)
        invoice = FinancialInvoice(
            institution_id=institution_id,
            third_party_id=third_party_id,
            invoice_number=invoice_number,
            invoice_type=kind,
            status=INVOICE_DRAFT,
            subtotal=subtotal,
            tax_amount=tax,
            discount_amount=discount,
            total=clamp_zero(subtotal + tax - discount),
            due_date=due,
            notes=notes,
            created_by_user_id=actor_id,
        )
        db.session.add(invoice)
        db.session.flush()

        for line in lines:
            db.session.add(FinancialInvoiceItem(invoice_id=invoice.id, **line))

        db.session.commit()
        return invoice

    return run_with_retry(_op)


def issue_invoice(institution_id: int, invoice_id: int) -> FinancialInvoice:
    def _op():
        invoice = _locked(institution_id, invoice_id)
        if invoice.status != INVOICE_DRAFT:
            raise ConflictError(f"Only DRAFT invoices can be issued (invoice {invoice_id} is {invoice.status})")
        invoice.status = INVOICE_ISSUED
        invoice.issue_date = utcnow()
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def mark_invoice_paid(institution_id: int, invoice_id: int) -> FinancialInvoice:
    def _op():
        invoice = _locked(institution_id, invoice_id)
        if invoice.status != INVOICE_ISSUED:
            raise ConflictError(f"Only ISSUED invoices can be marked paid (invoice {invoice_id} is {invoice.status})")
        invoice.status = INVOICE_PAID
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def cancel_invoice(institution_id: int, invoice_id: int, actor_id: int, reason: str) -> FinancialInvoice:
    reason = require_text(reason, "reason", max_length=255)

    def _op():
        invoice = _locked(institution_id, invoice_id)
        if invoice.status in (INVOICE_PAID, INVOICE_CANCELLED):
            raise ConflictError(f"Cannot cancel invoice {invoice_id}: status is {invoice.status}")
        invoice.status = INVOICE_CANCELLED
        invoice.cancelled_by_user_id = actor_id
        invoice.cancelled_at = utcnow()
        invoice.cancel_reason = reason
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def get_invoice(institution_id: int, invoice_id: int) -> FinancialInvoice:
    return get_scoped(FinancialInvoice, invoice_id, institution_id, "Invoice")


def list_invoices(
    institution_id: int,
    *,
    third_party_id: int | None = None,
    status: str | None = None,
    invoice_type: str | None = None,
) -> list[FinancialInvoice]:
    query = scoped_query(FinancialInvoice, institution_id)
    if third_party_id is not None:
        query = query.filter(FinancialInvoice.third_party_id == third_party_id)
    if status:
        query = query.filter(FinancialInvoice.status == require_choice(status, INVOICE_STATUSES, "status"))
    if invoice_type:
        query = query.filter(FinancialInvoice.invoice_type == require_choice(invoice_type, INVOICE_TYPES, "invoice_type"))
    return query.order_by(FinancialInvoice.created_at.desc(), FinancialInvoice.id.desc()).all()


def _locked(institution_id: int, invoice_id: int) -> FinancialInvoice:
    return get_scoped(FinancialInvoice, invoice_id, institution_id, "Invoice", for_update=True)


def _parse_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        quantity = coerce_int(item.get("quantity", 1), f"items[{index}].quantity", minimum=1)
        unit_price = to_money(item.get("unit_price"), f"items[{index}].unit_price")
        obligation_id = item.get("obligation_id")
        lines.append({
            "description": require_text(item.get("description"), f"items[{index}].description", max_length=255),
            "quantity": quantity,
            "unit_price": unit_price,
            "line_total": unit_price * quantity,
            "obligation_id": (
                coerce_int(obligation_id, f"items[{index}].obligation_id", minimum=1)
                if obligation_id is not None else None
            ),
        })
    return lines
