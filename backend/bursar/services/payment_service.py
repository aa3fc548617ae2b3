# Overview: Service-layer operations for payments; registration, voids and payment queries.

"""
Payment Ledger

WHY: Record money received from third parties and apply it to obligations.

DESIGN PRINCIPLES:
- One payment = one receipt number, allocated before anything is written
- Payment row and obligation balance change commit together (single
  transaction) or not at all
- Voids never delete: the row is flagged and a compensating balance
  change (-amount) is applied in the same transaction
- Voided payments are excluded from every aggregate but remain listable
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from ..extensions import db
from ..models import FinancialObligation, FinancialPayment, ThirdParty
from ..money import to_money
from ..validation import ConflictError, ValidationError, require_choice, require_text
from bursar.time_utils import utcnow
from .concurrency import run_with_retry
from .obligation_service import CLOSED_STATUSES, recompute_balance
from .sequence_service import SERIES_RECEIPT, allocate
from .tenant_service import get_scoped, scoped_query


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "CASH"
METHOD_TRANSFER = "TRANSFER"
METHOD_PSE = "PSE"
METHOD_NEQUI = "NEQUI"
METHOD_DAVIPLATA = "DAVIPLATA"
METHOD_CARD = "CARD"
METHOD_OTHER = "OTHER"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_TRANSFER,
    METHOD_PSE,
    METHOD_NEQUI,
    METHOD_DAVIPLATA,
    METHOD_CARD,
    METHOD_OTHER,
]


# =============================================================================
# PAYMENT REGISTRATION
# =============================================================================

def register_payment(
    institution_id: int,
    actor_id: int,
    third_party_id: int,
    amount,
    payment_method: str,
    obligation_id: int | None = None,
    transaction_ref: str | None = None,
    notes: str | None = None,
    payment_date: datetime | None = None,
) -> FinancialPayment:
    """
    Register a payment, optionally applied to an obligation.

    WHY: Core cashier operation. The payment row and the obligation balance
    update are a single unit of work.

    Args:
        amount: Positive money value (Decimal, int or decimal string)
        payment_method: One of VALID_PAYMENT_METHODS
        obligation_id: When given, the payment reduces that obligation's balance
        payment_date: Defaults to now (UTC)

    Returns:
        The committed FinancialPayment

    Raises:
        NotFoundError: third party or obligation absent from the institution
        ConflictError: obligation is PAID or CANCELLED
        ValidationError: bad amount, method, or obligation/payer mismatch
    """
    amount = to_money(amount, "amount", allow_zero=False)
    method = require_choice(payment_method, VALID_PAYMENT_METHODS, "payment_method")
    if payment_date is not None and not isinstance(payment_date, datetime):
        raise ValidationError("payment_date must be a datetime")

    def _op():
        get_scoped(ThirdParty, third_party_id, institution_id, "Third party")

        if obligation_id is not None:
            obligation = get_scoped(
                FinancialObligation, obligation_id, institution_id, "Obligation", for_update=True
            )
            if obligation.status in CLOSED_STATUSES:
                raise ConflictError(
                    f"Obligation {obligation_id} is {obligation.status} and cannot receive payments"
                )
            if obligation.third_party_id != third_party_id:
                raise ValidationError(
                    f"Obligation {obligation_id} does not belong to third party {third_party_id}"
                )

        # Allocation commits on its own connection; do it before any write
        receipt_number = allocate(institution_id, SERIES_RECEIPT)

        payment = FinancialPayment(
            institution_id=institution_id,
            third_party_id=third_party_id,
            obligation_id=obligation_id,
            amount=amount,
            payment_method=method,
            transaction_ref=transaction_ref,
            receipt_number=receipt_number,
            notes=notes,
            received_by_user_id=actor_id,
            payment_date=payment_date or utcnow(),
        )
        db.session.add(payment)
        db.session.flush()

        if obligation_id is not None:
            recompute_balance(institution_id, obligation_id, amount)

        db.session.commit()
        return payment

    return run_with_retry(_op)


# =============================================================================
# PAYMENT VOID
# =============================================================================

def void_payment(institution_id: int, payment_id: int, actor_id: int, reason: str) -> FinancialPayment:
    """
    Void a payment and reverse its effect on the linked obligation.

    Raises:
        NotFoundError: payment absent from the institution
        ConflictError: payment already voided
    """
    reason = require_text(reason, "reason", max_length=255)

    def _op():
        payment = get_scoped(
            FinancialPayment, payment_id, institution_id, "Payment", for_update=True
        )
        if payment.is_voided:
            raise ConflictError(f"Payment {payment_id} is already voided")

        payment.voided_at = utcnow()
        payment.voided_by_user_id = actor_id
        payment.void_reason = reason
        db.session.flush()

        if payment.obligation_id is not None:
            recompute_balance(institution_id, payment.obligation_id, -payment.amount)

        db.session.commit()
        return payment

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_payment(institution_id: int, payment_id: int) -> FinancialPayment:
    return get_scoped(FinancialPayment, payment_id, institution_id, "Payment")


def list_payments(
    institution_id: int,
    *,
    third_party_id: int | None = None,
    obligation_id: int | None = None,
    method: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    include_voided: bool = False,
) -> list[FinancialPayment]:
    """
    List payments, newest first.

    date_from/date_to are inclusive calendar days (UTC); date_to ends at
    the following midnight, exclusive.
    """
    query = scoped_query(FinancialPayment, institution_id)

    if third_party_id is not None:
        query = query.filter(FinancialPayment.third_party_id == third_party_id)
    if obligation_id is not None:
        query = query.filter(FinancialPayment.obligation_id == obligation_id)
    if method:
        query = query.filter(FinancialPayment.payment_method == require_choice(method, VALID_PAYMENT_METHODS, "method"))
    if date_from is not None:
        query = query.filter(FinancialPayment.payment_date >= datetime.combine(date_from, datetime.min.time()))
    if date_to is not None:
        query = query.filter(
            FinancialPayment.payment_date < datetime.combine(date_to + timedelta(days=1), datetime.min.time())
        )
    if not include_voided:
        query = query.filter(FinancialPayment.voided_at.is_(None))

    return query.order_by(FinancialPayment.payment_date.desc(), FinancialPayment.id.desc()).all()
