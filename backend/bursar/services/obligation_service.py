# Overview: Service-layer operations for financial obligations; the ledger's balance and status rules.

"""
Obligation Ledger

WHY: An obligation is one charge owed by one third party for one concept.
Its balance and status must always agree with what was charged, discounted
and paid.

DESIGN PRINCIPLES:
- total_amount = max(0, original_amount - discount_amount)
- balance = max(0, total_amount - paid_amount)
- Status is derived in ONE place (derive_status), called from every path
  that mutates amounts: payment, void, discount.
- recompute_balance is the only primitive that moves paid_amount. It locks
  the row and relies on version_id, so concurrent payments never lose an
  update.
- CANCELLED is terminal. PAID obligations reject discounts and cancels.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ..extensions import db
from ..models import ChargeConcept, FinancialObligation, ThirdParty
from ..money import ZERO, clamp_zero, optional_money, to_money
from ..validation import ConflictError, coerce_date, require_choice, require_text
from bursar.time_utils import utcnow
from .concurrency import run_with_retry
from .sequence_service import SERIES_OBLIGATION, allocate
from .tenant_service import get_scoped, scoped_query


# =============================================================================
# OBLIGATION STATUS (CONSTANTS)
# =============================================================================

STATUS_PENDING = "PENDING"
STATUS_PARTIAL = "PARTIAL"
STATUS_OVERDUE = "OVERDUE"
STATUS_PAID = "PAID"
STATUS_CANCELLED = "CANCELLED"

OBLIGATION_STATUSES = [
    STATUS_PENDING,
    STATUS_PARTIAL,
    STATUS_OVERDUE,
    STATUS_PAID,
    STATUS_CANCELLED,
]

# An obligation in one of these blocks a duplicate from bulk generation
ACTIVE_STATUSES = [STATUS_PENDING, STATUS_PARTIAL]

# Closed to payments, discounts and cancellation
CLOSED_STATUSES = [STATUS_PAID, STATUS_CANCELLED]


@dataclass(frozen=True)
class ObligationOverrides:
    """Per-obligation values that override the concept template."""
    amount: Decimal | None = None
    discount_amount: Decimal | None = None
    discount_reason: str | None = None
    due_date: date | None = None
    notes: str | None = None


def parse_overrides(
    *,
    amount=None,
    discount_amount=None,
    discount_reason: str | None = None,
    due_date: date | None = None,
    notes: str | None = None,
) -> ObligationOverrides:
    return ObligationOverrides(
        amount=optional_money(amount, "amount"),
        discount_amount=optional_money(discount_amount, "discount_amount"),
        discount_reason=discount_reason,
        due_date=coerce_date(due_date, "due_date"),
        notes=notes,
    )


# =============================================================================
# STATUS DERIVATION
# =============================================================================

def derive_status(total_amount: Decimal, paid_amount: Decimal, prior_status: str) -> str:
    """
    Status as a function of amounts.

    - CANCELLED stays CANCELLED (terminal)
    - balance <= 0 -> PAID
    - paid > 0 -> PARTIAL
    - nothing paid -> the pre-payment status (PENDING or OVERDUE); a prior
      PARTIAL/PAID with nothing paid any more falls back to PENDING
    """
    if prior_status == STATUS_CANCELLED:
        return STATUS_CANCELLED
    if clamp_zero(total_amount - paid_amount) <= ZERO:
        return STATUS_PAID
    if paid_amount > ZERO:
        return STATUS_PARTIAL
    if prior_status in (STATUS_PENDING, STATUS_OVERDUE):
        return prior_status
    return STATUS_PENDING


def recompute_balance(institution_id: int, obligation_id: int, delta_paid: Decimal) -> FinancialObligation:
    """
    Apply a change in paid amount to an obligation (caller commits).

    The single authoritative balance mutation, used by payment registration
    (positive delta) and payment void (negative delta). Runs inside the
    caller's transaction; the row is locked and version-checked.
    """
    obligation = get_scoped(
        FinancialObligation, obligation_id, institution_id, "Obligation", for_update=True
    )

    paid = obligation.paid_amount + delta_paid
    if paid < ZERO:
        raise ConflictError(
            f"Obligation {obligation_id} paid amount would become negative ({paid})"
        )

    _settle(obligation, obligation.total_amount, paid)
    db.session.flush()
    return obligation


def _settle(obligation: FinancialObligation, total: Decimal, paid: Decimal) -> None:
    """Write amounts, balance, status and paid_date together."""
    status = derive_status(total, paid, obligation.status)

    obligation.total_amount = total
    obligation.paid_amount = paid
    obligation.balance = clamp_zero(total - paid)
    if status == STATUS_PAID and obligation.status != STATUS_PAID:
        obligation.paid_date = utcnow()
    elif status != STATUS_PAID:
        obligation.paid_date = None
    obligation.status = status


# =============================================================================
# CREATION
# =============================================================================

def new_obligation(
    institution_id: int,
    actor_id: int,
    third_party_id: int,
    concept: ChargeConcept,
    overrides: ObligationOverrides,
) -> FinancialObligation:
    """
    Build (and add to the session) an obligation from a concept.

    Allocates a fresh reference number. Shared by single and bulk creation so
    both follow exactly the same rules. Caller commits.
    """
    original = overrides.amount if overrides.amount is not None else concept.default_amount
    discount = overrides.discount_amount if overrides.discount_amount is not None else ZERO
    total = clamp_zero(original - discount)

    reference = allocate(institution_id, SERIES_OBLIGATION)

    obligation = FinancialObligation(
        institution_id=institution_id,
        third_party_id=third_party_id,
        concept_id=concept.id,
        reference=reference,
        original_amount=original,
        discount_amount=discount,
        total_amount=total,
        paid_amount=ZERO,
        balance=total,
        status=STATUS_PENDING,
        due_date=overrides.due_date if overrides.due_date is not None else concept.due_date,
        discount_reason=overrides.discount_reason,
        notes=overrides.notes,
        created_by_user_id=actor_id,
    )
    db.session.add(obligation)
    return obligation


def create_obligation(
    institution_id: int,
    actor_id: int,
    third_party_id: int,
    concept_id: int,
    **overrides,
) -> FinancialObligation:
    """
    Charge a third party for a concept.

    Overrides: amount, discount_amount, discount_reason, due_date, notes.

    Raises:
        NotFoundError: concept or third party absent from the institution
        ValidationError: malformed amounts
    """
    parsed = parse_overrides(**overrides)

    def _op():
        concept = get_scoped(ChargeConcept, concept_id, institution_id, "Concept")
        get_scoped(ThirdParty, third_party_id, institution_id, "Third party")

        obligation = new_obligation(institution_id, actor_id, third_party_id, concept, parsed)
        db.session.commit()
        return obligation

    return run_with_retry(_op)


# =============================================================================
# DISCOUNTS & CANCELLATION
# =============================================================================

def apply_discount(
    institution_id: int,
    obligation_id: int,
    discount_amount,
    reason: str,
    approver_id: int,
) -> FinancialObligation:
    """
    Replace the obligation's discount and recompute totals.

    If the balance reaches zero the obligation becomes PAID (paid_date
    stamped); otherwise the status is re-derived, which leaves PENDING and
    PARTIAL obligations as they were.

    Raises:
        ConflictError: obligation is PAID or CANCELLED
    """
    discount = to_money(discount_amount, "discount_amount")
    reason = require_text(reason, "reason", max_length=255)

    def _op():
        obligation = get_scoped(
            FinancialObligation, obligation_id, institution_id, "Obligation", for_update=True
        )
        if obligation.status in CLOSED_STATUSES:
            raise ConflictError(
                f"Cannot discount obligation {obligation_id}: status is {obligation.status}"
            )

        obligation.discount_amount = discount
        obligation.discount_reason = reason
        obligation.discount_approved_by = approver_id
        _settle(obligation, clamp_zero(obligation.original_amount - discount), obligation.paid_amount)

        db.session.commit()
        return obligation

    return run_with_retry(_op)


def cancel_obligation(institution_id: int, obligation_id: int, reason: str) -> FinancialObligation:
    """
    Cancel an obligation (terminal).

    Balance and paid amount are left as they are for audit.

    Raises:
        ConflictError: obligation is PAID or already CANCELLED
    """
    reason = require_text(reason, "reason", max_length=255)

    def _op():
        obligation = get_scoped(
            FinancialObligation, obligation_id, institution_id, "Obligation", for_update=True
        )
        if obligation.status in CLOSED_STATUSES:
            raise ConflictError(
                f"Cannot cancel obligation {obligation_id}: status is {obligation.status}"
            )

        obligation.status = STATUS_CANCELLED
        obligation.notes = f"{obligation.notes or ''}\n[CANCELLED] {reason}".strip()

        db.session.commit()
        return obligation

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_obligation(institution_id: int, obligation_id: int) -> FinancialObligation:
    return get_scoped(FinancialObligation, obligation_id, institution_id, "Obligation")


def list_obligations(
    institution_id: int,
    *,
    third_party_id: int | None = None,
    concept_id: int | None = None,
    status: str | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
) -> list[FinancialObligation]:
    query = scoped_query(FinancialObligation, institution_id)

    if third_party_id is not None:
        query = query.filter(FinancialObligation.third_party_id == third_party_id)
    if concept_id is not None:
        query = query.filter(FinancialObligation.concept_id == concept_id)
    if status:
        query = query.filter(FinancialObligation.status == require_choice(status, OBLIGATION_STATUSES, "status"))
    if due_from is not None:
        query = query.filter(FinancialObligation.due_date >= due_from)
    if due_to is not None:
        query = query.filter(FinancialObligation.due_date <= due_to)

    return query.order_by(FinancialObligation.created_at.desc(), FinancialObligation.id.desc()).all()


def find_active_obligation(institution_id: int, third_party_id: int, concept_id: int) -> FinancialObligation | None:
    """An obligation that blocks a duplicate charge for (third party, concept)."""
    return scoped_query(FinancialObligation, institution_id).filter(
        FinancialObligation.third_party_id == third_party_id,
        FinancialObligation.concept_id == concept_id,
        FinancialObligation.status.in_(ACTIVE_STATUSES),
    ).first()


def count_active_obligations(institution_id: int, third_party_id: int, concept_id: int) -> int:
    return scoped_query(FinancialObligation, institution_id).filter(
        FinancialObligation.third_party_id == third_party_id,
        FinancialObligation.concept_id == concept_id,
        FinancialObligation.status.in_(ACTIVE_STATUSES),
    ).count()
