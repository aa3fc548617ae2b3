# Overview: Read-only aggregate queries over obligations and payments.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..models import FinancialObligation, FinancialPayment, ThirdParty
from ..money import ZERO, money_str
from .obligation_service import (
    STATUS_OVERDUE,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_PENDING,
)
from .payment_service import list_payments
from .tenant_service import get_scoped, scoped_query


def portfolio_stats(institution_id: int) -> dict:
    """
    Receivables snapshot.

    Open statuses report count and outstanding balance; PAID reports count
    and total charged. total_portfolio is the outstanding balance across all
    open statuses.
    """
    rows = (
        scoped_query(FinancialObligation, institution_id)
        .with_entities(
            FinancialObligation.status,
            func.count(FinancialObligation.id),
            func.sum(FinancialObligation.balance),
            func.sum(FinancialObligation.total_amount),
        )
        .group_by(FinancialObligation.status)
        .all()
    )
    by_status = {status: (count, balance or ZERO, total or ZERO) for status, count, balance, total in rows}

    def _open(status):
        count, balance, _ = by_status.get(status, (0, ZERO, ZERO))
        return {"count": count, "balance": money_str(balance)}

    paid_count, _, paid_total = by_status.get(STATUS_PAID, (0, ZERO, ZERO))
    outstanding = sum(
        (by_status.get(s, (0, ZERO, ZERO))[1] for s in (STATUS_PENDING, STATUS_PARTIAL, STATUS_OVERDUE)),
        ZERO,
    )

    return {
        "pending": _open(STATUS_PENDING),
        "partial": _open(STATUS_PARTIAL),
        "overdue": _open(STATUS_OVERDUE),
        "paid": {"count": paid_count, "total": money_str(paid_total)},
        "total_portfolio": money_str(outstanding),
    }


def collection_stats(
    institution_id: int,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    """Non-voided collections in a date range, overall and per payment method."""
    payments = list_payments(institution_id, date_from=date_from, date_to=date_to)

    by_method: dict[str, dict] = {}
    total = ZERO
    for payment in payments:
        entry = by_method.setdefault(payment.payment_method, {"count": 0, "total": ZERO})
        entry["count"] += 1
        entry["total"] += payment.amount
        total += payment.amount

    return {
        "count": len(payments),
        "total": money_str(total),
        "by_method": {
            method: {"count": entry["count"], "total": money_str(entry["total"])}
            for method, entry in sorted(by_method.items())
        },
    }


def third_party_summary(institution_id: int, third_party_id: int) -> dict:
    """Account statement header for one payer: charged, paid and owed."""
    party = get_scoped(ThirdParty, third_party_id, institution_id, "Third party")

    charged, paid, balance, open_count = (
        scoped_query(FinancialObligation, institution_id)
        .with_entities(
            func.sum(FinancialObligation.total_amount),
            func.sum(FinancialObligation.paid_amount),
            func.sum(FinancialObligation.balance),
            func.count(FinancialObligation.id),
        )
        .filter(
            FinancialObligation.third_party_id == third_party_id,
            FinancialObligation.status.in_([STATUS_PENDING, STATUS_PARTIAL, STATUS_OVERDUE, STATUS_PAID]),
        )
        .one()
    )

    received = (
        scoped_query(FinancialPayment, institution_id)
        .with_entities(func.sum(FinancialPayment.amount))
        .filter(
            FinancialPayment.third_party_id == third_party_id,
            FinancialPayment.voided_at.is_(None),
        )
        .scalar()
    )

    return {
        "third_party": party.to_dict(),
        "obligation_count": open_count,
        "total_charged": money_str(charged or ZERO),
        "total_paid": money_str(paid or ZERO),
        "balance": money_str(balance or ZERO),
        "total_received": money_str(received or ZERO),
    }
