# Overview: Service-layer daily cash register close; per-method totals and cash reconciliation.

"""
Cash Register Close

WHY: At the end of a day the cashier totals what came in, by payment
method, and reconciles the cash bucket against a physical count.

DESIGN PRINCIPLES:
- The day is the institution's local calendar day, [midnight, next midnight)
- Only non-voided payments count
- One row per (institution, date): re-closing recomputes and overwrites
- variance = physical_cash - cash_total, stored only when a count is given
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CashRegisterClose, FinancialPayment
from ..money import ZERO, optional_money
from ..validation import NotFoundError, ValidationError
from bursar.time_utils import local_day_bounds, utcnow
from .concurrency import lock_for_update, run_with_retry
from .payment_service import (
    METHOD_CARD,
    METHOD_CASH,
    METHOD_DAVIPLATA,
    METHOD_NEQUI,
    METHOD_PSE,
    METHOD_TRANSFER,
)
from .tenant_service import require_institution, scoped_query


BUCKET_CASH = "cash"
BUCKET_TRANSFER = "transfer"
BUCKET_CARD = "card"
BUCKET_OTHER = "other"

# Anything not listed lands in "other"
METHOD_BUCKETS = {
    METHOD_CASH: BUCKET_CASH,
    METHOD_TRANSFER: BUCKET_TRANSFER,
    METHOD_PSE: BUCKET_TRANSFER,
    METHOD_NEQUI: BUCKET_TRANSFER,
    METHOD_DAVIPLATA: BUCKET_TRANSFER,
    METHOD_CARD: BUCKET_CARD,
}


def bucket_for(method: str) -> str:
    return METHOD_BUCKETS.get(method, BUCKET_OTHER)


def day_totals(institution_id: int, close_date: date, tz_name: str | None) -> dict:
    """
    Sum non-voided payments of a local day into method buckets.

    Returns:
        {"cash": Decimal, "transfer": ..., "card": ..., "other": ...,
         "grand": Decimal, "count": int}
    """
    start, end = local_day_bounds(close_date, tz_name)

    rows = (
        scoped_query(FinancialPayment, institution_id)
        .with_entities(
            FinancialPayment.payment_method,
            func.sum(FinancialPayment.amount),
            func.count(FinancialPayment.id),
        )
        .filter(
            FinancialPayment.voided_at.is_(None),
            FinancialPayment.payment_date >= start,
            FinancialPayment.payment_date < end,
        )
        .group_by(FinancialPayment.payment_method)
        .all()
    )

    totals = {BUCKET_CASH: ZERO, BUCKET_TRANSFER: ZERO, BUCKET_CARD: ZERO, BUCKET_OTHER: ZERO}
    count = 0
    for method, amount, n in rows:
        totals[bucket_for(method)] += amount or ZERO
        count += n

    totals["grand"] = sum((totals[b] for b in (BUCKET_CASH, BUCKET_TRANSFER, BUCKET_CARD, BUCKET_OTHER)), ZERO)
    totals["count"] = count
    return totals


def close_register(
    institution_id: int,
    actor_id: int,
    close_date: date,
    physical_cash=None,
    notes: str | None = None,
) -> CashRegisterClose:
    """
    Close (or re-close) the register for a day.

    Args:
        close_date: Local calendar day in the institution's timezone
        physical_cash: Counted cash; when given, variance is recorded

    Returns:
        The single CashRegisterClose row for (institution, close_date)
    """
    if not isinstance(close_date, date):
        raise ValidationError("close_date must be a date")
    counted = optional_money(physical_cash, "physical_cash")

    def _op():
        institution = require_institution(institution_id)
        tz_name = institution.timezone or current_app.config.get("BURSAR_DEFAULT_TIMEZONE", "UTC")
        totals = day_totals(institution_id, close_date, tz_name)

        record = _find_close(institution_id, close_date, lock=True)
        if record is None:
            record = CashRegisterClose(institution_id=institution_id, close_date=close_date)
            db.session.add(record)

        record.cash_total = totals[BUCKET_CASH]
        record.transfer_total = totals[BUCKET_TRANSFER]
        record.card_total = totals[BUCKET_CARD]
        record.other_total = totals[BUCKET_OTHER]
        record.grand_total = totals["grand"]
        record.payment_count = totals["count"]
        record.physical_cash = counted
        record.variance = counted - totals[BUCKET_CASH] if counted is not None else None
        record.notes = notes
        record.closed_by_user_id = actor_id
        record.closed_at = utcnow()

        db.session.commit()
        return record

    try:
        record = run_with_retry(_op)
    except IntegrityError:
        # Another cashier created today's row first; overwrite it
        record = run_with_retry(_op)

    if record.variance is not None and record.variance != ZERO:
        current_app.logger.info(
            "Cash register variance for institution %s on %s: %s",
            institution_id, close_date.isoformat(), record.variance,
        )
    return record


def get_close(institution_id: int, close_date: date) -> CashRegisterClose:
    record = _find_close(institution_id, close_date)
    if record is None:
        raise NotFoundError(
            f"No cash register close for {close_date.isoformat()} in institution {institution_id}"
        )
    return record


def list_closes(
    institution_id: int,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[CashRegisterClose]:
    query = scoped_query(CashRegisterClose, institution_id)
    if date_from is not None:
        query = query.filter(CashRegisterClose.close_date >= date_from)
    if date_to is not None:
        query = query.filter(CashRegisterClose.close_date <= date_to)
    return query.order_by(CashRegisterClose.close_date.desc()).all()


def _find_close(institution_id: int, close_date: date, *, lock: bool = False) -> CashRegisterClose | None:
    query = scoped_query(CashRegisterClose, institution_id).filter(
        CashRegisterClose.close_date == close_date
    )
    if lock:
        query = lock_for_update(query)
    return query.first()
