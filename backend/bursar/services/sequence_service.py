# Overview: Service-layer sequence allocation for receipts, invoices and obligation references.

"""
Sequence Allocator

WHY: Receipts, invoices and obligation references carry human-readable,
strictly increasing numbers per institution and series.

DESIGN PRINCIPLES:
- Counters live on FinancialSettings (one column per series)
- Increment is a single store-level UPDATE n = n + 1, never read-then-write
- Allocation commits on its own short transaction: once a number is handed
  out it is never reused, even if the consuming create later rolls back.
  Gaps are allowed, collisions are not.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import FinancialSettings, Institution
from ..validation import ValidationError
from bursar.time_utils import local_year
from .concurrency import run_with_retry


SERIES_OBLIGATION = "OBLIGATION"
SERIES_RECEIPT = "RECEIPT"
SERIES_INVOICE = "INVOICE"

# series -> (prefix column, counter column)
SERIES_COLUMNS = {
    SERIES_OBLIGATION: ("obligation_prefix", "obligation_next_number"),
    SERIES_RECEIPT: ("receipt_prefix", "receipt_next_number"),
    SERIES_INVOICE: ("invoice_prefix", "invoice_next_number"),
}

NUMBER_PAD = 6


def allocate(institution_id: int, series: str) -> str:
    """
    Atomically allocate the next document number for an institution/series.

    Returns the formatted number (e.g., "REC-000001", "OBL-2026-000001").
    Initializes the counter on first use.
    """
    if not institution_id:
        raise ValidationError("institution_id is required")
    if series not in SERIES_COLUMNS:
        raise ValidationError(f"Unknown sequence series: {series}")

    prefix_col, counter_col = SERIES_COLUMNS[series]

    def _op() -> str:
        try:
            with db.engine.begin() as conn:
                prefix, number = _advance(conn, institution_id, prefix_col, counter_col)
        except IntegrityError:
            # Lost the race to create the settings row; it exists now.
            with db.engine.begin() as conn:
                prefix, number = _advance(conn, institution_id, prefix_col, counter_col, create=False)
        tz_name = _institution_timezone(institution_id) if series == SERIES_OBLIGATION else None
        return format_number(series, prefix, number, tz_name)

    return run_with_retry(_op, rollback=False)


def format_number(series: str, prefix: str, number: int, tz_name: str | None = None) -> str:
    if series == SERIES_OBLIGATION:
        return f"{prefix}-{local_year(tz_name)}-{number:0{NUMBER_PAD}d}"
    return f"{prefix}-{number:0{NUMBER_PAD}d}"


def _advance(conn, institution_id: int, prefix_col: str, counter_col: str, *, create: bool = True):
    table = FinancialSettings.__table__
    counter = table.c[counter_col]

    stmt = (
        update(table)
        .where(table.c.institution_id == institution_id)
        .values({counter_col: counter + 1})
    )
    result = conn.execute(stmt)

    if result.rowcount:
        row = conn.execute(
            select(table.c[prefix_col], counter).where(table.c.institution_id == institution_id)
        ).one()
        return row[0], row[1] - 1

    if not create:
        raise ValidationError(f"Financial settings missing for institution {institution_id}")

    # First use: create the settings row with this counter already advanced.
    conn.execute(insert(table).values({"institution_id": institution_id, counter_col: 2}))
    prefix = conn.execute(
        select(table.c[prefix_col]).where(table.c.institution_id == institution_id)
    ).scalar_one()
    return prefix, 1


def _institution_timezone(institution_id: int) -> str:
    """Local calendar of the institution (obligation references carry its year)."""
    tz_name = db.session.query(Institution.timezone).filter(Institution.id == institution_id).scalar()
    return tz_name or current_app.config.get("BURSAR_DEFAULT_TIMEZONE", "UTC")
