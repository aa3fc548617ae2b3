# Overview: Service-layer operations for per-institution financial settings.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import FinancialSettings
from ..money import optional_money
from ..validation import ValidationError, coerce_bool, coerce_int, require_choice, require_text
from .concept_service import LATE_FEE_TYPES
from .concurrency import run_with_retry
from .tenant_service import require_institution, scoped_query


PREFIX_FIELDS = {"receipt_prefix", "invoice_prefix", "obligation_prefix"}
TEXT_FIELDS = {"tax_id", "tax_regime"}

# Counters only move through sequence_service.allocate
READ_ONLY_FIELDS = {"receipt_next_number", "invoice_next_number", "obligation_next_number"}

EDITABLE_FIELDS = PREFIX_FIELDS | TEXT_FIELDS | {
    "default_late_fee_type",
    "default_late_fee_value",
    "default_grace_period_days",
    "send_payment_reminders",
    "reminder_days_before",
}


def get_settings(institution_id: int) -> FinancialSettings:
    """Return the institution's settings, creating the row with defaults on first read."""
    settings = scoped_query(FinancialSettings, institution_id).first()
    if settings:
        return settings

    require_institution(institution_id)
    settings = FinancialSettings(institution_id=institution_id)
    db.session.add(settings)
    try:
        db.session.commit()
    except IntegrityError:
        # Created concurrently (possibly by the first allocation)
        db.session.rollback()
        settings = scoped_query(FinancialSettings, institution_id).one()
    return settings


def update_settings(institution_id: int, **changes) -> FinancialSettings:
    """
    Update editable settings.

    Raises:
        ValidationError: unknown or read-only field, or invalid value
    """
    read_only = set(changes) & READ_ONLY_FIELDS
    if read_only:
        raise ValidationError(f"Sequence counters cannot be edited: {sorted(read_only)}")
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown settings fields: {sorted(unknown)}")

    get_settings(institution_id)

    def _op():
        settings = scoped_query(FinancialSettings, institution_id).one()

        for key, value in changes.items():
            if key in PREFIX_FIELDS:
                value = require_text(value, key, max_length=16)
            elif key in TEXT_FIELDS:
                value = value.strip() if isinstance(value, str) and value.strip() else None
            elif key == "default_late_fee_type":
                value = require_choice(value, LATE_FEE_TYPES, key) if value else None
            elif key == "default_late_fee_value":
                value = optional_money(value, key)
            elif key in ("default_grace_period_days", "reminder_days_before"):
                value = coerce_int(value, key, minimum=0) if value is not None else None
            elif key == "send_payment_reminders":
                value = bool(coerce_bool(value, key))
            setattr(settings, key, value)

        db.session.commit()
        return settings

    return run_with_retry(_op)
