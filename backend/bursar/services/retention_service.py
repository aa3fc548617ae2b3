# Overview: Single decision point for hard delete vs. soft deactivation.

"""
Anything referenced by ledger history is never truly deleted.

can_hard_delete() is the only place that decides it; concept and third-party
services call it and deactivate instead when it says no. Categories
follow the same rule.
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    ChargeConcept,
    FinancialCategory,
    FinancialExpense,
    FinancialInvoice,
    FinancialObligation,
    FinancialPayment,
    ThirdParty,
)


def can_hard_delete(entity) -> bool:
    """True only when no ledger row references the entity."""
    if isinstance(entity, ChargeConcept):
        return not _exists(FinancialObligation, FinancialObligation.concept_id == entity.id)

    if isinstance(entity, ThirdParty):
        return not (
            _exists(FinancialObligation, FinancialObligation.third_party_id == entity.id)
            or _exists(FinancialPayment, FinancialPayment.third_party_id == entity.id)
            or _exists(FinancialInvoice, FinancialInvoice.third_party_id == entity.id)
            or _exists(FinancialExpense, FinancialExpense.provider_id == entity.id)
        )

    if isinstance(entity, FinancialCategory):
        return not _exists(FinancialExpense, FinancialExpense.category_id == entity.id)

    # Ledger documents themselves are never hard-deleted
    return False


def delete_or_deactivate(entity) -> str:
    """
    Apply the decision (caller commits).

    Returns "DELETED" or "DEACTIVATED".
    """
    if can_hard_delete(entity):
        db.session.delete(entity)
        return "DELETED"
    entity.is_active = False
    return "DEACTIVATED"


def _exists(model, criterion) -> bool:
    return db.session.query(db.session.query(model.id).filter(criterion).exists()).scalar()
