"""
Multi-Tenant Service: Institution Validation and Scoping Helpers

WHY: Every ledger operation is scoped to an institution, and the scope check
is part of every lookup rather than an afterthought. Identity (institution
and actor) arrives from an upstream resolver and is trusted as-is.

SECURITY INVARIANTS:
1. Every finance request has g.institution_id and g.actor_id set
2. Entity lookups always filter by institution_id
3. An entity owned by another institution is reported as not found
   (never reveal it exists elsewhere)

USAGE:
    from bursar.services.tenant_service import require_institution, get_scoped

    institution = require_institution(g.institution_id)
    obligation = get_scoped(FinancialObligation, obligation_id, g.institution_id, "Obligation")
"""

from ..extensions import db
from ..models import Institution
from ..validation import NotFoundError
from .concurrency import lock_for_update


class TenantAccessError(Exception):
    """Raised when tenant context is missing or invalid."""
    pass


def require_institution(institution_id: int) -> Institution:
    """
    Validate the institution exists and is active.

    Raises:
        TenantAccessError if missing or deactivated
    """
    institution = db.session.get(Institution, institution_id)
    if not institution or not institution.is_active:
        raise TenantAccessError("Institution not found")
    return institution


def scoped_query(model, institution_id: int):
    """Base query for any institution-owned model."""
    return db.session.query(model).filter(model.institution_id == institution_id)


def get_scoped(model, entity_id: int, institution_id: int, label: str, *, for_update: bool = False):
    """
    Fetch an entity by id inside an institution, or raise NotFoundError.

    for_update=True takes a row lock (SELECT ... FOR UPDATE) where supported.
    """
    query = scoped_query(model, institution_id).filter(model.id == entity_id)
    if for_update:
        query = lock_for_update(query)
    entity = query.first()
    if not entity:
        raise NotFoundError(f"{label} {entity_id} not found in institution {institution_id}")
    return entity
