# Overview: Service-layer operations for the charge concept catalog.

from __future__ import annotations


from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ChargeConcept
from ..money import optional_money, to_money
from ..validation import ConflictError, ValidationError, coerce_date, coerce_int, require_choice, require_text
from .concurrency import run_with_retry
from .retention_service import delete_or_deactivate
from .tenant_service import get_scoped, scoped_query


LATE_FEE_FIXED = "FIXED"
LATE_FEE_PERCENTAGE = "PERCENTAGE"

LATE_FEE_TYPES = [LATE_FEE_FIXED, LATE_FEE_PERCENTAGE]

FLAG_FIELDS = {"is_recurring", "is_massive", "allow_partial", "allow_discount", "is_active"}
TEXT_FIELDS = {"description", "category"}
DATE_FIELDS = {"valid_from", "valid_until", "due_date"}


def create_concept(
    institution_id: int,
    *,
    name: str,
    default_amount,
    **fields,
) -> ChargeConcept:
    """
    Create a charge concept.

    Raises:
        ConflictError: a concept with this name already exists (active or not)
    """
    name = require_text(name, "name", max_length=160)
    _require_unique_name(institution_id, name)

    concept = ChargeConcept(
        institution_id=institution_id,
        name=name,
        default_amount=to_money(default_amount, "default_amount"),
        is_active=True,
    )
    try:
        _apply_fields(concept, fields)
        db.session.add(concept)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Concept '{name}' already exists in institution {institution_id}")
    except Exception:
        db.session.rollback()
        raise
    return concept


def update_concept(institution_id: int, concept_id: int, **changes) -> ChargeConcept:
    def _op():
        fields = dict(changes)
        concept = get_concept(institution_id, concept_id)

        if "name" in fields:
            name = require_text(fields.pop("name"), "name", max_length=160)
            if name != concept.name:
                _require_unique_name(institution_id, name, exclude_id=concept.id)
            concept.name = name
        if "default_amount" in fields:
            concept.default_amount = to_money(fields.pop("default_amount"), "default_amount")

        _apply_fields(concept, fields)
        db.session.commit()
        return concept

    return run_with_retry(_op)


def get_concept(institution_id: int, concept_id: int) -> ChargeConcept:
    return get_scoped(ChargeConcept, concept_id, institution_id, "Concept")


def list_concepts(
    institution_id: int,
    *,
    category: str | None = None,
    is_active: bool | None = None,
    is_massive: bool | None = None,
) -> list[ChargeConcept]:
    query = scoped_query(ChargeConcept, institution_id)
    if category:
        query = query.filter(ChargeConcept.category == category)
    if is_active is not None:
        query = query.filter(ChargeConcept.is_active == is_active)
    if is_massive is not None:
        query = query.filter(ChargeConcept.is_massive == is_massive)
    return query.order_by(ChargeConcept.name).all()


def delete_concept(institution_id: int, concept_id: int) -> str:
    """
    Delete a concept, or deactivate it once any obligation references it.

    Returns "DELETED" or "DEACTIVATED".
    """
    concept = get_concept(institution_id, concept_id)
    outcome = delete_or_deactivate(concept)
    db.session.commit()
    return outcome


def _require_unique_name(institution_id: int, name: str, exclude_id: int | None = None) -> None:
    query = scoped_query(ChargeConcept, institution_id).filter(ChargeConcept.name == name)
    if exclude_id is not None:
        query = query.filter(ChargeConcept.id != exclude_id)
    if query.first():
        raise ConflictError(f"Concept '{name}' already exists in institution {institution_id}")


def _apply_fields(concept: ChargeConcept, fields: dict) -> None:
    for key, value in fields.items():
        if key in FLAG_FIELDS:
            setattr(concept, key, bool(value))
        elif key in TEXT_FIELDS:
            setattr(concept, key, value)
        elif key in DATE_FIELDS:
            setattr(concept, key, coerce_date(value, key))
        elif key == "late_fee_type":
            concept.late_fee_type = require_choice(value, LATE_FEE_TYPES, key) if value else None
        elif key == "late_fee_value":
            concept.late_fee_value = optional_money(value, key)
        elif key == "grace_period_days":
            concept.grace_period_days = coerce_int(value, key, minimum=0) if value is not None else None
        else:
            raise ValidationError(f"Unknown concept field: {key}")

    if concept.late_fee_type == LATE_FEE_PERCENTAGE and concept.late_fee_value is not None:
        if concept.late_fee_value > 100:
            raise ValidationError("late_fee_value cannot exceed 100 for PERCENTAGE late fees")
    if concept.valid_from and concept.valid_until and concept.valid_from > concept.valid_until:
        raise ValidationError("valid_from must be on or before valid_until")
