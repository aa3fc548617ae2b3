# Overview: Service-layer operations for income and expense categories.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import FinancialCategory
from ..money import optional_money
from ..validation import ConflictError, ValidationError, coerce_int, require_choice, require_text
from .concurrency import run_with_retry
from .retention_service import delete_or_deactivate
from .tenant_service import get_scoped, scoped_query


TYPE_INCOME = "INCOME"
TYPE_EXPENSE = "EXPENSE"

CATEGORY_TYPES = [TYPE_INCOME, TYPE_EXPENSE]

TEXT_FIELDS = {"code", "description", "color", "icon"}

# Starter catalog offered to a new institution
DEFAULT_CATEGORIES = [
    {"name": "Eventos", "type": TYPE_INCOME, "color": "#3B82F6", "icon": "calendar"},
    {"name": "Rifas y Bingos", "type": TYPE_INCOME, "color": "#10B981", "icon": "ticket"},
    {"name": "Derechos de Grado", "type": TYPE_INCOME, "color": "#8B5CF6", "icon": "graduation-cap"},
    {"name": "Donaciones", "type": TYPE_INCOME, "color": "#F59E0B", "icon": "heart"},
    {"name": "Salidas Pedagógicas", "type": TYPE_INCOME, "color": "#06B6D4", "icon": "bus"},
    {"name": "Multas y Sanciones", "type": TYPE_INCOME, "color": "#EF4444", "icon": "alert-triangle"},
    {"name": "Papelería", "type": TYPE_EXPENSE, "color": "#64748B", "icon": "file-text"},
    {"name": "Premios", "type": TYPE_EXPENSE, "color": "#EC4899", "icon": "gift"},
    {"name": "Logística", "type": TYPE_EXPENSE, "color": "#F97316", "icon": "truck"},
    {"name": "Mantenimiento", "type": TYPE_EXPENSE, "color": "#84CC16", "icon": "wrench"},
    {"name": "Servicios", "type": TYPE_EXPENSE, "color": "#14B8A6", "icon": "zap"},
]


def create_category(institution_id: int, *, name: str, **fields) -> FinancialCategory:
    """
    Create a category.

    Raises:
        ConflictError: a category with this name already exists (active or not)
    """
    name = require_text(name, "name", max_length=160)
    _require_unique_name(institution_id, name)

    category = FinancialCategory(institution_id=institution_id, name=name, type=TYPE_EXPENSE, is_active=True)
    try:
        _apply_fields(category, fields)
        db.session.add(category)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Category '{name}' already exists in institution {institution_id}")
    except Exception:
        db.session.rollback()
        raise
    return category


def update_category(institution_id: int, category_id: int, **changes) -> FinancialCategory:
    def _op():
        fields = dict(changes)
        category = get_category(institution_id, category_id)

        if "name" in fields:
            name = require_text(fields.pop("name"), "name", max_length=160)
            if name != category.name:
                _require_unique_name(institution_id, name, exclude_id=category.id)
            category.name = name

        _apply_fields(category, fields)
        db.session.commit()
        return category

    return run_with_retry(_op)


def get_category(institution_id: int, category_id: int) -> FinancialCategory:
    return get_scoped(FinancialCategory, category_id, institution_id, "Category")


def list_categories(
    institution_id: int,
    *,
    type: str | None = None,
    is_active: bool | None = None,
) -> list[FinancialCategory]:
    query = scoped_query(FinancialCategory, institution_id)
    if type:
        query = query.filter(FinancialCategory.type == require_choice(type, CATEGORY_TYPES, "type"))
    if is_active is not None:
        query = query.filter(FinancialCategory.is_active == is_active)
    return query.order_by(FinancialCategory.sort_order, FinancialCategory.name).all()


def delete_category(institution_id: int, category_id: int) -> str:
    """
    Delete a category, or deactivate it once any expense references it.

    Returns "DELETED" or "DEACTIVATED".
    """
    category = get_category(institution_id, category_id)
    outcome = delete_or_deactivate(category)
    db.session.commit()
    return outcome


def seed_default_categories(institution_id: int) -> dict:
    """Create the starter catalog; names already present are left alone."""
    existing = {
        name for (name,) in scoped_query(FinancialCategory, institution_id).with_entities(FinancialCategory.name)
    }
    created = 0
    for entry in DEFAULT_CATEGORIES:
        if entry["name"] in existing:
            continue
        db.session.add(FinancialCategory(institution_id=institution_id, is_active=True, **entry))
        created += 1
    db.session.commit()
    return {"created": created}


def _require_unique_name(institution_id: int, name: str, exclude_id: int | None = None) -> None:
    query = scoped_query(FinancialCategory, institution_id).filter(FinancialCategory.name == name)
    if exclude_id is not None:
        query = query.filter(FinancialCategory.id != exclude_id)
    if query.first():
        raise ConflictError(f"Category '{name}' already exists in institution {institution_id}")


def _apply_fields(category: FinancialCategory, fields: dict) -> None:
    for key, value in fields.items():
        if key in TEXT_FIELDS:
            setattr(category, key, value)
        elif key == "type":
            category.type = require_choice(value, CATEGORY_TYPES, key)
        elif key == "budget_amount":
            category.budget_amount = optional_money(value, key)
        elif key == "sort_order":
            category.sort_order = coerce_int(value, key, minimum=0)
        elif key == "is_active":
            category.is_active = bool(value)
        else:
            raise ValidationError(f"Unknown category field: {key}")
