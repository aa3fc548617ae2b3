# Overview: Service-layer operations for expenses; registration, approval, voids and expense stats.

"""
Expense Ledger

WHY: Money leaving the institution is recorded against a category (and
optionally a provider) so spending can be compared with category budgets.

DESIGN PRINCIPLES:
- Expenses are never deleted: a void flags the row with actor and reason
- Voided expenses are hidden from listings by default and excluded from
  every total
- Approval is a one-time sign-off; voided expenses cannot be approved
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import FinancialCategory, FinancialExpense, ThirdParty
from ..money import ZERO, clamp_zero, money_str, to_money
from ..validation import ConflictError, ValidationError, coerce_date, require_choice, require_text
from bursar.time_utils import local_today, utcnow
from .concurrency import run_with_retry
from .payment_service import VALID_PAYMENT_METHODS
from .tenant_service import get_scoped, require_institution, scoped_query


OPTIONAL_TEXT_FIELDS = {"invoice_number": 64, "transaction_ref": 128}


def create_expense(
    institution_id: int,
    actor_id: int,
    category_id: int,
    description: str,
    amount,
    *,
    provider_id: int | None = None,
    expense_date: date | None = None,
    invoice_date: date | None = None,
    payment_method: str | None = None,
    invoice_number: str | None = None,
    transaction_ref: str | None = None,
    notes: str | None = None,
) -> FinancialExpense:
    """
    Register an expense.

    Args:
        amount: Positive money value
        expense_date: Defaults to today in the institution's timezone

    Raises:
        ValidationError: invalid amount, method or text fields
        NotFoundError: category or provider absent from the institution
    """
    description = require_text(description, "description", max_length=255)
    amount = to_money(amount, "amount", allow_zero=False)
    method = require_choice(payment_method, VALID_PAYMENT_METHODS, "payment_method") if payment_method else None
    texts = {
        field: _optional_text(value, field)
        for field, value in (("invoice_number", invoice_number), ("transaction_ref", transaction_ref))
    }
    expense_day = coerce_date(expense_date, "expense_date")
    invoice_day = coerce_date(invoice_date, "invoice_date")

    def _op():
        institution = require_institution(institution_id)
        category = get_scoped(FinancialCategory, category_id, institution_id, "Category")
        if not category.is_active:
            raise ValidationError(f"Category {category_id} is inactive")
        if provider_id is not None:
            get_scoped(ThirdParty, provider_id, institution_id, "Provider")

        expense = FinancialExpense(
            institution_id=institution_id,
            category_id=category.id,
            provider_id=provider_id,
            description=description,
            amount=amount,
            expense_date=expense_day or local_today(institution.timezone),
            invoice_date=invoice_day,
            payment_method=method,
            notes=notes,
            registered_by_user_id=actor_id,
            **texts,
        )
        db.session.add(expense)
        db.session.commit()
        return expense

    expense = run_with_retry(_op)
    current_app.logger.info(
        "Expense %s registered in institution %s: %s (category %s)",
        expense.id, institution_id, amount, category_id,
    )
    return expense


def approve_expense(institution_id: int, expense_id: int, actor_id: int) -> FinancialExpense:
    """
    Raises:
        ConflictError: expense voided or already approved
    """

    def _op():
        expense = get_scoped(FinancialExpense, expense_id, institution_id, "Expense", for_update=True)
        if expense.is_voided:
            raise ConflictError(f"Expense {expense_id} is voided")
        if expense.is_approved:
            raise ConflictError(f"Expense {expense_id} is already approved")

        expense.approved_by_user_id = actor_id
        expense.approved_at = utcnow()
        db.session.commit()
        return expense

    return run_with_retry(_op)


def void_expense(institution_id: int, expense_id: int, actor_id: int, reason: str) -> FinancialExpense:
    """
    Flag an expense as voided; the row stays for audit.

    Raises:
        ConflictError: expense already voided
    """
    reason = require_text(reason, "reason", max_length=255)

    def _op():
        expense = get_scoped(FinancialExpense, expense_id, institution_id, "Expense", for_update=True)
        if expense.is_voided:
            raise ConflictError(f"Expense {expense_id} is already voided")

        expense.voided_at = utcnow()
        expense.voided_by_user_id = actor_id
        expense.void_reason = reason
        db.session.commit()
        return expense

    expense = run_with_retry(_op)
    current_app.logger.info("Expense %s voided in institution %s by %s", expense_id, institution_id, actor_id)
    return expense


def get_expense(institution_id: int, expense_id: int) -> FinancialExpense:
    return get_scoped(FinancialExpense, expense_id, institution_id, "Expense")


def list_expenses(
    institution_id: int,
    *,
    category_id: int | None = None,
    provider_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    include_voided: bool = False,
) -> list[FinancialExpense]:
    """List expenses, newest expense_date first. Date bounds are inclusive."""
    query = _filtered(institution_id, date_from, date_to, include_voided)
    if category_id is not None:
        query = query.filter(FinancialExpense.category_id == category_id)
    if provider_id is not None:
        query = query.filter(FinancialExpense.provider_id == provider_id)
    return query.order_by(FinancialExpense.expense_date.desc(), FinancialExpense.id.desc()).all()


def expense_stats(
    institution_id: int,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    """
    Non-voided spending overall and per category.

    Categories with a budget_amount also report budget_remaining, floored
    at zero, and whether the budget was exceeded.
    """
    rows = (
        _filtered(institution_id, date_from, date_to, include_voided=False)
        .join(FinancialCategory, FinancialCategory.id == FinancialExpense.category_id)
        .with_entities(
            FinancialCategory.id,
            FinancialCategory.name,
            FinancialCategory.budget_amount,
            func.count(FinancialExpense.id),
            func.sum(FinancialExpense.amount),
        )
        .group_by(FinancialCategory.id, FinancialCategory.name, FinancialCategory.budget_amount)
        .order_by(FinancialCategory.name)
        .all()
    )

    by_category = []
    total = ZERO
    count = 0
    for category_id, name, budget, cat_count, cat_total in rows:
        cat_total = cat_total or ZERO
        total += cat_total
        count += cat_count
        entry = {
            "category_id": category_id,
            "name": name,
            "count": cat_count,
            "total": money_str(cat_total),
            "budget_amount": money_str(budget),
        }
        if budget is not None:
            entry["budget_remaining"] = money_str(clamp_zero(budget - cat_total))
            entry["over_budget"] = cat_total > budget
        by_category.append(entry)

    return {"count": count, "total": money_str(total), "by_category": by_category}


def _filtered(institution_id: int, date_from: date | None, date_to: date | None, include_voided: bool):
    query = scoped_query(FinancialExpense, institution_id)
    if date_from is not None:
        query = query.filter(FinancialExpense.expense_date >= date_from)
    if date_to is not None:
        query = query.filter(FinancialExpense.expense_date <= date_to)
    if not include_voided:
        query = query.filter(FinancialExpense.voided_at.is_(None))
    return query


def _optional_text(value, field: str) -> str | None:
    if value is None or value == "":
        return None
    return require_text(value, field, max_length=OPTIONAL_TEXT_FIELDS[field])
