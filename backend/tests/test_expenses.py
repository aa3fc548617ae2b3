# Overview: Pytest coverage for categories and the expense ledger (approval, voids, budget stats).

from datetime import date
from decimal import Decimal

import pytest

from bursar.models import FinancialCategory, FinancialExpense
from bursar.services import category_service, expense_service, third_party_service
from bursar.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def stationery(institution):
    return category_service.create_category(institution.id, name="Stationery", budget_amount="100000")


@pytest.fixture
def provider(institution):
    return third_party_service.create_third_party(institution.id, type="OTHER", name="Papeleria Sur")


def spend(institution, actor_id, category, amount, **kwargs):
    kwargs.setdefault("expense_date", date(2026, 2, 3))
    description = kwargs.pop("description", "Supplies")
    return expense_service.create_expense(institution.id, actor_id, category.id, description, amount, **kwargs)


class TestCategories:
    def test_create_defaults_to_expense(self, db_session, institution, stationery):
        assert stationery.type == "EXPENSE"
        assert stationery.budget_amount == Decimal("100000")
        assert stationery.is_active is True

    def test_duplicate_name_conflicts(self, db_session, institution, stationery):
        with pytest.raises(ConflictError, match="Stationery"):
            category_service.create_category(institution.id, name="Stationery", type="INCOME")

    def test_same_name_allowed_in_other_institution(self, db_session, other_institution, stationery):
        other = category_service.create_category(other_institution.id, name="Stationery")
        assert other.id != stationery.id

    def test_rename_to_existing_name_conflicts(self, db_session, institution, stationery):
        events = category_service.create_category(institution.id, name="Events", type="income")
        with pytest.raises(ConflictError):
            category_service.update_category(institution.id, events.id, name="Stationery")

    def test_update_budget_and_clear_it(self, db_session, institution, stationery):
        updated = category_service.update_category(institution.id, stationery.id, budget_amount="250000.50")
        assert updated.budget_amount == Decimal("250000.50")

        cleared = category_service.update_category(institution.id, stationery.id, budget_amount=None)
        assert cleared.budget_amount is None

    @pytest.mark.parametrize("fields", [
        {"type": "TRANSFER"},
        {"budget_amount": "-1"},
        {"budget_amount": 10.5},
        {"sort_order": -1},
        {"owner": "someone"},
    ])
    def test_invalid_fields_rejected(self, db_session, institution, fields):
        with pytest.raises(ValidationError):
            category_service.create_category(institution.id, name="Broken", **fields)
        assert db_session.query(FinancialCategory).filter_by(name="Broken").count() == 0

    def test_list_filters_by_type(self, db_session, institution, stationery):
        category_service.create_category(institution.id, name="Events", type="INCOME")

        names = [c.name for c in category_service.list_categories(institution.id, type="income")]
        assert names == ["Events"]

    def test_unused_category_is_deleted(self, db_session, institution, stationery):
        assert category_service.delete_category(institution.id, stationery.id) == "DELETED"
        assert db_session.get(FinancialCategory, stationery.id) is None

    def test_category_with_expense_is_deactivated(self, db_session, institution, stationery, actor_id):
        spend(institution, actor_id, stationery, "1000")
        assert category_service.delete_category(institution.id, stationery.id) == "DEACTIVATED"
        assert category_service.get_category(institution.id, stationery.id).is_active is False

    def test_seed_defaults_skips_existing_names(self, db_session, institution):
        category_service.create_category(institution.id, name="Premios", type="EXPENSE")

        first = category_service.seed_default_categories(institution.id)
        again = category_service.seed_default_categories(institution.id)

        assert first == {"created": len(category_service.DEFAULT_CATEGORIES) - 1}
        assert again == {"created": 0}

    def test_get_from_other_institution_is_not_found(self, db_session, other_institution, stationery):
        with pytest.raises(NotFoundError):
            category_service.get_category(other_institution.id, stationery.id)


class TestCreateExpense:
    def test_create_with_provider(self, db_session, institution, stationery, provider, actor_id):
        expense = spend(
            institution, actor_id, stationery, "85000.00",
            provider_id=provider.id, payment_method="transfer", invoice_number="FV-2231",
        )

        assert expense.amount == Decimal("85000.00")
        assert expense.payment_method == "TRANSFER"
        assert expense.invoice_number == "FV-2231"
        assert expense.registered_by_user_id == actor_id
        assert expense.is_approved is False
        assert expense.to_dict()["category_name"] == "Stationery"

    def test_expense_date_defaults_to_today(self, db_session, institution, stationery, actor_id):
        expense = expense_service.create_expense(institution.id, actor_id, stationery.id, "Paper", "1000")
        assert isinstance(expense.expense_date, date)

    @pytest.mark.parametrize("amount", ["0", "-5", 12.5, "1.001"])
    def test_invalid_amounts_rejected(self, db_session, institution, stationery, actor_id, amount):
        with pytest.raises(ValidationError):
            spend(institution, actor_id, stationery, amount)
        assert db_session.query(FinancialExpense).count() == 0

    def test_invalid_method_rejected(self, db_session, institution, stationery, actor_id):
        with pytest.raises(ValidationError):
            spend(institution, actor_id, stationery, "1000", payment_method="BARTER")

    def test_inactive_category_rejected(self, db_session, institution, stationery, actor_id):
        category_service.update_category(institution.id, stationery.id, is_active=False)
        with pytest.raises(ValidationError, match="inactive"):
            spend(institution, actor_id, stationery, "1000")

    def test_foreign_category_not_found(self, db_session, institution, other_institution, actor_id):
        foreign = category_service.create_category(other_institution.id, name="Theirs")
        with pytest.raises(NotFoundError):
            spend(institution, actor_id, foreign, "1000")

    def test_unknown_provider_not_found(self, db_session, institution, stationery, actor_id):
        with pytest.raises(NotFoundError, match="Provider"):
            spend(institution, actor_id, stationery, "1000", provider_id=99999)
        assert db_session.query(FinancialExpense).count() == 0

    def test_provider_with_expense_is_deactivated(self, db_session, institution, stationery, provider, actor_id):
        spend(institution, actor_id, stationery, "1000", provider_id=provider.id)
        assert third_party_service.delete_third_party(institution.id, provider.id) == "DEACTIVATED"


class TestApproveAndVoid:
    def test_approve_once(self, db_session, institution, stationery, actor_id):
        expense = spend(institution, actor_id, stationery, "1000")

        approved = expense_service.approve_expense(institution.id, expense.id, 777)
        assert approved.is_approved is True
        assert approved.approved_by_user_id == 777

        with pytest.raises(ConflictError, match="already approved"):
            expense_service.approve_expense(institution.id, expense.id, actor_id)

    def test_void_flags_row(self, db_session, institution, stationery, actor_id):
        expense = spend(institution, actor_id, stationery, "1000")

        voided = expense_service.void_expense(institution.id, expense.id, actor_id, "Registered twice")

        assert voided.is_voided is True
        assert voided.voided_by_user_id == actor_id
        assert voided.void_reason == "Registered twice"
        assert db_session.get(FinancialExpense, expense.id) is not None

    def test_double_void_conflicts(self, db_session, institution, stationery, actor_id):
        expense = spend(institution, actor_id, stationery, "1000")
        expense_service.void_expense(institution.id, expense.id, actor_id, "Error")
        with pytest.raises(ConflictError, match="already voided"):
            expense_service.void_expense(institution.id, expense.id, actor_id, "Again")

    def test_voided_expense_cannot_be_approved(self, db_session, institution, stationery, actor_id):
        expense = spend(institution, actor_id, stationery, "1000")
        expense_service.void_expense(institution.id, expense.id, actor_id, "Error")
        with pytest.raises(ConflictError, match="voided"):
            expense_service.approve_expense(institution.id, expense.id, actor_id)

    def test_void_requires_reason(self, db_session, institution, stationery, actor_id):
        expense = spend(institution, actor_id, stationery, "1000")
        with pytest.raises(ValidationError):
            expense_service.void_expense(institution.id, expense.id, actor_id, "  ")

    def test_foreign_expense_not_found(self, db_session, institution, other_institution, stationery, actor_id):
        expense = spend(institution, actor_id, stationery, "1000")
        with pytest.raises(NotFoundError):
            expense_service.void_expense(other_institution.id, expense.id, actor_id, "Not mine")


class TestExpenseQueries:
    def test_list_hides_voided_and_filters(self, db_session, institution, stationery, provider, actor_id):
        events = category_service.create_category(institution.id, name="Events")
        early = spend(institution, actor_id, stationery, "1000", expense_date=date(2026, 2, 1))
        late = spend(institution, actor_id, events, "2000", expense_date=date(2026, 2, 5), provider_id=provider.id)
        voided = spend(institution, actor_id, stationery, "3000")
        expense_service.void_expense(institution.id, voided.id, actor_id, "Error")

        assert [e.id for e in expense_service.list_expenses(institution.id)] == [late.id, early.id]
        assert len(expense_service.list_expenses(institution.id, include_voided=True)) == 3
        assert [e.id for e in expense_service.list_expenses(institution.id, category_id=events.id)] == [late.id]
        assert [e.id for e in expense_service.list_expenses(institution.id, provider_id=provider.id)] == [late.id]

        window = expense_service.list_expenses(institution.id, date_from=date(2026, 2, 1), date_to=date(2026, 2, 1))
        assert [e.id for e in window] == [early.id]

    def test_stats_exclude_voided_and_report_budgets(self, db_session, institution, stationery, actor_id):
        events = category_service.create_category(institution.id, name="Events")
        prizes = category_service.create_category(institution.id, name="Prizes", budget_amount="10000")

        spend(institution, actor_id, stationery, "30000")
        spend(institution, actor_id, stationery, "50000")
        voided = spend(institution, actor_id, stationery, "20000")
        expense_service.void_expense(institution.id, voided.id, actor_id, "Error")
        spend(institution, actor_id, events, "70000")
        spend(institution, actor_id, prizes, "15000")

        stats = expense_service.expense_stats(institution.id)

        assert stats["count"] == 4
        assert stats["total"] == "165000.00"
        assert stats["by_category"] == [
            {"category_id": events.id, "name": "Events", "count": 1, "total": "70000.00", "budget_amount": None},
            {
                "category_id": prizes.id, "name": "Prizes", "count": 1, "total": "15000.00",
                "budget_amount": "10000.00", "budget_remaining": "0.00", "over_budget": True,
            },
            {
                "category_id": stationery.id, "name": "Stationery", "count": 2, "total": "80000.00",
                "budget_amount": "100000.00", "budget_remaining": "20000.00", "over_budget": False,
            },
        ]

    def test_stats_date_window(self, db_session, institution, stationery, actor_id):
        spend(institution, actor_id, stationery, "1000", expense_date=date(2026, 1, 31))
        spend(institution, actor_id, stationery, "2000", expense_date=date(2026, 2, 28))

        stats = expense_service.expense_stats(institution.id, date_from=date(2026, 2, 1), date_to=date(2026, 2, 28))
        assert (stats["count"], stats["total"]) == (1, "2000.00")

    def test_stats_empty(self, db_session, institution):
        assert expense_service.expense_stats(institution.id) == {"count": 0, "total": "0.00", "by_category": []}


class TestExpenseRoutes:
    def test_category_and_expense_flow(self, client, headers):
        created = client.post(
            "/api/finance/categories", json={"name": "Stationery", "budget_amount": "50000"}, headers=headers
        )
        assert created.status_code == 201
        category_id = created.get_json()["category"]["id"]

        duplicate = client.post("/api/finance/categories", json={"name": "Stationery"}, headers=headers)
        assert duplicate.status_code == 409

        expense = client.post(
            "/api/finance/expenses",
            json={"category_id": category_id, "description": "Paper", "amount": "12000", "expense_date": "2026-02-03"},
            headers=headers,
        )
        assert expense.status_code == 201
        expense_id = expense.get_json()["expense"]["id"]
        assert expense.get_json()["expense"]["expense_date"] == "2026-02-03"

        approved = client.post(f"/api/finance/expenses/{expense_id}/approve", headers=headers)
        assert approved.status_code == 200
        assert approved.get_json()["expense"]["is_approved"] is True

        stats = client.get("/api/finance/expenses/stats", headers=headers).get_json()
        assert stats["by_category"][0]["budget_remaining"] == "38000.00"

        voided = client.post(f"/api/finance/expenses/{expense_id}/void", json={"reason": "Dup"}, headers=headers)
        assert voided.status_code == 200
        again = client.post(f"/api/finance/expenses/{expense_id}/void", json={"reason": "Dup"}, headers=headers)
        assert again.status_code == 409

        listed = client.get("/api/finance/expenses", headers=headers).get_json()
        assert listed["count"] == 0

    def test_float_amount_rejected(self, client, headers, stationery):
        response = client.post(
            "/api/finance/expenses",
            json={"category_id": stationery.id, "description": "Paper", "amount": 10.5},
            headers=headers,
        )
        assert response.status_code == 400

    def test_foreign_category_is_404(self, client, headers, other_institution):
        foreign = category_service.create_category(other_institution.id, name="Theirs")
        response = client.post(
            "/api/finance/expenses",
            json={"category_id": foreign.id, "description": "Paper", "amount": "1000"},
            headers=headers,
        )
        assert response.status_code == 404
