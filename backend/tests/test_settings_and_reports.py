# Overview: Pytest coverage for financial settings and read-only portfolio/collection reports.

from datetime import date, datetime
from decimal import Decimal

import pytest

from bursar.models import FinancialSettings
from bursar.services import (
    obligation_service,
    payment_service,
    reporting_service,
    settings_service,
)
from bursar.services.tenant_service import TenantAccessError
from bursar.validation import NotFoundError, ValidationError


class TestSettings:
    def test_created_with_defaults_on_first_read(self, db_session, institution):
        settings = settings_service.get_settings(institution.id)

        assert settings.receipt_prefix == "REC"
        assert settings.invoice_prefix == "FAC"
        assert settings.obligation_prefix == "OBL"
        assert settings.receipt_next_number == 1
        assert settings.send_payment_reminders is False

        settings_service.get_settings(institution.id)
        assert db_session.query(FinancialSettings).filter_by(institution_id=institution.id).count() == 1

    def test_unknown_institution(self, db_session):
        with pytest.raises(TenantAccessError):
            settings_service.get_settings(4242)

    def test_update_editable_fields(self, db_session, institution):
        settings = settings_service.update_settings(
            institution.id,
            invoice_prefix="FV",
            tax_id=" 900123456-7 ",
            default_late_fee_type="percentage",
            default_late_fee_value="2.50",
            default_grace_period_days="5",
            send_payment_reminders="true",
            reminder_days_before=3,
        )

        assert settings.invoice_prefix == "FV"
        assert settings.tax_id == "900123456-7"
        assert settings.default_late_fee_type == "PERCENTAGE"
        assert settings.default_late_fee_value == Decimal("2.50")
        assert settings.default_grace_period_days == 5
        assert settings.send_payment_reminders is True
        assert settings.reminder_days_before == 3

    def test_counters_are_read_only(self, db_session, institution):
        with pytest.raises(ValidationError, match="Sequence counters"):
            settings_service.update_settings(institution.id, receipt_next_number=1)

    def test_unknown_field(self, db_session, institution):
        with pytest.raises(ValidationError, match="Unknown settings fields"):
            settings_service.update_settings(institution.id, currency="USD")

    @pytest.mark.parametrize("changes", [
        {"receipt_prefix": ""},
        {"default_late_fee_type": "DAILY"},
        {"default_grace_period_days": -1},
        {"send_payment_reminders": "maybe"},
    ])
    def test_invalid_values(self, db_session, institution, changes):
        with pytest.raises(ValidationError):
            settings_service.update_settings(institution.id, **changes)


class TestReports:
    def test_portfolio_stats(self, db_session, institution, concept, payer, second_payer, actor_id):
        obligation_service.create_obligation(institution.id, actor_id, payer.id, concept.id)
        partial = obligation_service.create_obligation(institution.id, actor_id, second_payer.id, concept.id)
        paid = obligation_service.create_obligation(institution.id, actor_id, payer.id, concept.id, amount="30000")
        cancelled = obligation_service.create_obligation(institution.id, actor_id, payer.id, concept.id)

        payment_service.register_payment(institution.id, actor_id, second_payer.id, "25000", "CASH", obligation_id=partial.id)
        payment_service.register_payment(institution.id, actor_id, payer.id, "30000", "CARD", obligation_id=paid.id)
        obligation_service.cancel_obligation(institution.id, cancelled.id, "Duplicate")

        stats = reporting_service.portfolio_stats(institution.id)

        assert stats["pending"] == {"count": 1, "balance": "100000.00"}
        assert stats["partial"] == {"count": 1, "balance": "75000.00"}
        assert stats["overdue"] == {"count": 0, "balance": "0.00"}
        assert stats["paid"] == {"count": 1, "total": "30000.00"}
        assert stats["total_portfolio"] == "175000.00"

    def test_collection_stats_skip_voided(self, db_session, institution, payer, actor_id):
        when = datetime(2026, 2, 3, 15, 0)
        payment_service.register_payment(institution.id, actor_id, payer.id, "1000", "CASH", payment_date=when)
        payment_service.register_payment(institution.id, actor_id, payer.id, "2000", "NEQUI", payment_date=when)
        voided = payment_service.register_payment(institution.id, actor_id, payer.id, "9000", "CASH", payment_date=when)
        payment_service.void_payment(institution.id, voided.id, actor_id, "Error")

        stats = reporting_service.collection_stats(
            institution.id, date_from=date(2026, 2, 3), date_to=date(2026, 2, 3)
        )

        assert stats == {
            "count": 2,
            "total": "3000.00",
            "by_method": {
                "CASH": {"count": 1, "total": "1000.00"},
                "NEQUI": {"count": 1, "total": "2000.00"},
            },
        }

    def test_third_party_summary(self, db_session, institution, concept, payer, actor_id):
        obligation = obligation_service.create_obligation(institution.id, actor_id, payer.id, concept.id)
        payment_service.register_payment(institution.id, actor_id, payer.id, "40000", "CASH", obligation_id=obligation.id)
        payment_service.register_payment(institution.id, actor_id, payer.id, "500", "CASH")

        summary = reporting_service.third_party_summary(institution.id, payer.id)

        assert summary["third_party"]["id"] == payer.id
        assert summary["obligation_count"] == 1
        assert summary["total_charged"] == "100000.00"
        assert summary["total_paid"] == "40000.00"
        assert summary["balance"] == "60000.00"
        assert summary["total_received"] == "40500.00"

    def test_summary_of_foreign_party(self, db_session, other_institution, payer):
        with pytest.raises(NotFoundError):
            reporting_service.third_party_summary(other_institution.id, payer.id)
