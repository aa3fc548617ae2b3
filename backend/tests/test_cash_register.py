# Overview: Pytest coverage for the daily cash register close.

from datetime import date, datetime
from decimal import Decimal

import pytest

from bursar.models import CashRegisterClose
from bursar.services import cash_register_service, payment_service
from bursar.services.cash_register_service import bucket_for
from bursar.time_utils import local_day_bounds
from bursar.validation import NotFoundError, ValidationError


DAY = date(2026, 2, 3)


def pay_at(institution, payer, actor_id, amount, method, when):
    return payment_service.register_payment(
        institution.id, actor_id, payer.id, amount, method, payment_date=when
    )


@pytest.mark.parametrize("method,bucket", [
    ("CASH", "cash"),
    ("TRANSFER", "transfer"),
    ("PSE", "transfer"),
    ("NEQUI", "transfer"),
    ("DAVIPLATA", "transfer"),
    ("CARD", "card"),
    ("OTHER", "other"),
])
def test_bucket_for(method, bucket):
    assert bucket_for(method) == bucket


def test_day_bounds_end_at_next_local_midnight():
    assert local_day_bounds(DAY, "America/Bogota") == (datetime(2026, 2, 3, 5, 0), datetime(2026, 2, 4, 5, 0))
    assert local_day_bounds(DAY, "UTC") == (datetime(2026, 2, 3), datetime(2026, 2, 4))


class TestCloseRegister:
    def test_totals_by_bucket_with_negative_variance(self, db_session, institution, payer, actor_id):
        # Bogota is UTC-5: 15:00 UTC is 10:00 local on the same day
        noon = datetime(2026, 2, 3, 15, 0)
        pay_at(institution, payer, actor_id, "50000", "CASH", noon)
        pay_at(institution, payer, actor_id, "30000", "NEQUI", noon)
        pay_at(institution, payer, actor_id, "20000", "CARD", noon)
        voided = pay_at(institution, payer, actor_id, "10000", "CASH", noon)
        payment_service.void_payment(institution.id, voided.id, actor_id, "Wrong payer")

        close = cash_register_service.close_register(institution.id, actor_id, DAY, physical_cash="48000")

        assert close.cash_total == Decimal("50000")
        assert close.transfer_total == Decimal("30000")
        assert close.card_total == Decimal("20000")
        assert close.other_total == Decimal("0")
        assert close.grand_total == Decimal("100000")
        assert close.payment_count == 3
        assert close.physical_cash == Decimal("48000")
        assert close.variance == Decimal("-2000")
        assert close.closed_by_user_id == actor_id

    def test_local_day_window(self, db_session, institution, payer, actor_id):
        # 2026-02-04 03:00 UTC is 2026-02-03 22:00 in Bogota
        pay_at(institution, payer, actor_id, "1000", "CASH", datetime(2026, 2, 4, 3, 0))
        # 2026-02-03 04:00 UTC is still 2026-02-02 in Bogota
        pay_at(institution, payer, actor_id, "7000", "CASH", datetime(2026, 2, 3, 4, 0))

        close = cash_register_service.close_register(institution.id, actor_id, DAY)

        assert close.cash_total == Decimal("1000")
        assert close.payment_count == 1

    def test_last_microseconds_of_day_are_counted(self, db_session, institution, payer, actor_id):
        # 2026-02-04 04:59:59.999500 UTC is 2026-02-03 23:59:59.999500 in Bogota
        pay_at(institution, payer, actor_id, "700", "CASH", datetime(2026, 2, 4, 4, 59, 59, 999500))

        first = cash_register_service.close_register(institution.id, actor_id, DAY)
        second = cash_register_service.close_register(institution.id, actor_id, date(2026, 2, 4))

        assert first.cash_total == Decimal("700")
        assert first.payment_count == 1
        assert second.cash_total == Decimal("0")
        assert second.payment_count == 0

    def test_local_midnight_belongs_to_next_day(self, db_session, institution, payer, actor_id):
        # 2026-02-04 05:00 UTC is exactly 2026-02-04 00:00 in Bogota
        pay_at(institution, payer, actor_id, "900", "CARD", datetime(2026, 2, 4, 5, 0))

        first = cash_register_service.close_register(institution.id, actor_id, DAY)
        second = cash_register_service.close_register(institution.id, actor_id, date(2026, 2, 4))

        assert first.grand_total == Decimal("0")
        assert second.card_total == Decimal("900")

    def test_without_count_variance_is_unset(self, db_session, institution, payer, actor_id):
        pay_at(institution, payer, actor_id, "1000", "CASH", datetime(2026, 2, 3, 15, 0))

        close = cash_register_service.close_register(institution.id, actor_id, DAY)
        assert close.physical_cash is None
        assert close.variance is None

    def test_zero_count_is_a_real_count(self, db_session, institution, payer, actor_id):
        pay_at(institution, payer, actor_id, "1000", "CASH", datetime(2026, 2, 3, 15, 0))

        close = cash_register_service.close_register(institution.id, actor_id, DAY, physical_cash=0)
        assert close.physical_cash == Decimal("0")
        assert close.variance == Decimal("-1000")

    def test_empty_day_closes_with_zeros(self, db_session, institution, actor_id):
        close = cash_register_service.close_register(institution.id, actor_id, DAY, physical_cash="0")

        assert close.grand_total == Decimal("0")
        assert close.payment_count == 0
        assert close.variance == Decimal("0")

    def test_reclose_overwrites_single_row(self, db_session, institution, payer, actor_id):
        pay_at(institution, payer, actor_id, "1000", "CASH", datetime(2026, 2, 3, 15, 0))
        cash_register_service.close_register(institution.id, actor_id, DAY, physical_cash="1000")

        pay_at(institution, payer, actor_id, "500", "CASH", datetime(2026, 2, 3, 16, 0))
        close = cash_register_service.close_register(institution.id, actor_id, DAY, notes="Late payment")

        rows = db_session.query(CashRegisterClose).filter_by(institution_id=institution.id).all()
        assert len(rows) == 1
        assert close.cash_total == Decimal("1500")
        assert close.variance is None
        assert close.notes == "Late payment"

    def test_closes_are_per_institution(self, db_session, institution, other_institution, payer, actor_id):
        pay_at(institution, payer, actor_id, "1000", "CASH", datetime(2026, 2, 3, 15, 0))

        mine = cash_register_service.close_register(institution.id, actor_id, DAY)
        theirs = cash_register_service.close_register(other_institution.id, actor_id, DAY)

        assert mine.grand_total == Decimal("1000")
        assert theirs.grand_total == Decimal("0")

    def test_rejects_non_date(self, db_session, institution, actor_id):
        with pytest.raises(ValidationError):
            cash_register_service.close_register(institution.id, actor_id, "2026-02-03")

    def test_rejects_negative_count(self, db_session, institution, actor_id):
        with pytest.raises(ValidationError):
            cash_register_service.close_register(institution.id, actor_id, DAY, physical_cash="-1")


class TestCloseQueries:
    def test_get_close(self, db_session, institution, actor_id):
        cash_register_service.close_register(institution.id, actor_id, DAY)
        assert cash_register_service.get_close(institution.id, DAY).close_date == DAY

    def test_get_missing_close(self, db_session, institution):
        with pytest.raises(NotFoundError):
            cash_register_service.get_close(institution.id, DAY)

    def test_list_closes_newest_first(self, db_session, institution, actor_id):
        for day in (date(2026, 2, 1), date(2026, 2, 2), DAY):
            cash_register_service.close_register(institution.id, actor_id, day)

        listed = cash_register_service.list_closes(institution.id, date_from=date(2026, 2, 2))
        assert [c.close_date for c in listed] == [DAY, date(2026, 2, 2)]
