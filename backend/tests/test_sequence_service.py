# Overview: Pytest coverage for document number allocation.

import datetime
import threading

import pytest

from bursar.extensions import db
from bursar.models import FinancialSettings
from bursar.services import sequence_service, settings_service
from bursar.services.sequence_service import SERIES_INVOICE, SERIES_OBLIGATION, SERIES_RECEIPT, allocate
from bursar.validation import ValidationError


class TestAllocate:
    def test_first_receipt_initializes_counter(self, db_session, institution):
        assert allocate(institution.id, SERIES_RECEIPT) == "REC-000001"
        assert allocate(institution.id, SERIES_RECEIPT) == "REC-000002"

        settings = db_session.query(FinancialSettings).filter_by(institution_id=institution.id).one()
        assert settings.receipt_next_number == 3

    def test_series_are_independent(self, db_session, institution):
        allocate(institution.id, SERIES_RECEIPT)
        allocate(institution.id, SERIES_RECEIPT)
        assert allocate(institution.id, SERIES_INVOICE) == "FAC-000001"

    def test_institutions_are_independent(self, db_session, institution, other_institution):
        allocate(institution.id, SERIES_RECEIPT)
        assert allocate(other_institution.id, SERIES_RECEIPT) == "REC-000001"

    def test_obligation_reference_carries_local_year(self, db_session, institution):
        reference = allocate(institution.id, SERIES_OBLIGATION)
        year = reference.split("-")[1]
        assert reference.startswith("OBL-")
        assert reference.endswith("-000001")
        assert int(year) in {datetime.date.today().year - 1, datetime.date.today().year, datetime.date.today().year + 1}

    def test_custom_prefix_is_used(self, db_session, institution):
        settings_service.update_settings(institution.id, receipt_prefix="RC")
        assert allocate(institution.id, SERIES_RECEIPT) == "RC-000001"

    def test_unknown_series_rejected(self, db_session, institution):
        with pytest.raises(ValidationError, match="Unknown sequence series"):
            allocate(institution.id, "VOUCHER")

    def test_number_survives_consumer_rollback(self, db_session, institution):
        """Gaps are allowed; reuse is not."""
        allocate(institution.id, SERIES_RECEIPT)
        db.session.rollback()
        assert allocate(institution.id, SERIES_RECEIPT) == "REC-000002"


def test_format_number_pads_to_six_digits():
    assert sequence_service.format_number(SERIES_INVOICE, "FAC", 42) == "FAC-000042"
    assert sequence_service.format_number(SERIES_OBLIGATION, "OBL", 7, "UTC").endswith("-000007")


def test_concurrent_allocations_never_collide(app, db_session, institution):
    institution_id = institution.id
    # Settings row exists before the race starts
    settings_service.get_settings(institution_id)

    allocated = []
    errors = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            try:
                for _ in range(3):
                    number = allocate(institution_id, SERIES_RECEIPT)
                    with lock:
                        allocated.append(number)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(allocated) == 24
    assert len(set(allocated)) == 24
