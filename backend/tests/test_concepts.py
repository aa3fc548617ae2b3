# Overview: Pytest coverage for the charge concept catalog.

from datetime import date
from decimal import Decimal

import pytest

from bursar.services import concept_service, obligation_service
from bursar.services.retention_service import can_hard_delete
from bursar.validation import ConflictError, NotFoundError, ValidationError


class TestCreateConcept:
    def test_create_with_optional_fields(self, db_session, institution):
        concept = concept_service.create_concept(
            institution.id,
            name="Transport",
            default_amount="45000",
            category="SERVICES",
            is_recurring=True,
            due_date="2026-03-05",
            late_fee_type="percentage",
            late_fee_value="5",
            grace_period_days=3,
        )

        assert concept.id is not None
        assert concept.default_amount == Decimal("45000.00")
        assert concept.due_date == date(2026, 3, 5)
        assert concept.late_fee_type == "PERCENTAGE"
        assert concept.is_active is True

    def test_duplicate_name_conflicts(self, db_session, institution, concept):
        with pytest.raises(ConflictError, match="Tuition"):
            concept_service.create_concept(institution.id, name="Tuition", default_amount="1")

    def test_duplicate_name_conflicts_even_when_inactive(self, db_session, institution, concept):
        concept_service.update_concept(institution.id, concept.id, is_active=False)
        with pytest.raises(ConflictError):
            concept_service.create_concept(institution.id, name="Tuition", default_amount="1")

    def test_same_name_allowed_in_other_institution(self, db_session, other_institution, concept):
        other = concept_service.create_concept(other_institution.id, name="Tuition", default_amount="5")
        assert other.institution_id == other_institution.id

    def test_percentage_late_fee_capped(self, db_session, institution):
        with pytest.raises(ValidationError, match="cannot exceed 100"):
            concept_service.create_concept(
                institution.id,
                name="Books",
                default_amount="10",
                late_fee_type="PERCENTAGE",
                late_fee_value="150",
            )

    def test_validity_window_must_be_ordered(self, db_session, institution):
        with pytest.raises(ValidationError):
            concept_service.create_concept(
                institution.id,
                name="Camp",
                default_amount="10",
                valid_from="2026-06-01",
                valid_until="2026-05-01",
            )

    def test_unknown_field_rejected(self, db_session, institution):
        with pytest.raises(ValidationError, match="Unknown concept field"):
            concept_service.create_concept(institution.id, name="Lab", default_amount="10", colour="red")

    def test_negative_amount_rejected(self, db_session, institution):
        with pytest.raises(ValidationError):
            concept_service.create_concept(institution.id, name="Lab", default_amount="-10")


class TestUpdateConcept:
    def test_rename_into_existing_name_conflicts(self, db_session, institution, concept):
        other = concept_service.create_concept(institution.id, name="Uniform", default_amount="10")
        with pytest.raises(ConflictError):
            concept_service.update_concept(institution.id, other.id, name="Tuition")

    def test_update_amount(self, db_session, institution, concept):
        updated = concept_service.update_concept(institution.id, concept.id, default_amount="120000.50")
        assert updated.default_amount == Decimal("120000.50")


class TestListAndGet:
    def test_filters(self, db_session, institution, concept):
        concept_service.create_concept(institution.id, name="Uniform", default_amount="10", category="GOODS")

        assert [c.name for c in concept_service.list_concepts(institution.id)] == ["Tuition", "Uniform"]
        assert [c.name for c in concept_service.list_concepts(institution.id, category="GOODS")] == ["Uniform"]
        assert [c.name for c in concept_service.list_concepts(institution.id, is_massive=True)] == ["Tuition"]

    def test_get_from_other_institution_is_not_found(self, db_session, other_institution, concept):
        with pytest.raises(NotFoundError, match=f"institution {other_institution.id}"):
            concept_service.get_concept(other_institution.id, concept.id)


class TestDeleteConcept:
    def test_unused_concept_is_deleted(self, db_session, institution, concept):
        assert can_hard_delete(concept) is True
        assert concept_service.delete_concept(institution.id, concept.id) == "DELETED"
        with pytest.raises(NotFoundError):
            concept_service.get_concept(institution.id, concept.id)

    def test_referenced_concept_is_deactivated(self, db_session, institution, concept, payer, actor_id):
        obligation_service.create_obligation(institution.id, actor_id, payer.id, concept.id)

        assert can_hard_delete(concept) is False
        assert concept_service.delete_concept(institution.id, concept.id) == "DEACTIVATED"
        assert concept_service.get_concept(institution.id, concept.id).is_active is False
