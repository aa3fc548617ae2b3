# Overview: Service-layer operations for third parties (payers); registry and directory materialization.

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ThirdParty
from ..validation import ConflictError, ValidationError, require_choice, require_text
from .directory_service import DIRECTORY_KINDS, PersonRecord, get_directory
from .concurrency import run_with_retry
from .retention_service import delete_or_deactivate
from .tenant_service import get_scoped, scoped_query


TYPE_STUDENT = "STUDENT"
TYPE_STAFF = "STAFF"
TYPE_GUARDIAN = "GUARDIAN"
TYPE_OTHER = "OTHER"

THIRD_PARTY_TYPES = [TYPE_STUDENT, TYPE_STAFF, TYPE_GUARDIAN, TYPE_OTHER]

# Fields a client may set besides type/name/reference_id
PROFILE_FIELDS = {
    "document",
    "document_type",
    "email",
    "phone",
    "address",
    "business_name",
    "nit",
    "bank_name",
    "bank_account",
    "bank_account_type",
    "notes",
}


def create_third_party(
    institution_id: int,
    *,
    type: str,
    name: str,
    reference_id: str | None = None,
    **profile,
) -> ThirdParty:
    """
    Register a payer explicitly.

    Raises:
        ConflictError: another third party of the same type already points at reference_id
    """
    party_type = require_choice(type, THIRD_PARTY_TYPES, "type")
    name = require_text(name, "name", max_length=255)
    _reject_unknown_fields(profile)

    if reference_id is not None:
        reference_id = str(reference_id)
        existing = scoped_query(ThirdParty, institution_id).filter_by(
            type=party_type,
            reference_id=reference_id,
        ).first()
        if existing:
            raise ConflictError(
                f"Third party of type {party_type} with reference {reference_id} "
                f"already exists in institution {institution_id}"
            )

    party = ThirdParty(
        institution_id=institution_id,
        type=party_type,
        reference_id=reference_id,
        name=name,
        is_active=True,
        **profile,
    )
    db.session.add(party)
    db.session.commit()
    return party


def update_third_party(institution_id: int, third_party_id: int, **changes) -> ThirdParty:
    def _op():
        fields = dict(changes)
        party = get_third_party(institution_id, third_party_id)

        if "name" in fields:
            party.name = require_text(fields.pop("name"), "name", max_length=255)
        if "is_active" in fields:
            party.is_active = bool(fields.pop("is_active"))
        _reject_unknown_fields(fields)

        for key, value in fields.items():
            setattr(party, key, value)

        db.session.commit()
        return party

    return run_with_retry(_op)


def get_third_party(institution_id: int, third_party_id: int) -> ThirdParty:
    return get_scoped(ThirdParty, third_party_id, institution_id, "Third party")


def list_third_parties(
    institution_id: int,
    *,
    type: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
) -> list[ThirdParty]:
    query = scoped_query(ThirdParty, institution_id)

    if type:
        query = query.filter(ThirdParty.type == require_choice(type, THIRD_PARTY_TYPES, "type"))
    if is_active is not None:
        query = query.filter(ThirdParty.is_active == is_active)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            ThirdParty.name.ilike(pattern),
            ThirdParty.document.ilike(pattern),
            ThirdParty.email.ilike(pattern),
        ))

    return query.order_by(ThirdParty.name).all()


def delete_third_party(institution_id: int, third_party_id: int) -> str:
    """
    Delete a payer, or deactivate it when it owns ledger history.

    Returns "DELETED" or "DEACTIVATED".
    """
    party = get_third_party(institution_id, third_party_id)
    outcome = delete_or_deactivate(party)
    db.session.commit()
    return outcome


# =============================================================================
# DIRECTORY MATERIALIZATION
# =============================================================================

def get_or_create_from_directory(institution_id: int, kind: str, external_id) -> ThirdParty | None:
    """
    Return the third party mirroring a directory person, creating it on first use.

    Returns None when the directory does not know the person. Commits the new
    row on its own so later units of work can reference it.
    """
    kind = require_choice(kind, DIRECTORY_KINDS, "kind")
    external_id = str(external_id)

    party = _find_by_reference(institution_id, kind, external_id)
    if party:
        return party

    person = get_directory().resolve_person(institution_id, kind, external_id)
    if person is None:
        return None

    party = ThirdParty(institution_id=institution_id, type=kind, reference_id=external_id, is_active=True)
    _copy_person(party, person)
    db.session.add(party)
    try:
        db.session.commit()
    except IntegrityError:
        # Someone else materialized the same person first
        db.session.rollback()
        party = _find_by_reference(institution_id, kind, external_id)
    return party


def sync_from_directory(institution_id: int, kinds: list[str]) -> dict:
    """
    Create or refresh third parties for every active directory person of the given kinds.

    Returns:
        {"created": n, "updated": n}
    """
    results = {"created": 0, "updated": 0}
    directory = get_directory()

    for kind in kinds:
        kind = require_choice(kind, DIRECTORY_KINDS, "kind")
        for person in directory.list_people(institution_id, kind):
            party = _find_by_reference(institution_id, kind, person.external_id)
            if party:
                _copy_person(party, person)
                results["updated"] += 1
            else:
                party = ThirdParty(
                    institution_id=institution_id,
                    type=kind,
                    reference_id=person.external_id,
                    is_active=True,
                )
                _copy_person(party, person)
                db.session.add(party)
                results["created"] += 1

    db.session.commit()
    return results


def _find_by_reference(institution_id: int, kind: str, external_id: str) -> ThirdParty | None:
    return scoped_query(ThirdParty, institution_id).filter_by(
        type=kind,
        reference_id=external_id,
    ).first()


def _copy_person(party: ThirdParty, person: PersonRecord) -> None:
    party.name = person.name
    party.document = person.document_id
    party.document_type = person.document_type
    party.email = person.email
    party.phone = person.phone


def _reject_unknown_fields(fields: dict) -> None:
    unknown = set(fields) - PROFILE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown third party fields: {sorted(unknown)}")
