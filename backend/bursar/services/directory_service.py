# Overview: Bridge to the external people directory (students, staff, guardians).

"""
Third-Party Directory Bridge

WHY: The academic side of the platform owns the people directory. Finance
only needs to (a) resolve one person when charging them for the first time
and (b) expand a population (grade, group) into people for bulk charges.

DESIGN:
- DirectoryBridge is the contract; RosterDirectory is the default
  implementation reading the roster tables.
- A different bridge can be installed per app with init_directory().
- Bridges are read-only: they never write finance rows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import RosterPerson, RosterEnrollment


EXTENSION_KEY = "bursar.directory"

KIND_STUDENT = "STUDENT"
KIND_STAFF = "STAFF"
KIND_GUARDIAN = "GUARDIAN"

DIRECTORY_KINDS = [KIND_STUDENT, KIND_STAFF, KIND_GUARDIAN]


@dataclass(frozen=True)
class PersonRecord:
    external_id: str
    kind: str
    name: str
    document_id: str | None = None
    document_type: str | None = None
    email: str | None = None
    phone: str | None = None


class DirectoryBridge(ABC):
    """Contract for people-directory collaborators; every method is required."""

    @abstractmethod
    def resolve_person(self, institution_id: int, kind: str, external_id: str) -> PersonRecord | None:
        raise NotImplementedError

    @abstractmethod
    def people_in_grades(self, institution_id: int, grade_ids: list[int]) -> list[str]:
        """External ids of actively enrolled students in the given grades."""
        raise NotImplementedError

    @abstractmethod
    def people_in_groups(self, institution_id: int, group_ids: list[int]) -> list[str]:
        """External ids of actively enrolled students in the given groups."""
        raise NotImplementedError

    @abstractmethod
    def list_people(self, institution_id: int, kind: str) -> list[PersonRecord]:
        """All active people of one kind (used by directory sync)."""
        raise NotImplementedError


class RosterDirectory(DirectoryBridge):
    """DirectoryBridge over the roster_people / roster_enrollments tables."""

    def resolve_person(self, institution_id: int, kind: str, external_id: str) -> PersonRecord | None:
        try:
            person_id = int(external_id)
        except (TypeError, ValueError):
            return None

        person = db.session.query(RosterPerson).filter_by(
            id=person_id,
            institution_id=institution_id,
            kind=kind,
        ).first()
        return _to_record(person) if person else None

    def people_in_grades(self, institution_id: int, grade_ids: list[int]) -> list[str]:
        if not grade_ids:
            return []
        return self._enrolled(institution_id, RosterEnrollment.grade_id.in_(grade_ids))

    def people_in_groups(self, institution_id: int, group_ids: list[int]) -> list[str]:
        if not group_ids:
            return []
        return self._enrolled(institution_id, RosterEnrollment.group_id.in_(group_ids))

    def list_people(self, institution_id: int, kind: str) -> list[PersonRecord]:
        people = db.session.query(RosterPerson).filter_by(
            institution_id=institution_id,
            kind=kind,
            is_active=True,
        ).order_by(RosterPerson.id).all()
        return [_to_record(p) for p in people]

    def _enrolled(self, institution_id: int, criterion) -> list[str]:
        rows = (
            db.session.query(RosterPerson.id)
            .join(RosterEnrollment, RosterEnrollment.person_id == RosterPerson.id)
            .filter(
                RosterPerson.institution_id == institution_id,
                RosterPerson.kind == KIND_STUDENT,
                RosterEnrollment.status == "ACTIVE",
                criterion,
            )
            .order_by(RosterPerson.id)
            .all()
        )
        return [str(row[0]) for row in rows]


def _to_record(person: RosterPerson) -> PersonRecord:
    return PersonRecord(
        external_id=str(person.id),
        kind=person.kind,
        name=person.full_name,
        document_id=person.document_number,
        document_type=person.document_type,
        email=person.email,
        phone=person.phone,
    )


def init_directory(app, bridge: DirectoryBridge) -> None:
    """Install a directory bridge for this app."""
    app.extensions[EXTENSION_KEY] = bridge


def get_directory() -> DirectoryBridge:
    bridge = current_app.extensions.get(EXTENSION_KEY)
    if bridge is None:
        bridge = RosterDirectory()
        current_app.extensions[EXTENSION_KEY] = bridge
    return bridge
