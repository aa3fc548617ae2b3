from __future__ import annotations

from ..extensions import db
from bursar.time_utils import to_utc_z

class RosterPerson(db.Model):
    """
    People directory owned by the academic side of the platform.

    WHY: Finance never edits these rows. The directory bridge reads them to
    materialize a ThirdParty the first time a person is charged.

    KINDS: STUDENT, STAFF, GUARDIAN
    """
    __tablename__ = "roster_people"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False, index=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    document_number = db.Column(db.String(64), nullable=True)
    document_type = db.Column(db.String(16), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "kind": self.kind,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "document_number": self.document_number,
            "document_type": self.document_type,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class RosterEnrollment(db.Model):
    """Placement of a student in a grade/group for population queries."""
    __tablename__ = "roster_enrollments"
    __table_args__ = (
        db.Index("ix_roster_enrollments_grade_status", "grade_id", "status"),
        db.Index("ix_roster_enrollments_group_status", "group_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("roster_people.id"), nullable=False, index=True)
    grade_id = db.Column(db.Integer, nullable=False)
    group_id = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")  # ACTIVE, WITHDRAWN, GRADUATED

    person = db.relationship("RosterPerson", backref=db.backref("enrollments", lazy=True))
