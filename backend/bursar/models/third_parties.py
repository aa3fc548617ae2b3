from __future__ import annotations

from ..extensions import db
from bursar.time_utils import to_utc_z

class ThirdParty(db.Model):
    """
    Any payer the institution bills: learner, staff member, guardian, other.

    WHY: Finance is decoupled from the rest of the platform. A third party may
    point back at an external directory record (reference_id) but carries its
    own copy of name, document and contact fields.

    DESIGN: Created on demand the first time someone is charged, or
    explicitly registered. Soft-deactivated when it owns history.
    """
    __tablename__ = "third_parties"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "type", "reference_id", name="uq_third_parties_reference"),
        db.Index("ix_third_parties_institution_name", "institution_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)  # STUDENT, STAFF, GUARDIAN, OTHER
    reference_id = db.Column(db.String(64), nullable=True)  # external directory id

    name = db.Column(db.String(255), nullable=False)
    document = db.Column(db.String(64), nullable=True)
    document_type = db.Column(db.String(16), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    business_name = db.Column(db.String(255), nullable=True)
    nit = db.Column(db.String(64), nullable=True)
    bank_name = db.Column(db.String(128), nullable=True)
    bank_account = db.Column(db.String(64), nullable=True)
    bank_account_type = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    institution = db.relationship("Institution", backref=db.backref("third_parties", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "type": self.type,
            "reference_id": self.reference_id,
            "name": self.name,
            "document": self.document,
            "document_type": self.document_type,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "business_name": self.business_name,
            "nit": self.nit,
            "bank_name": self.bank_name,
            "bank_account": self.bank_account,
            "bank_account_type": self.bank_account_type,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
