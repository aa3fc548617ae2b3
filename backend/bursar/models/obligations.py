from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_iso_date, to_utc_z

class FinancialObligation(db.Model):
    """
    A single charge owed by one third party for one concept.

    INVARIANTS (at rest):
    - total_amount = max(0, original_amount - discount_amount)
    - balance = max(0, total_amount - paid_amount)
    - status is derived from total_amount and paid_amount

    Mutated only through obligation_service / payment_service. Rows are
    locked and version-checked on every balance change.

    STATUS: PENDING, PARTIAL, OVERDUE, PAID, CANCELLED (terminal)
    """
    __tablename__ = "financial_obligations"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "reference", name="uq_obligations_institution_reference"),
        db.Index("ix_obligations_party_concept_status", "third_party_id", "concept_id", "status"),
        db.Index("ix_obligations_institution_status_due", "institution_id", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)
    third_party_id = db.Column(db.Integer, db.ForeignKey("third_parties.id"), nullable=False, index=True)
    concept_id = db.Column(db.Integer, db.ForeignKey("charge_concepts.id"), nullable=False, index=True)

    # Human-readable reference (e.g., "OBL-2026-000042")
    reference = db.Column(db.String(64), nullable=False)

    original_amount = db.Column(Money, nullable=False)
    discount_amount = db.Column(Money, nullable=False, default=0)
    total_amount = db.Column(Money, nullable=False)
    paid_amount = db.Column(Money, nullable=False, default=0)
    balance = db.Column(Money, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    due_date = db.Column(db.Date, nullable=True)
    paid_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Discount metadata
    discount_reason = db.Column(db.String(255), nullable=True)
    discount_approved_by = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    third_party = db.relationship("ThirdParty", backref=db.backref("obligations", lazy=True))
    concept = db.relationship("ChargeConcept", backref=db.backref("obligations", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "third_party_id": self.third_party_id,
            "concept_id": self.concept_id,
            "reference": self.reference,
            "original_amount": money_str(self.original_amount),
            "discount_amount": money_str(self.discount_amount),
            "total_amount": money_str(self.total_amount),
            "paid_amount": money_str(self.paid_amount),
            "balance": money_str(self.balance),
            "status": self.status,
            "due_date": to_iso_date(self.due_date),
            "paid_date": to_utc_z(self.paid_date) if self.paid_date else None,
            "discount_reason": self.discount_reason,
            "discount_approved_by": self.discount_approved_by,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
