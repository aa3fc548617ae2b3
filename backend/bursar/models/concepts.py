from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_iso_date, to_utc_z

class ChargeConcept(db.Model):
    """
    Template describing something an institution charges for.

    WHY: Obligations are instantiated from concepts ("Monthly Tuition",
    "Uniform", "Exam fee"), inheriting the default amount and due date.

    LIFECYCLE: Concepts referenced by any obligation are never deleted,
    only deactivated (see retention_service.can_hard_delete).
    """
    __tablename__ = "charge_concepts"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "name", name="uq_charge_concepts_institution_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)

    name = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(80), nullable=True)

    default_amount = db.Column(Money, nullable=False)

    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    is_massive = db.Column(db.Boolean, nullable=False, default=False)  # offered for bulk generation
    allow_partial = db.Column(db.Boolean, nullable=False, default=True)
    allow_discount = db.Column(db.Boolean, nullable=False, default=True)

    valid_from = db.Column(db.Date, nullable=True)
    valid_until = db.Column(db.Date, nullable=True)
    due_date = db.Column(db.Date, nullable=True)

    # Late-fee policy: FIXED amount or PERCENTAGE of the balance
    late_fee_type = db.Column(db.String(16), nullable=True)
    late_fee_value = db.Column(Money, nullable=True)  # amount, or percent points
    grace_period_days = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    institution = db.relationship("Institution", backref=db.backref("charge_concepts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "default_amount": money_str(self.default_amount),
            "is_recurring": self.is_recurring,
            "is_massive": self.is_massive,
            "allow_partial": self.allow_partial,
            "allow_discount": self.allow_discount,
            "valid_from": to_iso_date(self.valid_from),
            "valid_until": to_iso_date(self.valid_until),
            "due_date": to_iso_date(self.due_date),
            "late_fee_type": self.late_fee_type,
            "late_fee_value": money_str(self.late_fee_value),
            "grace_period_days": self.grace_period_days,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
