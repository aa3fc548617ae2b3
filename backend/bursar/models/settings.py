from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_utc_z

class FinancialSettings(db.Model):
    """
    Per-institution finance settings; backing store of the sequence allocator.

    WHY: Receipt, invoice and obligation numbers must be strictly increasing
    per institution. Each series keeps its own prefix and next_number column.

    CONCURRENCY: *_next_number columns are only ever advanced through
    sequence_service.allocate (atomic UPDATE ... SET n = n + 1).
    """
    __tablename__ = "financial_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, unique=True)

    # Sequence series
    receipt_prefix = db.Column(db.String(16), nullable=False, default="REC")
    receipt_next_number = db.Column(db.Integer, nullable=False, default=1)
    invoice_prefix = db.Column(db.String(16), nullable=False, default="FAC")
    invoice_next_number = db.Column(db.Integer, nullable=False, default=1)
    obligation_prefix = db.Column(db.String(16), nullable=False, default="OBL")
    obligation_next_number = db.Column(db.Integer, nullable=False, default=1)

    # Default late-fee policy for new concepts
    default_late_fee_type = db.Column(db.String(16), nullable=True)
    default_late_fee_value = db.Column(Money, nullable=True)
    default_grace_period_days = db.Column(db.Integer, nullable=True)

    # Fiscal identity
    tax_id = db.Column(db.String(64), nullable=True)
    tax_regime = db.Column(db.String(64), nullable=True)

    # Reminders
    send_payment_reminders = db.Column(db.Boolean, nullable=False, default=False)
    reminder_days_before = db.Column(db.Integer, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    institution = db.relationship("Institution", backref=db.backref("financial_settings", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "receipt_prefix": self.receipt_prefix,
            "receipt_next_number": self.receipt_next_number,
            "invoice_prefix": self.invoice_prefix,
            "invoice_next_number": self.invoice_next_number,
            "obligation_prefix": self.obligation_prefix,
            "obligation_next_number": self.obligation_next_number,
            "default_late_fee_type": self.default_late_fee_type,
            "default_late_fee_value": money_str(self.default_late_fee_value),
            "default_grace_period_days": self.default_grace_period_days,
            "tax_id": self.tax_id,
            "tax_regime": self.tax_regime,
            "send_payment_reminders": self.send_payment_reminders,
            "reminder_days_before": self.reminder_days_before,
            "updated_at": to_utc_z(self.updated_at),
        }
