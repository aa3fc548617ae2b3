from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_utc_z

class FinancialPayment(db.Model):
    """
    Money received from a third party.

    WHY: Payments drive obligation balances. A payment without an
    obligation is a standalone receipt and touches no balance.

    IMMUTABLE AMOUNTS: Rows are never deleted. A void flags the row
    (voided_at/voided_by/void_reason) and applies a compensating balance
    update; voided rows are excluded from every aggregate.

    METHODS: CASH, TRANSFER, PSE, NEQUI, DAVIPLATA, CARD, OTHER
    """
    __tablename__ = "financial_payments"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "receipt_number", name="uq_payments_institution_receipt"),
        db.Index("ix_payments_institution_date", "institution_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)
    third_party_id = db.Column(db.Integer, db.ForeignKey("third_parties.id"), nullable=False, index=True)
    obligation_id = db.Column(db.Integer, db.ForeignKey("financial_obligations.id"), nullable=True, index=True)

    amount = db.Column(Money, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, index=True)
    transaction_ref = db.Column(db.String(128), nullable=True)  # bank/wallet reference
    receipt_number = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # Attribution
    received_by_user_id = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    # Void audit trail
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    voided_by_user_id = db.Column(db.Integer, nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    third_party = db.relationship("ThirdParty", backref=db.backref("payments", lazy=True))
    obligation = db.relationship("FinancialObligation", backref=db.backref("payments", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "third_party_id": self.third_party_id,
            "obligation_id": self.obligation_id,
            "amount": money_str(self.amount),
            "payment_method": self.payment_method,
            "transaction_ref": self.transaction_ref,
            "receipt_number": self.receipt_number,
            "notes": self.notes,
            "received_by_user_id": self.received_by_user_id,
            "payment_date": to_utc_z(self.payment_date),
            "is_voided": self.is_voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_user_id": self.voided_by_user_id,
            "void_reason": self.void_reason,
            "version_id": self.version_id,
        }
