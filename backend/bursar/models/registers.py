from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_iso_date, to_utc_z

class CashRegisterClose(db.Model):
    """
    Daily cash register close for an institution.

    WHY: Cashier accountability. Non-voided payments of the day are summed per
    payment-method bucket and the cash bucket is reconciled against a
    physical count.

    DESIGN: One row per (institution, close_date). Re-closing the same day
    recomputes and overwrites the row; closing is idempotent, not additive.
    variance = physical_cash - cash_total (negative means shortfall).
    """
    __tablename__ = "cash_register_closes"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "close_date", name="uq_cash_closes_institution_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)
    close_date = db.Column(db.Date, nullable=False, index=True)

    # Totals per method bucket
    cash_total = db.Column(Money, nullable=False, default=0)
    transfer_total = db.Column(Money, nullable=False, default=0)  # TRANSFER, PSE, NEQUI, DAVIPLATA
    card_total = db.Column(Money, nullable=False, default=0)
    other_total = db.Column(Money, nullable=False, default=0)
    grand_total = db.Column(Money, nullable=False, default=0)
    payment_count = db.Column(db.Integer, nullable=False, default=0)

    # Reconciliation (set only when a physical count is supplied)
    physical_cash = db.Column(Money, nullable=True)
    variance = db.Column(Money, nullable=True)  # signed

    notes = db.Column(db.Text, nullable=True)
    closed_by_user_id = db.Column(db.Integer, nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    institution = db.relationship("Institution", backref=db.backref("cash_register_closes", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "close_date": to_iso_date(self.close_date),
            "cash_total": money_str(self.cash_total),
            "transfer_total": money_str(self.transfer_total),
            "card_total": money_str(self.card_total),
            "other_total": money_str(self.other_total),
            "grand_total": money_str(self.grand_total),
            "payment_count": self.payment_count,
            "physical_cash": money_str(self.physical_cash),
            "variance": money_str(self.variance),
            "notes": self.notes,
            "closed_by_user_id": self.closed_by_user_id,
            "closed_at": to_utc_z(self.closed_at),
        }
