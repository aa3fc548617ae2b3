from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_iso_date, to_utc_z

class FinancialInvoice(db.Model):
    """
    Invoice document issued to (INCOME) or received from (EXPENSE) a third party.

    LIFECYCLE:
    - DRAFT: created, editable by re-creation only
    - ISSUED: issue_date stamped
    - PAID: settled
    - CANCELLED: terminal, reason required
    """
    __tablename__ = "financial_invoices"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "invoice_number", name="uq_invoices_institution_number"),
        db.Index("ix_invoices_institution_status", "institution_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)
    third_party_id = db.Column(db.Integer, db.ForeignKey("third_parties.id"), nullable=False, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    invoice_type = db.Column(db.String(16), nullable=False, default="INCOME")  # INCOME, EXPENSE
    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)

    subtotal = db.Column(Money, nullable=False, default=0)
    tax_amount = db.Column(Money, nullable=False, default=0)
    discount_amount = db.Column(Money, nullable=False, default=0)
    total = db.Column(Money, nullable=False, default=0)

    issue_date = db.Column(db.DateTime(timezone=True), nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    third_party = db.relationship("ThirdParty", backref=db.backref("invoices", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "institution_id": self.institution_id,
            "third_party_id": self.third_party_id,
            "invoice_number": self.invoice_number,
            "invoice_type": self.invoice_type,
            "status": self.status,
            "subtotal": money_str(self.subtotal),
            "tax_amount": money_str(self.tax_amount),
            "discount_amount": money_str(self.discount_amount),
            "total": money_str(self.total),
            "issue_date": to_utc_z(self.issue_date) if self.issue_date else None,
            "due_date": to_iso_date(self.due_date),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

class FinancialInvoiceItem(db.Model):
    """Line item on an invoice; may point at the obligation it bills."""
    __tablename__ = "financial_invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("financial_invoices.id"), nullable=False, index=True)
    obligation_id = db.Column(db.Integer, db.ForeignKey("financial_obligations.id"), nullable=True, index=True)

    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(Money, nullable=False)
    line_total = db.Column(Money, nullable=False)

    invoice = db.relationship(
        "FinancialInvoice",
        backref=db.backref("items", lazy=True, order_by="FinancialInvoiceItem.id"),
    )
    obligation = db.relationship("FinancialObligation")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "obligation_id": self.obligation_id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "line_total": money_str(self.line_total),
        }
