from __future__ import annotations

from ..extensions import db
from ..money import Money, money_str
from bursar.time_utils import to_iso_date, to_utc_z

class FinancialCategory(db.Model):
    """
    Named bucket for income or expense movements ("Papeleria", "Eventos").

    WHY: Expenses are reported per category and compared against an
    optional budget_amount.

    LIFECYCLE: A category referenced by any expense is deactivated instead
    of deleted (see retention_service.can_hard_delete).
    """
    __tablename__ = "financial_categories"
    __table_args__ = (
        db.UniqueConstraint("institution_id", "name", name="uq_financial_categories_institution_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)

    name = db.Column(db.String(160), nullable=False)
    code = db.Column(db.String(32), nullable=True)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(16), nullable=False, default="EXPENSE")  # INCOME, EXPENSE

    budget_amount = db.Column(Money, nullable=True)

    color = db.Column(db.String(16), nullable=True)
    icon = db.Column(db.String(64), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "type": self.type,
            "budget_amount": money_str(self.budget_amount),
            "color": self.color,
            "icon": self.icon,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FinancialExpense(db.Model):
    """
    Money paid out by the institution, optionally to a registered provider.

    IMMUTABLE AMOUNTS: Like payments, expenses are never deleted. A void
    flags the row (voided_at/voided_by/void_reason) and voided rows are
    excluded from listings and stats.

    APPROVAL: approved_by_user_id/approved_at are set once; a voided
    expense cannot be approved.
    """
    __tablename__ = "financial_expenses"
    __table_args__ = (
        db.Index("ix_expenses_institution_date", "institution_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    institution_id = db.Column(db.Integer, db.ForeignKey("institutions.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("financial_categories.id"), nullable=False, index=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("third_parties.id"), nullable=True, index=True)

    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(Money, nullable=False)
    expense_date = db.Column(db.Date, nullable=False)

    # Supporting document from the provider
    invoice_number = db.Column(db.String(64), nullable=True)
    invoice_date = db.Column(db.Date, nullable=True)
    payment_method = db.Column(db.String(16), nullable=True)
    transaction_ref = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    registered_by_user_id = db.Column(db.Integer, nullable=False)
    approved_by_user_id = db.Column(db.Integer, nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Void audit trail
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    voided_by_user_id = db.Column(db.Integer, nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    category = db.relationship("FinancialCategory", backref=db.backref("expenses", lazy=True))
    provider = db.relationship("ThirdParty", backref=db.backref("expenses", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_id": self.institution_id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "provider_id": self.provider_id,
            "description": self.description,
            "amount": money_str(self.amount),
            "expense_date": to_iso_date(self.expense_date),
            "invoice_number": self.invoice_number,
            "invoice_date": to_iso_date(self.invoice_date),
            "payment_method": self.payment_method,
            "transaction_ref": self.transaction_ref,
            "notes": self.notes,
            "registered_by_user_id": self.registered_by_user_id,
            "is_approved": self.is_approved,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "is_voided": self.is_voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_user_id": self.voided_by_user_id,
            "void_reason": self.void_reason,
            "version_id": self.version_id,
        }
