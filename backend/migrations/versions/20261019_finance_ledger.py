"""Financial ledger: institutions, concepts, third parties, obligations, payments, invoices

Revision ID: 20261019_finance
Revises:
Create Date: 2026-10-19

This migration adds:
1. Institution (tenant root with local timezone)
2. FinancialSettings (sequence counters, prefixes, fiscal identity)
3. RosterPerson and RosterEnrollment (directory backing tables)
4. ChargeConcept and ThirdParty
5. FinancialObligation and FinancialPayment (money stored as integer cents)
6. FinancialInvoice and FinancialInvoiceItem
7. CashRegisterClose (one row per institution per day)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_finance'
down_revision = None
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")


def upgrade():
    # ==========================================================================
    # 1. INSTITUTIONS
    # ==========================================================================
    op.create_table('institutions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_institutions_code', 'institutions', ['code'], unique=True)
    op.create_index('ix_institutions_is_active', 'institutions', ['is_active'])

    # ==========================================================================
    # 2. FINANCIAL SETTINGS
    # ==========================================================================
    op.create_table('financial_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('receipt_prefix', sa.String(length=16), nullable=False, server_default='REC'),
        sa.Column('receipt_next_number', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column('invoice_prefix', sa.String(length=16), nullable=False, server_default='FAC'),
        sa.Column('invoice_next_number', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column('obligation_prefix', sa.String(length=16), nullable=False, server_default='OBL'),
        sa.Column('obligation_next_number', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column('default_late_fee_type', sa.String(length=16), nullable=True),
        sa.Column('default_late_fee_value', sa.BigInteger(), nullable=True),
        sa.Column('default_grace_period_days', sa.Integer(), nullable=True),
        sa.Column('tax_id', sa.String(length=64), nullable=True),
        sa.Column('tax_regime', sa.String(length=64), nullable=True),
        sa.Column('send_payment_reminders', sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column('reminder_days_before', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id'),
        sqlite_autoincrement=True,
    )

    # ==========================================================================
    # 3. ROSTER (DIRECTORY BACKING STORE)
    # ==========================================================================
    op.create_table('roster_people',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=True),
        sa.Column('document_type', sa.String(length=16), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_roster_people_institution_id', 'roster_people', ['institution_id'])
    op.create_index('ix_roster_people_kind', 'roster_people', ['kind'])
    op.create_index('ix_roster_people_is_active', 'roster_people', ['is_active'])

    op.create_table('roster_enrollments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('person_id', sa.Integer(), nullable=False),
        sa.Column('grade_id', sa.Integer(), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.ForeignKeyConstraint(['person_id'], ['roster_people.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_roster_enrollments_person_id', 'roster_enrollments', ['person_id'])
    op.create_index('ix_roster_enrollments_grade_status', 'roster_enrollments', ['grade_id', 'status'])
    op.create_index('ix_roster_enrollments_group_status', 'roster_enrollments', ['group_id', 'status'])

    # ==========================================================================
    # 4. CHARGE CONCEPTS & THIRD PARTIES
    # ==========================================================================
    op.create_table('charge_concepts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=80), nullable=True),
        sa.Column('default_amount', sa.BigInteger(), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column('is_massive', sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column('allow_partial', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('allow_discount', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('valid_from', sa.Date(), nullable=True),
        sa.Column('valid_until', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('late_fee_type', sa.String(length=16), nullable=True),
        sa.Column('late_fee_value', sa.BigInteger(), nullable=True),
        sa.Column('grace_period_days', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'name', name='uq_charge_concepts_institution_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_charge_concepts_institution_id', 'charge_concepts', ['institution_id'])
    op.create_index('ix_charge_concepts_is_active', 'charge_concepts', ['is_active'])

    op.create_table('third_parties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('document', sa.String(length=64), nullable=True),
        sa.Column('document_type', sa.String(length=16), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('nit', sa.String(length=64), nullable=True),
        sa.Column('bank_name', sa.String(length=128), nullable=True),
        sa.Column('bank_account', sa.String(length=64), nullable=True),
        sa.Column('bank_account_type', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'type', 'reference_id', name='uq_third_parties_reference'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_third_parties_institution_id', 'third_parties', ['institution_id'])
    op.create_index('ix_third_parties_type', 'third_parties', ['type'])
    op.create_index('ix_third_parties_is_active', 'third_parties', ['is_active'])
    op.create_index('ix_third_parties_institution_name', 'third_parties', ['institution_id', 'name'])

    # ==========================================================================
    # 5. OBLIGATIONS & PAYMENTS
    # ==========================================================================
    op.create_table('financial_obligations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('third_party_id', sa.Integer(), nullable=False),
        sa.Column('concept_id', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=False),
        sa.Column('original_amount', sa.BigInteger(), nullable=False),
        sa.Column('discount_amount', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('total_amount', sa.BigInteger(), nullable=False),
        sa.Column('paid_amount', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('balance', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('paid_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('discount_reason', sa.String(length=255), nullable=True),
        sa.Column('discount_approved_by', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.ForeignKeyConstraint(['third_party_id'], ['third_parties.id']),
        sa.ForeignKeyConstraint(['concept_id'], ['charge_concepts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'reference', name='uq_obligations_institution_reference'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_financial_obligations_institution_id', 'financial_obligations', ['institution_id'])
    op.create_index('ix_financial_obligations_third_party_id', 'financial_obligations', ['third_party_id'])
    op.create_index('ix_financial_obligations_concept_id', 'financial_obligations', ['concept_id'])
    op.create_index('ix_financial_obligations_status', 'financial_obligations', ['status'])
    op.create_index('ix_financial_obligations_created_at', 'financial_obligations', ['created_at'])
    op.create_index('ix_obligations_party_concept_status', 'financial_obligations', ['third_party_id', 'concept_id', 'status'])
    op.create_index('ix_obligations_institution_status_due', 'financial_obligations', ['institution_id', 'status', 'due_date'])

    op.create_table('financial_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('third_party_id', sa.Integer(), nullable=False),
        sa.Column('obligation_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('transaction_ref', sa.String(length=128), nullable=True),
        sa.Column('receipt_number', sa.String(length=64), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('received_by_user_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('voided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('voided_by_user_id', sa.Integer(), nullable=True),
        sa.Column('void_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.ForeignKeyConstraint(['third_party_id'], ['third_parties.id']),
        sa.ForeignKeyConstraint(['obligation_id'], ['financial_obligations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'receipt_number', name='uq_payments_institution_receipt'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_financial_payments_institution_id', 'financial_payments', ['institution_id'])
    op.create_index('ix_financial_payments_third_party_id', 'financial_payments', ['third_party_id'])
    op.create_index('ix_financial_payments_obligation_id', 'financial_payments', ['obligation_id'])
    op.create_index('ix_financial_payments_payment_method', 'financial_payments', ['payment_method'])
    op.create_index('ix_financial_payments_payment_date', 'financial_payments', ['payment_date'])
    op.create_index('ix_financial_payments_voided_at', 'financial_payments', ['voided_at'])
    op.create_index('ix_payments_institution_date', 'financial_payments', ['institution_id', 'payment_date'])

    # ==========================================================================
    # 6. INVOICES
    # ==========================================================================
    op.create_table('financial_invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('third_party_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('invoice_type', sa.String(length=16), nullable=False, server_default='INCOME'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('subtotal', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('tax_amount', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('discount_amount', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('total', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('issue_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.ForeignKeyConstraint(['third_party_id'], ['third_parties.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'invoice_number', name='uq_invoices_institution_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_financial_invoices_institution_id', 'financial_invoices', ['institution_id'])
    op.create_index('ix_financial_invoices_third_party_id', 'financial_invoices', ['third_party_id'])
    op.create_index('ix_financial_invoices_status', 'financial_invoices', ['status'])
    op.create_index('ix_invoices_institution_status', 'financial_invoices', ['institution_id', 'status'])

    op.create_table('financial_invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('obligation_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.BigInteger(), nullable=False),
        sa.Column('line_total', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['financial_invoices.id']),
        sa.ForeignKeyConstraint(['obligation_id'], ['financial_obligations.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_financial_invoice_items_invoice_id', 'financial_invoice_items', ['invoice_id'])
    op.create_index('ix_financial_invoice_items_obligation_id', 'financial_invoice_items', ['obligation_id'])

    # ==========================================================================
    # 7. CASH REGISTER CLOSES
    # ==========================================================================
    op.create_table('cash_register_closes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('close_date', sa.Date(), nullable=False),
        sa.Column('cash_total', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('transfer_total', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('card_total', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('other_total', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('grand_total', sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column('payment_count', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('physical_cash', sa.BigInteger(), nullable=True),
        sa.Column('variance', sa.BigInteger(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('closed_by_user_id', sa.Integer(), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'close_date', name='uq_cash_closes_institution_date'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cash_register_closes_institution_id', 'cash_register_closes', ['institution_id'])
    op.create_index('ix_cash_register_closes_close_date', 'cash_register_closes', ['close_date'])


def downgrade():
    op.drop_table('cash_register_closes')
    op.drop_table('financial_invoice_items')
    op.drop_table('financial_invoices')
    op.drop_table('financial_payments')
    op.drop_table('financial_obligations')
    op.drop_table('third_parties')
    op.drop_table('charge_concepts')
    op.drop_table('roster_enrollments')
    op.drop_table('roster_people')
    op.drop_table('financial_settings')
    op.drop_table('institutions')
