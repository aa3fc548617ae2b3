"""Expense ledger: categories and expenses

Revision ID: 20261019_expenses
Revises: 20261019_finance
Create Date: 2026-10-19

This migration adds:
1. FinancialCategory (INCOME/EXPENSE buckets with an optional budget)
2. FinancialExpense (money stored as integer cents, void audit trail)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_expenses'
down_revision = '20261019_finance'
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")


def upgrade():
    op.create_table('financial_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='EXPENSE'),
        sa.Column('budget_amount', sa.BigInteger(), nullable=True),
        sa.Column('color', sa.String(length=16), nullable=True),
        sa.Column('icon', sa.String(length=64), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('institution_id', 'name', name='uq_financial_categories_institution_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_financial_categories_institution_id', 'financial_categories', ['institution_id'])
    op.create_index('ix_financial_categories_is_active', 'financial_categories', ['is_active'])

    op.create_table('financial_expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('institution_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=True),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('transaction_ref', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('registered_by_user_id', sa.Integer(), nullable=False),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('voided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('voided_by_user_id', sa.Integer(), nullable=True),
        sa.Column('void_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.ForeignKeyConstraint(['category_id'], ['financial_categories.id']),
        sa.ForeignKeyConstraint(['provider_id'], ['third_parties.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_financial_expenses_institution_id', 'financial_expenses', ['institution_id'])
    op.create_index('ix_financial_expenses_category_id', 'financial_expenses', ['category_id'])
    op.create_index('ix_financial_expenses_provider_id', 'financial_expenses', ['provider_id'])
    op.create_index('ix_financial_expenses_voided_at', 'financial_expenses', ['voided_at'])
    op.create_index('ix_expenses_institution_date', 'financial_expenses', ['institution_id', 'expense_date'])


def downgrade():
    op.drop_table('financial_expenses')
    op.drop_table('financial_categories')
