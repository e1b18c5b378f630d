"""Ledger accounts, parties and journal voucher tables

Revision ID: 20261019_0900_ledger_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_0900_ledger_tables'
down_revision = None
branch_labels = None
depends_on = None


ACCOUNT_NATURES = (
    'Fixed Asset', 'Investment', 'Current Asset', 'Cash', 'Bank',
    'Long Term Liability', 'Current Liability', 'Equity',
    'Revenue', 'Other Income', 'Cost of Goods Sold', 'Expense',
)
PARTY_KINDS = ('CUSTOMER', 'VENDOR')
VOUCHER_KINDS = ('INVOICE', 'CREDIT_NOTE', 'BILL', 'DEBIT_NOTE', 'JOURNAL')


def upgrade() -> None:
    # Tenant chart of accounts (system accounts are not stored)
    op.create_table(
        'ledger_accounts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('code', sa.String(40), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('nature', sa.Enum(*ACCOUNT_NATURES, name='accountnature'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_ledger_accounts'),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_ledger_account_code'),
    )
    op.create_index('ix_ledger_accounts_tenant_id', 'ledger_accounts', ['tenant_id'])

    # Customer / vendor sub-ledgers
    op.create_table(
        'ledger_parties',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('party_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('kind', sa.Enum(*PARTY_KINDS, name='partykind'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_ledger_parties'),
        sa.UniqueConstraint('tenant_id', 'party_id', name='uq_ledger_party_id'),
    )
    op.create_index('ix_ledger_parties_tenant_id', 'ledger_parties', ['tenant_id'])

    # Journal vouchers (append-only)
    op.create_table(
        'journal_vouchers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('voucher_number', sa.String(64), nullable=False,
                  comment='Producer-assigned voucher id (e.g., INV-00042)'),
        sa.Column('voucher_date', sa.Date(), nullable=False),
        sa.Column('narration', sa.Text(), nullable=False),
        sa.Column('kind', sa.Enum(*VOUCHER_KINDS, name='voucherkind'), nullable=False),
        sa.Column('party_id', sa.String(64), nullable=True),
        sa.Column('reverses', sa.String(64), nullable=True,
                  comment='Voucher number this voucher offsets'),
        sa.Column('total_debit', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('total_credit', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_journal_vouchers'),
        sa.UniqueConstraint('tenant_id', 'voucher_number', name='uq_journal_voucher_number'),
        sa.CheckConstraint('total_debit = total_credit', name='ck_journal_vouchers_balanced_voucher'),
    )
    op.create_index('ix_journal_vouchers_voucher_date', 'journal_vouchers', ['voucher_date'])
    op.create_index('ix_jv_tenant_date', 'journal_vouchers', ['tenant_id', 'voucher_date'])

    # Voucher lines
    op.create_table(
        'voucher_lines',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('voucher_id', sa.Uuid(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('account_code', sa.String(64), nullable=False),
        sa.Column('debit_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('credit_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('cost_centre', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_voucher_lines'),
        sa.ForeignKeyConstraint(
            ['voucher_id'], ['journal_vouchers.id'],
            name='fk_voucher_lines_voucher_id_journal_vouchers',
            ondelete='CASCADE',
        ),
        sa.UniqueConstraint('voucher_id', 'line_number', name='uq_voucher_line_number'),
        sa.CheckConstraint(
            'debit_amount >= 0 AND credit_amount >= 0',
            name='ck_voucher_lines_non_negative_amounts',
        ),
    )
    op.create_index('ix_voucher_lines_voucher_id', 'voucher_lines', ['voucher_id'])
    op.create_index('ix_vl_account', 'voucher_lines', ['account_code'])


def downgrade() -> None:
    op.drop_index('ix_vl_account', table_name='voucher_lines')
    op.drop_index('ix_voucher_lines_voucher_id', table_name='voucher_lines')
    op.drop_table('voucher_lines')

    op.drop_index('ix_jv_tenant_date', table_name='journal_vouchers')
    op.drop_index('ix_journal_vouchers_voucher_date', table_name='journal_vouchers')
    op.drop_table('journal_vouchers')

    op.drop_index('ix_ledger_parties_tenant_id', table_name='ledger_parties')
    op.drop_table('ledger_parties')

    op.drop_index('ix_ledger_accounts_tenant_id', table_name='ledger_accounts')
    op.drop_table('ledger_accounts')

    sa.Enum(name='voucherkind').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='partykind').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='accountnature').drop(op.get_bind(), checkfirst=True)
