"""initial schema

Revision ID: 5c1e2a9d7b40
Revises:
Create Date: 2026-09-14 10:12:31.408215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e2a9d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _reference_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('price', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('cnpj', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('website', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('password', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('sector', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role in ('agent','manager','superadmin')", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_organization_id', 'users', ['organization_id'], unique=False)

    _reference_table('products')
    _reference_table('convenios')
    _reference_table('banks')

    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('cpf', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('birth_date', sa.Text(), nullable=True),
        sa.Column('company', sa.Text(), nullable=True),
        sa.Column('contact', sa.Text(), nullable=True),
        sa.Column('convenio_id', sa.Integer(), sa.ForeignKey('convenios.id'), nullable=True),
        sa.Column('created_by_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_clients_organization_id', 'clients', ['organization_id'], unique=False)
    op.create_index('ix_clients_created_by_id', 'clients', ['created_by_id'], unique=False)

    op.create_table(
        'proposals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id'), nullable=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=True),
        sa.Column('convenio_id', sa.Integer(), sa.ForeignKey('convenios.id'), nullable=True),
        sa.Column('bank_id', sa.Integer(), sa.ForeignKey('banks.id'), nullable=True),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('created_by_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_proposals_organization_id', 'proposals', ['organization_id'], unique=False)
    op.create_index('ix_proposals_created_by_id', 'proposals', ['created_by_id'], unique=False)
    op.create_index('ix_proposals_client_id', 'proposals', ['client_id'], unique=False)
    op.create_index('ix_proposals_status', 'proposals', ['status'], unique=False)

    op.create_table(
        'form_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('fields', sa.JSON(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_by_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_form_templates_organization_id', 'form_templates', ['organization_id'], unique=False)

    op.create_table(
        'form_submissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('form_template_id', sa.Integer(), sa.ForeignKey('form_templates.id'), nullable=True),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id'), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('processed_by_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_form_submissions_form_template_id', 'form_submissions', ['form_template_id'], unique=False)
    op.create_index('ix_form_submissions_status', 'form_submissions', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_form_submissions_status', table_name='form_submissions')
    op.drop_index('ix_form_submissions_form_template_id', table_name='form_submissions')
    op.drop_table('form_submissions')
    op.drop_index('ix_form_templates_organization_id', table_name='form_templates')
    op.drop_table('form_templates')
    op.drop_index('ix_proposals_status', table_name='proposals')
    op.drop_index('ix_proposals_client_id', table_name='proposals')
    op.drop_index('ix_proposals_created_by_id', table_name='proposals')
    op.drop_index('ix_proposals_organization_id', table_name='proposals')
    op.drop_table('proposals')
    op.drop_index('ix_clients_created_by_id', table_name='clients')
    op.drop_index('ix_clients_organization_id', table_name='clients')
    op.drop_table('clients')
    op.drop_table('banks')
    op.drop_table('convenios')
    op.drop_table('products')
    op.drop_index('ix_users_organization_id', table_name='users')
    op.drop_table('users')
    op.drop_table('organizations')
