"""initial visa desk schema

Revision ID: 7d2c4e1a9b30
Revises:
Create Date: 2026-10-17 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7d2c4e1a9b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('google_id', sa.String(), nullable=True),
        sa.Column('role', sa.String(), server_default='customer', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)
    op.create_index('ix_user_google_id', 'user', ['google_id'])
    op.create_index('ix_user_last_login_at', 'user', ['last_login_at'])
    op.create_index('ix_user_deleted_at', 'user', ['deleted_at'])

    op.create_table(
        'visa',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('country', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('visa_document_url', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_visa_country', 'visa', ['country'])
    op.create_index('ix_visa_deleted_at', 'visa', ['deleted_at'])

    op.create_table(
        'visa_option',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('visa_id', sa.Integer(), sa.ForeignKey('visa.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_visa_option_visa_id', 'visa_option', ['visa_id'])
    op.create_index('ix_visa_option_deleted_at', 'visa_option', ['deleted_at'])

    op.create_table(
        'visa_purchase',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('visa_id', sa.Integer(), sa.ForeignKey('visa.id'), nullable=False),
        sa.Column('visa_option_id', sa.Integer(), sa.ForeignKey('visa_option.id'), nullable=True),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_visa_purchase_user_id', 'visa_purchase', ['user_id'])
    op.create_index('ix_visa_purchase_visa_id', 'visa_purchase', ['visa_id'])
    op.create_index('ix_visa_purchase_deleted_at', 'visa_purchase', ['deleted_at'])

    op.create_table(
        'payment',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('purchase_id', sa.Integer(), sa.ForeignKey('visa_purchase.id'), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('xendit_id', sa.String(), nullable=True),
        sa.Column('external_id', sa.String(), nullable=True),
        sa.Column('payment_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payment_user_id', 'payment', ['user_id'])
    op.create_index('ix_payment_purchase_id', 'payment', ['purchase_id'])
    op.create_index('ix_payment_xendit_id', 'payment', ['xendit_id'], unique=True)
    op.create_index('ix_payment_external_id', 'payment', ['external_id'])
    op.create_index('ix_payment_deleted_at', 'payment', ['deleted_at'])

    op.create_table(
        'activity_log',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), server_default='0', nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('entity_name', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_activity_log_user_id', 'activity_log', ['user_id'])
    op.create_index('ix_activity_log_action', 'activity_log', ['action'])
    op.create_index('ix_activity_log_entity_type', 'activity_log', ['entity_type'])
    op.create_index('ix_activity_log_entity_id', 'activity_log', ['entity_id'])
    op.create_index('ix_activity_log_created_at', 'activity_log', ['created_at'])

    op.create_table(
        'otp_code',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('used', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_otp_code_email', 'otp_code', ['email'])
    op.create_index('ix_otp_code_code', 'otp_code', ['code'])
    op.create_index('ix_otp_code_expires_at', 'otp_code', ['expires_at'])

    op.create_table(
        'password_reset_token',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_password_reset_token_user_id', 'password_reset_token', ['user_id'])
    op.create_index('ix_password_reset_token_token', 'password_reset_token', ['token'], unique=True)
    op.create_index('ix_password_reset_token_expires_at', 'password_reset_token', ['expires_at'])


def downgrade() -> None:
    op.drop_table('password_reset_token')
    op.drop_table('otp_code')
    op.drop_table('activity_log')
    op.drop_table('payment')
    op.drop_table('visa_purchase')
    op.drop_table('visa_option')
    op.drop_table('visa')
    op.drop_table('user')
