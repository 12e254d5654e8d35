"""initial_schema

Revision ID: 3f1c2a7d9e01
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a7d9e01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('area', sa.String(length=255), nullable=True),
        sa.Column('profession', sa.String(length=255), nullable=True),
        sa.Column('profile_picture_url', sa.String(length=500), nullable=True),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('connections', sa.JSON(), nullable=False),
        sa.Column('pending_connections', sa.JSON(), nullable=False),
        sa.Column('blocked_users', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_name', 'users', ['name'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_area', 'users', ['area'])
    op.create_index('ix_users_profession', 'users', ['profession'])

    op.create_table(
        'messages',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('sender_id', sa.String(length=255), nullable=False),
        sa.Column('receiver_id', sa.String(length=255), nullable=False),
        sa.Column('pair_key', sa.String(length=511), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sequence_number', sa.BigInteger(), nullable=False),
        sa.Column('seen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reactions', sa.JSON(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('edited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pair_key', 'sequence_number', name='uq_messages_pair_sequence'),
    )
    op.create_index('ix_messages_sender_id', 'messages', ['sender_id'])
    op.create_index('ix_messages_receiver_id', 'messages', ['receiver_id'])
    op.create_index('idx_messages_pair_order', 'messages', ['pair_key', 'created_at', 'sequence_number'])
    op.create_index('idx_messages_receiver_seen', 'messages', ['receiver_id', 'seen'])

    op.create_table(
        'reports',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('reporter_id', sa.String(length=255), nullable=False),
        sa.Column('reported_user_id', sa.String(length=255), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reports_reported_user_id', 'reports', ['reported_user_id'])
    op.create_index('idx_reports_reporter_reported', 'reports', ['reporter_id', 'reported_user_id'])


def downgrade() -> None:
    op.drop_index('idx_reports_reporter_reported', table_name='reports')
    op.drop_index('ix_reports_reported_user_id', table_name='reports')
    op.drop_table('reports')

    op.drop_index('idx_messages_receiver_seen', table_name='messages')
    op.drop_index('idx_messages_pair_order', table_name='messages')
    op.drop_index('ix_messages_receiver_id', table_name='messages')
    op.drop_index('ix_messages_sender_id', table_name='messages')
    op.drop_table('messages')

    op.drop_index('ix_users_profession', table_name='users')
    op.drop_index('ix_users_area', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_name', table_name='users')
    op.drop_table('users')
