"""Create telegram sync tables

Revision ID: telegram_sync_v1
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'telegram_sync_v1'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'telegram_chats',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('chat_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('member_count', sa.Integer(), nullable=True),
        sa.Column('is_megagroup', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_broadcast', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('last_message_id', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('oldest_message_id', sa.BigInteger(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chat_id'),
        sa.CheckConstraint(
            "type IN ('group', 'supergroup', 'channel', 'private')",
            name='ck_telegram_chats_type',
        ),
    )
    op.create_index(op.f('ix_telegram_chats_id'), 'telegram_chats', ['id'])
    op.create_index(op.f('ix_telegram_chats_chat_id'), 'telegram_chats', ['chat_id'])
    op.create_index(op.f('ix_telegram_chats_is_active'), 'telegram_chats', ['is_active'])
    op.create_index(op.f('ix_telegram_chats_last_synced_at'), 'telegram_chats', ['last_synced_at'])

    op.create_table(
        'telegram_messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('chat_id', sa.String(length=64), nullable=False),
        sa.Column('message_id', sa.BigInteger(), nullable=False),
        sa.Column('sender_id', sa.String(length=64), nullable=True),
        sa.Column('sender_name', sa.String(length=255), nullable=True),
        sa.Column('text', sa.Text(), nullable=False, server_default=''),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('has_media', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('media_type', sa.String(length=50), nullable=True),
        sa.Column('media_url', sa.String(length=1000), nullable=True),
        sa.Column('reply_to_message_id', sa.BigInteger(), nullable=True),
        sa.Column('forward_from', sa.String(length=255), nullable=True),
        sa.Column('entities', sa.JSON(), nullable=True),
        sa.Column('buttons', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chat_id', 'message_id', name='uq_telegram_messages_chat_message'),
    )
    op.create_index(op.f('ix_telegram_messages_id'), 'telegram_messages', ['id'])
    op.create_index(op.f('ix_telegram_messages_chat_id'), 'telegram_messages', ['chat_id'])
    op.create_index(op.f('ix_telegram_messages_message_id'), 'telegram_messages', ['message_id'])
    op.create_index(op.f('ix_telegram_messages_date'), 'telegram_messages', ['date'])

    op.create_table(
        'telegram_sync_runs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='running'),
        sa.Column('mode', sa.String(length=20), nullable=False, server_default='incremental'),
        sa.Column('chats_synced', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('messages_synced', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('running', 'success', 'failed')",
            name='ck_telegram_sync_runs_status',
        ),
    )
    op.create_index(op.f('ix_telegram_sync_runs_id'), 'telegram_sync_runs', ['id'])
    op.create_index(op.f('ix_telegram_sync_runs_started_at'), 'telegram_sync_runs', ['started_at'])


def downgrade() -> None:
    op.drop_index(op.f('ix_telegram_sync_runs_started_at'), table_name='telegram_sync_runs')
    op.drop_index(op.f('ix_telegram_sync_runs_id'), table_name='telegram_sync_runs')
    op.drop_table('telegram_sync_runs')

    op.drop_index(op.f('ix_telegram_messages_date'), table_name='telegram_messages')
    op.drop_index(op.f('ix_telegram_messages_message_id'), table_name='telegram_messages')
    op.drop_index(op.f('ix_telegram_messages_chat_id'), table_name='telegram_messages')
    op.drop_index(op.f('ix_telegram_messages_id'), table_name='telegram_messages')
    op.drop_table('telegram_messages')

    op.drop_index(op.f('ix_telegram_chats_last_synced_at'), table_name='telegram_chats')
    op.drop_index(op.f('ix_telegram_chats_is_active'), table_name='telegram_chats')
    op.drop_index(op.f('ix_telegram_chats_chat_id'), table_name='telegram_chats')
    op.drop_index(op.f('ix_telegram_chats_id'), table_name='telegram_chats')
    op.drop_table('telegram_chats')
