"""initial_schema

Creates users, platforms, contents, tags, content_tags, folders,
folder_contents and login_tokens, and seeds the platforms table.

Revision ID: 8c1d2e3f4a5b
Revises:
Create Date: 2026-01-12 10:04:31.218907

"""
import uuid
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '8c1d2e3f4a5b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PLATFORMS = [
    ('instagram', 'Instagram', '📸', '#E1306C', '#FFFFFF'),
    ('youtube', 'YouTube', '▶️', '#FF0000', '#FFFFFF'),
    ('tiktok', 'TikTok', '🎵', '#000000', '#FFFFFF'),
    ('twitter', 'Twitter/X', '🐦', '#000000', '#FFFFFF'),
    ('web', 'Web', '🌐', '#6B7280', '#FFFFFF'),
]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('clock_timestamp()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('clock_timestamp()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
    sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('telegram_id', sa.String(length=64), nullable=True, comment='Telegram user id (stringified) - external identity from the bot'),
    sa.Column('telegram_username', sa.String(length=255), nullable=True),
    sa.Column('email', sa.String(length=255), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_telegram_id'), 'users', ['telegram_id'], unique=True)

    platforms = op.create_table('platforms',
    sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('name', sa.String(length=32), nullable=False),
    sa.Column('display_name', sa.String(length=64), nullable=False),
    sa.Column('icon', sa.String(length=16), nullable=True),
    sa.Column('color_bg', sa.String(length=16), nullable=True),
    sa.Column('color_text', sa.String(length=16), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )
    op.bulk_insert(platforms, [
        {
            'id': uuid.uuid4(),
            'name': name,
            'display_name': display_name,
            'icon': icon,
            'color_bg': color_bg,
            'color_text': color_text,
        }
        for name, display_name, icon, color_bg, color_text in PLATFORMS
    ])

    op.create_table('contents',
    sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('platform_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('url', sa.Text(), nullable=False),
    sa.Column('title', sa.String(length=500), nullable=True),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('thumbnail_url', sa.Text(), nullable=True),
    sa.Column('creator_name', sa.String(length=255), nullable=True),
    sa.Column('creator_url', sa.Text(), nullable=True),
    sa.Column('memo', sa.Text(), nullable=True),
    sa.Column('saved_at', sa.DateTime(timezone=True), server_default=sa.text('clock_timestamp()'), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['platform_id'], ['platforms.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'url', name='uq_contents_user_id_url')
    )
    op.create_index(op.f('ix_contents_user_id'), 'contents', ['user_id'], unique=False)
    op.create_index(op.f('ix_contents_platform_id'), 'contents', ['platform_id'], unique=False)
    op.create_index(op.f('ix_contents_saved_at'), 'contents', ['saved_at'], unique=False)

    op.create_table('tags',
    sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('clock_timestamp()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )
    op.create_table('content_tags',
    sa.Column('content_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('tag_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.ForeignKeyConstraint(['content_id'], ['contents.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('content_id', 'tag_id')
    )
    op.create_index('ix_content_tags_tag_id', 'content_tags', ['tag_id'], unique=False)

    op.create_table('folders',
    sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('color', sa.String(length=16), nullable=False),
    sa.Column('icon', sa.String(length=16), nullable=True),
    sa.Column('is_default', sa.Boolean(), nullable=False),
    sa.Column('sort_order', sa.Integer(), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_folders_user_id'), 'folders', ['user_id'], unique=False)
    op.create_index(
        'uq_folders_user_default', 'folders', ['user_id'], unique=True,
        postgresql_where=sa.text('is_default'),
    )

    op.create_table('folder_contents',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('folder_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('content_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('sort_order', sa.Integer(), nullable=False),
    sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('clock_timestamp()'), nullable=False),
    sa.ForeignKeyConstraint(['content_id'], ['contents.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['folder_id'], ['folders.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('folder_id', 'content_id', name='uq_folder_contents_folder_content')
    )
    op.create_index(op.f('ix_folder_contents_folder_id'), 'folder_contents', ['folder_id'], unique=False)
    op.create_index(op.f('ix_folder_contents_content_id'), 'folder_contents', ['content_id'], unique=False)

    op.create_table('login_tokens',
    sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column('token_hash', sa.String(length=64), nullable=False, comment='SHA-256 hash of the token'),
    sa.Column('kind', sa.String(length=16), nullable=False),
    sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_login_tokens_user_id'), 'login_tokens', ['user_id'], unique=False)
    op.create_index(op.f('ix_login_tokens_token_hash'), 'login_tokens', ['token_hash'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_login_tokens_token_hash'), table_name='login_tokens')
    op.drop_index(op.f('ix_login_tokens_user_id'), table_name='login_tokens')
    op.drop_table('login_tokens')
    op.drop_index(op.f('ix_folder_contents_content_id'), table_name='folder_contents')
    op.drop_index(op.f('ix_folder_contents_folder_id'), table_name='folder_contents')
    op.drop_table('folder_contents')
    op.drop_index('uq_folders_user_default', table_name='folders')
    op.drop_index(op.f('ix_folders_user_id'), table_name='folders')
    op.drop_table('folders')
    op.drop_index('ix_content_tags_tag_id', table_name='content_tags')
    op.drop_table('content_tags')
    op.drop_table('tags')
    op.drop_index(op.f('ix_contents_saved_at'), table_name='contents')
    op.drop_index(op.f('ix_contents_platform_id'), table_name='contents')
    op.drop_index(op.f('ix_contents_user_id'), table_name='contents')
    op.drop_table('contents')
    op.drop_table('platforms')
    op.drop_index(op.f('ix_users_telegram_id'), table_name='users')
    op.drop_table('users')
