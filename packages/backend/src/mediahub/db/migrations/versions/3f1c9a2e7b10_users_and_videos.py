"""users and videos

Learn: Initial schema. users carries the versioned refresh-token slot
(refresh_token_hash + refresh_token_version) and the avatar/cover image
asset pairs; videos carries the video file and thumbnail asset pairs.

Revision ID: 3f1c9a2e7b10
Revises:
Create Date: 2026-10-19 10:12:44.501193
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2e7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('fullname', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('refresh_token_hash', sa.String(length=64), nullable=True),
        sa.Column('refresh_token_version', sa.Integer(), server_default='0', nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('avatar_key', sa.String(length=255), nullable=True),
        sa.Column('cover_image_url', sa.Text(), nullable=True),
        sa.Column('cover_image_key', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username'),
    )
    op.create_table(
        'videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('video_url', sa.Text(), nullable=False),
        sa.Column('video_key', sa.String(length=255), nullable=False),
        sa.Column('thumbnail_url', sa.Text(), nullable=False),
        sa.Column('thumbnail_key', sa.String(length=255), nullable=False),
        sa.Column('duration', sa.Float(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('is_published', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('views', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_videos_owner', 'videos', ['owner_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_videos_owner', table_name='videos')
    op.drop_table('videos')
    op.drop_table('users')
