"""create_media_objects_table

Revision ID: 3c1f9a7e52d4
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f9a7e52d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'media_objects',
        sa.Column('id', sa.String(length=36), nullable=False, comment='媒体对象ID（UUID）'),
        sa.Column('filename', sa.String(length=255), nullable=False, comment='原始文件名'),
        sa.Column('content_type', sa.String(length=100), nullable=False, comment='MIME类型'),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False, server_default='0', comment='文件大小（字节），直传未完成时为0'),
        sa.Column('storage_key', sa.String(length=512), nullable=False, comment='对象存储中的Key（创建后不可变）'),
        sa.Column('public_url', sa.String(length=2048), nullable=False, server_default='', comment='公共访问URL，未完成时为空'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间（upsert 时保持不变）'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_key', name='uq_media_objects_storage_key'),
        comment='媒体对象元数据表（对象存储中文件的权威记录）'
    )

    # 列表按 created_at 倒序分页
    op.create_index('ix_media_objects_created_at', 'media_objects', ['created_at'], unique=False, postgresql_using='btree')


def downgrade() -> None:
    op.drop_index('ix_media_objects_created_at', table_name='media_objects', postgresql_using='btree')
    op.drop_table('media_objects')
