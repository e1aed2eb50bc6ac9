"""建立 kv_entries 資料表

Revision ID: 5b1f0c2d7a41
Revises: 
Create Date: 2025-06-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1f0c2d7a41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        'kv_entries',
        sa.Column('key', sa.String(length=512), primary_key=True, comment="完整的 store key"),
        sa.Column('value', sa.LargeBinary(), nullable=False, comment="原始位元組內容"),
        sa.Column('expires_at', sa.Float(), nullable=True, comment="到期時間（epoch 秒），NULL 表示沒有 TTL"),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, comment="建立時間"),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True, comment="最後更新時間"),
    )
    op.create_index('idx_kv_entries_expires_at', 'kv_entries', ['expires_at'])

def downgrade():
    op.drop_index('idx_kv_entries_expires_at', table_name='kv_entries')
    op.drop_table('kv_entries')
