"""add cache_item table

Revision ID: cache_item_2026
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'cache_item_2026'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'cache_item',
        sa.Column('item_key', sa.Text(), primary_key=True, nullable=False),
        sa.Column('item_value', sa.LargeBinary(), nullable=True),
        sa.Column('expires_at', sa.Float(), nullable=True),
        sa.Column('added_at', sa.Float(), nullable=False),
        sa.Column('set_at', sa.Float(), nullable=False),
        sqlite_with_rowid=False,
    )

    # Index on expires_at for clear_expired()
    op.create_index('idx_cache_item_expires_at', 'cache_item', ['expires_at'])


def downgrade() -> None:
    op.drop_index('idx_cache_item_expires_at', table_name='cache_item')
    op.drop_table('cache_item')
