"""initial_schema

Revision ID: 3a9d5e27b1c4
Revises:
Create Date: 2026-10-19 09:14:03.112408

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3a9d5e27b1c4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Ensure the pgcrypto extension is available for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table('documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('collection', sa.Text(), nullable=False),
        sa.Column('body', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )

    # Seek queries filter on collection and order by id as the tie-break
    op.create_index(
        'documents_collection_id',
        'documents',
        ['collection', 'id'],
        unique=False
    )

    op.create_index(
        'documents_body_gin',
        'documents',
        ['body'],
        unique=False,
        postgresql_using='gin'
    )


def downgrade() -> None:
    op.drop_index('documents_body_gin', table_name='documents')
    op.drop_index('documents_collection_id', table_name='documents')
    op.drop_table('documents')
