"""create feature_flags

Revision ID: 4c1d2e7a9b10
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c1d2e7a9b10'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

LIVE_ROWS = sa.text('deleted_at IS NULL')


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        'feature_flags',
        sa.Column('code', sa.String(length=50), nullable=False, comment='Flag lookup key'),
        sa.Column('name', sa.Text(), nullable=False, comment='Human-readable name'),
        sa.Column('description', sa.Text(), nullable=True, comment='Flag description'),
        sa.Column('enabled', sa.Boolean(), nullable=False, comment='Master switch'),
        sa.Column('rule_type', sa.String(length=50), nullable=True, comment='Targeting rule tag'),
        sa.Column(
            'rule',
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql'),
            nullable=True,
            comment='Serialized targeting rule',
        ),
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v7 primary key (time-sortable)'),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment='Timestamp of record creation',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Timestamp of last mutation',
        ),
        sa.Column(
            'deleted_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Timestamp of soft deletion',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_feature_flags')),
    )
    op.create_index(
        'uq_feature_flags_code_live',
        'feature_flags',
        ['code'],
        unique=True,
        postgresql_where=LIVE_ROWS,
        sqlite_where=LIVE_ROWS,
    )
    op.create_index('ix_feature_flags_rule_type', 'feature_flags', ['rule_type'], unique=False)
    op.create_index('ix_feature_flags_created_at', 'feature_flags', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_feature_flags_created_at', table_name='feature_flags')
    op.drop_index('ix_feature_flags_rule_type', table_name='feature_flags')
    op.drop_index('uq_feature_flags_code_live', table_name='feature_flags')
    op.drop_table('feature_flags')
