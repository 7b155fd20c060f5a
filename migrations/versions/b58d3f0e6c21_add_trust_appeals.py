"""add trust appeals

Revision ID: b58d3f0e6c21
Revises: a1c4e9f27b3d
Create Date: 2026-10-19 09:12:44.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b58d3f0e6c21'
down_revision: Union[str, Sequence[str], None] = 'a1c4e9f27b3d'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - score appeals."""
    op.create_table(
        "trust_appeals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("appeal_type", sa.String(32), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted"),
        sa.Column("submitted_by_user_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_trust_appeals_org_created", "trust_appeals", ["organization_id", "created_at"]
    )


def downgrade() -> None:
    """Downgrade schema - drop score appeals."""
    op.drop_index("ix_trust_appeals_org_created", table_name="trust_appeals")
    op.drop_table("trust_appeals")
