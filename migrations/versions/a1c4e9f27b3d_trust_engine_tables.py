"""trust_engine_tables

Revision ID: a1c4e9f27b3d
Revises:
Create Date: 2026-10-19 09:12:44.381027

Trust engine tables.

Tables added:
- trust_metrics: Verified per-window metrics derived from ERP facts
- trust_score_history: Every score calculation with its breakdown
- trust_participants: Per-organization score, status and contribution state
- trust_consents: One consent row per (organization, purpose)
- trust_audit_logs: Append-only, hash-chained audit trail
- trust_shared_insights: Anonymized benchmark contributions

The ERP ``sales``/``purchases`` tables belong to the host ERP and are not
managed here.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c4e9f27b3d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Upgrade schema - add trust engine tables."""

    # --- trust_metrics ---
    op.create_table(
        "trust_metrics",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("metric_type", sa.String(32), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.DateTime(), nullable=False),
        sa.Column("period_end", sa.DateTime(), nullable=False),
        sa.Column("source_count", sa.Integer(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("period_start <= period_end", name="ck_trust_metric_period"),
        sa.CheckConstraint("source_count > 0", name="ck_trust_metric_source_count"),
        sa.CheckConstraint("value >= 0 AND value <= 100", name="ck_trust_metric_value_range"),
        sa.CheckConstraint(
            "metric_type IN ('payment_compliance', 'delivery_timeliness', "
            "'order_fulfillment', 'dispute_rate')",
            name="ck_trust_metric_type",
        ),
    )
    op.create_index(
        "ix_trust_metrics_org_type_created", "trust_metrics",
        ["organization_id", "metric_type", "created_at"],
    )

    # --- trust_score_history ---
    op.create_table(
        "trust_score_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("breakdown", JSON, nullable=False),
        sa.Column("calculated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= 1000", name="ck_trust_score_history_range"),
    )
    op.create_index(
        "ix_trust_score_history_org_calculated", "trust_score_history",
        ["organization_id", "calculated_at"],
    )

    # --- trust_participants ---
    op.create_table(
        "trust_participants",
        sa.Column("organization_id", sa.String(36), primary_key=True),
        sa.Column("trust_score", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("status", sa.String(32), nullable=False, server_default="observation"),
        sa.Column("contribution_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("multiplier", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("contribution_score", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("contribution_status", sa.String(32), nullable=False, server_default="observation"),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("penalized_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.CheckConstraint("contribution_count >= 0", name="ck_participant_contribution_count"),
        sa.CheckConstraint("multiplier >= 0 AND multiplier <= 100", name="ck_participant_multiplier"),
        sa.CheckConstraint("trust_score >= 0 AND trust_score <= 1000", name="ck_participant_trust_score"),
        sa.CheckConstraint(
            "contribution_score >= 0 AND contribution_score <= 1000",
            name="ck_participant_contribution_score",
        ),
    )

    # --- trust_consents ---
    op.create_table(
        "trust_consents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("consent_type", sa.String(40), nullable=False),
        sa.Column("granted_at", sa.DateTime(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.Column("granted_by_user_id", sa.String(36), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("consent_version", sa.String(16), nullable=False, server_default="1.0"),
        sa.UniqueConstraint("organization_id", "consent_type", name="uq_trust_consent_org_type"),
    )
    op.create_index("ix_trust_consents_organization_id", "trust_consents", ["organization_id"])

    # --- trust_audit_logs ---
    op.create_table(
        "trust_audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("old_value", JSON, nullable=True),
        sa.Column("new_value", JSON, nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("previous_hash", sa.String(128), nullable=True),
        sa.Column("entry_hash", sa.String(128), nullable=True),
        sa.UniqueConstraint("organization_id", "sequence", name="uq_trust_audit_org_sequence"),
    )
    op.create_index("ix_trust_audit_logs_org_timestamp", "trust_audit_logs", ["organization_id", "timestamp"])
    op.create_index("ix_trust_audit_logs_action", "trust_audit_logs", ["action"])

    # --- trust_shared_insights ---
    op.create_table(
        "trust_shared_insights",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("source_organization_id", sa.String(36), nullable=False),
        sa.Column("industry", sa.String(64), nullable=False),
        sa.Column("metric_key", sa.String(64), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("verification_score", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_trust_shared_insights_source_organization_id", "trust_shared_insights",
        ["source_organization_id"],
    )
    op.create_index(
        "ix_trust_shared_insights_industry_metric", "trust_shared_insights",
        ["industry", "metric_key"],
    )


def downgrade() -> None:
    """Downgrade schema - drop trust engine tables."""
    op.drop_table("trust_shared_insights")
    op.drop_table("trust_audit_logs")
    op.drop_table("trust_consents")
    op.drop_table("trust_participants")
    op.drop_table("trust_score_history")
    op.drop_table("trust_metrics")
