"""Create solution review, audit trail and audit event tables.

Revision ID: a7c3e91d0b21
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a7c3e91d0b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "solution_reviews",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("system_code", sa.String(64), nullable=False),
        sa.Column("document_state", sa.String(16), nullable=False, server_default="DRAFT"),
        sa.Column("version", sa.String(32), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("last_modified_by", sa.String(320), nullable=True),
        sa.Column("last_modified_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("row_version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_solution_reviews_system_code", "solution_reviews", ["system_code"])
    op.create_index("idx_solution_reviews_system_state", "solution_reviews", ["system_code", "document_state"])

    op.create_table(
        "audit_trail_nodes",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("system_code", sa.String(64), nullable=False),
        sa.Column(
            "review_document_id",
            sa.String(32),
            sa.ForeignKey("solution_reviews.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("version_label", sa.String(32), nullable=False),
        sa.Column("next_id", sa.String(32), sa.ForeignKey("audit_trail_nodes.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=False), nullable=False),
        sa.Column("change_description", sa.String(512), nullable=True),
    )
    op.create_index("ix_audit_trail_nodes_system_code", "audit_trail_nodes", ["system_code"])
    op.create_index("ix_audit_trail_nodes_review_document_id", "audit_trail_nodes", ["review_document_id"])

    op.create_table(
        "audit_trail_heads",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "review_document_id",
            sa.String(32),
            sa.ForeignKey("solution_reviews.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("head", sa.String(32), sa.ForeignKey("audit_trail_nodes.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("tail", sa.String(32), sa.ForeignKey("audit_trail_nodes.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("node_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("last_modified", sa.DateTime(timezone=False), nullable=False),
        sa.Column("row_version", sa.Integer(), nullable=False),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("actor", sa.String(320), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
    )
    op.create_index("idx_audit_events_entity", "audit_events", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("idx_audit_events_entity", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("audit_trail_heads")
    op.drop_index("ix_audit_trail_nodes_review_document_id", table_name="audit_trail_nodes")
    op.drop_index("ix_audit_trail_nodes_system_code", table_name="audit_trail_nodes")
    op.drop_table("audit_trail_nodes")
    op.drop_index("idx_solution_reviews_system_state", table_name="solution_reviews")
    op.drop_index("ix_solution_reviews_system_code", table_name="solution_reviews")
    op.drop_table("solution_reviews")
