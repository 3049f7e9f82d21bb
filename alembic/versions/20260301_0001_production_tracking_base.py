"""production tracking base: wip_entries / bundles / operator_earnings

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 09:00:00

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260301_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "wip_entries",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("article", sa.String(64)),
        sa.Column("article_name", sa.String(255)),
        sa.Column("color", sa.String(64)),
        sa.Column("size", sa.String(32)),
        sa.Column("pieces", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("completed_pieces", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(32), server_default=sa.text("'pending'")),
        sa.Column("current_operation", sa.String(128)),
        sa.Column("machine_type", sa.String(32)),
        sa.Column("priority", sa.String(16)),
        sa.Column("deadline", sa.DateTime(timezone=True)),
        sa.Column("assigned_operator", sa.String(64)),
        sa.Column("assigned_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("lot_number", sa.String(64)),
        sa.Column("roll_number", sa.String(64)),
        sa.Column("created_by", sa.String(64)),
        sa.Column("note", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_wip_entries_status", "wip_entries", ["status"])
    op.create_index("ix_wip_entries_created_at", "wip_entries", ["created_at"])
    op.create_index("ix_wip_entries_assigned", "wip_entries", ["assigned_operator"])

    op.create_table(
        "bundles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("bundle_number", sa.String(64)),
        sa.Column("article", sa.String(64)),
        sa.Column("article_name", sa.String(255)),
        sa.Column("color", sa.String(64)),
        sa.Column("size", sa.String(32)),
        sa.Column("pieces", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("completed_pieces", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("operation", sa.String(128)),
        sa.Column("machine_type", sa.String(32)),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("priority", sa.String(16), server_default=sa.text("'medium'")),
        sa.Column("rate", sa.Numeric(10, 2)),
        sa.Column("deadline", sa.DateTime(timezone=True)),
        sa.Column("assigned_operator", sa.String(64)),
        sa.Column("assigned_by", sa.String(64)),
        sa.Column("assigned_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("checklist", sa.JSON()),
        sa.Column("checklist_initialized", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_bundles_status", "bundles", ["status"])
    op.create_index("ix_bundles_assigned", "bundles", ["assigned_operator"])
    op.create_index("ix_bundles_machine_status", "bundles", ["machine_type", "status"])

    op.create_table(
        "operator_earnings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("operator_id", sa.String(64), nullable=False),
        sa.Column("operator_name", sa.String(128)),
        sa.Column("bundle_number", sa.String(64)),
        sa.Column("article_number", sa.String(64)),
        sa.Column("operation", sa.String(128)),
        sa.Column("machine_type", sa.String(32)),
        sa.Column("pieces", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rate_per_piece", sa.Numeric(10, 2), nullable=False),
        sa.Column("base_earnings", sa.Numeric(12, 2), nullable=False),
        sa.Column("damage_deduction", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("damage_reason", sa.Text()),
        sa.Column("earnings", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("quality_notes", sa.Text()),
        sa.Column("hold_reason", sa.Text()),
        sa.Column("confirmed_by", sa.String(64)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("held_by", sa.String(64)),
        sa.Column("held_at", sa.DateTime(timezone=True)),
        sa.Column("paid_by", sa.String(64)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("payment_details", sa.JSON()),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_operator_earnings_operator", "operator_earnings", ["operator_id"])
    op.create_index("ix_operator_earnings_completed_at", "operator_earnings", ["completed_at"])


def downgrade() -> None:
    op.drop_index("ix_operator_earnings_completed_at", table_name="operator_earnings")
    op.drop_index("ix_operator_earnings_operator", table_name="operator_earnings")
    op.drop_table("operator_earnings")

    op.drop_index("ix_bundles_machine_status", table_name="bundles")
    op.drop_index("ix_bundles_assigned", table_name="bundles")
    op.drop_index("ix_bundles_status", table_name="bundles")
    op.drop_table("bundles")

    op.drop_index("ix_wip_entries_assigned", table_name="wip_entries")
    op.drop_index("ix_wip_entries_created_at", table_name="wip_entries")
    op.drop_index("ix_wip_entries_status", table_name="wip_entries")
    op.drop_table("wip_entries")
