"""add tooth corrections log and change event outbox

Revision ID: 0002_add_tooth_corrections_and_events
Revises: 0001_initial
Create Date: 2026-09-09 16:40:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_add_tooth_corrections_and_events"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tooth_corrections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("tooth_number", sa.String(length=2), nullable=False),
        sa.Column("tooth_record_id", sa.Integer(), nullable=True),
        sa.Column("from_status", sa.String(length=32), nullable=True),
        sa.Column("from_color", sa.String(length=16), nullable=True),
        sa.Column("to_status", sa.String(length=32), nullable=False),
        sa.Column("to_color", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
    )
    op.create_index("ix_tooth_corrections_patient_id", "tooth_corrections", ["patient_id"])

    op.create_table(
        "tooth_change_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("tooth_number", sa.String(length=2), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("color_code", sa.String(length=16), nullable=False),
    )
    op.create_index("ix_tooth_change_events_patient_id", "tooth_change_events", ["patient_id"])


def downgrade() -> None:
    op.drop_index("ix_tooth_change_events_patient_id", table_name="tooth_change_events")
    op.drop_table("tooth_change_events")
    op.drop_index("ix_tooth_corrections_patient_id", table_name="tooth_corrections")
    op.drop_table("tooth_corrections")
