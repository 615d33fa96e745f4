"""initial chart sync schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-09-02 10:15:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

TOOTH_STATUSES = (
    "healthy",
    "caries",
    "filled",
    "crown",
    "missing",
    "attention",
    "root_canal",
    "extraction_needed",
    "implant",
)


def upgrade() -> None:
    op.create_table(
        "treatment_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("consultation_id", sa.String(length=64), nullable=True),
        sa.Column("tooth_diagnosis_id", sa.Integer(), nullable=True),
        sa.Column("tooth_number", sa.String(length=2), nullable=True),
        sa.Column("treatment_type", sa.String(length=200), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "in_progress",
                "completed",
                "cancelled",
                name="treatment_record_status",
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("planned_status", sa.String(length=50), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_treatment_records_patient_id", "treatment_records", ["patient_id"])

    op.create_table(
        "appointment_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("appointment_type", sa.String(length=120), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "scheduled",
                "confirmed",
                "in_progress",
                "completed",
                "cancelled",
                "no_show",
                name="appointment_record_status",
            ),
            nullable=False,
            server_default="scheduled",
        ),
        sa.Column(
            "linked_treatment_id",
            sa.Integer(),
            sa.ForeignKey("treatment_records.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_appointment_records_patient_id", "appointment_records", ["patient_id"])

    op.create_table(
        "appointment_tooth_links",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.Integer(),
            sa.ForeignKey("appointment_records.id"),
            nullable=False,
        ),
        sa.Column("tooth_number", sa.String(length=12), nullable=False),
        sa.Column("tooth_diagnosis_id", sa.Integer(), nullable=True),
        sa.Column("diagnosis_note", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_appointment_tooth_links_appointment_id",
        "appointment_tooth_links",
        ["appointment_id"],
    )

    op.create_table(
        "tooth_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("tooth_number", sa.String(length=2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*TOOTH_STATUSES, name="tooth_status"),
            nullable=False,
            server_default="healthy",
        ),
        sa.Column("color_code", sa.String(length=7), nullable=False),
        sa.Column("primary_diagnosis", sa.Text(), nullable=True),
        sa.Column("recommended_treatment", sa.Text(), nullable=True),
        sa.Column("treatment_provided", sa.Text(), nullable=True),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("source_consultation_id", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tooth_records_patient_id", "tooth_records", ["patient_id"])
    op.create_index(
        "ix_tooth_records_lineage",
        "tooth_records",
        ["patient_id", "tooth_number", "updated_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_tooth_records_lineage", table_name="tooth_records")
    op.drop_index("ix_tooth_records_patient_id", table_name="tooth_records")
    op.drop_table("tooth_records")
    op.drop_index("ix_appointment_tooth_links_appointment_id", table_name="appointment_tooth_links")
    op.drop_table("appointment_tooth_links")
    op.drop_index("ix_appointment_records_patient_id", table_name="appointment_records")
    op.drop_table("appointment_records")
    op.drop_index("ix_treatment_records_patient_id", table_name="treatment_records")
    op.drop_table("treatment_records")
    op.execute("DROP TYPE IF EXISTS tooth_status")
    op.execute("DROP TYPE IF EXISTS appointment_record_status")
    op.execute("DROP TYPE IF EXISTS treatment_record_status")
