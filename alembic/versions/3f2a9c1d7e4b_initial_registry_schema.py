"""initial_registry_schema

Revision ID: 3f2a9c1d7e4b
Revises: 
Create Date: 2026-10-19 09:12:41.208113
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e4b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # USERS
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("role IN ('admin', 'nurse')", name="ck_users_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # PATIENTS
    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=False),
        sa.Column("sex", sa.String(length=1), nullable=True),
        sa.Column("pregnant", sa.Boolean(), nullable=False),
        sa.Column("childbearing_age", sa.Boolean(), nullable=False),
        sa.Column("postpartum", sa.Boolean(), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("locality", sa.String(), nullable=True),
        sa.Column("guardian_contact", sa.String(), nullable=True),
        sa.Column("id_number", sa.String(), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("sex IN ('M', 'F')", name="ck_patients_sex"),
    )
    op.create_index("ix_patients_id", "patients", ["id"])
    op.create_index("ix_patients_name", "patients", ["name"])
    op.create_index("ix_patients_created_at", "patients", ["created_at"])

    # VACCINES
    op.create_table(
        "vaccines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("doses_per_vial", sa.Integer(), nullable=False),
        sa.Column("usable_hours", sa.Integer(), nullable=False),
        sa.Column("target_group", sa.String(), nullable=True),
        sa.Column("schedule_doses", sa.Integer(), nullable=False),
        sa.Column("min_age_months", sa.Integer(), nullable=False),
        sa.Column("max_age_months", sa.Integer(), nullable=False),
        sa.CheckConstraint("doses_per_vial > 0", name="ck_vaccines_doses_per_vial_positive"),
        sa.CheckConstraint("usable_hours > 0", name="ck_vaccines_usable_hours_positive"),
        sa.CheckConstraint("schedule_doses > 0", name="ck_vaccines_schedule_doses_positive"),
    )
    op.create_index("ix_vaccines_id", "vaccines", ["id"])

    # VIALS
    op.create_table(
        "vials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("vaccine_id", sa.Integer(), sa.ForeignKey("vaccines.id"), nullable=False),
        sa.Column("lot", sa.String(), nullable=False),
        sa.Column("sealed_expiry", sa.Date(), nullable=False),
        sa.Column("doses_remaining", sa.Integer(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("opened_at", sa.DateTime(), nullable=True),
        sa.Column("usable_until", sa.DateTime(), nullable=True),
        sa.Column("received_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint("doses_remaining >= 0", name="ck_vials_doses_non_negative"),
        sa.CheckConstraint(
            "state IN ('sealed', 'open', 'consumed', 'expired')",
            name="ck_vials_state",
        ),
    )
    op.create_index("ix_vials_id", "vials", ["id"])
    op.create_index("ix_vials_vaccine_state", "vials", ["vaccine_id", "state"])

    # ADMINISTRATIONS
    op.create_table(
        "administrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("vaccine_id", sa.Integer(), sa.ForeignKey("vaccines.id"), nullable=False),
        sa.Column("vial_id", sa.Integer(), sa.ForeignKey("vials.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("dose_number", sa.Integer(), nullable=False),
        sa.Column("administered_at", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
    )
    op.create_index("ix_administrations_id", "administrations", ["id"])
    op.create_index("ix_administrations_patient_id", "administrations", ["patient_id"])
    op.create_index("ix_administrations_vaccine_id", "administrations", ["vaccine_id"])
    op.create_index("ix_administrations_vial_id", "administrations", ["vial_id"])
    op.create_index("ix_administrations_administered_at", "administrations", ["administered_at"])

    # WASTAGE
    op.create_table(
        "wastage",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("vial_id", sa.Integer(), sa.ForeignKey("vials.id"), nullable=False),
        sa.Column("doses_wasted", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("doses_wasted >= 0", name="ck_wastage_doses_non_negative"),
        sa.CheckConstraint(
            "reason IN ('usable_window_elapsed', 'shelf_life_expired', 'other')",
            name="ck_wastage_reason",
        ),
    )
    op.create_index("ix_wastage_id", "wastage", ["id"])
    op.create_index("ix_wastage_vial_id", "wastage", ["vial_id"])
    op.create_index("ix_wastage_recorded_at", "wastage", ["recorded_at"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table("wastage")
    op.drop_table("administrations")
    op.drop_table("vials")
    op.drop_table("vaccines")
    op.drop_table("patients")
    op.drop_table("users")
