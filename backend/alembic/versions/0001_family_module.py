"""create family module tables

Revision ID: 0001_family_module
Revises:
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_family_module"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("SYSUTCDATETIME()"),
    )


def upgrade() -> None:
    op.execute(
        "IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = 'family') "
        "EXEC('CREATE SCHEMA family')"
    )

    op.create_table(
        "families",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("Name", sa.String(length=120), nullable=False),
        sa.Column("PointsToMoneyRate", sa.Numeric(10, 4), nullable=False, server_default=sa.text("1")),
        sa.Column("AutoApproveChores", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("BaseAllowance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("StretchAllowance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("AllowBudgetOverrun", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
        schema="family",
    )
    op.create_index("ix_family_families_Id", "families", ["Id"], schema="family")

    op.create_table(
        "family_memberships",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("FamilyId", sa.Integer(), nullable=False),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("Role", sa.String(length=20), nullable=False, server_default=sa.text("'CHILD'")),
        sa.Column("IsActive", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("IsPrimary", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _timestamp("CreatedAt"),
        sa.UniqueConstraint("FamilyId", "UserId", name="uq_family_memberships_family_user"),
        schema="family",
    )
    op.create_index("ix_family_family_memberships_Id", "family_memberships", ["Id"], schema="family")
    op.create_index("ix_family_family_memberships_FamilyId", "family_memberships", ["FamilyId"], schema="family")
    op.create_index("ix_family_family_memberships_UserId", "family_memberships", ["UserId"], schema="family")


def downgrade() -> None:
    op.drop_index("ix_family_family_memberships_UserId", table_name="family_memberships", schema="family")
    op.drop_index("ix_family_family_memberships_FamilyId", table_name="family_memberships", schema="family")
    op.drop_index("ix_family_family_memberships_Id", table_name="family_memberships", schema="family")
    op.drop_table("family_memberships", schema="family")
    op.drop_index("ix_family_families_Id", table_name="families", schema="family")
    op.drop_table("families", schema="family")
