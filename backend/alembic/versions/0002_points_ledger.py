"""create points ledger tables

Revision ID: 0002_points_ledger
Revises: 0001_family_module
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_points_ledger"
down_revision = "0001_family_module"
branch_labels = None
depends_on = None

ZERO = sa.text("0")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("SYSUTCDATETIME()"),
    )


def upgrade() -> None:
    op.execute(
        "IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = 'points') "
        "EXEC('CREATE SCHEMA points')"
    )

    op.create_table(
        "user_balances",
        sa.Column("UserId", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("AvailablePoints", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        sa.Column("LifetimePoints", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        sa.Column("BankedPoints", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        sa.Column("BankedMoney", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
        schema="points",
    )

    op.create_table(
        "chores",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("FamilyId", sa.Integer(), nullable=False),
        sa.Column("Title", sa.String(length=200), nullable=False),
        sa.Column("Points", sa.Numeric(10, 2), nullable=False, server_default=ZERO),
        sa.Column("IsRequired", sa.Boolean(), nullable=False, server_default=ZERO),
        sa.Column("Frequency", sa.String(length=20), nullable=False, server_default=sa.text("'WEEKLY'")),
        sa.Column("ScheduledDays", sa.String(length=20)),
        sa.Column("Priority", sa.String(length=10), nullable=False, server_default=sa.text("'MEDIUM'")),
        sa.Column("IsActive", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
        schema="points",
    )
    op.create_index("ix_points_chores_Id", "chores", ["Id"], schema="points")
    op.create_index("ix_points_chores_FamilyId", "chores", ["FamilyId"], schema="points")

    op.create_table(
        "chore_assignments",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("ChoreId", sa.Integer(), nullable=False),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("FamilyId", sa.Integer(), nullable=False),
        sa.Column("WeekStart", sa.Date(), nullable=False),
        _timestamp("CreatedAt"),
        sa.UniqueConstraint("ChoreId", "UserId", "WeekStart", name="uq_points_chore_assignments_week"),
        schema="points",
    )
    op.create_index("ix_points_chore_assignments_Id", "chore_assignments", ["Id"], schema="points")
    op.create_index("ix_points_chore_assignments_ChoreId", "chore_assignments", ["ChoreId"], schema="points")
    op.create_index("ix_points_chore_assignments_UserId", "chore_assignments", ["UserId"], schema="points")
    op.create_index("ix_points_chore_assignments_FamilyId", "chore_assignments", ["FamilyId"], schema="points")

    op.create_table(
        "chore_submissions",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("AssignmentId", sa.Integer(), nullable=False),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("CompletedAt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("CompletedOn", sa.Date(), nullable=False),
        sa.Column("Notes", sa.Text()),
        sa.Column("Status", sa.String(length=20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("Score", sa.Integer()),
        sa.Column("PointsAwarded", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        _timestamp("SubmittedAt"),
        _timestamp("UpdatedAt"),
        sa.UniqueConstraint("AssignmentId", "CompletedOn", name="uq_points_chore_submissions_day"),
        schema="points",
    )
    op.create_index("ix_points_chore_submissions_Id", "chore_submissions", ["Id"], schema="points")
    op.create_index(
        "ix_points_chore_submissions_AssignmentId",
        "chore_submissions",
        ["AssignmentId"],
        schema="points",
    )
    op.create_index("ix_points_chore_submissions_UserId", "chore_submissions", ["UserId"], schema="points")
    op.create_index("ix_points_chore_submissions_status", "chore_submissions", ["Status"], schema="points")

    op.create_table(
        "chore_approvals",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("SubmissionId", sa.Integer(), nullable=False),
        sa.Column("ApprovedByUserId", sa.Integer(), nullable=False),
        sa.Column("Approved", sa.Boolean(), nullable=False),
        sa.Column("Score", sa.Integer()),
        sa.Column("PointsAwarded", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        sa.Column("OriginalPoints", sa.Numeric(10, 2), nullable=False, server_default=ZERO),
        sa.Column("Feedback", sa.String(length=500)),
        _timestamp("CreatedAt"),
        _timestamp("UpdatedAt"),
        sa.UniqueConstraint("SubmissionId", name="uq_points_chore_approvals_submission"),
        schema="points",
    )
    op.create_index("ix_points_chore_approvals_Id", "chore_approvals", ["Id"], schema="points")
    op.create_index(
        "ix_points_chore_approvals_SubmissionId",
        "chore_approvals",
        ["SubmissionId"],
        schema="points",
    )

    op.create_table(
        "point_transactions",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("FamilyId", sa.Integer(), nullable=False),
        sa.Column("Amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("Type", sa.String(length=30), nullable=False),
        sa.Column("Status", sa.String(length=20), nullable=False),
        sa.Column("Reason", sa.String(length=300)),
        sa.Column("Description", sa.String(length=300)),
        sa.Column("MoneyValue", sa.Numeric(12, 2), nullable=False, server_default=ZERO),
        sa.Column("PointRate", sa.Numeric(10, 4), nullable=False),
        sa.Column("RequestTransactionId", sa.Integer()),
        sa.Column("ProcessedByUserId", sa.Integer()),
        sa.Column("ProcessedAt", sa.DateTime(timezone=True)),
        _timestamp("SubmittedAt"),
        schema="points",
    )
    op.create_index("ix_points_point_transactions_Id", "point_transactions", ["Id"], schema="points")
    op.create_index("ix_points_point_transactions_UserId", "point_transactions", ["UserId"], schema="points")
    op.create_index(
        "ix_points_point_transactions_family_status",
        "point_transactions",
        ["FamilyId", "Type", "Status"],
        schema="points",
    )


def downgrade() -> None:
    op.drop_index("ix_points_point_transactions_family_status", table_name="point_transactions", schema="points")
    op.drop_index("ix_points_point_transactions_UserId", table_name="point_transactions", schema="points")
    op.drop_index("ix_points_point_transactions_Id", table_name="point_transactions", schema="points")
    op.drop_table("point_transactions", schema="points")
    op.drop_index("ix_points_chore_approvals_SubmissionId", table_name="chore_approvals", schema="points")
    op.drop_index("ix_points_chore_approvals_Id", table_name="chore_approvals", schema="points")
    op.drop_table("chore_approvals", schema="points")
    op.drop_index("ix_points_chore_submissions_status", table_name="chore_submissions", schema="points")
    op.drop_index("ix_points_chore_submissions_UserId", table_name="chore_submissions", schema="points")
    op.drop_index("ix_points_chore_submissions_AssignmentId", table_name="chore_submissions", schema="points")
    op.drop_index("ix_points_chore_submissions_Id", table_name="chore_submissions", schema="points")
    op.drop_table("chore_submissions", schema="points")
    op.drop_index("ix_points_chore_assignments_FamilyId", table_name="chore_assignments", schema="points")
    op.drop_index("ix_points_chore_assignments_UserId", table_name="chore_assignments", schema="points")
    op.drop_index("ix_points_chore_assignments_ChoreId", table_name="chore_assignments", schema="points")
    op.drop_index("ix_points_chore_assignments_Id", table_name="chore_assignments", schema="points")
    op.drop_table("chore_assignments", schema="points")
    op.drop_index("ix_points_chores_FamilyId", table_name="chores", schema="points")
    op.drop_index("ix_points_chores_Id", table_name="chores", schema="points")
    op.drop_table("chores", schema="points")
    op.drop_table("user_balances", schema="points")
