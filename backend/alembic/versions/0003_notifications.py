"""create ledger notifications table

Revision ID: 0003_notifications
Revises: 0002_points_ledger
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_notifications"
down_revision = "0002_points_ledger"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        "IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = 'notifications') "
        "EXEC('CREATE SCHEMA notifications')"
    )

    op.create_table(
        "notifications",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), nullable=False),
        sa.Column("CreatedByUserId", sa.Integer(), nullable=False),
        sa.Column("Type", sa.String(length=50), nullable=False),
        sa.Column("Title", sa.Unicode(length=160), nullable=False),
        sa.Column("Body", sa.Unicode(length=400)),
        sa.Column("LinkUrl", sa.String(length=400)),
        sa.Column("SourceModule", sa.String(length=80)),
        sa.Column("SourceId", sa.String(length=120)),
        sa.Column("MetaJson", sa.Text()),
        sa.Column("IsRead", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("ReadAt", sa.DateTime(timezone=True)),
        sa.Column(
            "CreatedAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("SYSUTCDATETIME()"),
        ),
        schema="notifications",
    )
    op.create_index("ix_notifications_notifications_Id", "notifications", ["Id"], schema="notifications")
    op.create_index("ix_notifications_notifications_UserId", "notifications", ["UserId"], schema="notifications")
    op.create_index(
        "ix_notifications_user_unread",
        "notifications",
        ["UserId", "IsRead", "CreatedAt"],
        schema="notifications",
    )
    op.alter_column("notifications", "IsRead", server_default=None, schema="notifications")


def downgrade() -> None:
    op.drop_index("ix_notifications_user_unread", table_name="notifications", schema="notifications")
    op.drop_index("ix_notifications_notifications_UserId", table_name="notifications", schema="notifications")
    op.drop_index("ix_notifications_notifications_Id", table_name="notifications", schema="notifications")
    op.drop_table("notifications", schema="notifications")
