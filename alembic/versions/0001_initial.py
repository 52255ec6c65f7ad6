"""Initial schema: profiles, reminders, reminder attachments.

Revision ID: 0001_initial
Revises:
Create Date: 2026-02-20
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("timezone", sa.String(length=64), server_default="UTC", nullable=False),
        sa.Column("auto_archive_policy", sa.String(length=8), server_default="never", nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("auto_archive_policy IN ('never', '24h', '7d')", name="ck_profiles_auto_archive_policy"),
    )
    op.create_index("ix_profiles_auto_archive_policy", "profiles", ["auto_archive_policy"])

    op.create_table(
        "reminders",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("search_text", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="upcoming", nullable=False),
        sa.Column("archive_reason", sa.String(length=16), nullable=True),
        sa.Column("remind_at", sa.DateTime(), nullable=True),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("status IN ('upcoming', 'archived')", name="ck_reminders_status"),
        sa.CheckConstraint(
            "archive_reason IS NULL OR archive_reason IN ('completed', 'auto', 'manual')",
            name="ck_reminders_archive_reason",
        ),
    )
    op.create_index("ix_reminders_user_id", "reminders", ["user_id"])
    op.create_index("ix_reminders_status", "reminders", ["status"])
    op.create_index("ix_reminders_remind_at", "reminders", ["remind_at"])

    op.create_table(
        "reminder_attachments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "reminder_id", sa.String(length=36), sa.ForeignKey("reminders.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("storage_path", sa.String(length=500), nullable=True),
        sa.Column("mime_type", sa.String(length=200), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("preview_title", sa.String(length=500), nullable=True),
        sa.Column("preview_icon_url", sa.Text(), nullable=True),
        sa.Column("preview_image_url", sa.Text(), nullable=True),
        sa.Column("metadata_status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "kind IN ('link', 'image', 'file', 'text_snippet')", name="ck_reminder_attachments_kind"
        ),
        sa.CheckConstraint(
            "metadata_status IN ('pending', 'ready', 'failed')", name="ck_reminder_attachments_metadata_status"
        ),
    )
    op.create_index("ix_reminder_attachments_reminder_id", "reminder_attachments", ["reminder_id"])


def downgrade() -> None:
    op.drop_index("ix_reminder_attachments_reminder_id", table_name="reminder_attachments")
    op.drop_table("reminder_attachments")
    op.drop_index("ix_reminders_remind_at", table_name="reminders")
    op.drop_index("ix_reminders_status", table_name="reminders")
    op.drop_index("ix_reminders_user_id", table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("ix_profiles_auto_archive_policy", table_name="profiles")
    op.drop_table("profiles")
