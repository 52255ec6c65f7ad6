import datetime as dt

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UTCDateTime


class Reminder(Base):
    __tablename__ = "reminders"
    __table_args__ = (
        CheckConstraint("status IN ('upcoming', 'archived')", name="ck_reminders_status"),
        CheckConstraint(
            "archive_reason IS NULL OR archive_reason IN ('completed', 'auto', 'manual')",
            name="ck_reminders_archive_reason",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), index=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    # lower-cased note text plus attachment text, kept in sync on every write
    search_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="upcoming", server_default="upcoming", index=True)
    archive_reason: Mapped[str | None] = mapped_column(String(16), nullable=True)

    remind_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)
    archived_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime)
    updated_at: Mapped[dt.datetime] = mapped_column(UTCDateTime)

    profile = relationship("Profile", back_populates="reminders")
    attachments = relationship(
        "ReminderAttachment",
        back_populates="reminder",
        cascade="all, delete-orphan",
        order_by="ReminderAttachment.position",
    )


class ReminderAttachment(Base):
    __tablename__ = "reminder_attachments"
    __table_args__ = (
        CheckConstraint("kind IN ('link', 'image', 'file', 'text_snippet')", name="ck_reminder_attachments_kind"),
        CheckConstraint(
            "metadata_status IN ('pending', 'ready', 'failed')", name="ck_reminder_attachments_metadata_status"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reminder_id: Mapped[str] = mapped_column(ForeignKey("reminders.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    kind: Mapped[str] = mapped_column(String(16))

    storage_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    text_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    preview_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    preview_icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    preview_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_status: Mapped[str] = mapped_column(String(16), default="pending", server_default="pending")

    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime)

    reminder = relationship("Reminder", back_populates="attachments")
