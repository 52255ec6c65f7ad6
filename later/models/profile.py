import datetime as dt

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UTCDateTime


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("auto_archive_policy IN ('never', '24h', '7d')", name="ck_profiles_auto_archive_policy"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", server_default="UTC")
    auto_archive_policy: Mapped[str] = mapped_column(String(8), default="never", server_default="never", index=True)

    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime)
    updated_at: Mapped[dt.datetime] = mapped_column(UTCDateTime)

    reminders = relationship("Reminder", back_populates="profile", cascade="all, delete-orphan")
