from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from later.constants import AUTO_ARCHIVE_POLICIES


class ProfileOut(BaseModel):
    id: str
    display_name: str | None
    avatar_url: str | None
    timezone: str
    auto_archive_policy: str
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class SettingsPatch(BaseModel):
    display_name: str | None = Field(default=None, max_length=120)
    timezone: str | None = Field(default=None, min_length=1, max_length=100)
    auto_archive_policy: str | None = Field(default=None, description="never|24h|7d")

    @field_validator("timezone")
    @classmethod
    def _timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError("timezone must be a valid IANA zone name")
        return v

    @field_validator("auto_archive_policy")
    @classmethod
    def _policy(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().lower()
        if v not in AUTO_ARCHIVE_POLICIES:
            raise ValueError(f"auto_archive_policy must be one of: {sorted(AUTO_ARCHIVE_POLICIES)}")
        return v


class UserOut(BaseModel):
    id: str
    email: str | None
    name: str | None


class SettingsOut(BaseModel):
    profile: ProfileOut
    user: UserOut | None
