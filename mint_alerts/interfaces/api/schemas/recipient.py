"""Schemas for the recipient address book."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RecipientUpsert(BaseModel):
    email: str | None = Field(default=None, max_length=255)
    device_token: str | None = Field(default=None, max_length=512)
    platform: str | None = Field(default=None, max_length=20)


class RecipientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    email: str | None = None
    device_token: str | None = None
    platform: str | None = None
    updated_at: datetime | None = None


__all__ = ["RecipientRead", "RecipientUpsert"]
