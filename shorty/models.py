"""
Pydantic models for Shorty.

- `Shortlink` is the persisted entity as returned by every storage backend.
  The internal `id` is never serialized; `description` travels as `descr`.
- `ShortlinkCreate` / `ShortlinkUpdate` are the request payloads. Neither
  carries server-assigned fields (id, counters, timestamps), so a client
  cannot set them.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware "now" used for created_at / updated_at."""
    return datetime.now(timezone.utc)


class Shortlink(BaseModel):
    """A short key mapped to a long URL, plus its counters and timestamps."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, exclude=True)
    short: str
    long: str
    description: str = Field(default="", alias="descr")
    access_count: int = 0
    created_at: datetime
    updated_at: datetime


class _ShortlinkPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    short: str
    long: str
    description: str = Field(default="", alias="descr")


class ShortlinkCreate(_ShortlinkPayload):
    """Request payload for POST /shortlinks."""


class ShortlinkUpdate(_ShortlinkPayload):
    """Request payload for PUT /shortlinks/{short}; `short` may rename the link."""
