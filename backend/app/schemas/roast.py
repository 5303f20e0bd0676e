"""Roast API schemas: request body and the camelCase record returned to callers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from app.services.ai.critique.contracts import CritiqueResult


class RoastRequest(BaseModel):
    url: Optional[str] = None
    visitorId: Optional[str] = None


class RoastRecord(BaseModel):
    id: uuid.UUID
    url: str
    critique: CritiqueResult
    imageUrl: str
    visitorId: Optional[uuid.UUID] = None
    createdAt: datetime

    @classmethod
    def from_row(cls, row) -> "RoastRecord":
        created_at = row.created_at
        if created_at.tzinfo is None:
            # SQLite drops the offset; rows are always written in UTC.
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=row.id,
            url=row.url,
            critique=CritiqueResult.model_validate(row.critique),
            imageUrl=row.image_url,
            visitorId=row.visitor_id,
            createdAt=created_at,
        )
