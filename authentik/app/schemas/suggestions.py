from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class SubmitSuggestionRequest(BaseModel):
    url: str = Field(..., description="YouTube or TikTok video URL")
    userId: Optional[str] = Field(None, description="Submitter id")


class SuggestionResponse(BaseModel):
    id: str
    url: str
    status: Literal["pending", "processing", "completed", "failed", "rejected"]
    userId: Optional[str] = None
    resultCollectionId: Optional[str] = None
    logs: Optional[dict[str, Any]] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
