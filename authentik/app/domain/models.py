# authentik/app/domain/models.py
"""
Domain models for the suggestion workflow.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SuggestionStatus(str, Enum):
    """Status enum for user-submitted video suggestions."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass
class Suggestion:
    """
    A user-submitted video waiting for (or finished with) one extraction run.
    Only the suggestion service mutates it.
    """
    id: str
    youtube_url: str
    status: SuggestionStatus
    user_id: Optional[str] = None
    result_collection_id: Optional[str] = None
    logs: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            SuggestionStatus.COMPLETED,
            SuggestionStatus.FAILED,
            SuggestionStatus.REJECTED,
        )
