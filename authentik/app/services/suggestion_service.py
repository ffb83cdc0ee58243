# authentik/app/services/suggestion_service.py
"""
Suggestion workflow.

pending -> processing -> completed | failed
pending -> rejected
completed | failed | rejected | processing -> processing (reprocess)

Nothing here prevents two approve/reprocess calls on the same suggestion
from running at the same time.
"""
from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool

from authentik.app.domain.errors import InvalidTransitionError, SuggestionNotFoundError
from authentik.app.domain.models import Suggestion, SuggestionStatus
from authentik.app.infra.db.base import SuggestionRepository
from authentik.services.errors import InvalidURLError, UnsupportedPlatformError
from authentik.services.extraction_pipeline import ExtractionPipeline, ExtractionResult
from authentik.services.ids import detect_platform

logger = logging.getLogger(__name__)

DEFAULT_CREATOR_NAME = "Community Suggestion"


def serialize_error(error: BaseException) -> dict[str, Any]:
    return {
        "message": str(error),
        "name": type(error).__name__,
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }


def success_logs(result: ExtractionResult) -> dict[str, Any]:
    return {"stats": result.stats.to_dict(), "errors": list(result.logs)}


class SuggestionService:
    """
    Service for the admin suggestion workflow.

    Responsibilities:
    - Record user-submitted videos as pending suggestions
    - Run one extraction per approval or reprocess
    - Store the resulting collection id and run logs
    """

    def __init__(
        self,
        repository: SuggestionRepository,
        pipeline_factory: Callable[[], ExtractionPipeline],
        creator_name: str = DEFAULT_CREATOR_NAME,
    ):
        self._repo = repository
        self._pipeline_factory = pipeline_factory
        self._pipeline: Optional[ExtractionPipeline] = None
        self.creator_name = creator_name

    def _get_pipeline(self) -> ExtractionPipeline:
        # built on first approve/reprocess only
        if self._pipeline is None:
            self._pipeline = self._pipeline_factory()
        return self._pipeline

    async def _load(self, suggestion_id: str) -> Suggestion:
        suggestion = await run_in_threadpool(self._repo.get_suggestion, suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError(suggestion_id)
        return suggestion

    async def _update(self, suggestion_id: str, status: SuggestionStatus, **kwargs: Any) -> Suggestion:
        return await run_in_threadpool(
            lambda: self._repo.update_status(suggestion_id, status, **kwargs)
        )

    async def submit(self, youtube_url: str, user_id: Optional[str] = None) -> Suggestion:
        """
        Create a pending suggestion.

        Raises:
            InvalidURLError: Empty URL
            UnsupportedPlatformError: URL is neither YouTube nor TikTok
        """
        url = (youtube_url or "").strip()
        if not url:
            raise InvalidURLError("A video URL is required")
        if detect_platform(url) == "unknown":
            raise UnsupportedPlatformError(f"Unsupported video platform: {url}")

        suggestion = await run_in_threadpool(self._repo.create_suggestion, url, user_id)
        logger.info("Suggestion submitted: id=%s, user=%s", suggestion.id, user_id)
        return suggestion

    async def reject(self, suggestion_id: str) -> Suggestion:
        suggestion = await self._load(suggestion_id)
        if suggestion.status != SuggestionStatus.PENDING:
            raise InvalidTransitionError(suggestion_id, suggestion.status.value, "reject")
        return await self._update(suggestion_id, SuggestionStatus.REJECTED)

    async def approve(self, suggestion_id: str) -> Suggestion:
        """
        pending -> processing, then run the extraction.

        Extraction errors never propagate: the suggestion lands on FAILED
        with {"error": message} in its logs.
        """
        suggestion = await self._load(suggestion_id)
        if suggestion.status != SuggestionStatus.PENDING:
            raise InvalidTransitionError(suggestion_id, suggestion.status.value, "approve")

        await self._update(suggestion_id, SuggestionStatus.PROCESSING)
        logger.info("Approved suggestion %s, extracting %s", suggestion_id, suggestion.youtube_url)

        try:
            result = await self._get_pipeline().extract(suggestion.youtube_url, self.creator_name)
        except Exception as exc:
            logger.error("Approval failed for suggestion %s: %s", suggestion_id, exc)
            return await self._update(
                suggestion_id,
                SuggestionStatus.FAILED,
                logs={"error": str(exc)},
            )

        return await self._complete(suggestion_id, result)

    async def reprocess(self, suggestion_id: str) -> Suggestion:
        """
        Rerun the extraction for a suggestion that already left PENDING.

        Prior logs and result_collection_id are cleared first and then
        overwritten by the new run. Failures store the serialized error
        (message, name, stack).
        """
        suggestion = await self._load(suggestion_id)
        if suggestion.status == SuggestionStatus.PENDING:
            raise InvalidTransitionError(suggestion_id, suggestion.status.value, "reprocess")

        await self._update(suggestion_id, SuggestionStatus.PROCESSING, clear_logs=True)
        logger.info("Reprocessing suggestion %s (was %s)", suggestion_id, suggestion.status.value)

        try:
            result = await self._get_pipeline().extract(suggestion.youtube_url, self.creator_name)
        except Exception as exc:
            logger.error("Reprocessing failed for suggestion %s: %s", suggestion_id, exc)
            return await self._update(
                suggestion_id,
                SuggestionStatus.FAILED,
                logs={"error": serialize_error(exc)},
            )

        return await self._complete(suggestion_id, result)

    async def get(self, suggestion_id: str) -> Suggestion:
        return await self._load(suggestion_id)

    async def _complete(self, suggestion_id: str, result: ExtractionResult) -> Suggestion:
        collection_id = result.collection.get("id")
        logger.info(
            "Suggestion %s completed: collection=%s stats=%s",
            suggestion_id,
            collection_id,
            result.stats.to_dict(),
        )
        return await self._update(
            suggestion_id,
            SuggestionStatus.COMPLETED,
            result_collection_id=str(collection_id) if collection_id else None,
            logs=success_logs(result),
        )
