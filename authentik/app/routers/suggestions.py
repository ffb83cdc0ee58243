# authentik/app/routers/suggestions.py
"""
Suggestion workflow routes. Approve and reprocess run the extraction inline
and return once the suggestion is completed or failed.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from authentik.app.deps import get_suggestion_service
from authentik.app.domain.errors import InvalidTransitionError, RepositoryError, SuggestionNotFoundError
from authentik.app.domain.models import Suggestion
from authentik.app.schemas.suggestions import SubmitSuggestionRequest, SuggestionResponse
from authentik.app.services.suggestion_service import SuggestionService
from authentik.services.errors import InvalidURLError, UnsupportedPlatformError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


def _to_response(suggestion: Suggestion) -> SuggestionResponse:
    return SuggestionResponse(
        id=suggestion.id,
        url=suggestion.youtube_url,
        status=suggestion.status.value,
        userId=suggestion.user_id,
        resultCollectionId=suggestion.result_collection_id,
        logs=suggestion.logs,
        createdAt=suggestion.created_at,
        updatedAt=suggestion.updated_at,
    )


def _raise_http(exc: Exception) -> None:
    if isinstance(exc, SuggestionNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, InvalidTransitionError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, (InvalidURLError, UnsupportedPlatformError)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.error("Suggestion store failure: %s", exc)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Suggestion store unavailable") from exc


HANDLED_ERRORS = (
    SuggestionNotFoundError,
    InvalidTransitionError,
    InvalidURLError,
    UnsupportedPlatformError,
    RepositoryError,
)


@router.post("", response_model=SuggestionResponse, status_code=status.HTTP_201_CREATED)
async def submit_suggestion(
    body: SubmitSuggestionRequest,
    service: SuggestionService = Depends(get_suggestion_service),
):
    try:
        suggestion = await service.submit(body.url, body.userId)
    except HANDLED_ERRORS as exc:
        _raise_http(exc)
    return _to_response(suggestion)


@router.get("/{suggestion_id}", response_model=SuggestionResponse)
async def get_suggestion(
    suggestion_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
):
    try:
        suggestion = await service.get(suggestion_id)
    except HANDLED_ERRORS as exc:
        _raise_http(exc)
    return _to_response(suggestion)


@router.post("/{suggestion_id}/approve", response_model=SuggestionResponse)
async def approve_suggestion(
    suggestion_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
):
    try:
        suggestion = await service.approve(suggestion_id)
    except HANDLED_ERRORS as exc:
        _raise_http(exc)
    return _to_response(suggestion)


@router.post("/{suggestion_id}/reject", response_model=SuggestionResponse)
async def reject_suggestion(
    suggestion_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
):
    try:
        suggestion = await service.reject(suggestion_id)
    except HANDLED_ERRORS as exc:
        _raise_http(exc)
    return _to_response(suggestion)


@router.post("/{suggestion_id}/reprocess", response_model=SuggestionResponse)
async def reprocess_suggestion(
    suggestion_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
):
    try:
        suggestion = await service.reprocess(suggestion_id)
    except HANDLED_ERRORS as exc:
        _raise_http(exc)
    return _to_response(suggestion)
