"""Tests for error-to-status mapping."""

import pytest

from textarr.api.exception_handlers import status_for
from textarr.core.exceptions import (
    CatalogError,
    DuplicateUserError,
    IllegalTransitionError,
    IntentExtractionError,
    LibraryItemExistsError,
    LibraryServiceError,
    LLMResponseParseError,
    LLMRateLimitError,
    LLMTimeoutError,
    TextarrError,
    UserError,
    UserNotFoundError,
    WebhookAuthError,
)


@pytest.mark.parametrize(
    "exc,expected",
    [
        (WebhookAuthError("bad secret"), 401),
        (UserNotFoundError("sms:+15559999999"), 404),
        (DuplicateUserError("telegram:12345"), 409),
        (LibraryItemExistsError("radarr", "already been added", 400), 409),
        (IllegalTransitionError("idle", "confirm", "awaiting_selection"), 409),
        (UserError("cannot demote self"), 400),
        (IntentExtractionError("no intent"), 422),
        (CatalogError("TMDB request timed out"), 502),
        (LibraryServiceError("sonarr", "Request timed out", 408), 502),
        (LLMTimeoutError("slow"), 504),
        (LLMRateLimitError("429"), 429),
        (LLMResponseParseError("not json"), 502),
        (TextarrError("anything else"), 500),
    ],
)
def test_status_for(exc, expected):
    assert status_for(exc) == expected
