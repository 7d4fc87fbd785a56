"""
Custom exception hierarchy for Textarr.

All application exceptions inherit from TextarrError.
"""

from typing import Optional


class TextarrError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(TextarrError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(TextarrError):
    """Base for LLM-related errors."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call timed out."""

    pass


class LLMRateLimitError(LLMError):
    """LLM rate limit exceeded."""

    pass


class LLMResponseParseError(LLMError):
    """Failed to parse LLM response."""

    pass


class IntentExtractionError(TextarrError):
    """Could not produce a structured intent from the user's text."""

    pass


# =============================================================================
# External Service Errors
# =============================================================================


class CatalogError(TextarrError):
    """TMDB request failed or timed out."""

    pass


class LibraryServiceError(TextarrError):
    """Radarr or Sonarr request failed or timed out."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class LibraryItemExistsError(LibraryServiceError):
    """The library already holds the item being added."""

    pass


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(TextarrError):
    """Session-related error."""

    pass


class IllegalTransitionError(SessionError):
    """A handler left the session in a state its transition does not allow."""

    def __init__(self, from_state: str, action: str, to_state: str):
        self.from_state = from_state
        self.action = action
        self.to_state = to_state
        super().__init__(
            f"Transition {from_state} --{action}--> {to_state} is not allowed"
        )


# =============================================================================
# User Errors
# =============================================================================


class UserError(TextarrError):
    """User management error."""

    pass


class UserNotFoundError(UserError):
    """No user has the given identity or id."""

    pass


class DuplicateUserError(UserError):
    """The identity is already linked to a user."""

    pass


class ValidationError(TextarrError):
    """Input validation failed."""

    pass


# =============================================================================
# Webhook Errors
# =============================================================================


class WebhookAuthError(TextarrError):
    """A library webhook arrived without the configured shared secret."""

    pass
