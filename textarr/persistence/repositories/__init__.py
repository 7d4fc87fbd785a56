"""Repository implementations."""

from textarr.persistence.repositories.media_request_repo import MediaRequestRepository

__all__ = [
    "MediaRequestRepository",
]
