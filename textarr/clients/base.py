"""
Shared HTTP plumbing for the Radarr and Sonarr v3 APIs.

Both services authenticate with an X-Api-Key header and live under
{base_url}/api/v3/. Every call has a bounded timeout and is never retried;
a timeout or error status surfaces as LibraryServiceError. An add that the
service rejects because the item already exists surfaces as the more
specific LibraryItemExistsError.
"""

import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
import structlog

from textarr.core.exceptions import LibraryItemExistsError, LibraryServiceError
from textarr.domain.models.media import MediaSearchResult, QueueItem

log = structlog.get_logger(__name__)

_EXISTS_PATTERN = re.compile(r"already|exists", re.IGNORECASE)


class LibraryClient(ABC):
    """Base client for an *arr service."""

    service_name: str = ""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        quality_profile_id: int,
        root_folder: str,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.quality_profile_id = quality_profile_id
        self.root_folder = root_folder
        self.timeout = timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {"X-Api-Key": self.api_key, "Content-Type": "application/json"}

    def api_url(self, endpoint: str) -> str:
        return f"{self.base_url}/api/v3/{endpoint.lstrip('/')}"

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call the service and return decoded JSON (None for an empty body).

        Raises:
            LibraryItemExistsError: 400/409 whose body says the item exists
            LibraryServiceError: Any other error status, timeout, or transport failure
        """
        url = self.api_url(endpoint)
        start = time.perf_counter()

        log.debug(
            "library_request_start",
            service=self.service_name,
            method=method,
            endpoint=endpoint,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, url, headers=self.headers, params=params, json=body
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            log.error(
                "library_request_timeout",
                service=self.service_name,
                endpoint=endpoint,
                timeout_seconds=self.timeout,
            )
            raise LibraryServiceError(
                self.service_name, "Request timed out", status_code=408
            ) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            detail = e.response.text
            log.error(
                "library_request_failed",
                service=self.service_name,
                endpoint=endpoint,
                status_code=status_code,
                error=detail[:500],
            )
            if status_code in (400, 409) and _EXISTS_PATTERN.search(detail):
                raise LibraryItemExistsError(
                    self.service_name, detail, status_code=status_code
                ) from e
            raise LibraryServiceError(
                self.service_name,
                f"Request failed: {e.response.reason_phrase}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            log.error(
                "library_request_error",
                service=self.service_name,
                endpoint=endpoint,
                error=str(e),
            )
            raise LibraryServiceError(self.service_name, str(e)) from e

        log.debug(
            "library_request_complete",
            service=self.service_name,
            endpoint=endpoint,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )

        if not response.content:
            return None
        return response.json()

    async def get_queue(self) -> List[QueueItem]:
        """Current download queue with progress percentages."""
        data = await self.request("GET", "queue", params={"pageSize": 100})
        items = []
        for record in (data or {}).get("records", []):
            size = record.get("size") or 0
            size_left = record.get("sizeleft") or 0
            progress = round((1 - size_left / size) * 100) if size > 0 else 0
            items.append(
                QueueItem(
                    title=record.get("title", ""),
                    status=record.get("status", ""),
                    progress=max(0, min(100, progress)),
                    time_left=record.get("timeleft"),
                )
            )
        return items

    async def test_connection(self) -> bool:
        try:
            await self.request("GET", "system/status")
            log.info("library_connection_ok", service=self.service_name)
            return True
        except LibraryServiceError as e:
            log.error("library_connection_failed", service=self.service_name, error=e.message)
            return False

    @abstractmethod
    async def search(self, term: str) -> List[MediaSearchResult]:
        """Direct library-side search, used when the catalog is unavailable."""
        pass

    def add_options(
        self,
        quality_profile_id: Optional[int] = None,
        root_folder: Optional[str] = None,
        tags: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        return {
            "qualityProfileId": quality_profile_id or self.quality_profile_id,
            "rootFolderPath": root_folder or self.root_folder,
            "monitored": True,
            "tags": tags or [],
        }
