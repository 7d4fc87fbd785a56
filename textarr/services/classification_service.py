"""Anime/regular classification of a single media item."""

import structlog

from textarr.domain.models.media import AnimeStatus, MediaSearchResult, MediaType
from textarr.services.protocols import ICatalog

log = structlog.get_logger(__name__)


class ClassificationService:
    """
    Decides whether an item is anime before it is committed.

    Decision order:
        1. The user explicitly asked for anime: anime, no lookup.
        2. Unknown media kind: unknown, no lookup.
        3. A Sonarr record (from the library fallback search): its seriesType.
           Its id is a TVDB id, so the catalog cannot be asked.
        4. Otherwise the catalog's detector; a detector failure gives unknown.

    An `uncertain` result means the user has to choose the library.
    classify() never raises.
    """

    def __init__(self, catalog: ICatalog):
        self.catalog = catalog

    async def classify(
        self, media: MediaSearchResult, is_anime_request: bool = False
    ) -> MediaSearchResult:
        if is_anime_request:
            status = AnimeStatus.ANIME
        elif media.media_type == MediaType.UNKNOWN:
            status = AnimeStatus.UNKNOWN
        elif "seriesType" in media.raw_data:
            is_anime = media.raw_data["seriesType"] == "anime"
            status = AnimeStatus.ANIME if is_anime else AnimeStatus.REGULAR
        else:
            try:
                status = await self.catalog.detect_anime(media.id, media.media_type)
            except Exception as e:
                log.warning(
                    "anime_detection_failed",
                    tmdb_id=media.id,
                    title=media.title,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                status = AnimeStatus.UNKNOWN

        log.debug("media_classified", tmdb_id=media.id, anime_status=status.value)
        return media.model_copy(update={"anime_status": status})
