"""
Intent extraction service.

Pipeline:
1. Admin commands ("admin ...") are parsed locally, no LLM call
2. Everything else goes to the LLM with a state-aware system prompt
3. The JSON reply is validated into a ParsedIntent

Graceful degradation: any LLM or validation failure yields
add(title=<raw text>, confidence=0.3). extract() never raises.
"""

import re
from typing import Any, Dict, Optional, Tuple

import structlog
from pydantic import BaseModel, Field, ValidationError

from textarr.domain.models.intent import (
    AdminCommand,
    IntentAction,
    ParsedIntent,
    PreferredMediaType,
    RecommendationParams,
    SessionContext,
)
from textarr.domain.models.user import PLATFORMS
from textarr.llm.client import LLMClient, get_llm_client
from textarr.llm.prompts.intent import (
    get_intent_system_prompt,
    get_intent_user_prompt,
    parse_intent_response,
)

log = structlog.get_logger(__name__)

FALLBACK_CONFIDENCE = 0.3

QUOTA_TV_WORDS = ("tv", "tvshows", "tv_show", "tvshow", "shows")
QUOTA_MOVIE_WORDS = ("movie", "movies")


class LLMIntentPayload(BaseModel):
    """Shape the LLM is asked to return."""

    action: IntentAction
    title: Optional[str] = None
    year: Optional[int] = None
    selection_number: Optional[int] = None
    is_anime_request: bool = False
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    media_type: Optional[PreferredMediaType] = None
    recommendation: Optional[Dict[str, Any]] = None


# =============================================================================
# Admin command parsing
# =============================================================================


def normalize_phone_number(phone: str) -> str:
    """Digits only; keep an explicit '+' country code, otherwise assume +1."""
    digits = re.sub(r"\D", "", phone)
    if phone.startswith("+"):
        return f"+{digits}"
    return f"+1{digits}"


def parse_platform_target(target: str) -> Tuple[str, str]:
    """'telegram:123' -> ('telegram', '123'); a bare phone number -> sms."""
    platform, sep, raw_id = target.partition(":")
    platform = platform.lower()
    if sep and platform in PLATFORMS and raw_id:
        if platform == "sms":
            return "sms", normalize_phone_number(raw_id)
        return platform, raw_id
    return "sms", normalize_phone_number(target)


def parse_admin_command(text: str) -> Optional[ParsedIntent]:
    """
    Parse an `admin ...` command without calling the LLM.

    Returns None when the text is not an admin command. A recognized
    subcommand with missing or invalid arguments still returns its action,
    with the unparsed fields left empty, so the handler can show usage.
    """
    normalized = text.strip().lower()
    if normalized != "admin" and not normalized.startswith("admin "):
        return None

    parts = text.strip().split()
    sub = parts[1].lower() if len(parts) > 1 else "help"

    def intent(action: IntentAction, command: Optional[AdminCommand] = None) -> ParsedIntent:
        return ParsedIntent(action=action, admin_command=command, raw_message=text)

    if sub == "list":
        return intent(IntentAction.ADMIN_LIST)

    if sub == "add":
        if len(parts) < 4:
            return intent(IntentAction.ADMIN_ADD, AdminCommand())
        platform, raw_id = parse_platform_target(parts[2])
        return intent(
            IntentAction.ADMIN_ADD,
            AdminCommand(
                target_platform=platform, target_id=raw_id, user_name=" ".join(parts[3:])
            ),
        )

    single_target = {
        "remove": IntentAction.ADMIN_REMOVE,
        "promote": IntentAction.ADMIN_PROMOTE,
        "demote": IntentAction.ADMIN_DEMOTE,
    }
    if sub in single_target:
        if len(parts) < 3:
            return intent(single_target[sub], AdminCommand())
        platform, raw_id = parse_platform_target(parts[2])
        return intent(
            single_target[sub], AdminCommand(target_platform=platform, target_id=raw_id)
        )

    if sub == "quota":
        if len(parts) < 5:
            return intent(IntentAction.ADMIN_QUOTA, AdminCommand())
        platform, raw_id = parse_platform_target(parts[2])
        kind_word = parts[3].lower()
        media_type = None
        if kind_word in QUOTA_TV_WORDS:
            media_type = "tv_show"
        elif kind_word in QUOTA_MOVIE_WORDS:
            media_type = "movie"
        amount: Optional[int] = None
        try:
            amount = int(parts[4])
        except ValueError:
            pass
        if amount is not None and not -1000 <= amount <= 1000:
            amount = None
        return intent(
            IntentAction.ADMIN_QUOTA,
            AdminCommand(
                target_platform=platform,
                target_id=raw_id,
                media_type=media_type,
                quota_amount=amount,
            ),
        )

    return intent(IntentAction.ADMIN_HELP)


# =============================================================================
# Service
# =============================================================================


class IntentService:
    """
    Turns one inbound message into a ParsedIntent.

    Uses the LLM for everything except admin commands.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self._llm = llm_client

    @property
    def llm(self) -> LLMClient:
        if self._llm is None:
            self._llm = get_llm_client()
        return self._llm

    async def extract(
        self, text: str, context: Optional[SessionContext] = None
    ) -> ParsedIntent:
        """
        Extract the user's intent.

        Args:
            text: Raw inbound message
            context: Current session state, pending results and selection

        Returns:
            ParsedIntent (the fallback add intent on any failure)
        """
        context = context or SessionContext()

        admin = parse_admin_command(text)
        if admin is not None:
            log.debug("admin_command_parsed", action=admin.action.value)
            return admin

        try:
            response = await self.llm.complete(
                prompt=get_intent_user_prompt(text),
                system=get_intent_system_prompt(context),
            )
            data = parse_intent_response(response.content)
            payload = LLMIntentPayload.model_validate(data)
            intent = self._to_intent(payload, text)
        except (ValueError, ValidationError) as e:
            log.warning(
                "intent_response_invalid",
                error=str(e),
                state=context.state.value,
            )
            return self.fallback(text)
        except Exception as e:
            log.error(
                "intent_extraction_failed",
                error=str(e),
                error_type=type(e).__name__,
                state=context.state.value,
            )
            return self.fallback(text)

        log.info(
            "intent_extracted",
            action=intent.action.value,
            title=intent.title,
            selection_number=intent.selection_number,
            confidence=intent.confidence,
            state=context.state.value,
        )
        return intent

    @staticmethod
    def fallback(text: str) -> ParsedIntent:
        return ParsedIntent(
            action=IntentAction.ADD,
            title=text.strip(),
            confidence=FALLBACK_CONFIDENCE,
            raw_message=text,
        )

    @staticmethod
    def _to_intent(payload: LLMIntentPayload, text: str) -> ParsedIntent:
        if payload.action.value.startswith("admin_"):
            raise ValueError(f"Admin action {payload.action.value} outside admin command")

        recommendation = None
        if payload.action == IntentAction.RECOMMEND:
            params = {
                k: v for k, v in (payload.recommendation or {}).items() if v is not None
            }
            params.setdefault("media_type", payload.media_type or "any")
            recommendation = RecommendationParams.model_validate(params)

        return ParsedIntent(
            action=payload.action,
            title=payload.title.strip() if payload.title else None,
            year=payload.year,
            selection_number=payload.selection_number,
            is_anime_request=payload.is_anime_request,
            confidence=payload.confidence,
            media_type=payload.media_type or "any",
            recommendation_params=recommendation,
            raw_message=text,
        )
