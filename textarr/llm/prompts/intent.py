"""
Prompts for intent extraction.

The model turns one inbound chat message into a single JSON object
describing what the user wants. The system prompt changes with the
conversation state so short replies ("yes", "2", "anime") are read
against what the bot last asked.

Admin commands are parsed locally and never reach these prompts.
"""

import json
from typing import Any, Dict, Optional

from textarr.domain.models.intent import SessionContext
from textarr.domain.models.session import ConversationState

ACTIONS = (
    "add, search, status, help, confirm, cancel, select, anime_confirm, "
    "regular_confirm, season_select, back, show_context, restart, "
    "change_selection, decline, continue, recommend"
)

GENRES = (
    "action, adventure, animation, comedy, crime, documentary, drama, family, "
    "fantasy, history, horror, music, mystery, romance, science_fiction, "
    "thriller, war, western"
)

BASE_SYSTEM_PROMPT = f"""You are a conversational media request parser for a home media server chat bot.
Parse the user's message based on the conversation state and return the action and any details.

## Output
Return ONLY a JSON object with these keys (use null when not applicable):
{{
  "action": one of: {ACTIONS},
  "title": media title, cleaned of "the movie", "the show", "TV series", "film", "anime",
  "year": 4-digit release year if explicitly mentioned,
  "selection_number": 1-based number for select, change_selection or season_select,
  "is_anime_request": true only if the user explicitly says "anime",
  "confidence": 0.0-1.0,
  "media_type": "movie", "tv_show" or "any",
  "recommendation": null, or {{
    "type": trending | popular | top_rated | new_releases | upcoming | airing_today | genre | similar | keyword | by_year | by_provider | by_network,
    "genre": one of: {GENRES},
    "similar_to": title to find similar content for,
    "keyword": theme such as "time travel" or "heist",
    "year": specific year,
    "decade": e.g. "80s", "2000s",
    "min_rating": minimum rating such as 7.5,
    "provider": streaming service name,
    "network": TV network name
  }}
}}

## Title and year
- Keep articles like "The" if part of the title
- Keep sequel indicators like "Part 2", "Vol. 2"
- "Dune 2021" -> title "Dune", year 2021; part numbers are not years

## Confidence
- 0.9-1.0: clear request
- 0.7-0.9: likely correct, some ambiguity
- 0.5-0.7: significant ambiguity

## Recommendations
Suggestions or "what should I watch" requests use action "recommend":
- "What's trending?" -> type trending
- "Best rated shows" -> type top_rated, media_type tv_show
- "What's new?" -> type new_releases; "Upcoming movies" -> type upcoming
- "What's on TV today?" -> type airing_today
- "Recommend a horror movie" -> type genre, genre horror, media_type movie
- "Something like Breaking Bad" -> type similar, similar_to "Breaking Bad"
- "Movies about time travel" -> type keyword, keyword "time travel"
- "80s horror movies" -> type genre, genre horror, decade "80s"
- "Movies from 2024" -> type by_year, year 2024
- "What's good on Netflix?" -> type by_provider, provider "Netflix"
- "Highly rated comedies" -> type genre, genre comedy, min_rating 7.5

## Media requests
- "Add Breaking Bad" -> action add, title "Breaking Bad", confidence 0.95
- "Download Dune 2021" -> action add, title "Dune", year 2021
- "Add Attack on Titan anime" -> action add, title "Attack on Titan", is_anime_request true
- "Is anything downloading?" -> action status
- "help" -> action help"""


def _state_instructions(context: SessionContext) -> str:
    state = context.state
    media = context.selected_media

    if state == ConversationState.AWAITING_SELECTION and context.pending_results:
        lines = "\n".join(
            f"{i}. {r.display_title} - {'Movie' if r.media_type.value == 'movie' else 'TV Show'}"
            for i, r in enumerate(context.pending_results, 1)
        )
        count = len(context.pending_results)
        return f"""
The user is choosing from these search results:
{lines}

Interpret their response:
- A number (1-{count}) -> action select, selection_number that number
- "the first one", "number 2", "second" -> action select with the number they mean
- A new media title -> action add, title the new title
- "cancel", "nevermind" -> action cancel
- "help" -> action help
"""

    if state == ConversationState.AWAITING_CONFIRMATION and media:
        return f"""
The user is confirming whether to add: "{media.display_title}"

Interpret their response:
- Affirmative (yes, yeah, yep, sure, ok, do it) -> action confirm
- Negative (no, nope, cancel, nevermind) -> action cancel
- "back", "go back", "different one" -> action back
- A number, "actually the first one", "I meant 2" -> action change_selection, selection_number that number
- A new media title -> action add, title the new title
"""

    if state == ConversationState.AWAITING_ANIME_CONFIRMATION and media:
        return f"""
The user needs to confirm if "{media.title}" is anime or regular content.

Interpret their response:
- "anime", "a", "yes it's anime" -> action anime_confirm
- "regular", "r", "normal", "not anime", "no" -> action regular_confirm
- "cancel", "nevermind" -> action cancel
- "back" -> action back
"""

    if state == ConversationState.AWAITING_SEASON_SELECTION and media:
        return f"""
The user is selecting which seasons to monitor for: "{media.title}"
Options: 1=All seasons, 2=First season, 3=Latest season, 4=Future seasons

Interpret their response:
- "1", "all", "all seasons", "yes" -> action season_select, selection_number 1
- "2", "first", "first season" -> action season_select, selection_number 2
- "3", "latest", "last", "newest" -> action season_select, selection_number 3
- "4", "future", "new episodes" -> action season_select, selection_number 4
- "cancel", "nevermind" -> action cancel
- "back" -> action back
"""

    return """
The user is starting a new request.

Interpret their response:
- Media request (add, download, get, watch + title) -> action add, title the extracted title
- Search request (search, find, look up) -> action search, title the extracted title
- Status check (status, downloading, progress, queue) -> action status
- Help request (help, commands, what can you do) -> action help
- "where am I", "what's happening", "context" -> action show_context
- "start over", "reset", "clear" -> action restart
- Declining (no, no thanks, I'm good, that's all, thanks, goodbye) -> action decline
- Wanting to continue without a title (yes, yeah, sure, ok) -> action continue
"""


def get_intent_system_prompt(context: Optional[SessionContext] = None) -> str:
    """
    Get the state-aware system prompt for intent extraction.

    Args:
        context: Current session context (defaults to idle)

    Returns:
        System prompt string for LLM
    """
    context = context or SessionContext()
    return (
        f"{BASE_SYSTEM_PROMPT}\n\n"
        f"CURRENT SESSION STATE: {context.state.value}\n"
        f"{_state_instructions(context)}"
    )


def get_intent_user_prompt(text: str) -> str:
    return f'Parse this user message: "{text}"'


def _strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from LLM response."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_intent_response(response_text: str) -> Dict[str, Any]:
    """
    Parse LLM intent response into a dict.

    Args:
        response_text: Raw LLM response (should be JSON)

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If response is not a JSON object
    """
    text = _strip_markdown_fences(response_text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in intent response: {e}")

    if not isinstance(data, dict):
        raise ValueError("Intent response must be a JSON object")

    return data
