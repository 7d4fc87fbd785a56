"""
Application settings management.

Secrets and connection details are loaded from environment variables with
.env file support. Behavioural configuration (users, quotas, message
templates, library options) lives in a YAML file loaded into AppConfig.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from textarr.domain.models.user import Platform, User

QuotaPeriod = Literal["daily", "weekly", "monthly"]


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_path: Path = Field(
        default=Path("config/textarr.yaml"),
        description="YAML file with users, quotas and message templates",
    )
    database_path: Path = Field(
        default=Path("data/textarr.db"), description="Path to SQLite request ledger"
    )

    # ==========================================================================
    # Catalog and Library Services
    # ==========================================================================

    tmdb_api_key: Optional[str] = Field(default=None, description="TMDB API key")
    tmdb_language: str = Field(default="en", description="TMDB response language")

    radarr_url: str = Field(default="http://localhost:7878", description="Radarr URL")
    radarr_api_key: Optional[str] = Field(default=None, description="Radarr API key")
    sonarr_url: str = Field(default="http://localhost:8989", description="Sonarr URL")
    sonarr_api_key: Optional[str] = Field(default=None, description="Sonarr API key")

    http_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for TMDB, Radarr and Sonarr calls"
    )

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================

    llm_provider: Literal["anthropic", "openai"] = Field(
        default="openai", description="Provider used for intent extraction"
    )
    llm_model: Optional[str] = Field(
        default=None, description="Override the provider's default model"
    )
    llm_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Timeout for intent extraction calls"
    )
    anthropic_api_key: Optional[str] = Field(
        default=None, description="Anthropic API key"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")

    # ==========================================================================
    # Sessions
    # ==========================================================================

    session_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Inactivity timeout before a session expires"
    )
    session_sweep_interval_seconds: float = Field(
        default=60.0, gt=0, description="Interval of the expired-session sweep"
    )

    # ==========================================================================
    # Download Webhooks
    # ==========================================================================

    webhook_secret: Optional[str] = Field(
        default=None,
        description="Shared secret Sonarr/Radarr send with download webhooks (unset: accept all)",
    )
    ledger_retention_days: int = Field(
        default=30, ge=1, description="Days to keep completed requests in the ledger"
    )

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=3030, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Application Configuration (from YAML)
# ============================================================================


class QuotaConfig(BaseModel):
    """Request quota configuration. A limit of 0 means unlimited."""

    enabled: bool = False
    period: QuotaPeriod = "weekly"
    movie_limit: int = Field(default=10, ge=0)
    tv_show_limit: int = Field(default=10, ge=0)
    admin_exempt: bool = True


class SessionConfig(BaseModel):
    """Conversation behaviour."""

    max_search_results: int = Field(default=5, ge=1, le=20)
    unregistered_message: str = (
        "You're not registered.\n\nYour {platform} ID: {id}\n\n"
        "Share this with your admin to get access!"
    )
    respond_to_unregistered: Dict[Platform, bool] = Field(
        default_factory=lambda: {
            "sms": False,
            "telegram": True,
            "discord": True,
            "slack": True,
        }
    )


class NotificationConfig(BaseModel):
    """Admin notification fan-out and download-complete messages."""

    enabled: bool = True
    download_complete: bool = True
    platforms: List[Platform] = Field(default_factory=lambda: ["sms"])


class LibraryConfig(BaseModel):
    """Options passed to Radarr or Sonarr when adding media."""

    quality_profile_id: int = 1
    root_folder: str
    anime_root_folder: Optional[str] = None
    anime_quality_profile_id: Optional[int] = None
    anime_tag_ids: List[int] = Field(default_factory=list)


class MessagesConfig(BaseModel):
    """User-facing message templates. Placeholders use {name} syntax."""

    generic_error: str = "Something went wrong. Please try again."
    cancelled: str = "Cancelled. Send a new request anytime!"
    restart: str = "Starting fresh! What would you like to add?"
    back_to_start: str = "Back to the start! What would you like to add?"
    goodbye: str = "Sounds good! Let me know if you need anything."
    add_prompt: str = (
        "What would you like to add? Try: 'Add Breaking Bad' or 'Add Dune'"
    )
    unknown_command: str = (
        "I didn't understand that. Try: 'Add Breaking Bad' or 'help' for commands."
    )
    nothing_to_confirm: str = "Nothing to confirm. Try requesting a movie or TV show!"
    nothing_to_select: str = (
        "Nothing to select from. Try searching for a movie or TV show!"
    )
    no_previous_results: str = (
        "No previous results to choose from. Try searching for something!"
    )
    select_range: str = "Please select a number between 1 and {max}."
    no_results: str = (
        'No results found for "{query}". '
        "Try checking the spelling or being more specific."
    )
    search_results: str = 'Found {count} results for "{query}":'
    select_prompt: str = "Reply with a number, or search for something else."
    no_recommendations: str = (
        "Couldn't find any recommendations matching your criteria. "
        "Try a different request!"
    )
    confirm_prompt: str = "YES to add, NO to cancel, or pick a different number."
    confirm_anime_prompt: str = (
        "YES to add to anime library, NO to cancel, or pick a different number."
    )
    anime_or_regular_prompt: str = (
        "This appears to be animated content.\n\n"
        "Reply ANIME or REGULAR to choose library."
    )
    season_select_prompt: str = (
        "Which seasons?\n1. All\n2. First season\n3. Latest season\n"
        "4. Future only\n\nReply with a number."
    )
    season_confirm_prompt: str = "Monitoring: {monitor_type}\n\nYES to add, NO to cancel."
    media_added: str = (
        "{title} added!\n\nIt will start downloading shortly. "
        "Want to add anything else?"
    )
    already_available: str = "{title} is available to watch!"
    already_monitored: str = "{title} is in your library, waiting to download."
    already_partial: str = (
        "{title} is partially available.\n"
        "{episode_file_count}/{episode_count} episodes downloaded "
        "({percent_complete}%)"
    )
    already_waiting_release: str = "{title} is in your library, waiting for release."
    already_waiting_episodes: str = (
        "{title} is in your library, waiting for episodes."
    )
    already_in_library: str = "{title} is already in your library!"
    nothing_downloading: str = "Nothing is currently downloading."
    currently_downloading: str = "Currently downloading:"
    admin_only: str = "This command is only available to admins."
    no_users: str = "No users configured."
    admin_notification: str = "New Request\n{user_name} added:\n{title}"
    download_complete: str = "{emoji} {title} is ready to watch!"
    quota_exceeded: str = "Request limit reached\n\n{quota_message}"
    tvdb_not_found: str = (
        'Could not find "{title}" in TVDB. '
        'Try searching directly with "Add {title} show".'
    )
    failed_to_add: str = "Failed to add {title}. Please try again."
    label_idle: str = "Ready for a new request"
    label_awaiting_selection: str = "Waiting for you to pick from search results"
    label_awaiting_confirmation: str = "Waiting for you to confirm"
    label_awaiting_anime_confirmation: str = "Waiting for anime/regular choice"
    label_awaiting_season_selection: str = "Waiting for season selection"
    help_text: str = (
        "Textarr Help\n\n"
        "Commands:\n"
        '• "Add [title]" - Add a movie or TV show\n'
        '• "Add [title] anime" - Add anime content\n'
        '• "Status" - Check download progress\n'
        '• "Help" - Show this message\n\n'
        "Examples:\n"
        '• "Add Breaking Bad"\n'
        '• "Add Attack on Titan anime"\n'
        '• "Add Dune 2021"\n'
        "• \"What's downloading?\"\n\n"
        "When selecting from a list, reply with the number.\n"
        "Reply YES/NO to confirm or cancel."
    )
    admin_help_text: str = (
        "Admin Commands:\n"
        '• "admin list" - List all users\n'
        '• "admin add <id> Name" - Add user\n'
        '• "admin remove <id>" - Remove user\n'
        '• "admin promote <id>" - Make admin\n'
        '• "admin demote <id>" - Remove admin\n'
        '• "admin quota <id> movies +5" - Add quota\n\n'
        "User IDs by platform:\n"
        "• SMS: Phone number (e.g., 5551234567)\n"
        "• Telegram: telegram:123456789\n"
        "• Discord: discord:123456789012345678\n"
        "• Slack: slack:U0123456789"
    )


class AppConfig(BaseModel):
    """
    Complete application configuration loaded from textarr.yaml.

    Everything the conversation flow needs beyond connection secrets.
    """

    users: List[User] = Field(default_factory=list)
    quotas: QuotaConfig = Field(default_factory=QuotaConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    radarr: LibraryConfig = Field(
        default_factory=lambda: LibraryConfig(root_folder="/movies")
    )
    sonarr: LibraryConfig = Field(default_factory=lambda: LibraryConfig(root_folder="/tv"))
    messages: MessagesConfig = Field(default_factory=MessagesConfig)


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load application configuration from YAML file.

    Args:
        config_path: Path to textarr.yaml. If None, uses settings.config_path.

    Returns:
        AppConfig with validated settings (defaults when the file is missing)

    Raises:
        pydantic.ValidationError: If config validation fails
    """
    config_path = Path(config_path or settings.config_path)

    if not config_path.exists():
        return AppConfig()

    with open(config_path, encoding="utf-8") as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return AppConfig()

    return AppConfig(**config_data)


# Global settings instance
settings = Settings()

# Global application config instance
app_config = load_app_config()
