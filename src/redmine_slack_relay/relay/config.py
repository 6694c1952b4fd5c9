"""Configuration for the relay.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Variable names match the ones the relay has always been deployed with
(`REDMINE_BASE_URL`, `SLACK_WEBHOOK_URL`, `DATABASE_URL`, ...), so existing
Heroku-style deployments keep working unchanged.
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

REDMINE_ICON_URL = (
    "https://cld.pt/dl/download/a16a4a48-1222-4ddd-abb1-e8d69b989ad9/redmine_fluid_icon.png"
)

# Field name -> environment variable, for every value the relay cannot start without.
_REQUIRED: dict[str, str] = {
    "redmine_base_url": "REDMINE_BASE_URL",
    "redmine_api_key": "REDMINE_API_KEY",
    "slack_webhook_url": "SLACK_WEBHOOK_URL",
    "database_url": "DATABASE_URL",
}


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class ConfigurationError(ValueError):
    """A setting that parsed but cannot be used (e.g. an unknown database dialect)."""


class RelaySettings(BaseSettings):
    """Settings for the Redmine -> Slack relay.

    Environment variables (required):
    - REDMINE_BASE_URL
    - REDMINE_API_KEY
    - SLACK_WEBHOOK_URL
    - DATABASE_URL

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `RelaySettings(_env_file=path_to_env)`.
    """

    # Defaults are empty so that the validator below can report *every* missing
    # variable at once instead of failing on the first one.
    redmine_base_url: str = Field(
        default="",
        validation_alias="REDMINE_BASE_URL",
        description="Redmine base URL, e.g. https://redmine.example.com/",
    )
    redmine_api_key: str = Field(
        default="",
        validation_alias="REDMINE_API_KEY",
        description="Redmine REST API key (sent as X-Redmine-API-Key)",
    )
    slack_webhook_url: str = Field(
        default="",
        validation_alias="SLACK_WEBHOOK_URL",
        description="Slack incoming webhook URL",
    )
    database_url: str = Field(
        default="",
        validation_alias="DATABASE_URL",
        description="SQLAlchemy connection URL for the watermark store",
    )

    verbose: bool = Field(
        default=False,
        validation_alias="VERBOSE",
        description="Log fetched issues and full Slack payloads (forces DEBUG logging)",
    )
    slack_off: bool = Field(
        default=False,
        validation_alias="SLACK_OFF",
        description="Dry-run: log would-be Slack posts instead of sending them",
    )
    slack_channel_override: str | None = Field(
        default=None,
        validation_alias="SLACK_CHANNEL_OVERRIDE",
        description="Send every post to this channel instead of the project channel",
    )
    slack_announce_channel: str | None = Field(
        default=None,
        validation_alias="SLACK_ANNOUNCE_CHANNEL",
        description="If set, post hello/goodbye messages here when the loop starts and stops",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    project_whitelist: str = Field(
        default="",
        validation_alias="PROJECT_WHITELIST",
        description="Comma-separated Redmine project names whose issues are posted",
    )
    user_blacklist: str = Field(
        default="",
        validation_alias="USER_BLACKLIST",
        description="Comma-separated Redmine user names; issues involving them are not posted",
    )
    category_emoji: dict[str, str] = Field(
        default_factory=lambda: {"Android": ":android:", "iOS": ":aapl:"},
        validation_alias="CATEGORY_EMOJI",
        description="JSON object mapping category names to Slack emoji",
    )
    slack_handle_overrides: dict[str, str] = Field(
        default_factory=dict,
        validation_alias="SLACK_HANDLE_OVERRIDES",
        description="JSON object mapping Redmine full names to Slack handles",
    )
    redmine_icon_url: str = Field(
        default=REDMINE_ICON_URL,
        validation_alias="REDMINE_ICON_URL",
    )

    redmine_project_id: str | None = Field(default=None, validation_alias="REDMINE_PROJECT_ID")
    redmine_status: str | None = Field(default=None, validation_alias="REDMINE_STATUS")
    initial_watermark: str | None = Field(
        default=None,
        validation_alias="INITIAL_WATERMARK",
        description="Lower bound used when no watermark has been stored yet (ISO-8601)",
    )

    page_size: int = Field(default=200, validation_alias="PAGE_SIZE", ge=1, le=1000)
    poll_interval_seconds: float = Field(
        default=60.0,
        validation_alias="POLL_INTERVAL_SECONDS",
        gt=0,
        description="Time between two polling cycles",
    )
    poll_check_seconds: float = Field(
        default=6.0,
        validation_alias="POLL_CHECK_SECONDS",
        gt=0,
        description="Sub-interval at which a shutdown request is noticed while waiting",
    )
    slack_post_delay_seconds: float = Field(
        default=1.0,
        validation_alias="SLACK_POST_DELAY_SECONDS",
        ge=0,
        description="Minimum gap between two Slack posts, to avoid burst rejection",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _require_connection_settings(self) -> RelaySettings:
        missing = [env for name, env in _REQUIRED.items() if not getattr(self, name).strip()]
        if missing:
            raise ValueError(
                "The following environment variables are required: " + ", ".join(missing)
            )
        return self

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.verbose else self.log_level

    def parsed_project_whitelist(self) -> list[str]:
        return _split_csv(self.project_whitelist)

    def parsed_user_blacklist(self) -> list[str]:
        return _split_csv(self.user_blacklist)
