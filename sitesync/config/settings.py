"""
SiteSync Configuration System
============================

Configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from pathlib import Path
from typing import List, Optional
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SiteSettings(BaseModel):
    """Static site layout and branding."""
    root: str = Field(default=".", description="Directory holding the site's HTML files")
    base_url: str = Field(default="https://holistiqueuk.com", description="Public site URL used in notifications")
    site_name: str = Field(default="Holistique UK", description="Name appended to page titles")
    brand_label: str = Field(default="HOLISTIQUE", description="Header logo text")
    author_name: str = Field(default="Yvonne", description="Byline for imported posts")
    author_bio: str = Field(
        default=(
            "Yvonne is a former model turned acupuncturist and sound healer. Today she "
            "organises holistic events and retreats for her community of conscious souls in London."
        ),
        description="Plain-text author bio shown under each post",
    )
    instagram_url: str = Field(default="https://instagram.com/yvonne.holistique/", description="Instagram profile link")
    stylesheet: str = Field(default="css/post.css", description="Stylesheet linked from generated post pages")
    copyright_year: int = Field(default=2025, ge=2000, le=2100, description="Footer copyright year")

    @property
    def root_path(self) -> Path:
        return Path(self.root)


class BlogSettings(BaseModel):
    """Medium blog sync configuration."""
    feed_url: str = Field(default="https://medium.com/feed/@yvonne.holistique", description="Medium RSS feed URL")
    manifest_file: str = Field(default="posts-manifest.json", description="Posts manifest, relative to site root")
    list_page: str = Field(default="blog-post.html", description="Blog list page receiving new cards")
    list_anchor: str = Field(default='<div class="article-grid">', description="Cards are inserted right after this anchor")
    post_file_pattern: str = Field(default="post-{number}.html", description="File name pattern for standalone posts")
    excerpt_length: int = Field(default=160, ge=20, le=1000, description="Card excerpt character budget")
    words_per_minute: int = Field(default=200, ge=50, le=1000, description="Reading rate for read-time estimates")
    min_read_time: int = Field(default=2, ge=1, le=60, description="Minimum read time in minutes")
    hero_image_width: int = Field(default=1400, ge=100, le=4000, description="Image width for standalone pages")
    card_image_width: int = Field(default=700, ge=100, le=4000, description="Image width for list cards")
    fallback_category: str = Field(default="Journal", description="Category used when no tag survives the stoplist")
    category_stoplist: List[str] = Field(
        default_factory=lambda: ["medium", "blog", "writing", "life", "self", "culture"],
        description="Generic tags never used as a category",
    )

    @field_validator("post_file_pattern")
    @classmethod
    def validate_pattern(cls, v):
        """Pattern must contain the {number} placeholder."""
        if "{number}" not in v:
            raise ValueError("post_file_pattern must contain '{number}'")
        return v

    @field_validator("category_stoplist")
    @classmethod
    def normalize_stoplist(cls, v):
        """Compare tags case-insensitively."""
        return [tag.strip().lower() for tag in v if tag and tag.strip()]


class EventSettings(BaseModel):
    """Eventbrite sync configuration."""
    token: Optional[str] = Field(default=None, description="Eventbrite private API token")
    org_id: Optional[str] = Field(default=None, description="Eventbrite organization ID")
    api_base: str = Field(default="https://www.eventbriteapi.com/v3", description="Eventbrite API root")
    manifest_file: str = Field(default="events-manifest.json", description="Events manifest, relative to site root")
    events_page: str = Field(default="events.html", description="Events page with upcoming and past sections")
    index_page: str = Field(default="index.html", description="Homepage with the upcoming-events teaser")
    upcoming_markers: List[str] = Field(default=["<!-- EVENTS-UPCOMING-START -->", "<!-- EVENTS-UPCOMING-END -->"])
    past_markers: List[str] = Field(default=["<!-- EVENTS-PAST-START -->", "<!-- EVENTS-PAST-END -->"])
    homepage_markers: List[str] = Field(default=["<!-- HOMEPAGE-EVENTS-START -->", "<!-- HOMEPAGE-EVENTS-END -->"])
    past_limit: int = Field(default=12, ge=0, le=100, description="Most recent past events to show")
    homepage_limit: int = Field(default=3, ge=0, le=20, description="Upcoming events shown on the homepage")
    description_length: int = Field(default=150, ge=20, le=1000, description="Card description character budget")

    @field_validator("upcoming_markers", "past_markers", "homepage_markers")
    @classmethod
    def validate_marker_pair(cls, v):
        """Markers come as a distinct begin/end pair."""
        if len(v) != 2 or not all(v) or v[0] == v[1]:
            raise ValueError("markers must be two distinct non-empty strings")
        return v

    def is_configured(self) -> bool:
        return bool(self.token and self.org_id)


class FallbackImage(BaseModel):
    """Stock image chosen when a record's title or description mentions a keyword."""
    keywords: List[str]
    url: str


class ImageSettings(BaseModel):
    """Stock images used when a record carries no image of its own."""
    fallbacks: List[FallbackImage] = Field(
        default_factory=lambda: [
            FallbackImage(keywords=["sound", "gong"], url="https://images.unsplash.com/photo-1591228127791-8e2eaef098d3?w=600&h=400&fit=crop&q=80"),
            FallbackImage(keywords=["breath"], url="https://images.unsplash.com/photo-1544367567-0f2fcb009e0b?w=600&h=400&fit=crop&q=80"),
            FallbackImage(keywords=["meditat"], url="https://images.unsplash.com/photo-1506126613408-eca07ce68773?w=600&h=400&fit=crop&q=80"),
            FallbackImage(keywords=["yoga"], url="https://images.unsplash.com/photo-1575052814086-f385e2e2ad1b?w=600&h=400&fit=crop&q=80"),
        ],
        description="Keyword sets in priority order",
    )
    default_url: str = Field(
        default="https://images.unsplash.com/photo-1545389336-cf090694435e?w=600&h=400&fit=crop&q=80",
        description="Image used when no keyword matches",
    )


class NewsletterSettings(BaseModel):
    """Newsletter webhook configuration."""
    webhook_url: Optional[str] = Field(default=None, description="Webhook receiving new-post broadcasts")
    secret: Optional[str] = Field(default=None, description="Bearer secret for the webhook")

    def is_configured(self) -> bool:
        return bool(self.webhook_url and self.secret)


class LimitsSettings(BaseModel):
    """Transport limits."""
    request_timeout: int = Field(default=30, ge=5, le=300, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries for idempotent GET requests")
    max_pages: int = Field(default=50, ge=1, le=1000, description="Upper bound on continuation pages per listing")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class SiteSyncSettings(BaseSettings):
    """Main application settings."""

    site: SiteSettings = Field(default_factory=SiteSettings)
    blog: BlogSettings = Field(default_factory=BlogSettings)
    events: EventSettings = Field(default_factory=EventSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    newsletter: NewsletterSettings = Field(default_factory=NewsletterSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="HolistiqueSync", description="Application name")
    version: str = Field(default="1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Unprefixed names used by the existing CI workflow secrets
    eventbrite_token: Optional[str] = Field(
        default=None, repr=False, validation_alias=AliasChoices("EVENTBRITE_TOKEN")
    )
    eventbrite_org_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("EVENTBRITE_ORG_ID")
    )
    newsletter_webhook_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NEWSLETTER_WEBHOOK_URL")
    )
    newsletter_secret: Optional[str] = Field(
        default=None, repr=False, validation_alias=AliasChoices("NEWSLETTER_SECRET")
    )
    site_base_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SITE_BASE_URL")
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "SITESYNC_",
    }

    @model_validator(mode="after")
    def apply_workflow_variables(self):
        """Fill nested settings from the unprefixed workflow variables.

        A nested value set explicitly, e.g. through ``SITESYNC_EVENTS__TOKEN``,
        always wins.
        """
        fallbacks = (
            ("events", "token", self.eventbrite_token),
            ("events", "org_id", self.eventbrite_org_id),
            ("newsletter", "webhook_url", self.newsletter_webhook_url),
            ("newsletter", "secret", self.newsletter_secret),
            ("site", "base_url", self.site_base_url),
        )
        for section_name, field_name, value in fallbacks:
            section = getattr(self, section_name)
            if value and field_name not in section.model_fields_set:
                setattr(self, section_name, section.model_copy(update={field_name: value}))
        return self

    @property
    def user_agent(self) -> str:
        return f"{self.app_name}/{self.version}"

    def site_file(self, name: str) -> Path:
        """Resolve a site-relative file name."""
        return self.site.root_path / name

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        if not self.site.root_path.is_dir():
            errors.append(f"Site root is not a directory: {self.site.root}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> SiteSyncSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = SiteSyncSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID,
        )


# Global settings instance
_settings: Optional[SiteSyncSettings] = None


def get_settings(reload: bool = False) -> SiteSyncSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings
    if _settings is None or reload:
        _settings = load_settings()

    return _settings
