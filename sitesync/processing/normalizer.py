"""
Record Normalizer
=================

Maps raw feed items and raw Eventbrite events onto ``CanonicalRecord``.

Normalization is pure: the same input always yields the same record, and
missing optional fields fall back to fixed defaults instead of failing.
Only an item with neither a title nor a link is dropped, since nothing
could identify it.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..config.settings import SiteSyncSettings, FallbackImage, get_settings
from ..ingestion.feed_manager import SourceItem
from ..ingestion import content_cleaner as cleaner
from ..models import (
    CanonicalRecord,
    DerivedFields,
    EventDetails,
    EventSnapshot,
    RecordKind,
    event_identity_keys,
    post_identity_keys,
)
from ..utils.logging import get_logger_for_component


UNTITLED_POST = "Untitled"
UNTITLED_EVENT = "Untitled Event"
ONLINE_LOCATION = "Online"

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_display_date(value: Optional[date]) -> str:
    """``Jan 5, 2025`` style date, or ``""``."""
    if value is None:
        return ""
    return f"{MONTHS[value.month - 1]} {value.day}, {value.year}"


def format_event_time(value: Optional[datetime]) -> str:
    """12-hour clock time such as ``7:00 PM``, or ``""``."""
    if value is None:
        return ""
    hours = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hours}:{value.minute:02d} {suffix}"


def parse_local_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse Eventbrite's ``2026-02-15T19:00:00`` local timestamps."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def select_fallback_image(
    title: Optional[str],
    description: Optional[str],
    fallbacks: List[FallbackImage],
    default_url: str,
) -> str:
    """First keyword set found in the title or description wins."""
    haystack = f"{title or ''} {description or ''}".lower()
    for fallback in fallbacks:
        if any(keyword.lower() in haystack for keyword in fallback.keywords):
            return fallback.url
    return default_url


def _text_field(value: Any) -> str:
    # Eventbrite wraps multilingual strings as {"text": ..., "html": ...}
    if isinstance(value, dict):
        value = value.get("text")
    if isinstance(value, str):
        return value.strip()
    return ""


def _dict_field(container: Any, key: str) -> Dict[str, Any]:
    if isinstance(container, dict) and isinstance(container.get(key), dict):
        return container[key]
    return {}


class RecordNormalizer:
    """Builds canonical records from raw source data."""

    def __init__(self, settings: Optional[SiteSyncSettings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("normalizer")

    def _fallback_image(self, title: str, description: str) -> str:
        images = self.settings.images
        return select_fallback_image(
            title, description, images.fallbacks, images.default_url
        )

    def normalize_post(self, item: SourceItem) -> Optional[CanonicalRecord]:
        """
        Normalize one RSS item.

        Args:
            item: Raw feed item

        Returns:
            Canonical record, or None if the item has neither title nor link
        """
        title = cleaner.collapse_whitespace(item.title)
        link = (item.link or "").strip()

        keys = post_identity_keys(title, link)
        if not keys:
            self.logger.debug(
                f"Skipping feed item without title or link (guid={item.guid!r})"
            )
            return None

        blog = self.settings.blog
        content = item.content_html or item.summary or ""

        excerpt = cleaner.extract_excerpt(content, blog.excerpt_length)
        image = item.image_url or cleaner.extract_first_image(content)
        if image:
            hero_image = cleaner.resize_image_url(image, blog.hero_image_width)
            card_image = cleaner.resize_image_url(image, blog.card_image_width)
        else:
            hero_image = card_image = self._fallback_image(title, excerpt)

        published_at = item.published.date() if item.published else None

        derived = DerivedFields(
            image_url=hero_image,
            card_image_url=card_image,
            excerpt=excerpt,
            subtitle=cleaner.extract_subtitle(content, blog.excerpt_length),
            body_html=cleaner.clean_body_html(content),
            read_time=cleaner.estimate_read_time(
                content, blog.words_per_minute, blog.min_read_time
            ),
            date_label=format_display_date(published_at),
        )

        return CanonicalRecord(
            kind=RecordKind.POST,
            identity_keys=keys,
            display_title=title or UNTITLED_POST,
            category=cleaner.pick_category(
                item.categories, blog.category_stoplist, blog.fallback_category
            ),
            published_at=published_at,
            source_url=link,
            derived=derived,
        )

    def normalize_event(self, event: Dict[str, Any]) -> Optional[CanonicalRecord]:
        """
        Normalize one raw Eventbrite event object.

        Returns:
            Canonical record, or None if the event has neither id nor URL
        """
        if not isinstance(event, dict):
            self.logger.debug(f"Skipping malformed event: {type(event).__name__}")
            return None

        event_id = str(event.get("id") or "").strip()
        url = event.get("url") if isinstance(event.get("url"), str) else ""
        url = url.strip()

        keys = event_identity_keys(event_id, url)
        if not keys:
            self.logger.debug("Skipping event without id or URL")
            return None

        name = cleaner.collapse_whitespace(_text_field(event.get("name")))
        description = cleaner.truncate_text(
            cleaner.extract_plain_text(_text_field(event.get("description"))),
            self.settings.events.description_length,
        )

        start_local = _text_field(_dict_field(event, "start").get("local"))
        end_local = _text_field(_dict_field(event, "end").get("local"))
        starts_at = parse_local_datetime(start_local)

        venue = _dict_field(event, "venue")
        venue_name = _text_field(venue.get("name")) or None
        city = _text_field(_dict_field(venue, "address").get("city")) or None

        logo = _dict_field(event, "logo")
        image = (
            _text_field(_dict_field(logo, "original").get("url"))
            or _text_field(logo.get("url"))
            or self._fallback_image(name, description)
        )

        status = event.get("status") if isinstance(event.get("status"), str) else None

        derived = DerivedFields(
            image_url=image,
            card_image_url=image,
            excerpt=description,
            date_label=format_display_date(starts_at.date() if starts_at else None),
            time_label=format_event_time(starts_at),
            location=city or venue_name or ONLINE_LOCATION,
        )

        return CanonicalRecord(
            kind=RecordKind.EVENT,
            identity_keys=keys,
            display_title=name or UNTITLED_EVENT,
            published_at=starts_at.date() if starts_at else None,
            source_url=url,
            derived=derived,
            event=EventDetails(
                event_id=event_id,
                start_local=start_local,
                end_local=end_local,
                venue_name=venue_name,
                city=city,
                status=status,
            ),
        )


def build_event_snapshot(record: CanonicalRecord) -> EventSnapshot:
    """Displayed state of an event record, as stored in the events manifest."""
    details = record.event or EventDetails()
    return EventSnapshot(
        id=details.event_id,
        name=record.display_title,
        description=record.derived.excerpt,
        url=record.source_url,
        start_local=details.start_local,
        end_local=details.end_local,
        venue_name=details.venue_name,
        city=details.city,
        image_url=record.derived.image_url,
        status=details.status,
    )
