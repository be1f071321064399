"""
RSS Feed Manager
===============

Fetches the blog's RSS feed and turns each ``<item>`` into a raw
``SourceItem``. Parsing is delegated to feedparser; nothing here decides
whether an item is new or how it is displayed.
"""

import time
import calendar
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Any, Optional
from dataclasses import dataclass, field

import feedparser
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from sitesync.config.settings import SiteSyncSettings, get_settings
from sitesync.utils.logging import get_logger_for_component
from sitesync.utils.exceptions import FeedFetchError, ErrorCode
from sitesync.utils.validators import validate_url


@dataclass
class SourceItem:
    """One raw feed entry as delivered upstream. Never mutated downstream."""

    title: str = ""
    link: str = ""
    published: Optional[datetime] = None
    content_html: str = ""
    summary: str = ""
    categories: List[str] = field(default_factory=list)
    image_url: str = ""
    guid: Optional[str] = None


def build_session(settings: SiteSyncSettings, accept: str) -> requests.Session:
    """``requests`` session with retrying GETs and the sync user agent."""
    session = requests.Session()
    retry_strategy = Retry(
        total=settings.limits.max_retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["HEAD", "GET", "OPTIONS"],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": settings.user_agent, "Accept": accept})
    return session


class FeedManager:
    """Blog RSS transport."""

    def __init__(
        self,
        settings: Optional[SiteSyncSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("feed_manager")
        self.session = session or build_session(
            self.settings,
            "application/rss+xml, application/atom+xml, application/xml, text/xml",
        )

    def fetch_feed(self, feed_url: Optional[str] = None) -> List[SourceItem]:
        """
        Fetch and parse the RSS feed.

        Args:
            feed_url: Feed URL (defaults to the configured blog feed)

        Returns:
            Raw items in feed order

        Raises:
            FeedFetchError: If the feed cannot be fetched or has no structure
        """
        feed_url = feed_url or self.settings.blog.feed_url
        if not validate_url(feed_url):
            raise FeedFetchError(
                f"Invalid feed URL: {feed_url}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_INVALID_URL,
                recoverable=False,
            )

        self.logger.info(f"Fetching RSS feed: {feed_url}")
        start_time = time.time()

        try:
            response = self.session.get(
                feed_url, timeout=self.settings.limits.request_timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Failed to fetch feed {feed_url}: {str(e)}", feed_url=feed_url
            ) from e

        self.logger.debug(
            f"Feed fetched in {time.time() - start_time:.2f}s, "
            f"size: {len(response.content)} bytes"
        )
        return self.parse_feed(response.content, feed_url)

    def parse_feed(self, content: Any, feed_url: str = "") -> List[SourceItem]:
        """Parse feed bytes or text into raw items.

        A feed with minor XML problems is still used as long as feedparser
        recovered entries from it.
        """
        parsed_feed = feedparser.parse(content)

        if parsed_feed.bozo:
            if not parsed_feed.entries:
                raise FeedFetchError(
                    f"Feed parse error for {feed_url}: {parsed_feed.bozo_exception}",
                    feed_url=feed_url,
                    error_code=ErrorCode.FEED_PARSE_ERROR,
                )
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {parsed_feed.bozo_exception}"
            )

        items = []
        for entry in parsed_feed.entries:
            try:
                items.append(self._extract_item(entry))
            except (AttributeError, TypeError, ValueError) as e:
                self.logger.warning(f"Failed to read entry in {feed_url}: {e}")
                continue

        self.logger.info(f"Parsed {len(items)} items from {feed_url or 'feed'}")
        return items

    def _extract_item(self, entry: Any) -> SourceItem:
        """Copy the fields the normalizer needs out of a feedparser entry."""
        content_html = ""
        if entry.get("content"):
            content_html = entry.content[0].get("value", "") or ""

        summary = entry.get("summary", "") or ""
        if not content_html:
            content_html = summary

        categories = []
        for tag in entry.get("tags") or []:
            term = tag.get("term") if isinstance(tag, dict) else str(tag)
            if term and term.strip():
                categories.append(term.strip())

        image_url = ""
        for media in entry.get("media_content") or []:
            if isinstance(media, dict) and media.get("url"):
                image_url = media["url"]
                break

        return SourceItem(
            title=(entry.get("title") or "").strip(),
            link=(entry.get("link") or "").strip(),
            published=self._parse_date(entry),
            content_html=content_html,
            summary=summary,
            categories=categories,
            image_url=image_url,
            guid=entry.get("id"),
        )

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        """Publication time in UTC, or None."""
        for field_name in ("published_parsed", "updated_parsed"):
            date_tuple = entry.get(field_name)
            if date_tuple:
                try:
                    return datetime.fromtimestamp(
                        calendar.timegm(date_tuple), tz=timezone.utc
                    )
                except (ValueError, OverflowError, TypeError):
                    continue

        raw = entry.get("published") or entry.get("updated")
        if raw:
            try:
                return parsedate_to_datetime(raw)
            except (TypeError, ValueError):
                self.logger.debug(f"Unparseable date: {raw}")

        return None


__all__ = ["SourceItem", "FeedManager", "build_session"]
