"""
Eventbrite Client
=================

Reads an organization's events from the Eventbrite v3 API, following
continuation tokens page by page.
"""

from typing import List, Dict, Any, Optional

import requests

from sitesync.config.settings import SiteSyncSettings, get_settings
from sitesync.utils.logging import get_logger_for_component
from sitesync.utils.exceptions import FeedFetchError, ConfigurationError, ErrorCode
from sitesync.ingestion.feed_manager import build_session


UPCOMING_STATUS = "live,started"
PAST_STATUS = "ended"


class EventbriteClient:
    """Synchronous Eventbrite API client."""

    def __init__(
        self,
        settings: Optional[SiteSyncSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component(
            "eventbrite_client", source=self.settings.events.api_base
        )
        self.session = session or build_session(self.settings, "application/json")

    def _events_url(self) -> str:
        org_id = self.settings.events.org_id
        if not org_id:
            raise ConfigurationError(
                "Eventbrite organization ID is not set",
                config_key="events.org_id",
                error_code=ErrorCode.CONFIG_MISSING,
            )
        base = self.settings.events.api_base.rstrip("/")
        return f"{base}/organizations/{org_id}/events/"

    def _headers(self) -> Dict[str, str]:
        token = self.settings.events.token
        if not token:
            raise ConfigurationError(
                "Eventbrite token is not set",
                config_key="events.token",
                error_code=ErrorCode.CONFIG_MISSING,
            )
        return {"Authorization": f"Bearer {token}"}

    def _get_page(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = self.session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self.settings.limits.request_timeout,
            )
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Eventbrite request failed: {e}", feed_url=url
            ) from e

        if response.status_code != 200:
            error_code = ErrorCode.FEED_NETWORK_ERROR
            if response.status_code in (401, 403):
                error_code = ErrorCode.FEED_ACCESS_DENIED
            elif response.status_code == 404:
                error_code = ErrorCode.FEED_NOT_FOUND
            raise FeedFetchError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                feed_url=url,
                error_code=error_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FeedFetchError(
                f"Invalid JSON response: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            ) from e

        if not isinstance(data, dict):
            raise FeedFetchError(
                "Invalid JSON response: expected an object",
                feed_url=url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )
        return data

    def fetch_all_events(self, status: str) -> List[Dict[str, Any]]:
        """
        Fetch every event with the given status.

        Ended events come newest first, everything else soonest first.

        Args:
            status: Eventbrite status filter, e.g. ``"live,started"`` or ``"ended"``

        Returns:
            Raw event objects in API order, malformed ones included

        Raises:
            FeedFetchError: On transport failure, non-200 status or invalid JSON
            ConfigurationError: If token or organization ID is missing
        """
        url = self._events_url()
        params = {
            "status": status,
            "expand": "venue,logo",
            "order_by": "start_desc" if status == PAST_STATUS else "start_asc",
        }

        events: List[Dict[str, Any]] = []
        for page in range(1, self.settings.limits.max_pages + 1):
            data = self._get_page(url, params)
            page_events = data.get("events") or []
            if not isinstance(page_events, list):
                self.logger.warning(f"Ignoring non-list 'events' field on page {page}")
                page_events = []
            events.extend(page_events)

            pagination = data.get("pagination") or {}
            continuation = pagination.get("continuation")
            if not (pagination.get("has_more_items") and continuation):
                break
            params = {**params, "continuation": continuation}
        else:
            self.logger.warning(
                f"Stopped paging '{status}' events after {page} pages"
            )

        self.logger.info(f"Fetched {len(events)} '{status}' event(s)")
        return events

    def fetch_upcoming(self) -> List[Dict[str, Any]]:
        return self.fetch_all_events(UPCOMING_STATUS)

    def fetch_past(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Most recent ended events, newest first."""
        limit = self.settings.events.past_limit if limit is None else limit
        return self.fetch_all_events(PAST_STATUS)[:limit]


__all__ = ["EventbriteClient", "UPCOMING_STATUS", "PAST_STATUS"]
