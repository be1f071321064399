"""
Newsletter Notifier
===================

Announces an imported post to the newsletter webhook.
"""

from typing import Dict, Optional

import requests

from ..config.settings import SiteSyncSettings, get_settings
from ..models import PostEntry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import NotificationError, ErrorCode


class NewsletterNotifier:
    """POSTs new-post announcements with a bearer secret."""

    def __init__(
        self,
        settings: Optional[SiteSyncSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.logger = get_logger_for_component("newsletter")

    @property
    def is_configured(self) -> bool:
        return self.settings.newsletter.is_configured()

    def build_payload(self, entry: PostEntry) -> Dict[str, str]:
        """Announcement body for one manifest entry."""
        base_url = self.settings.site.base_url.rstrip("/")
        return {
            "title": entry.title,
            "category": entry.category,
            "date": entry.date,
            "url": f"{base_url}/{entry.file}",
            "mediumUrl": entry.medium_url,
        }

    def send(self, entry: PostEntry) -> bool:
        """
        Send the announcement for ``entry``.

        Returns:
            True if sent, False if the webhook is not configured

        Raises:
            NotificationError: On transport failure or a non-2xx response
        """
        newsletter = self.settings.newsletter
        if not newsletter.webhook_url:
            self.logger.info("Newsletter webhook URL not set; skipping send")
            return False
        if not newsletter.secret:
            self.logger.info("Newsletter secret not set; skipping send")
            return False

        self.logger.info(f"Sending newsletter for: \"{entry.title}\"")
        try:
            response = self.session.post(
                newsletter.webhook_url,
                json=self.build_payload(entry),
                headers={
                    "Authorization": f"Bearer {newsletter.secret}",
                    "User-Agent": self.settings.user_agent,
                },
                timeout=self.settings.limits.request_timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"Newsletter send error: {e}") from e

        if not 200 <= response.status_code < 300:
            raise NotificationError(
                f"Newsletter send failed: HTTP {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
                error_code=ErrorCode.NOTIFICATION_REJECTED,
            )

        self.logger.info("Newsletter sent successfully")
        return True
