"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for SiteSync tests: settings bound to a temporary site
directory, sample feed and Eventbrite payloads, and seeded site pages.
"""

import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["SITESYNC_DEBUG"] = "true"
os.environ.pop("SITESYNC_EVENTS__TOKEN", None)
os.environ.pop("SITESYNC_EVENTS__ORG_ID", None)
os.environ.pop("SITESYNC_NEWSLETTER__WEBHOOK_URL", None)
os.environ.pop("SITESYNC_NEWSLETTER__SECRET", None)
for name in ("EVENTBRITE_TOKEN", "EVENTBRITE_ORG_ID", "NEWSLETTER_WEBHOOK_URL", "NEWSLETTER_SECRET", "SITE_BASE_URL"):
    os.environ.pop(name, None)


# ============================================================================
# Sample source data
# ============================================================================

SAMPLE_MEDIUM_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:dc="http://purl.org/dc/elements/1.1/">
    <channel>
        <title>Stories by Yvonne on Medium</title>
        <link>https://medium.com/@yvonne.holistique</link>
        <description>Stories by Yvonne on Medium</description>
        <item>
            <title><![CDATA[Finding Stillness in Sound]]></title>
            <link>https://medium.com/@yvonne.holistique/finding-stillness-in-sound-abc123?source=rss-1</link>
            <guid isPermaLink="false">https://medium.com/p/abc123</guid>
            <category><![CDATA[medium]]></category>
            <category><![CDATA[sound-healing]]></category>
            <pubDate>Sun, 05 Jan 2025 10:00:00 GMT</pubDate>
            <content:encoded><![CDATA[<h4>A gentle guide to gong baths</h4><figure><img alt="" src="https://cdn-images-1.medium.com/max/1024/resize:fit:1024/hero.jpeg" /><figcaption>The gong</figcaption></figure><p>Sound has a way of reaching places words cannot.</p><h3>Why it works</h3><p>Vibration slows the breath.</p>]]></content:encoded>
        </item>
        <item>
            <title><![CDATA[Breath & Calm]]></title>
            <link>https://x.com/breath-calm/</link>
            <guid isPermaLink="false">https://medium.com/p/def456</guid>
            <category><![CDATA[breathwork]]></category>
            <pubDate>Mon, 10 Feb 2025 08:30:00 GMT</pubDate>
            <content:encoded><![CDATA[<p>Four counts in, four counts out.</p>]]></content:encoded>
        </item>
    </channel>
</rss>"""


BLOG_LIST_PAGE = """<!DOCTYPE html>
<html>
<body>
    <main>
        <section class="articles">
                    <div class="article-grid">
                        <!-- Card 5 -->
                        <a href="post-5.html" class="article-card">Existing card</a>
                    </div>
        </section>
    </main>
</body>
</html>
"""

EVENTS_PAGE = """<!DOCTYPE html>
<html>
<body>
    <section id="upcoming">
                <div class="events-grid">
<!-- EVENTS-UPCOMING-START -->
                    <p>placeholder upcoming</p>
<!-- EVENTS-UPCOMING-END -->
                </div>
    </section>
    <section id="past">
                <div class="events-grid">
<!-- EVENTS-PAST-START -->
<!-- EVENTS-PAST-END -->
                </div>
    </section>
</body>
</html>
"""

INDEX_PAGE = """<!DOCTYPE html>
<html>
<body>
    <h1>Holistique UK</h1>
<!-- HOMEPAGE-EVENTS-START -->
<!-- HOMEPAGE-EVENTS-END -->
    <footer>footer</footer>
</body>
</html>
"""


def make_event(
    event_id: str,
    name: str = "Sound Bath",
    start: str = "2026-02-15T19:00:00",
    city: str = "London",
    status: str = "live",
    logo_url: str = None,
    description: str = "An evening of gongs and singing bowls.",
) -> dict:
    """Raw Eventbrite event object as returned with expand=venue,logo."""
    event = {
        "id": event_id,
        "name": {"text": name, "html": name},
        "description": {"text": description, "html": f"<p>{description}</p>"},
        "url": f"https://www.eventbrite.co.uk/e/{event_id}",
        "start": {"local": start, "timezone": "Europe/London"},
        "end": {"local": start.replace("19:00", "21:00"), "timezone": "Europe/London"},
        "status": status,
        "venue": {"name": "The Studio", "address": {"city": city}},
        "logo": None,
    }
    if logo_url:
        event["logo"] = {"url": logo_url, "original": {"url": logo_url}}
    return event


# ============================================================================
# Settings and site fixtures
# ============================================================================


@pytest.fixture
def site_root(tmp_path):
    """Temporary site directory seeded with pages and a posts manifest."""
    (tmp_path / "blog-post.html").write_text(BLOG_LIST_PAGE, encoding="utf-8")
    (tmp_path / "events.html").write_text(EVENTS_PAGE, encoding="utf-8")
    (tmp_path / "index.html").write_text(INDEX_PAGE, encoding="utf-8")
    manifest = {
        "lastPostNumber": 5,
        "posts": [
            {
                "number": 5,
                "title": "Finding Stillness in Sound",
                "mediumUrl": "https://medium.com/@yvonne.holistique/finding-stillness-in-sound-abc123",
                "file": "post-5.html",
                "date": "Jan 5, 2025",
                "category": "Sound Healing",
            }
        ],
    }
    (tmp_path / "posts-manifest.json").write_text(
        json.dumps(manifest, indent=2) + "\n", encoding="utf-8"
    )
    return tmp_path


@pytest.fixture
def settings(site_root):
    """Settings pointing at the temporary site, with no external services."""
    from sitesync.config.settings import SiteSyncSettings, SiteSettings

    return SiteSyncSettings(site=SiteSettings(root=str(site_root)))


@pytest.fixture
def event_settings(site_root):
    """Settings with Eventbrite credentials configured."""
    from sitesync.config.settings import SiteSyncSettings, SiteSettings, EventSettings

    return SiteSyncSettings(
        site=SiteSettings(root=str(site_root)),
        events=EventSettings(token="test-token", org_id="12345"),
    )


@pytest.fixture
def feed_items(settings):
    """Parsed sample Medium feed."""
    from sitesync.ingestion.feed_manager import FeedManager

    return FeedManager(settings).parse_feed(SAMPLE_MEDIUM_FEED.encode("utf-8"))


@pytest.fixture
def source_item():
    """Factory for raw feed items."""
    from sitesync.ingestion.feed_manager import SourceItem

    def _make(**overrides):
        fields = {
            "title": "Breath & Calm",
            "link": "https://x.com/breath-calm/",
            "published": datetime(2025, 2, 10, 8, 30, tzinfo=timezone.utc),
            "content_html": "<p>Four counts in, four counts out.</p>",
            "categories": ["breathwork"],
        }
        fields.update(overrides)
        return SourceItem(**fields)

    return _make


@pytest.fixture
def medium_feed_xml():
    return SAMPLE_MEDIUM_FEED.encode("utf-8")


@pytest.fixture
def event_factory():
    return make_event
