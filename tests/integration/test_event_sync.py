"""
Integration Tests for Event Sync
================================

End-to-end event runs against a temporary site directory: upcoming and
past listings spliced between markers on the events page and homepage,
with the events manifest tracking first sightings and listing snapshots.
"""

import json
from unittest.mock import Mock

import pytest

from sitesync.config.settings import EventSettings, SiteSettings, SiteSyncSettings
from sitesync.delivery.splicer import SpliceDiagnostic
from sitesync.processing.pipeline import EventSyncPipeline, SyncStage, SyncStatus
from sitesync.utils.exceptions import ErrorCode, FeedFetchError


pytestmark = pytest.mark.integration

UPCOMING_START = "<!-- EVENTS-UPCOMING-START -->"
UPCOMING_END = "<!-- EVENTS-UPCOMING-END -->"
PAST_START = "<!-- EVENTS-PAST-START -->"
PAST_END = "<!-- EVENTS-PAST-END -->"
HOME_START = "<!-- HOMEPAGE-EVENTS-START -->"
HOME_END = "<!-- HOMEPAGE-EVENTS-END -->"


def _client(upcoming, past):
    return Mock(
        fetch_upcoming=Mock(return_value=list(upcoming)),
        fetch_past=Mock(return_value=list(past)),
    )


def _region(text, begin, end):
    return text[text.index(begin) + len(begin):text.index(end)]


def _snapshot(root):
    return {p.name: p.read_bytes() for p in sorted(root.iterdir()) if p.is_file()}


@pytest.fixture
def upcoming(event_factory):
    return [
        event_factory("201", name="Full Moon Sound Bath", start="2026-02-15T19:00:00"),
        event_factory("202", name="Breathwork Circle", start="2026-03-01T10:30:00", city="Brighton"),
    ]


@pytest.fixture
def past(event_factory):
    return [event_factory("101", name="Winter Gong Bath", start="2025-12-10T19:00:00", status="ended")]


class TestEventSync:
    """Full event sync runs."""

    def test_first_sync_fills_regions(self, event_settings, site_root, upcoming, past):
        result = EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()

        assert result.status == SyncStatus.UPDATED
        assert result.changed is True
        assert sorted(result.written) == ["events.html", "index.html"]
        assert [e.sequence_number for e in result.new_entries] == [1, 2, 3]

        events_page = (site_root / "events.html").read_text(encoding="utf-8")
        upcoming_region = _region(events_page, UPCOMING_START, UPCOMING_END)
        assert "placeholder upcoming" not in upcoming_region
        assert upcoming_region.startswith("\n") and upcoming_region.endswith("\n")
        assert upcoming_region.count("Get Tickets &rarr;") == 2
        assert upcoming_region.index("Full Moon Sound Bath") < upcoming_region.index("Breathwork Circle")
        assert "Mar 1, 2026 &middot; 10:30 AM" in upcoming_region

        past_region = _region(events_page, PAST_START, PAST_END)
        assert "Winter Gong Bath" in past_region
        assert "Get Tickets" not in past_region

        index_page = (site_root / "index.html").read_text(encoding="utf-8")
        assert _region(index_page, HOME_START, HOME_END).count("stagger-item") == 2
        assert index_page.startswith("<!DOCTYPE html>")
        assert "<footer>footer</footer>" in index_page

        manifest = json.loads((site_root / "events-manifest.json").read_text(encoding="utf-8"))
        assert manifest["lastEventNumber"] == 3
        assert [e["eventId"] for e in manifest["events"]] == ["201", "202", "101"]
        assert [s["id"] for s in manifest["upcoming"]] == ["201", "202"]
        assert [s["id"] for s in manifest["past"]] == ["101"]
        assert "lastSync" in manifest

    def test_second_run_is_a_no_op(self, event_settings, site_root, upcoming, past):
        EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()
        before = _snapshot(site_root)

        result = EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()

        assert result.status == SyncStatus.NO_CHANGES
        assert result.changed is False
        assert result.stage == SyncStage.IDLE
        assert _snapshot(site_root) == before

    def test_edited_event_refreshes_listing_without_new_numbers(
        self, event_settings, site_root, upcoming, past, event_factory
    ):
        EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()
        edited = [
            event_factory("201", name="Full Moon Sound Bath (Sold Out)", start="2026-02-15T19:00:00"),
            upcoming[1],
        ]

        result = EventSyncPipeline(event_settings, client=_client(edited, past)).run()

        assert result.status == SyncStatus.UPDATED
        assert result.new_entries == []
        assert "Sold Out" in (site_root / "events.html").read_text(encoding="utf-8")
        manifest = json.loads((site_root / "events-manifest.json").read_text(encoding="utf-8"))
        assert manifest["lastEventNumber"] == 3
        assert manifest["upcoming"][0]["name"] == "Full Moon Sound Bath (Sold Out)"

    def test_recurring_names_are_distinct_events(self, event_settings, site_root, event_factory):
        weekly = [
            event_factory("301", name="Weekly Sit", start="2026-02-02T19:00:00"),
            event_factory("302", name="Weekly Sit", start="2026-02-09T19:00:00"),
        ]

        result = EventSyncPipeline(event_settings, client=_client(weekly, [])).run()

        assert [e.event_id for e in result.new_entries] == ["301", "302"]

    def test_homepage_limited(self, event_settings, site_root, event_factory):
        many = [event_factory(str(400 + i), start=f"2026-04-0{i + 1}T19:00:00") for i in range(5)]

        EventSyncPipeline(event_settings, client=_client(many, [])).run()

        index_page = (site_root / "index.html").read_text(encoding="utf-8")
        assert _region(index_page, HOME_START, HOME_END).count('class="event-card stagger-item"') == 3

    def test_empty_listings_show_empty_states(self, event_settings, site_root):
        result = EventSyncPipeline(event_settings, client=_client([], [])).run()

        assert result.status == SyncStatus.UPDATED
        events_page = (site_root / "events.html").read_text(encoding="utf-8")
        assert "Events are coming soon" in _region(events_page, UPCOMING_START, UPCOMING_END)
        assert "No past events to show yet" in _region(events_page, PAST_START, PAST_END)
        index_page = (site_root / "index.html").read_text(encoding="utf-8")
        assert "Events are coming soon" in _region(index_page, HOME_START, HOME_END)

    def test_missing_markers_reported_and_other_regions_updated(
        self, event_settings, site_root, upcoming, past
    ):
        (site_root / "index.html").write_text("<html>no markers</html>", encoding="utf-8")

        result = EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()

        assert result.status == SyncStatus.UPDATED_WITH_WARNINGS
        assert result.diagnostics == [SpliceDiagnostic("index.html", "homepage events", "markers not found")]
        assert result.written == ["events.html"]
        assert (site_root / "index.html").read_text(encoding="utf-8") == "<html>no markers</html>"

    def test_missing_document_reported(self, event_settings, site_root, upcoming, past):
        (site_root / "events.html").unlink()

        result = EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()

        assert SpliceDiagnostic("events.html", "all", "document not found") in result.diagnostics
        assert not (site_root / "events.html").exists()
        assert result.written == ["index.html"]

    def test_unidentifiable_event_skipped(self, event_settings, site_root, upcoming, past):
        broken = {"name": {"text": "Mystery"}}

        result = EventSyncPipeline(event_settings, client=_client([broken, *upcoming], past)).run()

        assert result.succeeded
        assert result.skipped == 1
        assert "Mystery" not in (site_root / "events.html").read_text(encoding="utf-8")

    def test_malformed_event_reported(self, event_settings, site_root, upcoming, past):
        result = EventSyncPipeline(event_settings, client=_client(["junk", *upcoming], past)).run()

        assert result.status == SyncStatus.UPDATED_WITH_WARNINGS
        assert result.skipped == 1
        assert result.diagnostics[0].position == 1
        assert [e.event_id for e in result.new_entries] == ["201", "202", "101"]

    def test_dry_run_writes_nothing(self, event_settings, site_root, upcoming, past):
        before = _snapshot(site_root)

        result = EventSyncPipeline(event_settings, client=_client(upcoming, past), dry_run=True).run()

        assert result.changed is True
        assert result.written == []
        assert _snapshot(site_root) == before
        assert not (site_root / "events-manifest.json").exists()

    def test_fetch_failure_aborts(self, event_settings, site_root):
        before = _snapshot(site_root)
        client = Mock(fetch_upcoming=Mock(side_effect=FeedFetchError("HTTP 401", error_code=ErrorCode.FEED_ACCESS_DENIED)))

        result = EventSyncPipeline(event_settings, client=client).run()

        assert result.status == SyncStatus.ABORTED
        assert result.error.error_code == ErrorCode.FEED_ACCESS_DENIED
        assert _snapshot(site_root) == before

    def test_unconfigured_skips_quietly(self, settings, site_root):
        before = _snapshot(site_root)

        result = EventSyncPipeline(settings).run()

        assert result.status == SyncStatus.NO_CHANGES
        assert result.changed is False
        assert "Skipping event sync" in result.message
        assert _snapshot(site_root) == before

    def test_past_limit_passed_to_client(self, site_root, upcoming, past):
        settings = SiteSyncSettings(
            site=SiteSettings(root=str(site_root)),
            events=EventSettings(token="t", org_id="1", past_limit=4),
        )
        client = _client(upcoming, past)

        EventSyncPipeline(settings, client=client).run()

        client.fetch_past.assert_called_once_with(4)

    def test_crlf_events_page_kept_byte_for_byte_outside_regions(
        self, event_settings, site_root, upcoming, past
    ):
        events_path = site_root / "events.html"
        original = events_path.read_bytes().replace(b"\n", b"\r\n")
        events_path.write_bytes(original)
        head = original[:original.index(UPCOMING_START.encode()) + len(UPCOMING_START)]
        middle = original[original.index(UPCOMING_END.encode()):original.index(PAST_START.encode()) + len(PAST_START)]
        tail = original[original.index(PAST_END.encode()):]

        EventSyncPipeline(event_settings, client=_client(upcoming, past)).run()

        after = events_path.read_bytes()
        assert after.startswith(head)
        assert middle in after
        assert after.endswith(tail)
        assert b"Full Moon Sound Bath" in after
