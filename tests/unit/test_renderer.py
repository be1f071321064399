"""
Unit Tests for Artifact Renderer
================================

Tests for post pages, list cards, event cards, and markup escaping.
"""

import pytest
from datetime import date

from sitesync.models import CanonicalRecord, DerivedFields, RecordKind, post_identity_keys
from sitesync.delivery.renderer import ArtifactRenderer, CARD_INDENT, escape_markup
from sitesync.utils.exceptions import RenderError


def _post_record(title="Breath & Calm", sequence_number=6, **derived):
    fields = {
        "image_url": "https://img.example/hero.jpg",
        "card_image_url": "https://img.example/card.jpg",
        "excerpt": "Four counts in, four counts out.",
        "subtitle": "A short practice",
        "body_html": "<p>Four counts in.</p>",
        "read_time": 3,
        "date_label": "Feb 10, 2025",
    }
    fields.update(derived)
    return CanonicalRecord(
        kind=RecordKind.POST,
        identity_keys=post_identity_keys(title, "https://x.com/breath-calm/"),
        display_title=title,
        category="Breathwork",
        published_at=date(2025, 2, 10),
        source_url="https://x.com/breath-calm/",
        sequence_number=sequence_number,
        derived=DerivedFields(**fields),
    )


def _event_record(title="Sound Bath", url="https://www.eventbrite.co.uk/e/101", **derived):
    fields = {
        "image_url": "https://img.evbuc.com/logo.jpg",
        "excerpt": "Gongs and bowls.",
        "date_label": "Feb 15, 2026",
        "time_label": "7:00 PM",
        "location": "London",
    }
    fields.update(derived)
    return CanonicalRecord(
        kind=RecordKind.EVENT,
        identity_keys=frozenset({"event:101"}),
        display_title=title,
        source_url=url,
        derived=DerivedFields(**fields),
    )


class TestEscapeMarkup:
    """Escaping of text and attribute values."""

    def test_escapes_special_characters(self):
        assert escape_markup("<a href=\"x\">'&'</a>") == "&lt;a href=&quot;x&quot;&gt;&#x27;&amp;&#x27;&lt;/a&gt;"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert escape_markup(value) == ""


class TestPostRendering:
    """Standalone page and list card for a new post."""

    @pytest.fixture(autouse=True)
    def setup_renderer(self, settings):
        self.renderer = ArtifactRenderer(settings)

    def test_target_name_from_sequence(self):
        artifact = self.renderer.render_post(_post_record())

        assert artifact.target_name == "post-6.html"

    def test_unnumbered_record_rejected(self):
        with pytest.raises(RenderError):
            self.renderer.render_post(_post_record(sequence_number=None))

    def test_page_contents(self):
        page = self.renderer.render_post(_post_record()).standalone_page

        assert page.startswith("<!DOCTYPE html>")
        assert "<title>Breath &amp; Calm &mdash; Holistique UK</title>" in page
        assert '<h1 class="article-title">Breath &amp; Calm</h1>' in page
        assert '<p class="article-subtitle">A short practice</p>' in page
        assert "By Yvonne &middot; Feb 10, 2025 &middot; 3 Min Read" in page
        assert "<p>Four counts in.</p>" in page
        assert 'href="css/post.css"' in page
        assert 'src="https://img.example/hero.jpg"' in page

    def test_page_without_subtitle_or_date(self):
        page = self.renderer.render_post(_post_record(subtitle="", date_label="")).standalone_page

        assert "article-subtitle" not in page
        assert "By Yvonne &middot; 3 Min Read" in page

    def test_card_contents(self):
        card = self.renderer.render_post(_post_record()).summary_fragment

        assert card.lstrip().startswith("<!-- Card 6 (auto-synced) -->")
        assert '<a href="post-6.html" class="article-card">' in card
        assert 'src="https://img.example/card.jpg"' in card
        assert '<h3 class="card-title">Breath &amp; Calm</h3>' in card
        assert "3 Min Read &middot; Feb 10, 2025" in card
        assert not card.startswith("\n")

    def test_hostile_title_escaped_everywhere(self):
        hostile = '<script>alert("x")</script>'
        artifact = self.renderer.render_post(_post_record(title=hostile))

        for markup in (artifact.standalone_page, artifact.summary_fragment):
            assert "<script>" not in markup
            assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt;" in markup

    def test_attribute_breakout_escaped(self):
        card = self.renderer.render_post(
            _post_record(card_image_url='x" onerror="alert(1)')
        ).summary_fragment

        assert 'onerror="alert(1)"' not in card
        assert "x&quot; onerror=&quot;alert(1)" in card

    def test_deterministic(self):
        assert self.renderer.render_post(_post_record()) == self.renderer.render_post(_post_record())


class TestEventRendering:
    """Event cards and empty states."""

    @pytest.fixture(autouse=True)
    def setup_renderer(self, settings):
        self.renderer = ArtifactRenderer(settings)

    def test_upcoming_card(self):
        card = self.renderer.render_upcoming_card(_event_record())

        assert card.startswith(CARD_INDENT + '<a href="https://www.eventbrite.co.uk/e/101"')
        assert 'class="event-card reveal"' in card
        assert "Feb 15, 2026 &middot; 7:00 PM" in card
        assert '<span class="event-card__tag">London</span>' in card
        assert "Get Tickets &rarr;" in card

    def test_past_card_has_no_tickets(self):
        card = self.renderer.render_past_card(_event_record())

        assert "Get Tickets" not in card
        assert 'class="event-card reveal"' in card

    def test_homepage_card(self):
        card = self.renderer.render_homepage_card(_event_record())

        assert 'class="event-card stagger-item"' in card
        assert "data-pixel-reveal" in card

    def test_missing_url_links_nowhere(self):
        card = self.renderer.render_past_card(_event_record(url=""))

        assert 'href="#"' in card

    def test_missing_time_label(self):
        card = self.renderer.render_upcoming_card(_event_record(time_label=""))

        assert '<p class="event-card__date">Feb 15, 2026</p>' in card

    def test_event_text_escaped(self):
        card = self.renderer.render_upcoming_card(
            _event_record(title="Tea & <Talk>", excerpt='"Quoted"')
        )

        assert "Tea &amp; &lt;Talk&gt;" in card
        assert "&quot;Quoted&quot;" in card

    def test_empty_states(self):
        assert "coming soon" in self.renderer.render_upcoming_empty()
        assert "instagram.com" in self.renderer.render_upcoming_empty()
        assert "No past events" in self.renderer.render_past_empty()
        assert "stagger-item" in self.renderer.render_homepage_empty()
