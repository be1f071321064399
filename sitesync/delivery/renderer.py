"""
Artifact Renderer
=================

Turns canonical records into markup: a standalone page plus a list card
for each new blog post, and the event cards used on the events page and
the homepage.

Rendering is pure. Every piece of record text and every URL placed into
markup goes through ``escape_markup``; only the cleaned post body is
embedded as markup.
"""

import html
from dataclasses import dataclass
from typing import Optional

from ..config.settings import SiteSyncSettings, get_settings
from ..models import CanonicalRecord
from ..utils.exceptions import RenderError, ErrorCode


CARD_INDENT = " " * 20
POST_CARD_INDENT = " " * 24


def escape_markup(value: Optional[str]) -> str:
    """Escape ``& < > " '`` for element text and attribute values."""
    if not value:
        return ""
    return html.escape(str(value), quote=True)


@dataclass(frozen=True)
class RenderedArtifact:
    """Output of rendering one new post."""
    target_name: str
    standalone_page: str
    summary_fragment: str


class ArtifactRenderer:
    """Markup generation for posts and events."""

    def __init__(self, settings: Optional[SiteSyncSettings] = None):
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Blog posts
    # ------------------------------------------------------------------

    def target_name(self, sequence_number: int) -> str:
        return self.settings.blog.post_file_pattern.format(number=sequence_number)

    def render_post(self, record: CanonicalRecord) -> RenderedArtifact:
        """
        Render the standalone page and the list card for a new post.

        Args:
            record: Normalized post with its sequence number assigned

        Returns:
            RenderedArtifact named after the sequence number

        Raises:
            RenderError: If the record has not been numbered yet
        """
        if record.sequence_number is None:
            raise RenderError(
                f"Cannot render '{record.display_title}' without a sequence number",
                error_code=ErrorCode.RENDER_FAILED,
            )

        target = self.target_name(record.sequence_number)
        return RenderedArtifact(
            target_name=target,
            standalone_page=self.render_post_page(record),
            summary_fragment=self.render_post_card(record, target),
        )

    def render_post_page(self, record: CanonicalRecord) -> str:
        site = self.settings.site
        blog = self.settings.blog
        derived = record.derived
        title = escape_markup(record.display_title)

        meta = [f"By {escape_markup(site.author_name)}"]
        if derived.date_label:
            meta.append(escape_markup(derived.date_label))
        meta.append(f"{derived.read_time} Min Read")

        subtitle = ""
        if derived.subtitle:
            subtitle = (
                f'        <p class="article-subtitle">'
                f"{escape_markup(derived.subtitle)}</p>\n"
            )

        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '    <meta charset="UTF-8">\n'
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            f"    <title>{title} &mdash; {escape_markup(site.site_name)}</title>\n"
            f'    <meta name="description" content="{escape_markup(derived.excerpt)}">\n'
            f'    <link rel="stylesheet" href="{escape_markup(site.stylesheet)}">\n'
            "</head>\n"
            "<body>\n"
            '    <header class="site-header"><div class="header-inner">'
            f'<div class="header-logo"><a href="index.html">{escape_markup(site.brand_label)}</a></div>'
            '<nav class="header-nav"><a href="index.html">Home</a>'
            f'<a href="{escape_markup(blog.list_page)}">Journal</a></nav>'
            "</div></header>\n"
            "\n"
            '    <div class="article-hero">\n'
            f'        <img src="{escape_markup(derived.image_url)}" alt="{title}">\n'
            "    </div>\n"
            "\n"
            '    <article class="article-container">\n'
            f'        <span class="article-category">{escape_markup(record.category)}</span>\n'
            f'        <h1 class="article-title">{title}</h1>\n'
            f"{subtitle}"
            f'        <p class="article-meta">{" &middot; ".join(meta)}</p>\n'
            "\n"
            '        <div class="article-body">\n'
            f"            {derived.body_html}\n"
            "        </div>\n"
            "\n"
            '        <div class="author-bio">\n'
            f"            <p>{escape_markup(site.author_bio)} Instagram: "
            f'<a href="{escape_markup(site.instagram_url)}" target="_blank" rel="noopener">'
            f"{escape_markup(site.instagram_url)}</a></p>\n"
            "        </div>\n"
            "\n"
            f'        <a href="{escape_markup(blog.list_page)}" class="back-link">Back to Journal</a>\n'
            "    </article>\n"
            "\n"
            '    <footer class="site-footer"><div class="footer-inner">'
            f'<span class="footer-copy">&copy; {site.copyright_year} {escape_markup(site.site_name)}</span>'
            "</div></footer>\n"
            "</body>\n"
            "</html>\n"
        )

    def render_post_card(self, record: CanonicalRecord, target_name: str) -> str:
        derived = record.derived
        indent = POST_CARD_INDENT
        meta = f"{derived.read_time} Min Read"
        if derived.date_label:
            meta += f" &middot; {escape_markup(derived.date_label)}"

        return "\n".join([
            f"{indent}<!-- Card {record.sequence_number} (auto-synced) -->",
            f'{indent}<a href="{escape_markup(target_name)}" class="article-card">',
            f'{indent}    <img class="card-img" src="{escape_markup(derived.card_image_url)}" '
            f'alt="{escape_markup(record.display_title)}">',
            f'{indent}    <span class="card-category">{escape_markup(record.category)}</span>',
            f'{indent}    <h3 class="card-title">{escape_markup(record.display_title)}</h3>',
            f'{indent}    <p class="card-excerpt">{escape_markup(derived.excerpt)}</p>',
            f'{indent}    <span class="card-meta">{meta}</span>',
            f"{indent}</a>",
        ])

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _event_when(self, record: CanonicalRecord) -> str:
        parts = [p for p in (record.derived.date_label, record.derived.time_label) if p]
        return " &middot; ".join(escape_markup(p) for p in parts)

    def _event_card(
        self,
        record: CanonicalRecord,
        card_class: str,
        image_attributes: str = "",
        with_tickets: bool = False,
    ) -> str:
        derived = record.derived
        name = escape_markup(record.display_title)
        indent = CARD_INDENT

        lines = [
            f'{indent}<a href="{escape_markup(record.source_url or "#")}" '
            f'class="event-card {card_class}" target="_blank" rel="noopener">',
            f'{indent}    <img class="event-card__img"{image_attributes} '
            f'src="{escape_markup(derived.image_url)}" alt="{name}" loading="lazy">',
            f'{indent}    <div class="event-card__body">',
            f'{indent}        <p class="event-card__date">{self._event_when(record)}</p>',
            f'{indent}        <h3 class="event-card__title">{name}</h3>',
            f'{indent}        <p class="event-card__desc">{escape_markup(derived.excerpt)}</p>',
            f'{indent}        <span class="event-card__tag">{escape_markup(derived.location)}</span>',
        ]
        if with_tickets:
            lines.append(f'{indent}        <span class="event-card__tickets">Get Tickets &rarr;</span>')
        lines.extend([f"{indent}    </div>", f"{indent}</a>"])
        return "\n".join(lines)

    def render_upcoming_card(self, record: CanonicalRecord) -> str:
        return self._event_card(record, "reveal", with_tickets=True)

    def render_past_card(self, record: CanonicalRecord) -> str:
        return self._event_card(record, "reveal")

    def render_homepage_card(self, record: CanonicalRecord) -> str:
        return self._event_card(record, "stagger-item", image_attributes=" data-pixel-reveal")

    def _coming_soon(self, css_class: str) -> str:
        instagram = escape_markup(self.settings.site.instagram_url)
        return (
            f'{CARD_INDENT}<p class="events__empty {css_class}">Events are coming soon. '
            f'Follow us on <a href="{instagram}" target="_blank">Instagram</a> for updates.</p>'
        )

    def render_upcoming_empty(self) -> str:
        return self._coming_soon("reveal")

    def render_past_empty(self) -> str:
        return f'{CARD_INDENT}<p class="events__empty reveal">No past events to show yet.</p>'

    def render_homepage_empty(self) -> str:
        return self._coming_soon("stagger-item")
