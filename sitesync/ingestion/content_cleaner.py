"""
Content Cleaner
===============

Best-effort extraction rules over untrusted feed markup.

Every public function here is total: it never raises on odd input and
always returns a usable default (usually an empty string), so the
normalizer can chain them freely. Rules are independent of each other.
"""

import re
import html
import math
from typing import Optional, Iterable

from bs4 import BeautifulSoup, Comment
from bs4.element import Tag

from sitesync.utils.logging import get_logger_for_component


logger = get_logger_for_component("content_cleaner")

PARSER = "html.parser"

# Elements removed together with their content
DANGEROUS_ELEMENTS = {
    "script",
    "style",
    "iframe",
    "embed",
    "object",
    "applet",
    "form",
    "input",
    "button",
    "select",
    "textarea",
    "meta",
    "link",
    "base",
    "noscript",
    "canvas",
}

STRIPPED_ATTRIBUTES = {"class", "id"}

WHITESPACE_PATTERN = re.compile(r"\s+")
RESIZE_PATTERN = re.compile(r"/resize:fit:\d+/")
JAVASCRIPT_URL_PATTERN = re.compile(r"^\s*javascript:", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]+>")

ELLIPSIS = "..."


def _soup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, PARSER)


def _text_of(node) -> str:
    return collapse_whitespace(node.get_text(separator=" "))


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    if not text:
        return ""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def extract_plain_text(markup: Optional[str]) -> str:
    """Strip tags and decode entities, leaving readable text.

    Args:
        markup: HTML fragment (may be empty or malformed)

    Returns:
        Plain text with whitespace collapsed
    """
    if not markup or not markup.strip():
        return ""

    try:
        soup = _soup(markup)
        for element in soup(list(DANGEROUS_ELEMENTS)):
            element.decompose()
        return _text_of(soup)
    except Exception as e:
        logger.warning(f"Failed to extract text, using fallback: {e}")
        return collapse_whitespace(html.unescape(TAG_PATTERN.sub(" ", markup)))


def truncate_text(text: Optional[str], max_length: int) -> str:
    """Shorten text to a character budget without cutting a word.

    The result, ellipsis included, is never longer than ``max_length``.
    A single word longer than the budget is the only case that gets cut.

    Args:
        text: Plain text
        max_length: Character budget

    Returns:
        The text itself if it fits, else a word-boundary prefix plus "..."
    """
    clean = collapse_whitespace(text)
    if len(clean) <= max_length:
        return clean

    budget = max(max_length - len(ELLIPSIS), 0)
    prefix = clean[: budget + 1]
    cut = prefix.rfind(" ")
    if cut > 0:
        head = clean[:cut]
    else:
        head = clean[:budget]

    return head.rstrip(" ,;:-") + ELLIPSIS


def extract_excerpt(markup: Optional[str], max_length: int = 160) -> str:
    """Text of the first non-empty paragraph, truncated to the budget."""
    if not markup:
        return ""

    try:
        soup = _soup(markup)
        for paragraph in soup.find_all("p"):
            text = _text_of(paragraph)
            if text:
                return truncate_text(text, max_length)
    except Exception as e:
        logger.warning(f"Failed to extract excerpt: {e}")

    return truncate_text(extract_plain_text(markup), max_length)


def extract_subtitle(markup: Optional[str], max_length: int = 160) -> str:
    """Medium puts the subtitle in the first ``<h4>``; else use the excerpt."""
    if not markup:
        return ""

    try:
        heading = _soup(markup).find("h4")
        if heading is not None:
            text = _text_of(heading)
            if text:
                return text
    except Exception as e:
        logger.warning(f"Failed to extract subtitle: {e}")

    return extract_excerpt(markup, max_length)


def extract_first_image(markup: Optional[str]) -> str:
    """``src`` of the first image in the markup, or ``""``."""
    if not markup:
        return ""

    try:
        for img in _soup(markup).find_all("img", src=True):
            src = (img.get("src") or "").strip()
            if src and not src.lower().startswith("data:"):
                return src
    except Exception as e:
        logger.warning(f"Failed to extract image: {e}")

    return ""


def resize_image_url(url: Optional[str], width: int) -> str:
    """Rewrite a Medium ``/resize:fit:N/`` directive to the target width."""
    if not url:
        return ""
    return RESIZE_PATTERN.sub(f"/resize:fit:{width}/", url, count=1)


def count_words(markup: Optional[str]) -> int:
    return len(extract_plain_text(markup).split())


def estimate_read_time(
    markup: Optional[str], words_per_minute: int = 200, minimum: int = 2
) -> int:
    """Minutes to read: words / rate, rounded up, never below ``minimum``."""
    words = count_words(markup)
    return max(minimum, math.ceil(words / words_per_minute))


def pick_category(
    tags: Optional[Iterable[str]], stoplist: Iterable[str], fallback: str
) -> str:
    """First tag not on the stoplist, title-cased; else the fallback."""
    stop = {s.lower() for s in stoplist}
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if not tag or tag.lower() in stop:
            continue
        words = [w for w in re.split(r"[\s-]+", tag) if w]
        return " ".join(w[:1].upper() + w[1:].lower() for w in words)
    return fallback


def _strip_attributes(tag: Tag) -> None:
    for attr in list(tag.attrs):
        lowered = attr.lower()
        if (
            lowered in STRIPPED_ATTRIBUTES
            or lowered.startswith("data-")
            or lowered.startswith("on")
        ):
            del tag[attr]
    if tag.name == "a" and JAVASCRIPT_URL_PATTERN.match(tag.get("href", "")):
        del tag["href"]


def _collapse_figure(figure: Tag, soup: BeautifulSoup) -> None:
    img = figure.find("img", src=True)
    if img is None:
        figure.unwrap()
        return

    replacement = [soup.new_tag("img", src=img["src"], alt="")]
    caption = figure.find("figcaption")
    if caption is not None:
        caption_text = _text_of(caption)
        if caption_text:
            paragraph = soup.new_tag("p")
            emphasis = soup.new_tag("em")
            emphasis.string = caption_text
            paragraph.append(emphasis)
            replacement.append(paragraph)

    figure.replace_with(*replacement)


def clean_body_html(markup: Optional[str]) -> str:
    """Prepare feed body markup for embedding in a standalone page.

    The leading image becomes the page hero, so the first ``<figure>`` (or
    the first ``<img>`` when there is no figure) is dropped. Medium's
    presentational attributes go, remaining figures become a plain image
    followed by an italic caption, and ``h3`` section headings become ``h2``.

    Returns:
        Cleaned markup, or ``""`` for empty input
    """
    if not markup or not markup.strip():
        return ""

    try:
        soup = _soup(markup)

        for element in soup.find_all(list(DANGEROUS_ELEMENTS)):
            element.decompose()
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        first_figure = soup.find("figure")
        if first_figure is not None:
            first_figure.decompose()
        else:
            first_img = soup.find("img")
            if first_img is not None:
                first_img.decompose()

        for paragraph in soup.find_all("p"):
            if not paragraph.get_text(strip=True) and paragraph.find("img") is None:
                paragraph.decompose()

        for tag in soup.find_all(True):
            _strip_attributes(tag)

        for figure in soup.find_all("figure"):
            _collapse_figure(figure, soup)

        for heading in soup.find_all("h3"):
            heading.name = "h2"

        return str(soup).strip()

    except Exception as e:
        logger.error(f"Failed to clean body markup: {e}")
        return escape_fallback(extract_plain_text(markup))


def escape_fallback(text: str) -> str:
    """Plain text as a single escaped paragraph."""
    if not text:
        return ""
    return f"<p>{html.escape(text, quote=True)}</p>"
