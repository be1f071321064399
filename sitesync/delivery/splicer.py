"""
Document Splicer
================

Text-level edits of existing pages. Only the bytes between a begin and an
end marker (or right after an anchor) change; everything else, markers
included, is left exactly as it was. Nothing here parses HTML.

A missing marker is reported by returning ``None`` rather than raising.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SpliceDiagnostic:
    """A document region that could not be updated."""
    document: str
    region: str
    reason: str

    def __str__(self) -> str:
        return f"{self.document} [{self.region}]: {self.reason}"


def count_occurrences(text: str, marker: str) -> int:
    if not marker:
        return 0
    return text.count(marker)


def splice(text: str, begin: str, end: str, content: str) -> Optional[str]:
    """
    Replace whatever sits between ``begin`` and ``end`` with ``content``.

    The first ``begin`` is used, and the first ``end`` after it.

    Returns:
        The new text, or None if either marker is missing
    """
    if not begin or not end:
        return None

    start = text.find(begin)
    if start == -1:
        return None

    region_start = start + len(begin)
    region_end = text.find(end, region_start)
    if region_end == -1:
        return None

    return text[:region_start] + content + text[region_end:]


def insert_after_anchor(text: str, anchor: str, content: str) -> Optional[str]:
    """Insert ``content`` right after the first ``anchor``, or None if absent."""
    if not anchor:
        return None

    position = text.find(anchor)
    if position == -1:
        return None

    position += len(anchor)
    return text[:position] + content + text[position:]
