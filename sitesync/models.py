"""
SiteSync Data Models
===================

Pydantic data models for canonical records and the persisted manifests.
Manifest models keep the JSON layout of the site's existing
``posts-manifest.json`` and ``events-manifest.json`` through field aliases.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, FrozenSet, Iterable

from pydantic import BaseModel, Field, ConfigDict, model_validator

from .utils.validators import URLValidator


# ---------------------------------------------------------------------------
# Identity keys
# ---------------------------------------------------------------------------

TITLE_KEY_PREFIX = "title:"
URL_KEY_PREFIX = "url:"
EVENT_KEY_PREFIX = "event:"


def title_key(title: Optional[str]) -> Optional[str]:
    """Identity key for a title: lower-cased, whitespace collapsed."""
    if not title or not title.strip():
        return None
    return TITLE_KEY_PREFIX + " ".join(title.split()).lower()


def url_key(url: Optional[str]) -> Optional[str]:
    """Identity key for a link: its canonical path."""
    path = URLValidator.canonical_path(url)
    if not path:
        return None
    return URL_KEY_PREFIX + path


def post_identity_keys(title: Optional[str], url: Optional[str]) -> FrozenSet[str]:
    """Keys under which a blog post is recognized."""
    return frozenset(k for k in (title_key(title), url_key(url)) if k)


def event_identity_keys(event_id: Optional[str], url: Optional[str]) -> FrozenSet[str]:
    """Keys under which an event is recognized.

    Event names repeat (weekly sessions), so the name is not an identity.
    """
    keys = set()
    if event_id and str(event_id).strip():
        keys.add(EVENT_KEY_PREFIX + str(event_id).strip())
    link_key = url_key(url)
    if link_key:
        keys.add(link_key)
    return frozenset(keys)


# ---------------------------------------------------------------------------
# Canonical records (transient, one run)
# ---------------------------------------------------------------------------


class RecordKind(str, Enum):
    """Source shape a canonical record came from."""
    POST = "post"
    EVENT = "event"


class EventDetails(BaseModel):
    """Event-specific fields carried through from the API."""
    model_config = ConfigDict(frozen=True)

    event_id: str = ""
    start_local: str = ""
    end_local: str = ""
    venue_name: Optional[str] = None
    city: Optional[str] = None
    status: Optional[str] = None


class DerivedFields(BaseModel):
    """Fields computed from raw content by the normalizer."""
    model_config = ConfigDict(frozen=True)

    image_url: str = ""
    card_image_url: str = ""
    excerpt: str = ""
    subtitle: str = ""
    body_html: str = ""
    read_time: int = 0
    date_label: str = ""
    time_label: str = ""
    location: str = ""


class CanonicalRecord(BaseModel):
    """Source-agnostic representation of one feed entry or event."""
    model_config = ConfigDict(frozen=True)

    kind: RecordKind
    identity_keys: FrozenSet[str]
    display_title: str
    category: str = ""
    published_at: Optional[date] = None
    source_url: str = ""
    sequence_number: Optional[int] = Field(default=None, ge=1)
    derived: DerivedFields = Field(default_factory=DerivedFields)
    event: Optional[EventDetails] = None

    def shares_identity(self, other: "CanonicalRecord") -> bool:
        return not self.identity_keys.isdisjoint(other.identity_keys)

    def with_sequence(self, number: int) -> "CanonicalRecord":
        """Copy of this record with its sequence number assigned."""
        return self.model_copy(update={"sequence_number": number})

    def __str__(self) -> str:
        return f"CanonicalRecord({self.kind.value}:{self.display_title[:50]})"


# ---------------------------------------------------------------------------
# Manifest entries and manifests (persisted)
# ---------------------------------------------------------------------------


class ManifestEntry(BaseModel):
    """One previously imported item."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    sequence_number: int = Field(..., ge=1, alias="number")

    @property
    def identity_keys(self) -> FrozenSet[str]:
        raise NotImplementedError


class PostEntry(ManifestEntry):
    """Imported blog post, in the ``posts-manifest.json`` layout."""

    title: str
    medium_url: str = Field(default="", alias="mediumUrl")
    file: str = ""
    date: str = ""
    category: str = ""
    excerpt: Optional[str] = None
    read_time: Optional[int] = Field(default=None, alias="readTime")
    card_image: Optional[str] = Field(default=None, alias="cardImage")

    @property
    def identity_keys(self) -> FrozenSet[str]:
        return post_identity_keys(self.title, self.medium_url)

    def __str__(self) -> str:
        return f"PostEntry({self.sequence_number}:{self.title[:50]})"


class EventEntry(ManifestEntry):
    """First sighting of an event."""

    event_id: str = Field(default="", alias="eventId")
    name: str = ""
    url: str = ""
    start_local: str = Field(default="", alias="startLocal")

    @property
    def identity_keys(self) -> FrozenSet[str]:
        return event_identity_keys(self.event_id, self.url)


class EventSnapshot(BaseModel):
    """Displayed state of one event, used for change detection."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = ""
    description: str = ""
    url: str = ""
    start_local: str = Field(default="", alias="startLocal")
    end_local: str = Field(default="", alias="endLocal")
    venue_name: Optional[str] = Field(default=None, alias="venueName")
    city: Optional[str] = None
    image_url: str = Field(default="", alias="imageUrl")
    status: Optional[str] = None


class Manifest(BaseModel):
    """Ordered entries plus the last-assigned sequence counter."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    entries: List[ManifestEntry] = Field(default_factory=list)
    last_assigned_sequence: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_sequence_invariants(self):
        """Sequence numbers are unique and never above the counter."""
        numbers = [entry.sequence_number for entry in self.entries]
        if len(numbers) != len(set(numbers)):
            duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
            raise ValueError(f"duplicate sequence numbers: {duplicates}")
        if numbers and max(numbers) > self.last_assigned_sequence:
            raise ValueError(
                f"counter {self.last_assigned_sequence} is below "
                f"highest sequence number {max(numbers)}"
            )
        return self

    @property
    def max_sequence(self) -> int:
        return max((entry.sequence_number for entry in self.entries), default=0)

    def iter_identity_keys(self) -> Iterable[str]:
        for entry in self.entries:
            yield from entry.identity_keys

    def latest_entry(self) -> Optional[ManifestEntry]:
        """Most recently imported entry (insertion order)."""
        return self.entries[-1] if self.entries else None

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PostsManifest(Manifest):
    """``{"lastPostNumber": N, "posts": [...]}``"""

    entries: List[PostEntry] = Field(default_factory=list, alias="posts")
    last_assigned_sequence: int = Field(default=0, ge=0, alias="lastPostNumber")


class EventsManifest(Manifest):
    """Event entries plus the listing snapshots of the last sync."""

    entries: List[EventEntry] = Field(default_factory=list, alias="events")
    last_assigned_sequence: int = Field(default=0, ge=0, alias="lastEventNumber")
    last_sync: Optional[datetime] = Field(default=None, alias="lastSync")
    upcoming: List[EventSnapshot] = Field(default_factory=list)
    past: List[EventSnapshot] = Field(default_factory=list)
