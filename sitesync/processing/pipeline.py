"""
Sync Pipelines
==============

Orchestrates a sync run: fetch, normalize, diff against the manifest,
render what is new, splice it into the site's pages, commit the manifest.

Everything is computed in memory first. Files are written only in the
final commit stage: generated pages and spliced documents first, the
manifest last, so a failed run never records items whose pages were not
written. A run with nothing new writes nothing at all.

The blog list page is the last document written before the manifest.
Cards are inserted rather than spliced between markers, so if the manifest
save fails after the list page is written, the next run inserts those
cards again. Standalone pages are simply rewritten with the same content.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..config.settings import SiteSyncSettings, get_settings
from ..delivery.renderer import ArtifactRenderer, RenderedArtifact
from ..delivery.splicer import (
    SpliceDiagnostic,
    count_occurrences,
    insert_after_anchor,
    splice,
)
from ..ingestion.eventbrite_client import EventbriteClient
from ..ingestion.feed_manager import FeedManager
from ..models import (
    TITLE_KEY_PREFIX,
    CanonicalRecord,
    EventEntry,
    EventsManifest,
    ManifestEntry,
    PostEntry,
    PostsManifest,
)
from ..storage.document_store import DocumentStore
from ..storage.manifest_repository import ManifestRepository, commit
from ..utils.exceptions import SiteSyncError, handle_exception
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .identity import build_index, partition
from .normalizer import RecordNormalizer, build_event_snapshot


class SyncStatus(str, Enum):
    """Outcome of a run as reported to the operator."""
    NO_CHANGES = "no_changes"
    UPDATED = "updated"
    UPDATED_WITH_WARNINGS = "updated_with_warnings"
    ABORTED = "aborted"


class SyncStage(str, Enum):
    """Stages a run passes through."""
    IDLE = "idle"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    DIFFING = "diffing"
    RENDERING = "rendering"
    SPLICING = "splicing"
    COMMITTING = "committing"


@dataclass(frozen=True)
class SkippedItem:
    """A source item dropped because nothing could identify it."""
    source: str
    position: int
    reason: str

    def __str__(self) -> str:
        return f"{self.source} item #{self.position}: {self.reason}"


@dataclass
class SyncResult:
    """What a run did, for the CLI and the newsletter step."""
    status: SyncStatus = SyncStatus.NO_CHANGES
    changed: bool = False
    dry_run: bool = False
    stages: List[SyncStage] = field(default_factory=list)
    fetched: int = 0
    skipped: int = 0
    known: int = 0
    new_entries: List[ManifestEntry] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    diagnostics: List[Union[SpliceDiagnostic, SkippedItem]] = field(default_factory=list)
    error: Optional[SiteSyncError] = None
    message: str = ""

    @property
    def stage(self) -> SyncStage:
        """Last stage reached."""
        return self.stages[-1] if self.stages else SyncStage.IDLE

    @property
    def succeeded(self) -> bool:
        return self.status != SyncStatus.ABORTED

    def enter(self, stage: SyncStage) -> None:
        self.stages.append(stage)

    def finish_updated(self) -> None:
        self.changed = True
        self.status = (
            SyncStatus.UPDATED_WITH_WARNINGS if self.diagnostics else SyncStatus.UPDATED
        )


class _SyncPipeline:
    """Shared run/abort handling."""

    operation = "sync"

    def __init__(self, settings: Optional[SiteSyncSettings], dry_run: bool):
        self.settings = settings or get_settings()
        self.dry_run = dry_run
        self.logger = get_logger_for_component("pipeline", source=self.operation)
        self.store = DocumentStore(self.settings.site.root_path)
        self.renderer = ArtifactRenderer(self.settings)
        self.normalizer = RecordNormalizer(self.settings)

    def run(self) -> SyncResult:
        """
        Execute one sync run.

        Failures never escape: a fetch or manifest problem aborts the run
        before anything is written and is reported in the result.
        """
        result = SyncResult(dry_run=self.dry_run)
        try:
            with PerformanceLogger(self.logger, self.operation, dry_run=self.dry_run):
                self._sync(result)
        except Exception as e:
            result.error = handle_exception(
                e, self.logger, self.operation, {"stage": result.stage.value}
            )
            result.status = SyncStatus.ABORTED
            result.changed = False
        return result

    def _sync(self, result: SyncResult) -> None:
        raise NotImplementedError

    def _normalize(
        self,
        result: SyncResult,
        raw_items: Sequence[Any],
        normalize: Callable[[Any], Optional[CanonicalRecord]],
        source: str,
    ) -> List[CanonicalRecord]:
        """Normalize in source order, noting every item that had to be dropped."""
        records = []
        for position, raw in enumerate(raw_items, 1):
            record = normalize(raw)
            if record is None:
                skipped = SkippedItem(source, position, "no title, link or id to identify it")
                self.logger.warning(f"Skipping {skipped}")
                result.diagnostics.append(skipped)
                result.skipped += 1
                continue
            records.append(record)
        return records

    def _diagnose(self, result: SyncResult, document: str, region: str, reason: str) -> None:
        diagnostic = SpliceDiagnostic(document=document, region=region, reason=reason)
        self.logger.warning(f"Skipping {diagnostic}")
        result.diagnostics.append(diagnostic)

    def _write_documents(self, result: SyncResult, documents: Dict[str, str]) -> None:
        for name, text in documents.items():
            if self.dry_run:
                self.logger.info(f"[dry run] would write {name}")
                continue
            self.store.write(name, text)
            result.written.append(name)


class BlogSyncPipeline(_SyncPipeline):
    """Imports new blog posts from the RSS feed."""

    operation = "blog sync"

    def __init__(
        self,
        settings: Optional[SiteSyncSettings] = None,
        feed_manager: Optional[FeedManager] = None,
        repository: Optional[ManifestRepository] = None,
        dry_run: bool = False,
    ):
        super().__init__(settings, dry_run)
        self.feed_manager = feed_manager or FeedManager(self.settings)
        self.repository = repository or ManifestRepository(
            self.settings.site_file(self.settings.blog.manifest_file), PostsManifest
        )

    def _sync(self, result: SyncResult) -> None:
        blog = self.settings.blog

        result.enter(SyncStage.FETCHING)
        items = self.feed_manager.fetch_feed()
        result.fetched = len(items)

        result.enter(SyncStage.NORMALIZING)
        records = self._normalize(
            result, items, self.normalizer.normalize_post, self.settings.blog.feed_url
        )

        result.enter(SyncStage.DIFFING)
        manifest = self.repository.load()
        diff = partition(records, build_index(manifest), manifest.last_assigned_sequence)
        result.known = len(diff.known)

        if not diff.has_new:
            result.enter(SyncStage.IDLE)
            result.message = "No new posts found. Everything is up to date."
            self.logger.info(result.message)
            return

        self.logger.info(f"Found {len(diff.new)} new post(s) to sync")

        result.enter(SyncStage.RENDERING)
        artifacts = [self.renderer.render_post(record) for record in diff.new]
        documents = {a.target_name: a.standalone_page for a in artifacts}

        result.enter(SyncStage.SPLICING)
        list_text = self._insert_cards(result, [a.summary_fragment for a in artifacts])
        if list_text is not None:
            documents[blog.list_page] = list_text

        entries = [
            self._entry_for(record, artifact)
            for record, artifact in zip(diff.new, artifacts)
        ]
        updated = commit(manifest, entries)

        result.enter(SyncStage.COMMITTING)
        self._write_documents(result, documents)
        if not self.dry_run:
            self.repository.save(updated)

        result.new_entries = entries
        result.finish_updated()
        result.message = f"{len(entries)} new post(s) added."
        for entry in entries:
            self.logger.info(f"Created {entry.file}: \"{entry.title}\"")

    def _insert_cards(self, result: SyncResult, cards: Sequence[str]) -> Optional[str]:
        blog = self.settings.blog
        text = self.store.read(blog.list_page)
        if text is None:
            self._diagnose(result, blog.list_page, "article list", "document not found")
            return None

        if count_occurrences(text, blog.list_anchor) > 1:
            self.logger.warning(
                f"Anchor occurs more than once in {blog.list_page}; using the first"
            )

        updated = insert_after_anchor(text, blog.list_anchor, "\n" + "\n".join(cards))
        if updated is None:
            self._diagnose(result, blog.list_page, "article list", "anchor not found")
        return updated

    @staticmethod
    def _entry_for(record: CanonicalRecord, artifact: RenderedArtifact) -> PostEntry:
        has_title = any(k.startswith(TITLE_KEY_PREFIX) for k in record.identity_keys)
        return PostEntry(
            sequence_number=record.sequence_number,
            # The display default is not an identity, so it is not recorded
            title=record.display_title if has_title else "",
            medium_url=record.source_url,
            file=artifact.target_name,
            date=record.derived.date_label,
            category=record.category,
            excerpt=record.derived.excerpt,
            read_time=record.derived.read_time,
            card_image=record.derived.card_image_url,
        )


class EventSyncPipeline(_SyncPipeline):
    """Refreshes the upcoming and past event listings from Eventbrite."""

    operation = "event sync"

    def __init__(
        self,
        settings: Optional[SiteSyncSettings] = None,
        client: Optional[EventbriteClient] = None,
        repository: Optional[ManifestRepository] = None,
        dry_run: bool = False,
    ):
        super().__init__(settings, dry_run)
        self.client = client
        self.repository = repository or ManifestRepository(
            self.settings.site_file(self.settings.events.manifest_file),
            EventsManifest,
            create_missing=True,
        )

    def _sync(self, result: SyncResult) -> None:
        events = self.settings.events
        if self.client is None:
            if not events.is_configured():
                result.message = "Eventbrite token or organization ID not set. Skipping event sync."
                self.logger.info(result.message)
                return
            self.client = EventbriteClient(self.settings)

        result.enter(SyncStage.FETCHING)
        upcoming_raw = self.client.fetch_upcoming()
        past_raw = self.client.fetch_past(events.past_limit)
        result.fetched = len(upcoming_raw) + len(past_raw)

        result.enter(SyncStage.NORMALIZING)
        upcoming = self._normalize(
            result, upcoming_raw, self.normalizer.normalize_event, "upcoming events"
        )
        past = self._normalize(
            result, past_raw, self.normalizer.normalize_event, "past events"
        )

        result.enter(SyncStage.DIFFING)
        manifest = self.repository.load()
        diff = partition(
            upcoming + past, build_index(manifest), manifest.last_assigned_sequence
        )
        result.known = len(diff.known)

        upcoming_snapshots = [build_event_snapshot(r) for r in upcoming]
        past_snapshots = [build_event_snapshot(r) for r in past]
        listing_changed = (
            upcoming_snapshots != manifest.upcoming or past_snapshots != manifest.past
        )

        if not diff.has_new and not listing_changed:
            result.enter(SyncStage.IDLE)
            result.message = "Event listings unchanged."
            self.logger.info(result.message)
            return

        result.enter(SyncStage.RENDERING)
        regions = self._render_regions(upcoming, past)

        result.enter(SyncStage.SPLICING)
        documents = {}
        for document, document_regions in regions.items():
            text = self._splice_document(result, document, document_regions)
            if text is not None:
                documents[document] = text

        entries = [
            EventEntry(
                sequence_number=record.sequence_number,
                event_id=record.event.event_id if record.event else "",
                name=record.display_title,
                url=record.source_url,
                start_local=record.event.start_local if record.event else "",
            )
            for record in diff.new
        ]
        updated = commit(manifest, entries).model_copy(
            update={
                "last_sync": datetime.now(timezone.utc),
                "upcoming": upcoming_snapshots,
                "past": past_snapshots,
            }
        )

        result.enter(SyncStage.COMMITTING)
        self._write_documents(result, documents)
        if not self.dry_run:
            self.repository.save(updated)

        result.new_entries = entries
        result.finish_updated()
        result.message = f"{len(upcoming)} upcoming, {len(past)} past event(s)."

    def _render_regions(
        self, upcoming: List[CanonicalRecord], past: List[CanonicalRecord]
    ) -> Dict[str, List[Tuple[str, List[str], str]]]:
        """Region content per document, as (label, markers, content)."""
        events = self.settings.events
        render = self.renderer

        upcoming_html = (
            "\n".join(render.render_upcoming_card(r) for r in upcoming)
            or render.render_upcoming_empty()
        )
        past_html = (
            "\n".join(render.render_past_card(r) for r in past)
            or render.render_past_empty()
        )
        homepage_html = (
            "\n".join(
                render.render_homepage_card(r) for r in upcoming[: events.homepage_limit]
            )
            or render.render_homepage_empty()
        )

        regions: Dict[str, List[Tuple[str, List[str], str]]] = {}
        regions.setdefault(events.events_page, []).extend([
            ("upcoming events", events.upcoming_markers, upcoming_html),
            ("past events", events.past_markers, past_html),
        ])
        regions.setdefault(events.index_page, []).append(
            ("homepage events", events.homepage_markers, homepage_html)
        )
        return regions

    def _splice_document(
        self,
        result: SyncResult,
        document: str,
        regions: List[Tuple[str, List[str], str]],
    ) -> Optional[str]:
        """Apply every region to a document; None if nothing changes."""
        original = self.store.read(document)
        if original is None:
            self._diagnose(result, document, "all", "document not found")
            return None

        text = original
        for label, (begin, end), content in regions:
            spliced = splice(text, begin, end, "\n" + content + "\n")
            if spliced is None:
                self._diagnose(result, document, label, "markers not found")
                continue
            text = spliced

        if text == original:
            self.logger.debug(f"{document} already up to date")
            return None
        return text
