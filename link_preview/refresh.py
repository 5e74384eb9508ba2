"""Batch refresh of stale link-preview notes."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .markdown import is_link_preview_content
from .models import LinkMetadata
from .pipeline import LinkPreviewPipeline
from .utils import first_url, upgrade_to_https

logger = logging.getLogger("link_preview")


@dataclass
class LinkNote:
    """The slice of a persisted note that a link refresh reads and writes."""

    title: str
    content: str
    source_url: Optional[str] = None
    summary: Optional[str] = None
    last_content_fetch: Optional[dt.datetime] = None
    content_fetched: bool = False
    metadata: Optional[LinkMetadata] = None


@dataclass
class RefreshReport:
    refreshed: List[LinkNote] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.cancelled


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _as_utc(value: dt.datetime) -> dt.datetime:
    # naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def is_link_note(note: LinkNote) -> bool:
    return note.source_url is not None or is_link_preview_content(note.content)


def primary_url(note: LinkNote) -> Optional[str]:
    """The note's source URL, else the first URL in its content, upgraded to https."""
    url = note.source_url or first_url(note.content)
    return upgrade_to_https(url) if url else None


def notes_needing_refresh(
    notes: Sequence[LinkNote],
    now: Optional[dt.datetime] = None,
    staleness_seconds: float = 24 * 60 * 60,
) -> List[LinkNote]:
    """Link notes never fetched or fetched before the cutoff, oldest first."""
    cutoff = _as_utc(now or _utcnow()) - dt.timedelta(seconds=staleness_seconds)
    oldest = dt.datetime.min.replace(tzinfo=dt.timezone.utc)

    def fetched_at(note: LinkNote) -> dt.datetime:
        if note.last_content_fetch is None:
            return oldest
        return _as_utc(note.last_content_fetch)

    stale = [
        note
        for note in notes
        if is_link_note(note) and primary_url(note) is not None and fetched_at(note) < cutoff
    ]
    return sorted(stale, key=fetched_at)


async def refresh_note(
    note: LinkNote,
    pipeline: LinkPreviewPipeline,
    now: Optional[dt.datetime] = None,
) -> Optional[str]:
    """Refresh one note in place; return a failure message or ``None``."""
    now = now or _utcnow()
    url = primary_url(note)
    if url is None:
        note.last_content_fetch = now
        note.content_fetched = True
        return None

    try:
        result = await pipeline.extract(url)
    except Exception as exc:  # pylint: disable=broad-except
        logger.debug("Refresh of %s failed", url, exc_info=True)
        note.last_content_fetch = now
        note.content_fetched = False
        return f"Failed to refresh {note.title}: {exc}"

    note.title = result.final_title
    if is_link_note(note):
        note.content = result.content
    note.source_url = result.source_url
    note.metadata = result.metadata
    existing_summary = (note.summary or "").strip()
    if result.description and (not existing_summary or existing_summary == result.description):
        note.summary = result.description
    note.last_content_fetch = now
    note.content_fetched = result.image_url is not None
    return None


async def refresh_notes(
    notes: Sequence[LinkNote],
    pipeline: LinkPreviewPipeline,
    cancel: Optional[asyncio.Event] = None,
    staleness_seconds: float = 24 * 60 * 60,
    on_progress: Optional[Callable[[LinkNote], None]] = None,
) -> RefreshReport:
    """Refresh stale notes one at a time, stopping cleanly when ``cancel`` is set."""
    report = RefreshReport()
    candidates = notes_needing_refresh(notes, staleness_seconds=staleness_seconds)
    logger.info("Refreshing %d stale link note(s)", len(candidates))

    for note in candidates:
        if cancel is not None and cancel.is_set():
            report.cancelled = True
            break
        if on_progress is not None:
            on_progress(note)

        failure = await refresh_note(note, pipeline)
        if failure:
            logger.warning("%s", failure)
            report.failures.append(failure)
        else:
            report.refreshed.append(note)

        if cancel is not None and cancel.is_set():
            report.cancelled = True
            break

    logger.info(
        "Refresh finished (%d refreshed, %d failed%s)",
        len(report.refreshed),
        len(report.failures),
        ", cancelled" if report.cancelled else "",
    )
    return report
