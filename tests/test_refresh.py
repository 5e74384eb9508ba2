"""Unit tests for stale note refresh."""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Dict, List, Optional

import pytest

from link_preview.errors import BadStatus
from link_preview.models import LinkKind, LinkMetadata, PreviewResult
from link_preview.refresh import (
    LinkNote,
    notes_needing_refresh,
    primary_url,
    refresh_note,
    refresh_notes,
)

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


class StubPipeline:
    """Returns canned results per URL; exceptions are raised."""

    def __init__(self, outcomes: Dict[str, object]) -> None:
        self.outcomes = outcomes
        self.calls: List[str] = []

    async def extract(self, url: str, title_hint: Optional[str] = None) -> PreviewResult:
        self.calls.append(url)
        outcome = self.outcomes[url]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def result_for(url: str, title: str, image_url: Optional[str] = "https://ex.com/i.png"):
    return PreviewResult(
        source_url=url,
        final_title=title,
        content=f"**Source:** [ex.com]({url})",
        metadata=LinkMetadata(kind=LinkKind.PRODUCT, price="10.00"),
        image_url=image_url,
        description="Fresh description",
    )


def note(title: str, url: Optional[str], hours_ago: Optional[float] = None) -> LinkNote:
    fetched = None if hours_ago is None else NOW - dt.timedelta(hours=hours_ago)
    return LinkNote(title=title, content=url or "plain text", source_url=url, last_content_fetch=fetched)


class TestSelection:
    """Tests for choosing which notes to refresh."""

    def test_stale_and_unfetched_oldest_first(self) -> None:
        fresh = note("fresh", "https://ex.com/1", hours_ago=1)
        stale = note("stale", "https://ex.com/2", hours_ago=30)
        older = note("older", "https://ex.com/3", hours_ago=72)
        never = note("never", "https://ex.com/4")
        plain = note("plain", None)

        selected = notes_needing_refresh([fresh, stale, older, never, plain], now=NOW)

        assert [item.title for item in selected] == ["never", "older", "stale"]

    def test_primary_url_from_content(self) -> None:
        item = LinkNote(title="t", content="Saved from http://ex.com/a today")
        assert primary_url(item) == "https://ex.com/a"

    def test_naive_timestamps_treated_as_utc(self) -> None:
        """Notes stamped with naive datetimes are compared as UTC."""
        naive_old = LinkNote(
            title="naive old",
            content="https://ex.com/1",
            source_url="https://ex.com/1",
            last_content_fetch=dt.datetime(2020, 1, 1),
        )
        naive_fresh = LinkNote(
            title="naive fresh",
            content="https://ex.com/2",
            source_url="https://ex.com/2",
            last_content_fetch=NOW.replace(tzinfo=None) - dt.timedelta(hours=1),
        )
        aware_stale = note("aware stale", "https://ex.com/3", hours_ago=48)

        selected = notes_needing_refresh([aware_stale, naive_fresh, naive_old], now=NOW)

        assert [item.title for item in selected] == ["naive old", "aware stale"]

    @pytest.mark.asyncio
    async def test_batch_with_naive_timestamp(self) -> None:
        item = LinkNote(
            title="n",
            content="https://ex.com/n",
            source_url="https://ex.com/n",
            last_content_fetch=dt.datetime(2020, 1, 1),
        )
        pipeline = StubPipeline({"https://ex.com/n": result_for("https://ex.com/n", "N")})

        report = await refresh_notes([item], pipeline)

        assert report.refreshed == [item]


class TestRefreshNote:
    @pytest.mark.asyncio
    async def test_success_updates_note(self) -> None:
        item = note("old", "https://ex.com/a", hours_ago=48)
        pipeline = StubPipeline({"https://ex.com/a": result_for("https://ex.com/a", "New")})

        failure = await refresh_note(item, pipeline, now=NOW)

        assert failure is None
        assert item.title == "New"
        assert item.content == "**Source:** [ex.com](https://ex.com/a)"
        assert item.summary == "Fresh description"
        assert item.metadata.kind is LinkKind.PRODUCT
        assert item.last_content_fetch == NOW
        assert item.content_fetched is True

    @pytest.mark.asyncio
    async def test_user_summary_preserved(self) -> None:
        item = note("old", "https://ex.com/a")
        item.summary = "My own notes"
        pipeline = StubPipeline({"https://ex.com/a": result_for("https://ex.com/a", "New")})

        await refresh_note(item, pipeline, now=NOW)

        assert item.summary == "My own notes"

    @pytest.mark.asyncio
    async def test_missing_image_marks_for_retry(self) -> None:
        item = note("old", "https://ex.com/a")
        pipeline = StubPipeline(
            {"https://ex.com/a": result_for("https://ex.com/a", "New", image_url=None)}
        )

        await refresh_note(item, pipeline, now=NOW)

        assert item.content_fetched is False

    @pytest.mark.asyncio
    async def test_failure_message(self) -> None:
        item = note("Lamp", "https://ex.com/a")
        pipeline = StubPipeline({"https://ex.com/a": BadStatus(500)})

        failure = await refresh_note(item, pipeline, now=NOW)

        assert failure == "Failed to refresh Lamp: Bad HTTP status 500"
        assert item.content_fetched is False
        assert item.last_content_fetch == NOW


class TestRefreshNotes:
    """Tests for the batch refresh loop."""

    @pytest.mark.asyncio
    async def test_collects_failures(self) -> None:
        good = note("good", "https://ex.com/good")
        bad = note("bad", "https://ex.com/bad")
        pipeline = StubPipeline(
            {
                "https://ex.com/good": result_for("https://ex.com/good", "Good"),
                "https://ex.com/bad": BadStatus(503),
            }
        )

        report = await refresh_notes([good, bad], pipeline)

        assert report.refreshed == [good]
        assert report.failures == ["Failed to refresh bad: Bad HTTP status 503"]
        assert not report.succeeded

    @pytest.mark.asyncio
    async def test_cancellation_stops_after_current_note(self) -> None:
        """Setting the cancel event stops the loop before the next note."""
        first = note("first", "https://ex.com/1")
        second = note("second", "https://ex.com/2")
        pipeline = StubPipeline(
            {
                "https://ex.com/1": result_for("https://ex.com/1", "One"),
                "https://ex.com/2": result_for("https://ex.com/2", "Two"),
            }
        )
        cancel = asyncio.Event()
        seen: List[str] = []

        def on_progress(item: LinkNote) -> None:
            seen.append(item.title)
            cancel.set()

        report = await refresh_notes([first, second], pipeline, cancel=cancel, on_progress=on_progress)

        assert report.cancelled
        assert seen == ["first"]
        assert pipeline.calls == ["https://ex.com/1"]
        assert second.last_content_fetch is None

    @pytest.mark.asyncio
    async def test_already_cancelled(self) -> None:
        cancel = asyncio.Event()
        cancel.set()
        pipeline = StubPipeline({})

        report = await refresh_notes([note("n", "https://ex.com/n")], pipeline, cancel=cancel)

        assert report.cancelled
        assert pipeline.calls == []

    @pytest.mark.asyncio
    async def test_browser_timeout_recorded_as_failure(self) -> None:
        """Errors from outside the fetch layer, like a render timeout, do not abort the batch."""
        timed_out = note("slow", "https://ex.com/slow")
        good = note("good", "https://ex.com/good")
        pipeline = StubPipeline(
            {
                "https://ex.com/slow": RuntimeError("Timeout 30000ms exceeded"),
                "https://ex.com/good": result_for("https://ex.com/good", "Good"),
            }
        )

        report = await refresh_notes([timed_out, good], pipeline)

        assert report.failures == ["Failed to refresh slow: Timeout 30000ms exceeded"]
        assert report.refreshed == [good]
