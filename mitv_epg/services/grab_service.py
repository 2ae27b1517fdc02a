"""
Listing Grab Service

Coordinates fetching, normalization, and XMLTV output for every registered
channel. Channels are independent and run on a bounded worker pool; within
a channel, listing days are prefetched and merged in chronological order.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Literal, Sequence

import httpx

from mitv_epg.config import settings
from mitv_epg.exceptions import ChannelFailedError, RegistryLoadError
from mitv_epg.services.boundary_resolver import DEFAULT_FALLBACK_DURATION
from mitv_epg.services.channel_registry import load_channels
from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind, record
from mitv_epg.services.listing_source import ListingSource, MiTvListingSource
from mitv_epg.services.listing_types import ChannelEntry, ChannelTimeline, CutoffPolicy
from mitv_epg.services.timeline_assembler import TimelineAssembler
from mitv_epg.services.timeline_validator import DEFAULT_GAP_WARNING
from mitv_epg.services.xmltv_writer import XMLTVFormatter
from mitv_epg.utils.logging_helpers import (
    log_channel_processing,
    log_channel_summary,
    log_grab_end,
    log_grab_start,
    log_output_stats,
    log_window,
)
from mitv_epg.utils.timezone import listing_dates, resolve_zone, site_today


logger = logging.getLogger(__name__)

# One grab at a time, whether started by the scheduler or the API
_grab_lock = asyncio.Lock()


@dataclass(slots=True)
class GrabContext:
    started_at: datetime
    today: date
    days: list[date]
    lookahead_day: date


@dataclass(slots=True)
class ChannelSummary:
    index: int
    channel: ChannelEntry
    started_at: datetime
    completed_at: datetime
    status: Literal["success", "partial", "failed"]
    programs_count: int = 0
    days_fetched: int = 0
    days_missing: int = 0
    error: str | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    timeline: ChannelTimeline | None = None

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        payload = {
            "channel_index": self.index,
            "channel_id": self.channel.channel_id,
            "channel_ref": self.channel.channel_ref,
            "display_name": self.channel.display_name,
            "status": self.status,
            "programs": self.programs_count,
            "days_fetched": self.days_fetched,
            "days_missing": self.days_missing,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }
        if self.error:
            payload["error"] = self.error
        return payload


class EPGGrabPipeline:
    """Runs every channel through fetch, normalization and formatting."""

    def __init__(
        self,
        channels: Sequence[ChannelEntry],
        source: ListingSource,
        formatter: XMLTVFormatter,
        *,
        policy: CutoffPolicy,
        date_offsets: tuple[int, int] = (-1, 2),
        fallback_duration: timedelta = DEFAULT_FALLBACK_DURATION,
        gap_warning: timedelta = DEFAULT_GAP_WARNING,
        max_concurrency: int | None = None,
        channel_timeout_seconds: int | None = None,
        registry_diagnostics: Sequence[Diagnostic] = (),
        today: date | None = None,
    ) -> None:
        self.channels = list(channels)
        self.total_channels = len(self.channels)
        self._source = source
        self._formatter = formatter
        self._policy = policy
        self._date_offsets = date_offsets
        self._fallback_duration = fallback_duration
        self._gap_warning = gap_warning
        self._concurrency = max(1, max_concurrency or min(4, self.total_channels or 1))
        self._semaphore = asyncio.Semaphore(self._concurrency)
        self._channel_timeout = (
            channel_timeout_seconds if channel_timeout_seconds and channel_timeout_seconds > 0 else None
        )
        self._registry_diagnostics = list(registry_diagnostics)
        self._today = today

    async def run(self, output_path: Path | str | None = None) -> dict:
        context = self._build_context()
        log_window(logger, context.days, context.lookahead_day, self._policy.cutoff_hour)
        logger.info(
            "Channel workers: %s, channel timeout: %s",
            self._concurrency,
            f"{self._channel_timeout}s" if self._channel_timeout else "disabled",
        )

        summaries = await self._collect_channels(context)
        written_to = await self._emit_timelines(summaries, output_path)

        return self._build_result(context, summaries, written_to)

    def _build_context(self) -> GrabContext:
        started_at = datetime.now(timezone.utc)
        today = self._today or site_today(self._policy.site_tz)
        days = listing_dates(today, *self._date_offsets)
        return GrabContext(
            started_at=started_at,
            today=today,
            days=days,
            lookahead_day=days[-1] + timedelta(days=1),
        )

    async def _collect_channels(self, context: GrabContext) -> list[ChannelSummary]:
        if not self.channels:
            logger.warning("No channels registered - skipping grab cycle")
            return []

        tasks = [
            asyncio.create_task(self._process_channel(index, channel, context))
            for index, channel in enumerate(self.channels, start=1)
        ]

        summaries = await asyncio.gather(*tasks)
        summaries.sort(key=lambda summary: summary.index)
        return summaries

    async def _process_channel(
        self,
        index: int,
        channel: ChannelEntry,
        context: GrabContext
    ) -> ChannelSummary:
        started_at = datetime.now(timezone.utc)

        async with self._semaphore:
            log_channel_processing(logger, index, self.total_channels, channel.channel_id)
            try:
                assemble = self._assemble_channel(channel, context)
                if self._channel_timeout:
                    timeline, fetched, missing = await asyncio.wait_for(
                        assemble,
                        timeout=self._channel_timeout,
                    )
                else:
                    timeline, fetched, missing = await assemble
            except asyncio.TimeoutError:
                return self._failed_summary(
                    index,
                    channel,
                    started_at,
                    f"Timed out after {self._channel_timeout}s; partial listings discarded",
                )
            except ChannelFailedError as exc:
                return self._failed_summary(index, channel, started_at, exc.reason)
            except Exception as exc:
                logger.error(
                    "[Channel %s] Failed to process %s: %s",
                    index,
                    channel.channel_id,
                    exc,
                    exc_info=True,
                )
                return self._failed_summary(index, channel, started_at, str(exc))

        log_channel_summary(
            logger,
            channel.channel_id,
            len(timeline.programs),
            timeline.partial,
            timeline.repaired,
        )
        return ChannelSummary(
            index=index,
            channel=channel,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            status="partial" if timeline.partial else "success",
            programs_count=len(timeline.programs),
            days_fetched=fetched,
            days_missing=missing,
            diagnostics=list(timeline.diagnostics),
            timeline=timeline,
        )

    async def _assemble_channel(
        self,
        channel: ChannelEntry,
        context: GrabContext,
    ) -> tuple[ChannelTimeline, int, int]:
        days = [*context.days, context.lookahead_day]
        # All days are requested up front; merging still happens in day order
        fetches = [
            asyncio.create_task(self._source.fetch_listing(channel.channel_ref, day))
            for day in days
        ]

        assembler = TimelineAssembler(
            channel.channel_id,
            self._policy,
            fallback_duration=self._fallback_duration,
            gap_warning=self._gap_warning,
        )
        fetched = missing = 0
        try:
            for day, fetch in zip(days, fetches):
                entries = await fetch
                is_lookahead = day == context.lookahead_day
                if not is_lookahead:
                    if entries is None:
                        missing += 1
                    else:
                        fetched += 1
                assembler.add_day(day, entries, lookahead=is_lookahead)
        finally:
            for fetch in fetches:
                if not fetch.done():
                    fetch.cancel()

        if not fetched:
            raise ChannelFailedError(channel.channel_id, "No listing could be fetched for any day")

        return assembler.finish(), fetched, missing

    def _failed_summary(
        self,
        index: int,
        channel: ChannelEntry,
        started_at: datetime,
        reason: str,
    ) -> ChannelSummary:
        diagnostic = record(logger, DiagnosticKind.CHANNEL_FAILED, channel.channel_id, reason)
        return ChannelSummary(
            index=index,
            channel=channel,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            status="failed",
            error=reason,
            diagnostics=[diagnostic],
        )

    async def _emit_timelines(
        self,
        summaries: list[ChannelSummary],
        output_path: Path | str | None,
    ) -> str | None:
        for summary in summaries:
            if summary.timeline is None:
                continue
            self._formatter.emit(
                summary.channel.channel_id,
                summary.channel.display_name,
                summary.timeline.programs,
            )

        log_output_stats(logger, self._formatter.channel_count, self._formatter.programme_count)
        if output_path is None:
            return None
        written = await self._formatter.write(output_path)
        return str(written)

    def _build_result(
        self,
        context: GrabContext,
        summaries: list[ChannelSummary],
        written_to: str | None,
    ) -> dict:
        succeeded = sum(1 for summary in summaries if summary.status == "success")
        partial = sum(1 for summary in summaries if summary.status == "partial")
        failed = sum(1 for summary in summaries if summary.status == "failed")

        return {
            "status": "success",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "channels_processed": len(self.channels),
            "channels_succeeded": succeeded,
            "channels_partial": partial,
            "channels_failed": failed,
            "channels_skipped": len(self._registry_diagnostics),
            "programs_written": self._formatter.programme_count,
            "output_path": written_to,
            "registry_diagnostics": [diagnostic.to_dict() for diagnostic in self._registry_diagnostics],
            "channel_details": [summary.to_dict() for summary in summaries],
            "started_at": context.started_at.isoformat(),
            "window_start": context.days[0].isoformat(),
            "window_end": context.days[-1].isoformat(),
        }


async def grab_and_write() -> dict:
    """
    Main entry point for a listing grab

    A request arriving while another grab is running is skipped, not queued.

    Returns:
        Dictionary with run statistics or error/skip message.
    """
    if _grab_lock.locked():
        logger.warning("Listing grab already in progress, skipping this request")
        return {"status": "skipped", "message": "Listing grab already in progress"}

    async with _grab_lock:
        return await _run_grab()


def grab_in_progress() -> bool:
    return _grab_lock.locked()


async def _run_grab() -> dict:
    log_grab_start(logger)

    try:
        channels, registry_diagnostics = load_channels(settings.channels_file)
    except RegistryLoadError as exc:
        logger.error("Listing grab aborted: %s", exc)
        return {"error": str(exc)}

    if not channels:
        logger.warning("No valid channels in %s - grab aborted", settings.channels_file)
        return {"error": f"No valid channels in {settings.channels_file}"}

    try:
        async with httpx.AsyncClient(
            timeout=settings.request_timeout_sec,
            headers={"User-Agent": settings.user_agent},
            follow_redirects=True,
        ) as client:
            source = MiTvListingSource(
                client,
                settings.source_base_url,
                max_retries=settings.request_max_retries,
                backoff_factor=settings.request_backoff_factor,
                listing_timeout_seconds=settings.listing_timeout_sec,
                request_semaphore=asyncio.Semaphore(settings.max_concurrent_requests),
            )
            formatter = XMLTVFormatter(
                output_tz=resolve_zone(settings.output_timezone),
                lang=settings.title_lang,
                generator_name=settings.generator_name,
            )
            pipeline = EPGGrabPipeline(
                channels,
                source,
                formatter,
                policy=settings.cutoff_policy,
                date_offsets=settings.date_offsets,
                fallback_duration=settings.fallback_duration,
                gap_warning=settings.coverage_gap_warning,
                max_concurrency=settings.max_channel_workers,
                channel_timeout_seconds=settings.channel_timeout_sec,
                registry_diagnostics=registry_diagnostics,
            )
            result = await pipeline.run(settings.output_path)
    except OSError as exc:
        logger.error("Listing grab failed writing output: %s", exc, exc_info=True)
        return {"error": str(exc)}
    except Exception as exc:  # Catch-all to ensure API stability
        logger.error("Unexpected error during listing grab: %s", exc, exc_info=True)
        return {"error": str(exc)}

    log_grab_end(logger)
    return result
