"""
Schedule Pipeline

One run: fetch → reconcile with the snapshot → normalize → drop past
sessions → classify → fan out → write calendars and snapshot.

Calendars are staged and their destinations checked first, then the snapshot
is written, then the calendars are moved into place. Any terminal failure
before the snapshot write leaves the previous outputs untouched. A rename
that still fails after the snapshot write can leave the new snapshot next to a mix of old and new calendars; the next run
rewrites every calendar.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import psycopg

from ..calendars.ics_writer import CalendarWriter, build_calendar
from ..config import Settings
from ..database.models import Session
from ..database.snapshot import SnapshotStore
from ..database.utils import archive_sessions
from ..scrapers.base import BaseScraper
from .classifier import Classifier, default_classifier
from .fanout import fan_out, group_counts
from .normalizer import normalize_records
from .reconciler import CacheReconciler, key_records
from .timeutils import is_upcoming, query_window, start_of_today_local


@dataclass
class RunSummary:
    """Counts describing one pipeline run."""
    mode: str
    fell_back: bool = False
    fetched: int = 0
    working_set: int = 0
    written: int = 0
    per_category: Dict[str, int] = field(default_factory=dict)
    skipped_bad_dates: int = 0
    skipped_past: int = 0
    cache_merged: int = 0
    cache_missing: int = 0
    cache_added: int = 0
    cache_pruned: int = 0
    files: List[str] = field(default_factory=list)
    archive_run_id: Optional[str] = None

    def report(self) -> None:
        mode = f"{self.mode} (fallback from incremental)" if self.fell_back else self.mode
        print(f"Mode: {mode}")
        print(f"Records fetched: {self.fetched} (working set: {self.working_set})")
        print(f"Skipped: {self.skipped_bad_dates} with bad dates, {self.skipped_past} in the past")
        if self.mode == "incremental":
            print(f"Cache: {self.cache_merged} merged, {self.cache_missing} missing from feed, "
                  f"{self.cache_added} new")
        if self.cache_pruned:
            print(f"Cache: {self.cache_pruned} old entries evicted")
        print(f"Sessions written: {self.written}")
        for category, count in self.per_category.items():
            print(f"  - {category}: {count}")


class SchedulePipeline:
    """Runs the full fetch-to-calendar flow for one venue."""

    def __init__(self, settings: Settings, scraper: BaseScraper,
                 classifier: Optional[Classifier] = None,
                 store: Optional[SnapshotStore] = None,
                 writer: Optional[CalendarWriter] = None):
        self.settings = settings
        self.scraper = scraper
        self.classifier = classifier or default_classifier(settings.category_rules_file)
        self.store = store or SnapshotStore(settings.cache_file, settings.location_id)
        self.writer = writer or CalendarWriter(settings.output_dir)
        self.reconciler = CacheReconciler(self.store, settings.timezone, settings.cache_retention_days)

    def classify(self, sessions: List[Session]) -> List[Session]:
        return [session.with_category(self.classifier.classify(session.title)) for session in sessions]

    async def run(self, now: Optional[datetime] = None) -> RunSummary:
        """
        Execute one run.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            RunSummary with the run's counts

        Raises:
            FetchFailure, NoScheduleData: If the feed could not be read
            CacheWriteFailure: If the snapshot could not be written
        """
        settings = self.settings
        tz = settings.timezone

        start_date, end_date = query_window(settings.days_forward, tz, now, settings.days_back)
        records = await self.scraper.fetch_records(settings.location_id, start_date, end_date)
        print(f"Classes found: {len(records)}")

        fresh, unkeyed = key_records(records, tz)
        result = await self.reconciler.reconcile(settings.mode, fresh, now)

        sessions, bad_dates = normalize_records(result.records.values(), tz)
        threshold = start_of_today_local(tz, now)
        upcoming = [s for s in sessions if is_upcoming(s, threshold)]
        classified = self.classify(upcoming)

        groups = fan_out(classified, self.classifier, settings.venue_name, settings.location_id)

        summary = RunSummary(
            mode=result.mode,
            fell_back=result.fell_back,
            fetched=len(records),
            working_set=len(result.records),
            written=len(classified),
            per_category=group_counts(groups),
            skipped_bad_dates=bad_dates + unkeyed,
            skipped_past=len(sessions) - len(upcoming),
            cache_merged=result.merged,
            cache_missing=result.missing,
            cache_added=result.added,
            cache_pruned=result.pruned,
        )

        try:
            for group in groups:
                text = build_calendar(
                    group.name,
                    group.sessions,
                    venue_label=settings.venue_name,
                    uid_domain=settings.location_id,
                    default_url=settings.booking_url,
                    tz=tz,
                )
                await asyncio.to_thread(self.writer.stage, group.slug, text)

            await asyncio.to_thread(self.writer.verify)
            await self.reconciler.commit(result)
            print(f"💾 Saved {len(result.records)} records to {self.store.path}")

            written = await asyncio.to_thread(self.writer.commit)
        except BaseException:
            self.writer.discard()
            raise

        summary.files = sorted(written.values())
        print(f"✅ Wrote {len(summary.files)} calendars to {settings.output_dir}")

        if settings.database_url:
            summary.archive_run_id = await self._archive(classified)

        return summary

    async def _archive(self, sessions: List[Session]) -> Optional[str]:
        try:
            return await asyncio.to_thread(
                archive_sessions,
                self.settings.database_url,
                self.scraper.source_name,
                self.settings.location_id,
                sessions,
            )
        except (psycopg.Error, OSError) as e:
            print(f"❌ Failed to archive run to database: {e}")
            return None
