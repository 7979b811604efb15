"""
Database utilities for archiving schedule runs in PostgreSQL.
"""

import json
import os
import uuid
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional, Sequence, Tuple

import psycopg

from .models import ScrapeRun, Session


def get_connection(database_url: str) -> psycopg.Connection:
    """Open an autocommit connection to the archive database."""
    return psycopg.connect(database_url, autocommit=True)


def ensure_schema(conn: psycopg.Connection):
    """Create tables if they don't exist."""
    with conn.cursor() as cur:
        cur.execute("""
        CREATE TABLE IF NOT EXISTS scrape_runs (
            run_id TEXT PRIMARY KEY,
            source TEXT NOT NULL,
            started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            git_sha TEXT
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS schedule_snapshots (
            id BIGSERIAL PRIMARY KEY,
            run_id TEXT NOT NULL REFERENCES scrape_runs(run_id) ON DELETE CASCADE,
            source TEXT NOT NULL,
            item_uid TEXT,
            class_name TEXT,
            category TEXT,
            instructor TEXT,
            location TEXT,
            start_ts TIMESTAMPTZ,
            end_ts TIMESTAMPTZ,
            capacity INTEGER,
            spots_available INTEGER,
            waitlist_size INTEGER,
            url TEXT,
            scraped_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            raw JSONB NOT NULL
        );
        """)

        cur.execute("CREATE INDEX IF NOT EXISTS ix_snapshots_source_start ON schedule_snapshots(source, start_ts);")
        cur.execute("CREATE INDEX IF NOT EXISTS ix_snapshots_uid ON schedule_snapshots(source, item_uid, start_ts);")


def insert_run(conn: psycopg.Connection, run: ScrapeRun) -> str:
    """Insert a scrape run and return its run_id."""
    with conn.cursor() as cur:
        cur.execute(
            "INSERT INTO scrape_runs (run_id, source, started_at, git_sha) VALUES (%s, %s, %s, %s)",
            (run.run_id, run.source, run.started_at, run.git_sha),
        )
    return run.run_id


def as_rows(source: str, run_id: str, location: str, scraped_at: datetime,
            sessions: Iterable[Session]) -> Iterator[Tuple]:
    """Convert sessions to schedule_snapshots rows."""
    for session in sessions:
        yield (
            run_id,
            source,
            session.uid,
            session.title,
            session.category,
            session.instructor,
            location,
            session.start,
            session.end,
            session.capacity,
            session.free_spots,
            session.waitlist_size,
            session.booking_url,
            scraped_at,
            json.dumps(session.raw, default=str),
        )


def insert_snapshots(conn: psycopg.Connection, run_id: str, source: str, location: str,
                     sessions: Sequence[Session]) -> int:
    """Insert one snapshot row per session; returns the number of rows written."""
    rows = list(as_rows(source, run_id, location, datetime.now(timezone.utc), sessions))
    if not rows:
        return 0

    with conn.cursor() as cur:
        cur.executemany("""
            INSERT INTO schedule_snapshots
            (run_id, source, item_uid, class_name, category, instructor, location, start_ts, end_ts,
             capacity, spots_available, waitlist_size, url, scraped_at, raw)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """, rows)
    return len(rows)


def archive_sessions(database_url: str, source: str, location: str,
                     sessions: Sequence[Session], git_sha: Optional[str] = None) -> str:
    """
    Record a finished run and its sessions.

    Returns:
        The run_id of the archived run
    """
    run = ScrapeRun(
        run_id=str(uuid.uuid4()),
        source=source,
        started_at=datetime.now(timezone.utc),
        git_sha=git_sha or os.getenv("GITHUB_SHA"),
    )
    with get_connection(database_url) as conn:
        ensure_schema(conn)
        insert_run(conn, run)
        count = insert_snapshots(conn, run.run_id, source, location, sessions)

    print(f"💾 Archived {count} schedule snapshots for {source} (run_id: {run.run_id})")
    return run.run_id
