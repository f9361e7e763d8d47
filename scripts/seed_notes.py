#!/usr/bin/env python3
"""
Seed Journal Notes

Creates a spread of sample meeting and note entries through the API,
then optionally triggers one embedding sync cycle so they are
immediately searchable.

Usage:
    python scripts/seed_notes.py
    python scripts/seed_notes.py --count 200 --days 90 --sync
"""

from __future__ import annotations

import argparse
import random
import sys
from datetime import date, timedelta

import httpx

DEFAULT_API_URL = "http://localhost:8000"
TIMEOUT = 30.0

MEETING_TITLES = [
    "Weekly Standup", "Sprint Planning", "Retrospective",
    "1:1 with Manager", "Product Review", "Team Sync",
    "Architecture Discussion", "Client Meeting", "Design Review",
    "Bug Triage", "Quarterly Planning", "Performance Review",
]  # fmt: skip

NOTE_TITLES = [
    "Project Ideas", "Learning Notes", "Research Findings",
    "Daily Reflection", "Book Summary", "Course Notes",
    "Technical Debt Items", "Feature Brainstorm", "User Feedback",
    "Quick Thoughts", "Meeting Notes", "Goals Review",
]  # fmt: skip

SAMPLE_CONTENT = [
    "Discussed the upcoming sprint goals and priorities.",
    "Reviewed the latest design mockups and provided feedback.",
    "Addressed several blockers preventing team progress.",
    "Brainstormed solutions for the performance issues in production.",
    "Walked through the new feature implementation approach.",
    "Analyzed user feedback from the recent release.",
    "Planned the migration strategy for the database upgrade.",
    "Identified technical debt that needs addressing.",
    "Explored new technologies that could improve our workflow.",
    "Documented the decision-making process for future reference.",
]


def log_info(msg: str) -> None:
    print(f"ℹ {msg}")


def log_success(msg: str) -> None:
    print(f"✓ {msg}")


def log_error(msg: str) -> None:
    print(f"✗ {msg}")


def check_api(api_url: str) -> bool:
    try:
        r = httpx.get(f"{api_url}/health", timeout=5.0)
        return r.status_code == 200
    except httpx.RequestError:
        return False


def make_note(rng: random.Random, index: int, start: date, days: int) -> dict[str, str]:
    """One random entry: 40% meetings, 50% notes, 10% untitled-ish."""
    kind = rng.random()
    if kind < 0.4:
        title = rng.choice(MEETING_TITLES)
    elif kind < 0.9:
        title = rng.choice(NOTE_TITLES)
    else:
        title = f"Entry {index + 1}"

    paragraphs = [rng.choice(SAMPLE_CONTENT) for _ in range(rng.randint(1, 4))]
    day = start + timedelta(days=rng.randrange(days))
    return {"title": title, "body_text": "\n\n".join(paragraphs), "day": day.isoformat()}


def create_note(client: httpx.Client, api_url: str, payload: dict[str, str]) -> bool:
    try:
        r = client.post(f"{api_url}/api/v1/notes", json=payload)
    except httpx.RequestError as e:
        log_error(f"Failed '{payload['title']}': {e}")
        return False
    if r.status_code != 201:
        log_error(f"Failed '{payload['title']}': {r.status_code} - {r.text}")
        return False
    return True


def run_sync(api_url: str) -> None:
    """Trigger one sync cycle and print what it did."""
    try:
        r = httpx.post(f"{api_url}/api/v1/sync/run", timeout=None)
        r.raise_for_status()
    except httpx.HTTPError as e:
        log_error(f"Sync failed: {e}")
        return
    report = r.json()
    if report.get("skipped"):
        log_info("A sync cycle was already running; notes will be embedded on the next tick")
    else:
        log_success(
            f"Embedded {report['embedded']}/{report['fetched']} notes "
            f"({report['failed']} failed)"
        )


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sample journal notes")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API base URL")
    parser.add_argument("--count", type=int, default=50, help="Number of notes")
    parser.add_argument("--days", type=int, default=365, help="Spread notes over this many days")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--sync", action="store_true", help="Run one embedding sync cycle afterwards"
    )

    args = parser.parse_args()
    api_url = args.api_url.rstrip("/")

    print("\n📓 Journal Note Seeder\n")

    if not check_api(api_url):
        log_error(f"API not available at {api_url}")
        return 1
    log_success("API connected")

    rng = random.Random(args.seed)
    start = date.today() - timedelta(days=args.days)

    log_info(f"Creating {args.count} notes across {args.days} days")
    created = 0
    with httpx.Client(timeout=TIMEOUT) as client:
        for i in range(args.count):
            if create_note(client, api_url, make_note(rng, i, start, args.days)):
                created += 1

    if created != args.count:
        log_error(f"Created {created}/{args.count} notes")
        return 1
    log_success(f"Created {created} notes")

    if args.sync:
        run_sync(api_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
