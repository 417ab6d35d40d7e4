#!/usr/bin/env python3
"""
Populate a demo SQLite step database for the Step Tracker API.

Creates users, achievement definitions, two weeks of daily step records and
competition standings, so the leaderboard and achievement routes have data
to show.

Usage:
    python scripts/populate_database.py
    python scripts/populate_database.py --db steps.db --days 30 --seed 7
"""
import os
import sys
import random
import asyncio
import argparse
from datetime import date, timedelta
from pathlib import Path

# Ensure src/ is importable when run from a checkout.
BASE_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BASE_DIR / "src"))

from step_tracking.metrics import derive_metrics
from step_tracking.models import Achievement, CompetitionParticipant, UserProfile
from step_tracking.store import SQLiteStepStore


# (id, name, daily_goal, privacy_level, typical daily steps)
DEMO_USERS = [
    ("user-alex", "Alex Johnson", 10000, "public", 9000),
    ("user-sarah", "Sarah Mitchell", 12000, "public", 13500),
    ("user-mike", "Mike Rodriguez", 10000, "public", 12700),
    ("user-lisa", "Lisa Kim", 8000, "public", 12400),
    ("user-tom", "Tom Wilson", 10000, "public", 12000),
    ("user-emma", "Emma Stone", 10000, "friends", 11700),
    ("user-david", "David Lee", 6000, "private", 11400),
]

DEMO_ACHIEVEMENTS = [
    Achievement(id="first-1k", name="First Steps", requirement_type="total_steps", requirement_value=1000,
                description="Walk your first 1,000 steps"),
    Achievement(id="total-10k", name="10K Explorer", requirement_type="total_steps", requirement_value=10000,
                description="Walk 10,000 steps in total"),
    Achievement(id="total-100k", name="Century Walker", requirement_type="total_steps", requirement_value=100000,
                description="Walk 100,000 steps in total"),
    Achievement(id="total-1m", name="Millionaire", requirement_type="total_steps", requirement_value=1000000,
                description="Walk one million steps in total"),
    Achievement(id="goal-crusher", name="Goal Crusher", requirement_type="daily_goal", requirement_value=1,
                description="Reach your daily step goal"),
]

DEMO_COMPETITIONS = {
    "weekend-warriors": ["user-sarah", "user-mike", "user-lisa"],
    "daily-10k-club": ["user-tom", "user-emma", "user-david", "user-alex"],
}


async def populate(db_path: Path, days: int, seed: int) -> int:
    """
    Create and populate the step database.

    Returns:
        Number of daily step records written
    """
    rng = random.Random(seed)
    store = SQLiteStepStore(str(db_path))

    for user_id, name, goal, privacy, _ in DEMO_USERS:
        store.save_user(
            UserProfile(id=user_id, name=name, daily_goal=goal, privacy_level=privacy),
            avatar_url=f"/placeholder.svg?height=40&width=40&user={user_id}",
        )
    print(f"  Users: {len(DEMO_USERS)}")

    for achievement in DEMO_ACHIEVEMENTS:
        store.save_achievement(achievement)
    print(f"  Achievements: {len(DEMO_ACHIEVEMENTS)}")

    today = date.today()
    totals = {}
    records = 0
    for user_id, _, _, _, typical in DEMO_USERS:
        for offset in range(days):
            steps = max(int(rng.gauss(typical, typical * 0.2)), 0)
            await store.upsert_daily_record(user_id, today - timedelta(days=offset), {
                "step_count": steps,
                **derive_metrics(steps),
                "floors_climbed": rng.randint(0, 15),
            })
            totals[user_id] = totals.get(user_id, 0) + steps
            records += 1
    print(f"  Daily records: {records}")

    for competition_id, members in DEMO_COMPETITIONS.items():
        for user_id in members:
            store.save_participant(CompetitionParticipant(
                competition_id=competition_id,
                user_id=user_id,
                current_progress=totals.get(user_id, 0),
            ))
    print(f"  Competitions: {len(DEMO_COMPETITIONS)}")

    return records


def main():
    parser = argparse.ArgumentParser(description="Populate a demo step database")
    parser.add_argument("--db", default=str(BASE_DIR / "steps.db"), help="SQLite file (default: ./steps.db)")
    parser.add_argument("--days", type=int, default=14, help="Days of history per user (default: 14)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    db_path = Path(args.db)

    print("=" * 60)
    print("Step Tracker Database Population Script")
    print("=" * 60)

    # Remove existing database file
    if db_path.exists():
        os.remove(db_path)
        print(f"  Removed existing: {db_path.name}")

    count = asyncio.run(populate(db_path, args.days, args.seed))

    size_kb = db_path.stat().st_size / 1024
    print("=" * 60)
    print(f"Complete! {count} daily records in {db_path} ({size_kb:.1f} KB)")
    print("=" * 60)


if __name__ == "__main__":
    main()
