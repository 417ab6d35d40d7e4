#!/usr/bin/env python3
"""
Run a step tracker against the Solace motion feed and the step API.

Samples published by scripts/motion_simulator.py are detected as steps,
totals are saved to the API every few steps, and today's progress is printed
as it changes. Without a reachable broker the tracker falls back to
simulated steps.

Usage:
    python scripts/run_tracker.py --user-id demo-user
    python scripts/run_tracker.py --user-id demo-user --duration 120 --simulate
"""

import sys
import asyncio
import logging
import argparse
from pathlib import Path
from dotenv import load_dotenv

# Ensure src/ is importable when run from a checkout.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from step_tracking.achievements import DEFAULT_DAILY_GOAL
from step_tracking.config import get_tracker_settings
from step_tracking.live_stats import DailyProgress
from step_tracking.store import HttpStepStore
from step_tracking.tracker import StepTracker


# Load environment variables
load_dotenv()


async def run(args) -> int:
    settings = get_tracker_settings()

    sensor = None
    if not args.simulate:
        from step_tracking.solace_sensor import SolaceMotionSensor

        sensor = SolaceMotionSensor(topic_prefix=settings.topic_prefix, device_id=args.device_id)

    store = HttpStepStore(args.api_url or settings.api_url, timeout=settings.api_timeout)
    tracker = StepTracker(args.user_id, sensor, store, settings=settings)

    progress = DailyProgress(
        daily_goal=args.goal,
        on_event=lambda event: print(f"[GOAL] {event.message}"),
    )
    tracker.on_step_update(progress.update)
    tracker.on_step_update(
        lambda total: print(
            f"[STEPS] {total} ({progress.progress_percent:.0f}% of {progress.daily_goal})"
        )
    )

    try:
        await tracker.load_today_steps()
        on_device = await tracker.start_tracking()
        print(f"[INFO] Tracking {args.user_id} from {'device' if on_device else 'simulation'}")

        if args.duration:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    finally:
        await tracker.stop_tracking()
        await tracker.wait_for_saves()
        if tracker.reconciler.queue:
            result = await tracker.flush_offline_queue()
            print(f"[SYNC] {len(result.succeeded)} synced, {len(result.failed)} still queued")
        await store.aclose()
        print(f"[INFO] Final: {progress.to_dict()}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Step tracker fed by the Solace motion stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Track until interrupted
  python scripts/run_tracker.py --user-id demo-user

  # Two minutes of simulated stepping
  python scripts/run_tracker.py --user-id demo-user --duration 120 --simulate
        """,
    )
    parser.add_argument("--user-id", required=True, help="User to track")
    parser.add_argument("--device-id", default="*", help="Device id to subscribe to (default: all)")
    parser.add_argument("--api-url", help="Step API base URL (default: STEP_TRACKER_API_URL)")
    parser.add_argument("--goal", type=int, default=DEFAULT_DAILY_GOAL, help="Daily step goal")
    parser.add_argument("--duration", type=float, help="Seconds to track (default: until Ctrl+C)")
    parser.add_argument("--simulate", action="store_true", help="Skip the broker and simulate steps")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")


if __name__ == "__main__":
    main()
