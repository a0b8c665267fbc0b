"""
CLI entry point for the status observer: polls until mentor review resolves.
"""

import argparse
import asyncio

from src.observer.poller import StatusPoller
from src.shared.logging import setup_logging


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Watch a student's intervention status")
    parser.add_argument("student_id", help="Student identifier")
    parser.add_argument("--base-url", default=None, help="Engine API base URL")
    parser.add_argument("--interval", type=float, default=None, help="Polling interval in seconds")
    parser.add_argument("--max-polls", type=int, default=None, help="Give up after this many polls")

    args = parser.parse_args()

    setup_logging()

    poller = StatusPoller(base_url=args.base_url, interval_seconds=args.interval)
    try:
        observations = await poller.watch(args.student_id, max_polls=args.max_polls)
    finally:
        await poller.close()

    for i, observed in enumerate(observations, start=1):
        task = f" (task: {observed.current_task})" if observed.current_task else ""
        print(f"[{i}] {observed.student_id}: {observed.status.value}{task}")


if __name__ == "__main__":
    asyncio.run(main())
