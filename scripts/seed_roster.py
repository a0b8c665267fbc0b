"""
CLI entry point for roster provisioning.
"""

import argparse
from pathlib import Path

from src.shared.config import settings
from src.shared.logging import setup_logging
from src.store.sqlite_store import InterventionStore

DEFAULT_ROSTER = [
    ("S001", "Alice Johnson"),
    ("S002", "Bob Smith"),
    ("S003", "Charlie Davis"),
]


def parse_student(value: str) -> tuple[str, str]:
    """Parse ID=NAME."""
    student_id, sep, name = value.partition("=")
    if not sep or not student_id.strip() or not name.strip():
        raise argparse.ArgumentTypeError(f"Expected ID=NAME, got {value!r}")
    return student_id.strip(), name.strip()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed the student roster")
    parser.add_argument(
        "--db-path",
        type=Path,
        default=Path(settings.store.db_path),
        help="Store database path"
    )
    parser.add_argument(
        "--student",
        type=parse_student,
        action="append",
        help="Student as ID=NAME (repeatable). Defaults to the sample roster."
    )

    args = parser.parse_args()

    setup_logging()

    store = InterventionStore(args.db_path)
    seeded = store.upsert_students(args.student or DEFAULT_ROSTER)

    print("\n" + "=" * 50)
    print("Roster")
    print("=" * 50)
    for student in seeded:
        print(f"{student.student_id}  {student.name:<20} {student.status.value}")
    print("=" * 50)


if __name__ == "__main__":
    main()
