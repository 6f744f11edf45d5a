"""
Seed numbered dining tables with their QR ordering links.

Usage:
    python -m restobar.seeds.tables [count] [capacity]

Defaults to tables 1..10 seating 4. Numbers already in use are skipped.
"""

import sys

from sqlmodel import Session, select

from restobar.db import create_db_and_tables, engine
from restobar.models import Table
from restobar.settings import settings


def seed_tables(count: int = 10, capacity: int = 4) -> dict[str, int]:
    created = 0
    skipped = 0
    with Session(engine) as session:
        for number in range(1, count + 1):
            if session.exec(select(Table).where(Table.number == number)).first():
                skipped += 1
                continue
            session.add(Table(number=number, capacity=capacity, qr_code=settings.table_url(number)))
            created += 1
        session.commit()

    return {"created": created, "skipped": skipped}


if __name__ == "__main__":
    count = int(sys.argv[1]) if len(sys.argv) > 1 else 10
    capacity = int(sys.argv[2]) if len(sys.argv) > 2 else 4

    print(f"Seeding {count} tables...")
    create_db_and_tables()
    result = seed_tables(count, capacity)
    print("\nComplete!")
    print(f"  Tables created: {result['created']}")
    print(f"  Already present: {result['skipped']}")
