"""
Seed the standard menu categories.

Existing categories (matched by name) are left alone, so the script can be
run again safely.

Usage:
    python -m restobar.seeds.categories
"""

from sqlmodel import Session, select

from restobar.db import create_db_and_tables, engine
from restobar.models import Category


STANDARD_CATEGORIES = {
    "Starters": "Salads, soups and small plates",
    "Main Course": "Grills, fish, poultry and vegetarian dishes",
    "Local Dishes": "Attiéké, alloco, garba and house specialities",
    "Desserts": "Cakes, ice cream and fruit",
    "Hot Drinks": "Coffee, tea and infusions",
    "Cold Drinks": "Juices, sodas and water",
    "Beers": "Local and imported beers",
    "Cocktails": "Mixed drinks",
}


def seed_categories() -> dict[str, int]:
    """
    Create every standard category that does not exist yet.

    Returns:
        dict with counts of created and skipped categories
    """
    created = 0
    skipped = 0
    with Session(engine) as session:
        for name, description in STANDARD_CATEGORIES.items():
            existing = session.exec(select(Category).where(Category.name == name)).first()
            if existing:
                skipped += 1
                continue

            session.add(Category(name=name, description=description))
            session.commit()
            created += 1
            print(f"Created category: {name}")

    return {"created": created, "skipped": skipped}


if __name__ == "__main__":
    print("Seeding menu categories...")
    create_db_and_tables()
    result = seed_categories()
    print("\nComplete!")
    print(f"  Categories created: {result['created']}")
    print(f"  Already present: {result['skipped']}")
