#!/usr/bin/env python3
"""
Seed the allergen reference table from a CSV export.

CSV columns: name, keywords, function, found_in (keywords comma-delimited
inside the cell). Names already in the table are left untouched unless
--replace is given, which wipes the table first.

Run: python scripts/seed_reference.py [--csv data/allergens.csv] [--db-url sqlite:///data/allergens.db] [--replace]
"""

import argparse
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from allergen_lookup.core.config import get_config
from allergen_lookup.core.errors import StorageFault
from allergen_lookup.data.database import create_store_engine
from allergen_lookup.data.reference_store import ReferenceStore
from allergen_lookup.data.seeding import seed_reference_store


def main():
    config = get_config()

    parser = argparse.ArgumentParser(description="Seed the allergen reference table from CSV")
    parser.add_argument("--csv", default=config.reference_csv, help="Path to the reference CSV")
    parser.add_argument("--db-url", default=config.reference_db_url, help="SQLAlchemy URL of the reference database")
    parser.add_argument("--replace", action="store_true", help="Wipe the table before loading")
    args = parser.parse_args()

    print("=" * 60)
    print("SEED ALLERGEN REFERENCE TABLE")
    print("=" * 60)

    start = time.time()
    engine = create_store_engine(args.db_url)
    store = ReferenceStore(engine)
    try:
        inserted = seed_reference_store(store, args.csv, replace=args.replace)
        total = store.count()
    except (FileNotFoundError, ValueError, StorageFault) as e:
        print(f"[FAIL] {e}")
        return 1
    finally:
        engine.dispose()

    print(f"   Source:   {args.csv}")
    print(f"   Inserted: {inserted}")
    print(f"   Total:    {total}")
    print(f"   Time:     {time.time() - start:.1f}s")
    print("=" * 60)


if __name__ == "__main__":
    sys.exit(main() or 0)
