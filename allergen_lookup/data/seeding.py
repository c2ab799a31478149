"""
Seed the reference table from a CSV export.

Expected columns: name, keywords, function, found_in. The keywords column is
comma-delimited inside the cell.
"""
import csv
from pathlib import Path
from typing import Iterator, Union

from allergen_lookup.core.types import ReferenceEntry
from allergen_lookup.data.reference_store import ReferenceStore
from allergen_lookup.utils.logger import get_logger

logger = get_logger("data.seeding")

REQUIRED_COLUMNS = ("name", "keywords")


def read_reference_csv(csv_path: Union[str, Path]) -> Iterator[ReferenceEntry]:
    """
    Yield reference entries from a CSV file.

    Rows without a name are skipped. Raises FileNotFoundError if the file is
    missing and ValueError if required columns are absent.
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"Reference CSV not found at {path}")

    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        missing = [col for col in REQUIRED_COLUMNS if col not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"Reference CSV {path} is missing columns: {', '.join(missing)}")

        skipped = 0
        for row in reader:
            name = (row.get("name") or "").strip()
            if not name:
                skipped += 1
                continue
            yield ReferenceEntry(
                name=name,
                keywords=ReferenceEntry.split_keywords(row.get("keywords") or ""),
                function=(row.get("function") or "").strip(),
                found_in=(row.get("found_in") or "").strip(),
            )
        if skipped:
            logger.warning("Skipped %d CSV rows without a name", skipped)


def seed_reference_store(
    store: ReferenceStore,
    csv_path: Union[str, Path],
    replace: bool = False,
) -> int:
    """
    Load a CSV into the reference table.

    Args:
        store: Target reference store (table is created if needed)
        csv_path: Path to the CSV export
        replace: Wipe existing rows first instead of only adding new names

    Returns:
        Number of rows inserted
    """
    store.initialize()
    logger.info("Seeding reference table from %s (replace=%s)", csv_path, replace)
    return store.load_entries(read_reference_csv(csv_path), replace=replace)
