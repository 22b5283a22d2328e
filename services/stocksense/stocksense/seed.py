"""Load the starter catalogue from CSV through the inventory service.

Usage: python -m stocksense.seed [path/to/items.csv]
"""

import csv
import sys
from datetime import date
from pathlib import Path
from typing import Dict, Optional

from shared.core import get_logger
from stocksense.application.service import InventoryService
from stocksense.domain.actor import Actor, Role
from stocksense.domain.errors import DuplicateCodeError

logger = get_logger(__name__)

DEFAULT_SEED_FILE = Path(__file__).resolve().parent.parent / "seed_data" / "items.csv"
SEED_ACTOR = Actor(id="seed-loader", display_name="Seed Loader", role=Role.ADMIN)

INT_COLUMNS = ("current_stock", "allocated_stock", "min_threshold", "max_ceiling")
DATE_COLUMNS = ("date_delivered", "warranty_start", "warranty_end")


def parse_row(row: Dict[str, str]) -> Dict[str, object]:
    fields: Dict[str, object] = {k: (v.strip() or None) if isinstance(v, str) else v for k, v in row.items()}
    for column in INT_COLUMNS:
        if fields.get(column) is not None:
            fields[column] = int(fields[column])
    for column in DATE_COLUMNS:
        if fields.get(column) is not None:
            fields[column] = date.fromisoformat(fields[column])
    return fields


def load_items(service: InventoryService, path: Path) -> Dict[str, int]:
    """Create every item in the file; codes that already exist are left alone."""
    created = skipped = 0
    with open(path, newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            fields = parse_row(row)
            try:
                service.create_item(fields, SEED_ACTOR)
                created += 1
            except DuplicateCodeError:
                skipped += 1
    logger.info(
        f"Seeded items from {path}",
        extra={'extra_fields': {'created': created, 'skipped': skipped}}
    )
    return {"created": created, "skipped": skipped}


def main(argv: Optional[list] = None) -> None:
    from stocksense.infrastructure.db import SessionLocal, init_models

    argv = sys.argv[1:] if argv is None else argv
    path = Path(argv[0]) if argv else DEFAULT_SEED_FILE
    init_models()
    with SessionLocal() as db:
        result = load_items(InventoryService(db), path)
    print(f"Loaded {result['created']} items ({result['skipped']} already present)")


if __name__ == "__main__":
    main()
