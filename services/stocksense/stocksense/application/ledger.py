"""
Item Ledger: the single owner of item stock state.

Writes are flushed into the caller's session; committing is left to the
unit of work that called in (the recorder for stock, the service facade for
creation and edits).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stocksense.domain.errors import (
    DuplicateCodeError,
    InvalidAllocationError,
    InvalidQuantityError,
    InvalidThresholdError,
    ItemNotFoundError,
    NegativeStockResultError,
    ValidationError,
)
from stocksense.domain.models import Item
from .sanitize import sanitize_text

DETAIL_FIELDS = (
    "description",
    "vendor",
    "storage_location",
    "image_url",
    "date_delivered",
    "warranty_start",
    "warranty_end",
)


def validate_thresholds(min_threshold: int, max_ceiling: int) -> None:
    if min_threshold < 0 or max_ceiling < min_threshold:
        raise InvalidThresholdError(min_threshold, max_ceiling)


class ItemLedger:
    def __init__(self, db: Session):
        self.db = db

    def get(self, code: str) -> Item:
        item = self.db.get(Item, code)
        if item is None:
            raise ItemNotFoundError(code)
        return item

    def get_for_update(self, code: str) -> Item:
        """Fresh read of the row, row-locked where the backend supports it."""
        stmt = (
            select(Item)
            .where(Item.code == code)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = self.db.execute(stmt).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(code)
        return item

    def list(self, search: Optional[str] = None) -> List[Item]:
        stmt = select(Item).order_by(Item.code)
        term = sanitize_text(search).lower()
        if term:
            pattern = f"%{term}%"
            stmt = stmt.where(or_(
                func.lower(Item.code).like(pattern),
                func.lower(Item.description).like(pattern),
                func.lower(func.coalesce(Item.vendor, "")).like(pattern),
            ))
        return list(self.db.execute(stmt).scalars())

    def list_low_stock(self) -> List[Item]:
        stmt = (
            select(Item)
            .where(Item.current_stock - Item.allocated_stock < Item.min_threshold)
            .order_by(Item.code)
        )
        return list(self.db.execute(stmt).scalars())

    def create(self, fields: Dict[str, Any]) -> Item:
        code = fields["code"]
        current_stock = fields.get("current_stock") or 0
        allocated_stock = fields.get("allocated_stock") or 0
        min_threshold = fields["min_threshold"]
        max_ceiling = fields["max_ceiling"]

        if current_stock < 0:
            raise InvalidQuantityError(
                "Initial stock cannot be negative", {"current_stock": current_stock}
            )
        validate_thresholds(min_threshold, max_ceiling)
        if allocated_stock < 0 or allocated_stock > current_stock:
            raise InvalidAllocationError(current_stock, allocated_stock)
        if self.db.get(Item, code) is not None:
            raise DuplicateCodeError(code)

        item = Item(
            code=code,
            current_stock=current_stock,
            allocated_stock=allocated_stock,
            min_threshold=min_threshold,
            max_ceiling=max_ceiling,
            **{k: fields.get(k) for k in DETAIL_FIELDS},
        )
        self.db.add(item)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent create of the same code
            self.db.rollback()
            raise DuplicateCodeError(code)
        return item

    def apply_stock_delta(self, code: str, delta: int) -> Item:
        """Move current stock by ``delta``. The allocation guardrail is the caller's job."""
        item = self.get(code)
        new_stock = item.current_stock + delta
        if new_stock < 0:
            raise NegativeStockResultError(code, item.current_stock, delta)
        item.current_stock = new_stock
        self.db.flush()
        return item

    def update_thresholds(self, code: str, min_threshold: int, max_ceiling: int) -> Item:
        validate_thresholds(min_threshold, max_ceiling)
        item = self.get(code)
        item.min_threshold = min_threshold
        item.max_ceiling = max_ceiling
        self.db.flush()
        return item

    def update_details(self, code: str, fields: Dict[str, Any]) -> Item:
        if "description" in fields and not fields["description"]:
            raise ValidationError("Description cannot be empty", {"description": fields["description"]})
        item = self.get(code)
        for name in DETAIL_FIELDS:
            if name in fields:
                setattr(item, name, fields[name])
        self.db.flush()
        return item
