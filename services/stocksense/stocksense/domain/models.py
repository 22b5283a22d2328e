from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Integer, Date, DateTime, CheckConstraint
from datetime import date, datetime, timezone
from typing import Optional
import uuid

TRANSACTION_TYPES = ("addition", "dispatch")
ALLOCATION_STATUSES = ("pending", "fulfilled", "cancelled")


def utc_now() -> datetime:
    # Naive UTC, matching what DateTime columns hand back on every backend
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Item(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_inventory_current_stock_non_negative"),
        CheckConstraint("allocated_stock >= 0", name="ck_inventory_allocated_stock_non_negative"),
        CheckConstraint("allocated_stock <= current_stock", name="ck_inventory_allocated_within_stock"),
        CheckConstraint("min_threshold >= 0", name="ck_inventory_min_threshold_non_negative"),
        CheckConstraint("max_ceiling >= min_threshold", name="ck_inventory_ceiling_above_threshold"),
    )

    code: Mapped[str] = mapped_column(String(50), primary_key=True)
    description: Mapped[str] = mapped_column(String(255))
    vendor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    storage_location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    current_stock: Mapped[int] = mapped_column(Integer, default=0)
    allocated_stock: Mapped[int] = mapped_column(Integer, default=0)
    min_threshold: Mapped[int] = mapped_column(Integer, default=5)
    max_ceiling: Mapped[int] = mapped_column(Integer, default=20)
    date_delivered: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    warranty_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    warranty_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    @property
    def available_stock(self) -> int:
        return self.current_stock - self.allocated_stock


class StockTransaction(Base):
    """One committed stock movement. Rows are insert-only."""
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_transactions_non_zero_change"),
        CheckConstraint("new_stock = previous_stock + quantity_change", name="ck_transactions_stock_arithmetic"),
        CheckConstraint(
            "(transaction_type = 'addition' AND quantity_change > 0) OR "
            "(transaction_type = 'dispatch' AND quantity_change < 0)",
            name="ck_transactions_type_matches_sign",
        ),
    )

    # Insertion order, used to break timestamp ties
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, index=True, default=new_uuid)
    # Item code without FK: history must outlive any change to the item row
    item_code: Mapped[str] = mapped_column(String(50), index=True)
    item_name_snapshot: Mapped[str] = mapped_column(String(255))
    actor_id: Mapped[str] = mapped_column(String(100))
    actor_name_snapshot: Mapped[str] = mapped_column(String(200))
    quantity_change: Mapped[int] = mapped_column(Integer)
    previous_stock: Mapped[int] = mapped_column(Integer)
    new_stock: Mapped[int] = mapped_column(Integer)
    transaction_type: Mapped[str] = mapped_column(String(20))
    destination: Mapped[str] = mapped_column(String(500))
    purpose: Mapped[str] = mapped_column(String(500))
    timestamp: Mapped[datetime] = mapped_column(DateTime, index=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)


class AllocationRecord(Base):
    __tablename__ = "allocation_logs"
    __table_args__ = (
        CheckConstraint("quantity_allocated > 0", name="ck_allocation_logs_positive_quantity"),
        CheckConstraint(
            "status IN ('pending', 'fulfilled', 'cancelled')",
            name="ck_allocation_logs_status",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    request_id: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    item_code: Mapped[str] = mapped_column(String(50), index=True)
    item_name_snapshot: Mapped[str] = mapped_column(String(255))
    quantity_allocated: Mapped[int] = mapped_column(Integer)
    destination: Mapped[str] = mapped_column(String(500))
    purpose: Mapped[str] = mapped_column(String(500))
    requested_by: Mapped[str] = mapped_column(String(100))
    requested_by_name: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default="pending")
    requested_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
