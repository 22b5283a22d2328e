from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Literal, Optional

class ItemCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=255)
    vendor: Optional[str] = None
    storage_location: Optional[str] = None
    image_url: Optional[str] = None
    current_stock: int = 0
    allocated_stock: int = 0
    # Falls back to the configured defaults when omitted
    min_threshold: Optional[int] = None
    max_ceiling: Optional[int] = None
    date_delivered: Optional[date] = None
    warranty_start: Optional[date] = None
    warranty_end: Optional[date] = None

class ItemDetailsUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    vendor: Optional[str] = None
    storage_location: Optional[str] = None
    image_url: Optional[str] = None
    date_delivered: Optional[date] = None
    warranty_start: Optional[date] = None
    warranty_end: Optional[date] = None

class ThresholdUpdate(BaseModel):
    min_threshold: int
    max_ceiling: int

class ItemRead(BaseModel):
    code: str
    description: str
    vendor: Optional[str] = None
    storage_location: Optional[str] = None
    image_url: Optional[str] = None
    current_stock: int
    allocated_stock: int
    available_stock: int
    min_threshold: int
    max_ceiling: int
    date_delivered: Optional[date] = None
    warranty_start: Optional[date] = None
    warranty_end: Optional[date] = None
    class Config:
        from_attributes = True

class StockMutation(BaseModel):
    quantity_change: int
    transaction_type: Literal["addition", "dispatch"]
    destination: Optional[str] = None
    purpose: Optional[str] = None

class TransactionRead(BaseModel):
    id: str
    item_code: str
    item_name_snapshot: str
    actor_id: str
    actor_name_snapshot: str
    quantity_change: int
    previous_stock: int
    new_stock: int
    transaction_type: str
    destination: str
    purpose: str
    timestamp: datetime
    class Config:
        from_attributes = True

class StockMutationRead(BaseModel):
    item: ItemRead
    transaction: TransactionRead
    warnings: list[str] = []
    replayed: bool = False

class AllocationCreate(BaseModel):
    item_code: str
    quantity_allocated: int
    destination: Optional[str] = None
    purpose: Optional[str] = None

class AllocationRead(BaseModel):
    id: str
    request_id: str
    item_code: str
    item_name_snapshot: str
    quantity_allocated: int
    destination: str
    purpose: str
    requested_by: str
    requested_by_name: str
    status: str
    requested_at: datetime
    class Config:
        from_attributes = True

class StatsRead(BaseModel):
    total_items: int
    low_stock_count: int
    total_stock: int
    recent_transactions: int
