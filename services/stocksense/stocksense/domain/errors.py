"""
Typed errors raised by the inventory core.

Every error carries a stable machine-readable ``code``, a human message and
a ``details`` dict, so callers branch on the type and render the details
without parsing messages. All of them are raised before anything is
committed.

    StockSenseError
    +-- ItemNotFoundError
    +-- DuplicateCodeError
    +-- ValidationError
    |   +-- InvalidThresholdError
    |   +-- InvalidAllocationError
    |   +-- InvalidQuantityError
    +-- StockRuleError
    |   +-- AllocationBreachError
    |   +-- NegativeStockResultError
    +-- ForbiddenError
    +-- IdempotencyConflictError
    +-- ConcurrencyConflictError
    +-- ImmutableRecordError
"""

from typing import Any, Dict, Optional


class StockSenseError(Exception):
    code: str = "STOCKSENSE_ERROR"
    title: str = "Inventory Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.title,
            "error_code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ItemNotFoundError(StockSenseError):
    code = "ITEM_NOT_FOUND"
    title = "Item Not Found"

    def __init__(self, item_code: str):
        super().__init__(f"Item {item_code} not found", {"code": item_code})
        self.item_code = item_code


class DuplicateCodeError(StockSenseError):
    code = "DUPLICATE_CODE"
    title = "Duplicate Code"

    def __init__(self, item_code: str):
        super().__init__(f"Item code {item_code} already exists", {"code": item_code})
        self.item_code = item_code


class ValidationError(StockSenseError):
    code = "VALIDATION_ERROR"
    title = "Invalid Request"


class InvalidThresholdError(ValidationError):
    code = "INVALID_THRESHOLD"
    title = "Invalid Threshold"

    def __init__(self, min_threshold: int, max_ceiling: int):
        super().__init__(
            "Thresholds must satisfy 0 <= min_threshold <= max_ceiling",
            {"min_threshold": min_threshold, "max_ceiling": max_ceiling},
        )


class InvalidAllocationError(ValidationError):
    code = "INVALID_ALLOCATION"
    title = "Invalid Allocation"

    def __init__(self, current_stock: int, allocated_stock: int):
        super().__init__(
            "Allocated stock must be between 0 and current stock",
            {"current_stock": current_stock, "allocated_stock": allocated_stock},
        )


class InvalidQuantityError(ValidationError):
    code = "INVALID_QUANTITY"
    title = "Invalid Quantity"


class StockRuleError(StockSenseError):
    code = "STOCK_RULE_VIOLATION"


class AllocationBreachError(StockRuleError):
    """A dispatch would eat into stock reserved for maintenance agreements."""
    code = "ALLOCATION_BREACH"
    title = "Allocation Breach"

    def __init__(self, current_stock: int, allocated_stock: int,
                 available_for_use: int, requested_change: int):
        super().__init__(
            f"Cannot dispatch {requested_change} units: only {available_for_use} available "
            f"({allocated_stock} of {current_stock} reserved for maintenance agreements)",
            {
                "current_stock": current_stock,
                "allocated_stock": allocated_stock,
                "available_for_use": available_for_use,
                "requested_change": requested_change,
            },
        )
        self.current_stock = current_stock
        self.allocated_stock = allocated_stock
        self.available_for_use = available_for_use
        self.requested_change = requested_change


class NegativeStockResultError(StockRuleError):
    code = "NEGATIVE_STOCK_RESULT"
    title = "Insufficient Stock"

    def __init__(self, item_code: str, current_stock: int, quantity_change: int):
        super().__init__(
            f"Item {item_code} would drop below zero stock",
            {
                "code": item_code,
                "current_stock": current_stock,
                "quantity_change": quantity_change,
                "resulting_stock": current_stock + quantity_change,
            },
        )


class ForbiddenError(StockSenseError):
    code = "FORBIDDEN"
    title = "Forbidden"

    def __init__(self, operation: str, actor_id: Optional[str] = None):
        super().__init__(
            f"Admin access required to {operation}",
            {"operation": operation, "actor_id": actor_id},
        )


class IdempotencyConflictError(StockSenseError):
    code = "IDEMPOTENCY_CONFLICT"
    title = "Idempotency Conflict"

    def __init__(self, idempotency_key: str):
        super().__init__(
            "Idempotency key was already used for a different stock mutation",
            {"idempotency_key": idempotency_key},
        )


class ConcurrencyConflictError(StockSenseError):
    code = "CONCURRENT_UPDATE"
    title = "Concurrent Update"

    def __init__(self, entity_type: str, attempts: int):
        super().__init__(
            f"{entity_type} could not be saved after {attempts} attempts; retry the request",
            {"entity_type": entity_type, "attempts": attempts},
        )


class ImmutableRecordError(StockSenseError):
    code = "IMMUTABLE_RECORD"
    title = "Immutable Record"

    def __init__(self, entity_type: str, entity_id: str, operation: str):
        super().__init__(
            f"{entity_type} {entity_id} is part of the audit trail and cannot be {operation}",
            {"entity_type": entity_type, "entity_id": entity_id, "operation": operation},
        )
