"""
Allocation guardrail.

The single place that decides whether a stock mutation may touch stock
reserved for maintenance agreements. Pure: no I/O, no clock, no session.

    available = current_stock - allocated_stock

    quantity_change >= 0  -> approved (a ceiling overrun is only flagged)
    -quantity_change <= available -> approved
    otherwise             -> rejected with the full numeric breakdown
"""

from dataclasses import dataclass
from typing import Union

from stocksense.domain.errors import AllocationBreachError


@dataclass(frozen=True)
class StockSnapshot:
    code: str
    current_stock: int
    allocated_stock: int
    max_ceiling: int

    @property
    def available(self) -> int:
        return self.current_stock - self.allocated_stock

    @classmethod
    def of(cls, item) -> "StockSnapshot":
        return cls(
            code=item.code,
            current_stock=item.current_stock,
            allocated_stock=item.allocated_stock,
            max_ceiling=item.max_ceiling,
        )


@dataclass(frozen=True)
class AllocationBreach:
    current_stock: int
    allocated_stock: int
    available_for_use: int
    requested_change: int

    def to_error(self) -> AllocationBreachError:
        return AllocationBreachError(
            current_stock=self.current_stock,
            allocated_stock=self.allocated_stock,
            available_for_use=self.available_for_use,
            requested_change=self.requested_change,
        )


@dataclass(frozen=True)
class Approved:
    ceiling_exceeded: bool = False

    approved = True


@dataclass(frozen=True)
class Rejected:
    breach: AllocationBreach

    approved = False


Decision = Union[Approved, Rejected]


def check(snapshot: StockSnapshot, quantity_change: int, transaction_type: str) -> Decision:
    # transaction_type is not consulted: every dispatch is a non-reservation dispatch
    available = snapshot.available

    if quantity_change >= 0:
        return Approved(
            ceiling_exceeded=snapshot.current_stock + quantity_change > snapshot.max_ceiling
        )

    requested = -quantity_change
    if requested > available:
        return Rejected(AllocationBreach(
            current_stock=snapshot.current_stock,
            allocated_stock=snapshot.allocated_stock,
            available_for_use=available,
            requested_change=requested,
        ))
    return Approved()
