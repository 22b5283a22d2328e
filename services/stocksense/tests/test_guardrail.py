from stocksense.application.guardrail import (
    AllocationBreach,
    Approved,
    Rejected,
    StockSnapshot,
    check,
)
from stocksense.domain.errors import AllocationBreachError


def snapshot(current_stock, allocated_stock, max_ceiling=20):
    return StockSnapshot(code="MCH-001", current_stock=current_stock,
                         allocated_stock=allocated_stock, max_ceiling=max_ceiling)


def test_dispatch_within_available_is_approved():
    decision = check(snapshot(10, 5), -4, "dispatch")
    assert decision == Approved()
    assert decision.approved


def test_dispatch_of_exactly_available_is_approved():
    decision = check(snapshot(10, 5), -5, "dispatch")
    assert decision.approved


def test_dispatch_into_reserved_stock_is_rejected_with_breakdown():
    decision = check(snapshot(10, 5), -6, "dispatch")

    assert isinstance(decision, Rejected)
    assert not decision.approved
    assert decision.breach == AllocationBreach(
        current_stock=10, allocated_stock=5, available_for_use=5, requested_change=6
    )


def test_breach_converts_to_error_with_full_details():
    error = check(snapshot(10, 5), -6, "dispatch").breach.to_error()

    assert isinstance(error, AllocationBreachError)
    assert error.code == "ALLOCATION_BREACH"
    assert error.details == {
        "current_stock": 10,
        "allocated_stock": 5,
        "available_for_use": 5,
        "requested_change": 6,
    }


def test_dispatch_with_nothing_available_is_rejected():
    decision = check(snapshot(5, 5), -1, "dispatch")
    assert decision.breach.available_for_use == 0
    assert decision.breach.requested_change == 1


def test_addition_is_always_approved():
    assert check(snapshot(0, 0), 3, "addition").approved
    assert check(snapshot(4, 4), 1, "addition").approved


def test_addition_over_ceiling_is_approved_with_warning_flag():
    decision = check(snapshot(5, 0, max_ceiling=8), 100, "addition")

    assert decision.approved
    assert decision.ceiling_exceeded


def test_addition_up_to_ceiling_carries_no_warning():
    decision = check(snapshot(5, 0, max_ceiling=8), 3, "addition")
    assert decision == Approved(ceiling_exceeded=False)


def test_snapshot_reads_item_like_objects():
    class FakeItem:
        code = "EQP-104"
        current_stock = 4
        allocated_stock = 1
        max_ceiling = 8

    snap = StockSnapshot.of(FakeItem())
    assert snap.available == 3
    assert snap.code == "EQP-104"
