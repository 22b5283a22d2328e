from datetime import date

import pytest

from stocksense.application.ledger import ItemLedger
from stocksense.domain.errors import (
    DuplicateCodeError,
    InvalidAllocationError,
    InvalidQuantityError,
    InvalidThresholdError,
    ItemNotFoundError,
    NegativeStockResultError,
    ValidationError,
)


def test_create_defaults_allocation_to_zero(service, admin):
    item = service.create_item({"code": "MCH-009", "description": "Scissor Lift", "current_stock": 3}, admin)

    assert item.allocated_stock == 0
    assert item.available_stock == 3
    assert item.min_threshold == 5
    assert item.max_ceiling == 20


def test_create_with_explicit_allocation(make_item):
    item = make_item(current_stock=10, allocated_stock=4)
    assert item.allocated_stock == 4
    assert item.available_stock == 6


def test_create_rejects_duplicate_code(make_item):
    make_item(code="MCH-001")
    with pytest.raises(DuplicateCodeError) as exc:
        make_item(code="MCH-001")
    assert exc.value.details == {"code": "MCH-001"}


@pytest.mark.parametrize("min_threshold,max_ceiling", [(-1, 10), (6, 5)])
def test_create_rejects_invalid_thresholds(make_item, service, min_threshold, max_ceiling):
    with pytest.raises(InvalidThresholdError):
        make_item(min_threshold=min_threshold, max_ceiling=max_ceiling)
    assert service.list_items() == []


def test_create_rejects_allocation_above_stock(make_item):
    with pytest.raises(InvalidAllocationError) as exc:
        make_item(current_stock=3, allocated_stock=4)
    assert exc.value.details == {"current_stock": 3, "allocated_stock": 4}


def test_create_rejects_negative_initial_stock(make_item):
    with pytest.raises(InvalidQuantityError):
        make_item(current_stock=-1)


def test_get_unknown_code(service):
    with pytest.raises(ItemNotFoundError) as exc:
        service.get_item("NOPE-1")
    assert exc.value.code == "ITEM_NOT_FOUND"


def test_apply_stock_delta_moves_stock(db_session, make_item):
    make_item(current_stock=4)
    ledger = ItemLedger(db_session)

    item = ledger.apply_stock_delta("MCH-001", 3)
    assert item.current_stock == 7


def test_apply_stock_delta_refuses_negative_result(db_session, make_item):
    make_item(current_stock=2)
    ledger = ItemLedger(db_session)

    with pytest.raises(NegativeStockResultError) as exc:
        ledger.apply_stock_delta("MCH-001", -3)

    assert exc.value.details["resulting_stock"] == -1
    assert ledger.get("MCH-001").current_stock == 2


def test_apply_stock_delta_unknown_item(db_session):
    with pytest.raises(ItemNotFoundError):
        ItemLedger(db_session).apply_stock_delta("NOPE-1", 1)


def test_list_is_ordered_and_searchable(make_item, service):
    make_item(code="STR-201", description="Shelving Unit", vendor="IKEA")
    make_item(code="MCH-002", description="Pallet Jack", vendor="Uline")
    make_item(code="MCH-001", description="Forklift", vendor="Toyota")

    assert [i.code for i in service.list_items()] == ["MCH-001", "MCH-002", "STR-201"]
    assert [i.code for i in service.list_items("pallet")] == ["MCH-002"]
    assert [i.code for i in service.list_items("ikea")] == ["STR-201"]
    assert [i.code for i in service.list_items("mch")] == ["MCH-001", "MCH-002"]
    # Quote and markup characters are stripped before matching
    assert [i.code for i in service.list_items("<toyota>'")] == ["MCH-001"]


def test_low_stock_uses_available_not_physical_stock(make_item, service):
    make_item(code="MCH-001", current_stock=10, allocated_stock=6, min_threshold=5)
    make_item(code="MCH-002", current_stock=10, allocated_stock=0, min_threshold=5)
    make_item(code="MCH-003", current_stock=5, allocated_stock=0, min_threshold=5)
    make_item(code="MCH-004", current_stock=2, allocated_stock=0, min_threshold=5)

    assert [i.code for i in service.list_low_stock()] == ["MCH-001", "MCH-004"]


def test_update_thresholds(make_item, service, admin):
    make_item()
    item = service.update_thresholds("MCH-001", 2, 12, admin)
    assert (item.min_threshold, item.max_ceiling) == (2, 12)


def test_update_thresholds_validates_band(make_item, service, admin):
    make_item(min_threshold=5, max_ceiling=20)
    with pytest.raises(InvalidThresholdError):
        service.update_thresholds("MCH-001", 10, 9, admin)
    item = service.get_item("MCH-001")
    assert (item.min_threshold, item.max_ceiling) == (5, 20)


def test_update_details_leaves_stock_alone(make_item, service, admin):
    make_item(current_stock=7, allocated_stock=2)
    item = service.update_item_details(
        "MCH-001",
        {"description": "Electric Forklift", "storage_location": "Bin-A2",
         "warranty_end": date(2031, 1, 1), "current_stock": 999},
        admin,
    )

    assert item.description == "Electric Forklift"
    assert item.storage_location == "Bin-A2"
    assert item.warranty_end == date(2031, 1, 1)
    assert item.current_stock == 7
    assert item.allocated_stock == 2


def test_update_details_requires_description(make_item, service, admin):
    make_item()
    with pytest.raises(ValidationError):
        service.update_item_details("MCH-001", {"description": ""}, admin)
