import pytest

from stocksense.application.service import InventoryService, require_privileged
from stocksense.core_settings import Settings
from stocksense.domain.errors import ForbiddenError, InvalidQuantityError


def test_require_privileged(admin, staff):
    require_privileged(admin, "do things")
    with pytest.raises(ForbiddenError) as exc:
        require_privileged(staff, "do things")
    assert exc.value.details == {"operation": "do things", "actor_id": "u-staff"}


@pytest.mark.parametrize("call", [
    lambda s, a: s.create_item({"code": "X-1", "description": "Thing"}, a),
    lambda s, a: s.update_thresholds("MCH-001", 1, 2, a),
    lambda s, a: s.update_item_details("MCH-001", {"vendor": "Acme"}, a),
    lambda s, a: s.list_transactions(a),
    lambda s, a: s.list_item_transactions("MCH-001", a),
    lambda s, a: s.list_allocations(a),
])
def test_staff_cannot_run_admin_operations(service, make_item, staff, call):
    make_item()
    with pytest.raises(ForbiddenError):
        call(service, staff)


def test_staff_can_read_and_move_stock(service, make_item, staff):
    make_item(current_stock=10)

    assert service.get_item("MCH-001").code == "MCH-001"
    assert len(service.list_items()) == 1
    assert service.mutate_stock("MCH-001", -1, "dispatch", staff).item.current_stock == 9


def test_create_fills_default_thresholds(service, admin):
    item = service.create_item({"code": "A-1", "description": "Drill"}, admin)
    assert (item.min_threshold, item.max_ceiling) == (5, 20)
    assert item.current_stock == 0


def test_default_ceiling_never_undercuts_explicit_minimum(service, admin):
    item = service.create_item({"code": "A-1", "description": "Drill", "min_threshold": 40}, admin)
    assert (item.min_threshold, item.max_ceiling) == (40, 40)


def test_transactions_are_newest_first(service, make_item, staff, admin, clock):
    make_item(code="MCH-001")
    make_item(code="MCH-002")
    service.mutate_stock("MCH-001", 1, "addition", staff)
    clock.advance(minutes=1)
    service.mutate_stock("MCH-002", 2, "addition", staff)
    clock.advance(minutes=1)
    service.mutate_stock("MCH-001", -3, "dispatch", staff)

    history = service.list_transactions(admin)
    assert [(t.item_code, t.quantity_change) for t in history] == [
        ("MCH-001", -3), ("MCH-002", 2), ("MCH-001", 1),
    ]


def test_same_timestamp_falls_back_to_insertion_order(service, make_item, staff, admin):
    make_item()
    for change in (1, 2, 3):
        service.mutate_stock("MCH-001", change, "addition", staff)

    assert [t.quantity_change for t in service.list_transactions(admin)] == [3, 2, 1]


def test_transaction_limit(service, make_item, staff, admin, clock):
    make_item()
    for _ in range(5):
        clock.advance(seconds=1)
        service.mutate_stock("MCH-001", 1, "addition", staff)

    assert len(service.list_transactions(admin, limit=2)) == 2
    assert len(service.list_transactions(admin)) == 5
    with pytest.raises(InvalidQuantityError):
        service.list_transactions(admin, limit=0)


def test_transaction_limit_is_capped(db_session, locks, clock, make_item, staff, admin):
    make_item()
    settings = Settings(TRANSACTION_HISTORY_DEFAULT_LIMIT=2, TRANSACTION_HISTORY_MAX_LIMIT=3)
    service = InventoryService(db_session, locks=locks, clock=clock, settings=settings)
    for _ in range(5):
        service.mutate_stock("MCH-001", 1, "addition", staff)

    assert len(service.list_transactions(admin)) == 2
    assert len(service.list_transactions(admin, limit=100)) == 3


def test_item_history_only_shows_that_item(service, make_item, staff, admin):
    make_item(code="MCH-001")
    make_item(code="MCH-002")
    service.mutate_stock("MCH-001", 1, "addition", staff)
    service.mutate_stock("MCH-002", 1, "addition", staff)

    assert [t.item_code for t in service.list_item_transactions("MCH-002", admin)] == ["MCH-002"]


def test_stats(service, make_item, staff, clock):
    make_item(code="MCH-001", current_stock=10, allocated_stock=8, min_threshold=5)
    make_item(code="MCH-002", current_stock=30, min_threshold=5, max_ceiling=40)

    service.mutate_stock("MCH-002", -5, "dispatch", staff)
    clock.advance(days=8)
    service.mutate_stock("MCH-002", 1, "addition", staff)

    assert service.get_stats() == {
        "total_items": 2,
        "low_stock_count": 1,
        "total_stock": 36,
        "recent_transactions": 1,
    }


def test_stats_on_empty_inventory(service):
    assert service.get_stats() == {
        "total_items": 0,
        "low_stock_count": 0,
        "total_stock": 0,
        "recent_transactions": 0,
    }
