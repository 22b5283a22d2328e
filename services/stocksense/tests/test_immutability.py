import pytest
from sqlalchemy import delete, select, update

from stocksense.application.service import InventoryService
from stocksense.domain.errors import ImmutableRecordError
from stocksense.domain.models import StockTransaction


@pytest.fixture
def recorded(service, make_item, staff):
    make_item(current_stock=10)
    return service.mutate_stock("MCH-001", -2, "dispatch", staff).transaction


def test_modifying_a_transaction_is_blocked(db_session, recorded):
    tx = db_session.execute(select(StockTransaction)).scalar_one()
    tx_id = tx.id
    tx.quantity_change = -1

    with pytest.raises(ImmutableRecordError) as exc:
        db_session.flush()

    assert exc.value.details["entity_id"] == tx_id
    assert exc.value.details["operation"] == "modified"
    db_session.rollback()


def test_deleting_a_transaction_is_blocked(db_session, recorded):
    tx = db_session.execute(select(StockTransaction)).scalar_one()
    db_session.delete(tx)

    with pytest.raises(ImmutableRecordError) as exc:
        db_session.flush()

    assert exc.value.details["operation"] == "deleted"
    db_session.rollback()


def test_bulk_update_is_blocked(db_session, recorded):
    with pytest.raises(ImmutableRecordError):
        db_session.execute(update(StockTransaction).values(purpose="rewritten"))
    db_session.rollback()


def test_bulk_delete_is_blocked(db_session, recorded):
    with pytest.raises(ImmutableRecordError):
        db_session.execute(delete(StockTransaction))
    db_session.rollback()


def test_record_is_unchanged_after_blocked_attempts(session_factory, recorded, service, admin):
    db = session_factory()
    try:
        with pytest.raises(ImmutableRecordError):
            db.execute(update(StockTransaction).values(quantity_change=-9))
        db.rollback()
    finally:
        db.close()

    service.db.expire_all()
    [tx] = service.list_item_transactions("MCH-001", admin)
    assert tx.quantity_change == -2
    assert tx.purpose == "Stock update"


def test_service_exposes_no_transaction_edits():
    names = {n for n in dir(InventoryService) if not n.startswith("_")}
    assert not {n for n in names if "transaction" in n and not n.startswith("list")}
