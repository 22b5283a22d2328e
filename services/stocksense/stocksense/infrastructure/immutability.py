"""
ORM guards that keep the transaction log append-only.

No service exposes an update or delete for ``StockTransaction``; these
listeners make sure no code path can sneak one in either:

    [before_update on a loaded row]   --> ImmutableRecordError
    [before_delete on a loaded row]   --> ImmutableRecordError
    [bulk update()/delete() statement] --> ImmutableRecordError
"""

from sqlalchemy import event
from sqlalchemy.orm import Session

from shared.core import get_logger
from stocksense.domain.errors import ImmutableRecordError
from stocksense.domain.models import StockTransaction

logger = get_logger(__name__)

PROTECTED_TABLES = {StockTransaction.__tablename__}


def _blocked(entity_id: str, operation: str) -> ImmutableRecordError:
    logger.error(
        "Immutability violation blocked",
        extra={'extra_fields': {
            'entity_type': 'StockTransaction',
            'entity_id': entity_id,
            'operation': operation,
        }}
    )
    return ImmutableRecordError("StockTransaction", entity_id, operation)


def _check_transaction_update(mapper, connection, target):
    raise _blocked(str(target.id), "modified")


def _check_transaction_delete(mapper, connection, target):
    raise _blocked(str(target.id), "deleted")


def _check_bulk_statement(orm_execute_state):
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    table = getattr(orm_execute_state.statement, "table", None)
    if table is not None and getattr(table, "name", None) in PROTECTED_TABLES:
        operation = "modified" if orm_execute_state.is_update else "deleted"
        raise _blocked("*", operation)


def register_immutability_guards() -> None:
    """Install the listeners once per process."""
    if event.contains(StockTransaction, "before_update", _check_transaction_update):
        return
    event.listen(StockTransaction, "before_update", _check_transaction_update)
    event.listen(StockTransaction, "before_delete", _check_transaction_delete)
    event.listen(Session, "do_orm_execute", _check_bulk_statement)
