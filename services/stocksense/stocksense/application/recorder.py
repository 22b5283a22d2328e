"""
Transaction Recorder: the check-then-apply-then-log unit of work.

    lock(code)
      load fresh snapshot           -> ItemNotFound
      idempotency replay            -> IdempotencyConflict
      stock would drop below zero   -> NegativeStockResult
      allocation guardrail          -> AllocationBreach
      update item + insert transaction, commit together
    unlock(code)

Anything raised before the commit rolls the session back, so the item row
and the transaction log are left exactly as they were. Nothing is retried
here; a resubmission goes through the whole protocol again.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.core import get_logger
from stocksense.domain.actor import Actor
from stocksense.domain.clock import Clock, SystemClock
from stocksense.domain.errors import (
    IdempotencyConflictError,
    InvalidQuantityError,
    NegativeStockResultError,
)
from stocksense.domain.models import Item, StockTransaction, TRANSACTION_TYPES
from stocksense.infrastructure.locks import ItemLockRegistry, get_lock_registry
from . import guardrail
from .ledger import ItemLedger
from .sanitize import sanitize_or_default

logger = get_logger(__name__)

DEFAULT_DESTINATION = "Warehouse"
DEFAULT_PURPOSE = "Stock update"


@dataclass
class MutationResult:
    item: Item
    transaction: StockTransaction
    ceiling_exceeded: bool = False
    replayed: bool = False


def validate_mutation(quantity_change: int, transaction_type: str) -> None:
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidQuantityError(
            f"Unknown transaction type {transaction_type!r}",
            {"transaction_type": transaction_type, "allowed": list(TRANSACTION_TYPES)},
        )
    if quantity_change == 0:
        raise InvalidQuantityError(
            "Quantity change must be a non-zero whole number",
            {"quantity_change": quantity_change},
        )
    expected = "addition" if quantity_change > 0 else "dispatch"
    if transaction_type != expected:
        raise InvalidQuantityError(
            f"A {transaction_type} must have a {'positive' if transaction_type == 'addition' else 'negative'} quantity change",
            {"quantity_change": quantity_change, "transaction_type": transaction_type},
        )


class TransactionRecorder:
    def __init__(
        self,
        db: Session,
        locks: Optional[ItemLockRegistry] = None,
        clock: Optional[Clock] = None,
        free_text_max_length: int = 500,
    ):
        self.db = db
        self.ledger = ItemLedger(db)
        self.locks = locks or get_lock_registry()
        self.clock = clock or SystemClock()
        self.free_text_max_length = free_text_max_length

    def record_mutation(
        self,
        code: str,
        quantity_change: int,
        transaction_type: str,
        actor: Actor,
        destination: Optional[str] = None,
        purpose: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> MutationResult:
        validate_mutation(quantity_change, transaction_type)
        destination = sanitize_or_default(destination, DEFAULT_DESTINATION, self.free_text_max_length)
        purpose = sanitize_or_default(purpose, DEFAULT_PURPOSE, self.free_text_max_length)

        with self.locks.hold(code):
            try:
                return self._apply(
                    code, quantity_change, transaction_type, actor,
                    destination, purpose, idempotency_key,
                )
            except IntegrityError:
                self.db.rollback()
                if idempotency_key:
                    # Same key committed concurrently for another item
                    raise IdempotencyConflictError(idempotency_key)
                raise
            except Exception:
                # Item update and transaction insert are discarded together
                self.db.rollback()
                raise

    def _apply(self, code, quantity_change, transaction_type, actor,
               destination, purpose, idempotency_key) -> MutationResult:
        item = self.ledger.get_for_update(code)

        if idempotency_key:
            previous = self._find_by_key(idempotency_key)
            if previous is not None:
                return self._replay(previous, item, code, quantity_change, transaction_type, actor)

        snapshot = guardrail.StockSnapshot.of(item)
        new_stock = snapshot.current_stock + quantity_change
        if new_stock < 0:
            raise NegativeStockResultError(code, snapshot.current_stock, quantity_change)

        decision = guardrail.check(snapshot, quantity_change, transaction_type)
        if not decision.approved:
            logger.warning(
                f"Allocation breach rejected for {code}",
                extra={'extra_fields': {
                    'code': code,
                    'actor_id': actor.id,
                    **decision.breach.to_error().details,
                }}
            )
            raise decision.breach.to_error()

        timestamp = self._next_timestamp(code)
        self.ledger.apply_stock_delta(code, quantity_change)
        transaction = StockTransaction(
            item_code=code,
            item_name_snapshot=item.description,
            actor_id=actor.id,
            actor_name_snapshot=actor.display_name,
            quantity_change=quantity_change,
            previous_stock=snapshot.current_stock,
            new_stock=new_stock,
            transaction_type=transaction_type,
            destination=destination,
            purpose=purpose,
            timestamp=timestamp,
            idempotency_key=idempotency_key,
        )
        self.db.add(transaction)
        self.db.commit()

        if decision.ceiling_exceeded:
            logger.warning(
                f"Stock for {code} is above its ceiling",
                extra={'extra_fields': {
                    'code': code,
                    'new_stock': new_stock,
                    'max_ceiling': snapshot.max_ceiling,
                }}
            )
        logger.info(
            f"Stock mutation committed for {code}",
            extra={'extra_fields': {
                'transaction_id': transaction.id,
                'code': code,
                'transaction_type': transaction_type,
                'quantity_change': quantity_change,
                'previous_stock': snapshot.current_stock,
                'new_stock': new_stock,
                'actor_id': actor.id,
            }}
        )
        return MutationResult(item=item, transaction=transaction,
                              ceiling_exceeded=decision.ceiling_exceeded)

    def _find_by_key(self, idempotency_key: str) -> Optional[StockTransaction]:
        stmt = select(StockTransaction).where(StockTransaction.idempotency_key == idempotency_key)
        return self.db.execute(stmt).scalar_one_or_none()

    def _replay(self, previous: StockTransaction, item: Item, code: str,
                quantity_change: int, transaction_type: str, actor: Actor) -> MutationResult:
        same_request = (
            previous.item_code == code
            and previous.actor_id == actor.id
            and previous.quantity_change == quantity_change
            and previous.transaction_type == transaction_type
        )
        if not same_request:
            raise IdempotencyConflictError(previous.idempotency_key)
        # Nothing was written; commit only ends the transaction and its row lock
        self.db.commit()
        logger.info(
            f"Replayed stock mutation for {code}",
            extra={'extra_fields': {'transaction_id': previous.id, 'code': code}}
        )
        return MutationResult(item=item, transaction=previous, replayed=True)

    def _next_timestamp(self, code: str):
        """Clock time, never earlier than the item's latest recorded movement."""
        now = self.clock.now()
        latest = self.db.execute(
            select(func.max(StockTransaction.timestamp)).where(StockTransaction.item_code == code)
        ).scalar()
        if latest is not None and latest > now:
            return latest
        return now
