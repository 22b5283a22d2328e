from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shared.core import get_logger
from stocksense.core_settings import Settings, get_settings
from stocksense.domain.actor import Actor
from stocksense.domain.clock import Clock, SystemClock
from stocksense.domain.errors import ForbiddenError, InvalidQuantityError, StockSenseError
from stocksense.domain.models import AllocationRecord, Item, StockTransaction
from stocksense.infrastructure.locks import ItemLockRegistry, get_lock_registry
from .allocations import AllocationService
from .ledger import ItemLedger
from .recorder import MutationResult, TransactionRecorder

logger = get_logger(__name__)

RECENT_ACTIVITY_WINDOW = timedelta(days=7)


def require_privileged(actor: Actor, operation: str) -> None:
    if not actor.is_privileged:
        logger.warning(
            f"Forbidden: {actor.id} attempted to {operation}",
            extra={'extra_fields': {'actor_id': actor.id, 'role': actor.role, 'operation': operation}}
        )
        raise ForbiddenError(operation, actor.id)


class InventoryService:
    """Entry point for every inventory operation.

    Authorization is decided here from the explicit ``Actor`` argument.
    """

    def __init__(
        self,
        db: Session,
        locks: Optional[ItemLockRegistry] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.locks = locks or get_lock_registry()
        self.clock = clock or SystemClock()
        self.ledger = ItemLedger(db)
        self.recorder = TransactionRecorder(
            db, locks=self.locks, clock=self.clock,
            free_text_max_length=self.settings.FREE_TEXT_MAX_LENGTH,
        )
        self.allocations = AllocationService(
            db, locks=self.locks, clock=self.clock,
            free_text_max_length=self.settings.FREE_TEXT_MAX_LENGTH,
        )

    # Items

    def create_item(self, fields: Dict[str, Any], actor: Actor) -> Item:
        require_privileged(actor, "create items")
        fields = dict(fields)
        if fields.get("min_threshold") is None:
            fields["min_threshold"] = self.settings.DEFAULT_MIN_THRESHOLD
        if fields.get("max_ceiling") is None:
            fields["max_ceiling"] = max(self.settings.DEFAULT_MAX_CEILING, fields["min_threshold"])
        try:
            item = self.ledger.create(fields)
            self.db.commit()
        except StockSenseError:
            self.db.rollback()
            raise
        logger.info(
            f"Item {item.code} created",
            extra={'extra_fields': {
                'code': item.code,
                'current_stock': item.current_stock,
                'allocated_stock': item.allocated_stock,
                'actor_id': actor.id,
            }}
        )
        return item

    def get_item(self, code: str) -> Item:
        return self.ledger.get(code)

    def list_items(self, search: Optional[str] = None) -> List[Item]:
        return self.ledger.list(search)

    def list_low_stock(self) -> List[Item]:
        return self.ledger.list_low_stock()

    def update_thresholds(self, code: str, min_threshold: int, max_ceiling: int, actor: Actor) -> Item:
        require_privileged(actor, "edit thresholds")
        try:
            item = self.ledger.update_thresholds(code, min_threshold, max_ceiling)
            self.db.commit()
        except StockSenseError:
            self.db.rollback()
            raise
        logger.info(
            f"Thresholds updated for {code}",
            extra={'extra_fields': {
                'code': code, 'min_threshold': min_threshold,
                'max_ceiling': max_ceiling, 'actor_id': actor.id,
            }}
        )
        return item

    def update_item_details(self, code: str, fields: Dict[str, Any], actor: Actor) -> Item:
        require_privileged(actor, "edit item details")
        try:
            item = self.ledger.update_details(code, fields)
            self.db.commit()
        except StockSenseError:
            self.db.rollback()
            raise
        logger.info(
            f"Details updated for {code}",
            extra={'extra_fields': {'code': code, 'fields': sorted(fields), 'actor_id': actor.id}}
        )
        return item

    # Stock movements

    def mutate_stock(
        self,
        code: str,
        quantity_change: int,
        transaction_type: str,
        actor: Actor,
        destination: Optional[str] = None,
        purpose: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> MutationResult:
        return self.recorder.record_mutation(
            code, quantity_change, transaction_type, actor,
            destination=destination, purpose=purpose, idempotency_key=idempotency_key,
        )

    def list_transactions(self, actor: Actor, limit: Optional[int] = None) -> List[StockTransaction]:
        """Newest first; admin only. Unprivileged callers get Forbidden, never a partial view."""
        require_privileged(actor, "read transaction history")
        if limit is None:
            limit = self.settings.TRANSACTION_HISTORY_DEFAULT_LIMIT
        if limit <= 0:
            raise InvalidQuantityError("Limit must be a positive whole number", {"limit": limit})
        limit = min(limit, self.settings.TRANSACTION_HISTORY_MAX_LIMIT)
        stmt = (
            select(StockTransaction)
            .order_by(StockTransaction.timestamp.desc(), StockTransaction.seq.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    def list_item_transactions(self, code: str, actor: Actor) -> List[StockTransaction]:
        require_privileged(actor, "read transaction history")
        self.ledger.get(code)
        stmt = (
            select(StockTransaction)
            .where(StockTransaction.item_code == code)
            .order_by(StockTransaction.timestamp.desc(), StockTransaction.seq.desc())
        )
        return list(self.db.execute(stmt).scalars())

    # Allocation requests

    def create_allocation(self, item_code: str, quantity_allocated: int, actor: Actor,
                          destination: Optional[str] = None, purpose: Optional[str] = None) -> AllocationRecord:
        return self.allocations.create(item_code, quantity_allocated, actor,
                                       destination=destination, purpose=purpose)

    def list_allocations(self, actor: Actor) -> List[AllocationRecord]:
        require_privileged(actor, "read allocation logs")
        return self.allocations.list()

    # Dashboard

    def get_stats(self) -> Dict[str, int]:
        since = self.clock.now() - RECENT_ACTIVITY_WINDOW
        return {
            "total_items": self.db.execute(select(func.count()).select_from(Item)).scalar(),
            "low_stock_count": len(self.ledger.list_low_stock()),
            "total_stock": self.db.execute(select(func.coalesce(func.sum(Item.current_stock), 0))).scalar(),
            "recent_transactions": self.db.execute(
                select(func.count()).select_from(StockTransaction)
                .where(StockTransaction.timestamp > since)
            ).scalar(),
        }
