from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.core import get_logger
from stocksense.domain.actor import Actor
from stocksense.domain.clock import Clock, SystemClock
from stocksense.domain.errors import ConcurrencyConflictError, InvalidQuantityError
from stocksense.domain.models import AllocationRecord
from stocksense.infrastructure.locks import ItemLockRegistry, get_lock_registry
from .ledger import ItemLedger
from .sanitize import sanitize_text

logger = get_logger(__name__)

# Lock key serializing request-id numbering
REQUEST_ID_LOCK = "__allocation_request_id__"
# Another process can take the same number between count and commit
MAX_REQUEST_ID_ATTEMPTS = 3


class AllocationService:
    """Maintenance-agreement allocation requests.

    Records are created as ``pending`` and only listed afterwards; they do
    not move ``allocated_stock``.
    """

    def __init__(self, db: Session, locks: Optional[ItemLockRegistry] = None,
                 clock: Optional[Clock] = None, free_text_max_length: int = 500):
        self.db = db
        self.ledger = ItemLedger(db)
        self.locks = locks or get_lock_registry()
        self.clock = clock or SystemClock()
        self.free_text_max_length = free_text_max_length

    def _generate_request_id(self, year: int) -> str:
        """Sequential per year: MA-YYYY-NNNN"""
        count = self.db.execute(
            select(func.count()).select_from(AllocationRecord)
            .where(AllocationRecord.request_id.like(f"MA-{year}-%"))
        ).scalar()
        return f"MA-{year}-{(count + 1):04d}"

    def create(self, item_code: str, quantity_allocated: int, actor: Actor,
               destination: Optional[str] = None, purpose: Optional[str] = None) -> AllocationRecord:
        if quantity_allocated <= 0:
            raise InvalidQuantityError(
                "Allocated quantity must be a positive whole number",
                {"quantity_allocated": quantity_allocated},
            )
        item = self.ledger.get(item_code)
        now = self.clock.now()

        code, name = item.code, item.description
        destination = sanitize_text(destination, self.free_text_max_length)
        purpose = sanitize_text(purpose, self.free_text_max_length)

        with self.locks.hold(REQUEST_ID_LOCK):
            for attempt in range(1, MAX_REQUEST_ID_ATTEMPTS + 1):
                request_id = self._generate_request_id(now.year)
                record = AllocationRecord(
                    request_id=request_id,
                    item_code=code,
                    item_name_snapshot=name,
                    quantity_allocated=quantity_allocated,
                    destination=destination,
                    purpose=purpose,
                    requested_by=actor.id,
                    requested_by_name=actor.display_name,
                    status="pending",
                    requested_at=now,
                )
                self.db.add(record)
                try:
                    self.db.commit()
                    break
                except IntegrityError:
                    self.db.rollback()
                    logger.warning(
                        f"Allocation request id {request_id} already taken",
                        extra={'extra_fields': {'request_id': request_id, 'attempt': attempt}}
                    )
            else:
                raise ConcurrencyConflictError("Allocation request", MAX_REQUEST_ID_ATTEMPTS)

        logger.info(
            f"Allocation request {record.request_id} created",
            extra={'extra_fields': {
                'request_id': record.request_id,
                'code': code,
                'quantity_allocated': quantity_allocated,
                'actor_id': actor.id,
            }}
        )
        return record

    def list(self) -> List[AllocationRecord]:
        stmt = select(AllocationRecord).order_by(
            AllocationRecord.requested_at.desc(), AllocationRecord.request_id.desc()
        )
        return list(self.db.execute(stmt).scalars())
