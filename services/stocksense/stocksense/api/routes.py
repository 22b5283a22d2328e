from typing import Optional
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session
from stocksense.infrastructure.db import get_db
from stocksense.application.service import InventoryService
from stocksense.application.schemas import (
    AllocationCreate,
    AllocationRead,
    ItemCreate,
    ItemDetailsUpdate,
    ItemRead,
    StatsRead,
    StockMutation,
    StockMutationRead,
    ThresholdUpdate,
    TransactionRead,
)
from stocksense.domain.actor import Actor
from .auth import get_current_actor

router = APIRouter(prefix="/inventory", tags=["inventory"])
transactions_router = APIRouter(prefix="/transactions", tags=["transactions"])
allocations_router = APIRouter(prefix="/allocations", tags=["allocations"])
stats_router = APIRouter(tags=["stats"])

@router.get("/", response_model=list[ItemRead])
def list_inventory(search: Optional[str] = None, db: Session = Depends(get_db),
                   actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).list_items(search)

@router.post("/", response_model=ItemRead, status_code=201)
def create_item(payload: ItemCreate, db: Session = Depends(get_db),
                actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).create_item(payload.model_dump(), actor)

# Declared before /{code} so it is not captured as an item code
@router.get("/low-stock", response_model=list[ItemRead])
def list_low_stock(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).list_low_stock()

@router.get("/{code}", response_model=ItemRead)
def get_item(code: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).get_item(code)

@router.put("/{code}", response_model=StockMutationRead)
def mutate_stock(
    code: str,
    payload: StockMutation,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    result = InventoryService(db).mutate_stock(
        code,
        payload.quantity_change,
        payload.transaction_type,
        actor,
        destination=payload.destination,
        purpose=payload.purpose,
        idempotency_key=idempotency_key,
    )
    warnings = []
    if result.ceiling_exceeded:
        warnings.append(f"Stock is above the maximum ceiling of {result.item.max_ceiling}")
    return StockMutationRead(
        item=ItemRead.model_validate(result.item),
        transaction=TransactionRead.model_validate(result.transaction),
        warnings=warnings,
        replayed=result.replayed,
    )

@router.patch("/{code}", response_model=ItemRead)
def update_item_details(code: str, payload: ItemDetailsUpdate, db: Session = Depends(get_db),
                        actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).update_item_details(code, payload.model_dump(exclude_unset=True), actor)

@router.put("/{code}/thresholds", response_model=ItemRead)
def update_thresholds(code: str, payload: ThresholdUpdate, db: Session = Depends(get_db),
                      actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).update_thresholds(code, payload.min_threshold, payload.max_ceiling, actor)

@router.get("/{code}/transactions", response_model=list[TransactionRead])
def list_item_transactions(code: str, db: Session = Depends(get_db),
                           actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).list_item_transactions(code, actor)

@transactions_router.get("/", response_model=list[TransactionRead])
def list_transactions(limit: Optional[int] = Query(default=None, ge=1), db: Session = Depends(get_db),
                      actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).list_transactions(actor, limit)

@allocations_router.get("/", response_model=list[AllocationRead])
def list_allocations(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).list_allocations(actor)

@allocations_router.post("/", response_model=AllocationRead, status_code=201)
def create_allocation(payload: AllocationCreate, db: Session = Depends(get_db),
                      actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).create_allocation(
        payload.item_code, payload.quantity_allocated, actor,
        destination=payload.destination, purpose=payload.purpose,
    )

@stats_router.get("/stats", response_model=StatsRead)
def get_stats(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return InventoryService(db).get_stats()
