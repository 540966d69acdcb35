from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from game_economy.database import get_db
from game_economy.dependencies import Services, get_services
from game_economy.routers.errors import handle_service_errors
from game_economy.schemas import (
    BuyRequest,
    PurchaseResponse,
    StoreItemListResponse,
    StoreItemOut,
)

router = APIRouter(prefix="/store", tags=["Store"])


@router.get(
    "/items",
    response_model=StoreItemListResponse,
    summary="List store items",
)
def list_items(
    tag: Optional[str] = Query(default=None, description="Filter by category tag"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    items, total = services.store.list_items(db, tag=tag, page=page, page_size=page_size)
    return StoreItemListResponse(
        items=[StoreItemOut.model_validate(i) for i in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "/buy",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy goods from the store",
)
def buy_goods(
    request: BuyRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        result = services.store.buy_goods(db, request.user_id, request.item_id, request.count)
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return PurchaseResponse(**result)
