from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from game_economy.database import get_db
from game_economy.dependencies import Services, get_services
from game_economy.routers.errors import handle_service_errors
from game_economy.schemas import (
    BackpackEntryOut,
    BackpackSnapshot,
    ConsumeRequest,
    TransferRequest,
)

router = APIRouter(prefix="/backpack", tags=["Backpack"])


@router.get(
    "/{uid}",
    response_model=BackpackSnapshot,
    summary="Get a user's backpack",
)
def get_backpack(
    uid: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return services.inventory.get_snapshot(db, uid)
    except Exception as e:
        raise handle_service_errors(e)


@router.post(
    "/consume",
    response_model=BackpackEntryOut,
    summary="Use up items from a backpack",
)
def consume(
    request: ConsumeRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        entry = services.inventory.consume(db, request.user_id, request.item_id, request.quantity)
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return entry


@router.post(
    "/transfer",
    response_model=BackpackEntryOut,
    summary="Move items between two backpacks",
)
def transfer(
    request: TransferRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        entry = services.inventory.transfer(
            db, request.from_user_id, request.to_user_id, request.item_id, request.quantity
        )
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return entry
