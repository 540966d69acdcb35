from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from game_economy.database import get_db
from game_economy.dependencies import Services, get_services
from game_economy.routers.errors import handle_service_errors
from game_economy.schemas import (
    DiscountResponse,
    ExperienceRequest,
    LevelConfigOut,
    LevelHistoryOut,
    UserOut,
)

router = APIRouter(prefix="/level", tags=["Level"])


@router.get(
    "/configs",
    response_model=List[LevelConfigOut],
    summary="List level configs",
)
def list_level_configs(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return services.level.list_level_configs(db)


@router.get(
    "/{uid}",
    response_model=UserOut,
    summary="Get a user's level and experience",
)
def get_user_level(
    uid: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return services.level.get_user_level(db, uid)
    except Exception as e:
        raise handle_service_errors(e)


@router.get(
    "/{uid}/history",
    response_model=List[LevelHistoryOut],
    summary="Get a user's experience history",
)
def get_level_history(
    uid: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return services.level.get_level_history(db, uid)
    except Exception as e:
        raise handle_service_errors(e)


@router.get(
    "/{uid}/discount",
    response_model=DiscountResponse,
    summary="Price an amount with the user's level discount",
)
def get_discounted_price(
    uid: int,
    price: int = Query(..., ge=0),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        user = services.level.get_user_level(db, uid)
        discounted = services.level.get_discounted_price(db, uid, price)
    except Exception as e:
        raise handle_service_errors(e)

    return DiscountResponse(
        user_id=uid,
        level=user.level,
        original_price=price,
        discounted_price=discounted,
    )


@router.post(
    "/{uid}/experience",
    response_model=LevelHistoryOut,
    status_code=status.HTTP_201_CREATED,
    summary="Grant experience to a user",
)
def add_experience(
    uid: int,
    request: ExperienceRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        history = services.level.add_experience(db, uid, request.exp, request.description)
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return history
