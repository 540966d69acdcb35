from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from game_economy.database import get_db
from game_economy.dependencies import Services, get_services
from game_economy.routers.errors import handle_service_errors
from game_economy.schemas import UserCreateRequest, UserOut
from game_economy.services.users import create_user, get_active_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user with starting wallets",
)
def register_user(
    request: UserCreateRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        user = create_user(db, request.username, request.email, services.wallet)
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return user


@router.get(
    "/{uid}",
    response_model=UserOut,
    summary="Get a user by public uid",
)
def get_user(uid: int, db: Session = Depends(get_db)):
    try:
        return get_active_user(db, uid)
    except Exception as e:
        raise handle_service_errors(e)
