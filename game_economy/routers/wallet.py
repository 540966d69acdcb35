from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from game_economy.database import get_db
from game_economy.dependencies import Services, get_services
from game_economy.routers.errors import handle_service_errors
from game_economy.schemas import (
    CurrencyFlowListResponse,
    CurrencyFlowOut,
    WalletAdjustRequest,
    WalletOut,
)

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get(
    "/{uid}",
    response_model=List[WalletOut],
    summary="List a user's wallets",
)
def get_user_wallets(
    uid: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return services.wallet.get_user_wallets(db, uid)
    except Exception as e:
        raise handle_service_errors(e)


@router.get(
    "/{uid}/flows",
    response_model=CurrencyFlowListResponse,
    summary="Get currency flow history",
)
def get_currency_flows(
    uid: int,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        flows, total = services.wallet.list_currency_flows(db, uid, limit, offset)
    except Exception as e:
        raise handle_service_errors(e)

    return CurrencyFlowListResponse(
        user_id=uid,
        flows=[CurrencyFlowOut.model_validate(f) for f in flows],
        total=total,
    )


@router.get(
    "/{uid}/{kind}",
    response_model=WalletOut,
    summary="Get one wallet",
)
def get_wallet(
    uid: int,
    kind: str,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return services.wallet.get_wallet(db, uid, kind)
    except Exception as e:
        raise handle_service_errors(e)


@router.post(
    "/{uid}/adjust",
    response_model=WalletOut,
    status_code=status.HTTP_201_CREATED,
    summary="Credit or debit a wallet",
)
def update_wallet_balance(
    uid: int,
    request: WalletAdjustRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    if request.amount == 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "INVALID_AMOUNT", "message": "Amount must not be zero"},
        )
    try:
        wallet = services.wallet.update_wallet_balance(
            db, uid, request.kind, request.amount, request.description
        )
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return wallet
