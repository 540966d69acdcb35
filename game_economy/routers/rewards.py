from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from game_economy.database import get_db
from game_economy.dependencies import Services, get_services
from game_economy.routers.errors import handle_service_errors
from game_economy.schemas import (
    GrantRequest,
    RewardFlowListResponse,
    RewardFlowOut,
    RewardPackageCreateRequest,
    RewardPackageItemsRequest,
    RewardPackageListResponse,
    RewardPackageOut,
    RewardRecordListResponse,
    RewardRecordOut,
)

router = APIRouter(prefix="/rewards", tags=["Rewards"])


@router.post(
    "/packages",
    response_model=RewardPackageOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reward package",
)
def create_package(
    request: RewardPackageCreateRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        package = services.rewards.create_package(
            db,
            request.name,
            [item.model_dump() for item in request.items],
            description=request.description,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return package


@router.get(
    "/packages",
    response_model=RewardPackageListResponse,
    summary="List reward packages",
)
def list_packages(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    packages, total = services.rewards.list_packages(db, page=page, page_size=page_size)
    return RewardPackageListResponse(
        packages=[RewardPackageOut.model_validate(p) for p in packages],
        total=total,
    )


@router.get(
    "/packages/{package_id}",
    response_model=RewardPackageOut,
    summary="Get a reward package with its items",
)
def get_package(
    package_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        return services.rewards.get_package(db, package_id)
    except Exception as e:
        raise handle_service_errors(e)


@router.put(
    "/packages/{package_id}/items",
    response_model=RewardPackageOut,
    summary="Replace the items of a reward package",
)
def replace_package_items(
    package_id: int,
    request: RewardPackageItemsRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        package = services.rewards.replace_package_items(
            db, package_id, [item.model_dump() for item in request.items]
        )
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return package


@router.delete(
    "/packages/{package_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a reward package",
)
def delete_package(
    package_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        services.rewards.delete_package(db, package_id)
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)


@router.post(
    "/grant",
    response_model=RewardRecordOut,
    status_code=status.HTTP_201_CREATED,
    summary="Grant a reward package to a user",
)
def grant_reward(
    request: GrantRequest,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        record = services.rewards.grant_reward(db, request.user_id, request.package_id, request.source)
        db.commit()
    except Exception as e:
        db.rollback()
        raise handle_service_errors(e)

    return record


@router.get(
    "/records/{uid}",
    response_model=RewardRecordListResponse,
    summary="List reward records for a user",
)
def list_reward_records(
    uid: int,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    records, total = services.rewards.list_reward_records(db, uid, page=page, page_size=page_size)
    return RewardRecordListResponse(
        records=[RewardRecordOut.model_validate(r) for r in records],
        total=total,
    )


@router.get(
    "/flows/{uid}",
    response_model=RewardFlowListResponse,
    summary="List reward flows for a user",
)
def list_reward_flows(
    uid: int,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    flows, total = services.rewards.list_reward_flows(db, uid, page=page, page_size=page_size)
    return RewardFlowListResponse(
        flows=[RewardFlowOut.model_validate(f) for f in flows],
        total=total,
    )
