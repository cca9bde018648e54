"""Reward catalog API routes.

Provides endpoints for:
- GET /rewards - The caller's points entry followed by available rewards
- POST /rewards/redeem - Spend points
- GET /rewards/grants - Collection reward grants of the current user
"""

from fastapi import APIRouter, HTTPException, Query, status

from ecoledger_core.api.deps import (
    CatalogServiceDep,
    CurrentUser,
    DBSession,
    LedgerServiceDep,
)
from ecoledger_core.api.schemas.rewards import (
    CatalogItemResponse,
    CatalogResponse,
    RedeemRequest,
    RedeemResponse,
    RewardGrantListResponse,
    RewardGrantResponse,
)
from ecoledger_core.domain.errors import ConflictError, NotFoundError, ValidationError
from ecoledger_core.domain.services.catalog import InsufficientBalanceError

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("", response_model=CatalogResponse)
async def list_rewards(current_user: CurrentUser, catalog_service: CatalogServiceDep):
    """List the caller's points entry and the available rewards, cheapest first."""
    items = catalog_service.list_available(current_user.id)
    return CatalogResponse(
        rewards=[CatalogItemResponse.model_validate(item) for item in items]
    )


@router.post("/redeem", response_model=RedeemResponse)
async def redeem(
    request: RedeemRequest,
    current_user: CurrentUser,
    catalog_service: CatalogServiceDep,
    ledger_service: LedgerServiceDep,
    db: DBSession,
):
    """Redeem points for a reward, or raw points when ``reward_id`` is 0."""
    try:
        entry = catalog_service.redeem(current_user.id, request.reward_id, request.cost)
    except InsufficientBalanceError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "balance": e.balance, "cost": e.cost},
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    db.commit()
    return RedeemResponse(
        entry_id=entry.id,
        cost=entry.amount,
        balance=ledger_service.balance(current_user.id),
    )


@router.get("/grants", response_model=RewardGrantListResponse)
async def list_grants(
    current_user: CurrentUser,
    catalog_service: CatalogServiceDep,
    limit: int = Query(50, ge=1, le=100),
):
    """Collection reward grants of the current user, newest first."""
    grants = catalog_service.list_grants(current_user.id, limit=limit)
    return RewardGrantListResponse(
        grants=[RewardGrantResponse.model_validate(g) for g in grants]
    )
