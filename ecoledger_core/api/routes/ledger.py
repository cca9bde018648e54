"""Ledger API routes.

Provides endpoints for:
- GET /ledger/balance - Derived balance of the current user
- GET /ledger/transactions - Recent ledger entries of the current user
- GET /leaderboard - Top users by balance
"""

from fastapi import APIRouter, Query

from ecoledger_core.api.deps import CurrentUser, LedgerServiceDep
from ecoledger_core.api.schemas.ledger import (
    BalanceResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LedgerEntryListResponse,
    LedgerEntryResponse,
)
from ecoledger_core.domain.services.ledger import MAX_LIMIT

router = APIRouter(tags=["ledger"])


@router.get("/ledger/balance", response_model=BalanceResponse)
async def get_balance(current_user: CurrentUser, ledger_service: LedgerServiceDep):
    """Get the current user's balance, earned and redeemed totals."""
    totals = ledger_service.totals(current_user.id)
    return BalanceResponse(
        user_id=current_user.id,
        balance=totals.balance,
        earned=totals.earned,
        redeemed=totals.redeemed,
    )


@router.get("/ledger/transactions", response_model=LedgerEntryListResponse)
async def list_transactions(
    current_user: CurrentUser,
    ledger_service: LedgerServiceDep,
    limit: int = Query(10, ge=1, le=MAX_LIMIT, description="Maximum entries"),
):
    """Recent ledger entries of the current user, newest first."""
    entries = ledger_service.recent_entries(current_user.id, limit=limit)
    return LedgerEntryListResponse(
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        limit=limit,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    ledger_service: LedgerServiceDep,
    limit: int = Query(10, ge=1, le=MAX_LIMIT, description="Number of users"),
):
    """Top users by balance."""
    rows = ledger_service.leaderboard(limit=limit)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(
                rank=position,
                user_id=row.user_id,
                user_name=row.user_name,
                points=row.points,
            )
            for position, row in enumerate(rows, start=1)
        ]
    )
