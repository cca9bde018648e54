"""Ledger and leaderboard API schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BalanceResponse(BaseModel):
    """Derived balance for the current user."""

    user_id: int
    balance: int
    earned: int
    redeemed: int


class LedgerEntryResponse(BaseModel):
    """Response body for a ledger entry."""

    id: int
    kind: str
    amount: int
    description: str
    report_id: Optional[int] = None
    reward_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerEntryListResponse(BaseModel):
    """Response body for recent ledger entries."""

    entries: list[LedgerEntryResponse]
    limit: int


class LeaderboardEntry(BaseModel):
    """One leaderboard position."""

    rank: int
    user_id: int
    user_name: str
    points: int


class LeaderboardResponse(BaseModel):
    """Response body for the leaderboard."""

    entries: list[LeaderboardEntry]
