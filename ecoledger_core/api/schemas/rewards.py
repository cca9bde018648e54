"""Reward catalog API schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CatalogItemResponse(BaseModel):
    """A catalog entry as shown to the caller."""

    id: int
    name: str
    cost: int
    description: Optional[str] = None
    collection_info: Optional[str] = None

    class Config:
        from_attributes = True


class CatalogResponse(BaseModel):
    """The caller's points entry followed by available rewards."""

    rewards: list[CatalogItemResponse]


class RedeemRequest(BaseModel):
    """Request body for redeeming points."""

    reward_id: int = Field(..., ge=0, description="Catalog reward ID, 0 for raw points")
    cost: int = Field(..., gt=0, description="Points to spend")


class RedeemResponse(BaseModel):
    """Response body for a successful redemption."""

    entry_id: int
    cost: int
    balance: int


class RewardGrantResponse(BaseModel):
    """A collection reward grant."""

    id: int
    report_id: int
    ledger_entry_id: int
    points: int
    created_at: datetime

    class Config:
        from_attributes = True


class RewardGrantListResponse(BaseModel):
    """Response body for the grant log."""

    grants: list[RewardGrantResponse]
