"""Community statistics API schemas."""

from pydantic import BaseModel


class ImpactResponse(BaseModel):
    """Community-wide impact totals."""

    reports_submitted: int
    waste_collected: float
    points_earned: int
    co2_offset: float
