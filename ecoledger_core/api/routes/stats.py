"""Community statistics API routes."""

from fastapi import APIRouter

from ecoledger_core.api.deps import ReportServiceDep
from ecoledger_core.api.schemas.stats import ImpactResponse

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/impact", response_model=ImpactResponse)
async def get_impact(report_service: ReportServiceDep):
    """Community-wide reports, collected waste, points and CO2 offset."""
    stats = report_service.impact_stats()
    return ImpactResponse(
        reports_submitted=stats.reports_submitted,
        waste_collected=stats.waste_collected,
        points_earned=stats.points_earned,
        co2_offset=stats.co2_offset,
    )
