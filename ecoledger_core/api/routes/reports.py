"""Report API routes.

Provides endpoints for:
- POST /reports - Submit a waste report
- GET /reports - List recent reports
- GET /reports/pending - List reports waiting for a collector
- GET /reports/{id} - Get report by ID
"""

from fastapi import APIRouter, HTTPException, Query, status

from ecoledger_core.api.deps import (
    CurrentUser,
    CurrentUserOptional,
    DBSession,
    ReportServiceDep,
)
from ecoledger_core.api.schemas.reports import (
    ReportListResponse,
    ReportResponse,
    SubmitReportRequest,
)
from ecoledger_core.domain.errors import NotFoundError, PersistenceError, ValidationError

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    request: SubmitReportRequest,
    current_user: CurrentUser,
    report_service: ReportServiceDep,
    db: DBSession,
):
    """Submit a waste report; the reporter is credited immediately."""
    try:
        report = report_service.submit(
            user_id=current_user.id,
            location=request.location,
            waste_type=request.waste_type,
            amount=request.amount,
            image_url=request.image_url,
            verification=request.verification,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        )

    db.commit()
    return ReportResponse.model_validate(report)


@router.get("", response_model=ReportListResponse)
async def list_reports(
    report_service: ReportServiceDep,
    current_user: CurrentUserOptional,
    limit: int = Query(10, ge=1, le=100, description="Maximum reports to return"),
    mine: bool = Query(False, description="Only the caller's reports"),
):
    """List recent reports, newest first."""
    if mine:
        if current_user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
            )
        reports = report_service.list_by_user(current_user.id, limit=limit)
    else:
        reports = report_service.list_recent(limit=limit)
    return ReportListResponse(
        reports=[ReportResponse.model_validate(r) for r in reports],
        total=len(reports),
    )


@router.get("/pending", response_model=ReportListResponse)
async def list_pending_reports(report_service: ReportServiceDep):
    """List reports waiting for a collector, oldest first."""
    reports = report_service.list_pending()
    return ReportListResponse(
        reports=[ReportResponse.model_validate(r) for r in reports],
        total=len(reports),
    )


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: int, report_service: ReportServiceDep):
    """Get a report by ID."""
    report = report_service.get_report(report_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report {report_id} not found",
        )
    return ReportResponse.model_validate(report)
