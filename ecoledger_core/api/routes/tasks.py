"""Collection task API routes.

Provides endpoints for:
- GET /tasks - List reports as collection tasks
- POST /tasks/{id}/claim - Claim a pending task
- POST /tasks/{id}/verify - Submit evidence and verify a collection
- POST /tasks/{id}/complete - Close a task without verification
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from ecoledger_core.api.deps import (
    CurrentUser,
    DBSession,
    TaskServiceDep,
    VerificationGateDep,
)
from ecoledger_core.api.schemas.reports import (
    JudgmentResponse,
    TaskListResponse,
    TaskResponse,
    VerifyCollectionRequest,
    VerifyCollectionResponse,
)
from ecoledger_core.domain.errors import (
    ConflictError,
    EcoLedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ecoledger_core.domain.services.tasks import NotAssignedCollectorError

router = APIRouter(prefix="/tasks", tags=["tasks"])


def task_error_to_http(error: EcoLedgerError) -> HTTPException:
    """Map a task failure to the HTTP error returned to the collector."""
    if isinstance(error, NotAssignedCollectorError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, PersistenceError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    task_service: TaskServiceDep,
    limit: int = Query(20, ge=1, le=100, description="Maximum tasks to return"),
    task_status: Optional[str] = Query(
        None, alias="status", description="Filter by status"
    ),
):
    """List collection tasks, newest first."""
    try:
        reports = task_service.list_tasks(limit=limit, status=task_status)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return TaskListResponse(
        tasks=[TaskResponse.from_model(r) for r in reports],
        total=len(reports),
    )


@router.post("/{report_id}/claim", response_model=TaskResponse)
async def claim_task(
    report_id: int,
    current_user: CurrentUser,
    task_service: TaskServiceDep,
    db: DBSession,
):
    """Claim a pending task for the current user."""
    try:
        report = task_service.claim(report_id, current_user.id)
    except EcoLedgerError as e:
        raise task_error_to_http(e)

    db.commit()
    return TaskResponse.from_model(report)


@router.post("/{report_id}/verify", response_model=VerifyCollectionResponse)
async def verify_task(
    report_id: int,
    request: VerifyCollectionRequest,
    current_user: CurrentUser,
    task_service: TaskServiceDep,
    gate: VerificationGateDep,
    db: DBSession,
):
    """Submit collection evidence and apply the oracle's judgment.

    A rejected verification is not an error: the task stays in progress
    and the response carries the rejection reason.
    """
    try:
        evidence = task_service.submit_evidence(
            report_id, current_user.id, request.image_url
        )
    except EcoLedgerError as e:
        raise task_error_to_http(e)

    decision = await gate.judge(evidence)

    try:
        outcome = task_service.resolve_verification(
            report_id,
            current_user.id,
            decision.judgment,
            rejection_reason=decision.reason,
        )
    except EcoLedgerError as e:
        raise task_error_to_http(e)

    db.commit()
    judgment = outcome.judgment
    return VerifyCollectionResponse(
        accepted=outcome.accepted,
        reason=outcome.reason,
        points=outcome.points,
        task=TaskResponse.from_model(outcome.report),
        judgment=JudgmentResponse(
            area_clean=judgment.area_clean,
            waste_type_match=judgment.waste_type_match,
            confidence=judgment.confidence,
            quantity_match=judgment.quantity_match,
        ),
    )


@router.post("/{report_id}/complete", response_model=TaskResponse)
async def complete_task(
    report_id: int,
    current_user: CurrentUser,
    task_service: TaskServiceDep,
    db: DBSession,
):
    """Close an in-progress task without verification; nothing is granted."""
    try:
        report = task_service.complete(report_id, current_user.id)
    except EcoLedgerError as e:
        raise task_error_to_http(e)

    db.commit()
    return TaskResponse.from_model(report)
