"""Collection task state machine.

A report becomes a collection task as soon as it is submitted:

    pending --claim--> in_progress --verify--> verified
                                   \\--complete--> completed

Every transition is a conditional UPDATE on the report row, so a
transition only happens if the row is still in the expected state when
the database applies it. Only ``verified`` is rewarded.

Usage:
    service = CollectionTaskService(db=session, reward_policy=policy)

    service.claim(report_id, collector_id)
    evidence = service.submit_evidence(report_id, collector_id, image_url)
    decision = await gate.judge(evidence)
    outcome = service.resolve_verification(
        report_id, collector_id, decision.judgment, rejection_reason=decision.reason
    )
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecoledger_core.domain.errors import ConflictError, PersistenceError, ValidationError
from ecoledger_core.domain.models import (
    REPORT_STATUSES,
    CollectedWaste,
    LedgerKind,
    NotificationType,
    Report,
    ReportStatus,
    RewardGrant,
    User,
)
from ecoledger_core.domain.services.ledger import LedgerService
from ecoledger_core.domain.services.notifications import NotificationService
from ecoledger_core.domain.services.reports import ReportError, ReportNotFoundError
from ecoledger_core.domain.services.reward_policy import CollectRewardPolicy
from ecoledger_core.domain.services.users import UserNotFoundError
from ecoledger_core.domain.services.verification import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    EvidenceSubmission,
    OracleJudgment,
    evaluate,
)
from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class TaskError(ReportError):
    """Mixin base for task state machine failures."""

    pass


class AlreadyClaimedError(TaskError, ConflictError):
    """Raised when a report is no longer pending for this collector."""

    pass


class NotAssignedCollectorError(TaskError, ConflictError):
    """Raised when someone other than the assigned collector acts on a task."""

    pass


class InvalidTransitionError(TaskError, ConflictError):
    """Raised when a report is not in the state a transition requires."""

    pass


class TaskValidationError(TaskError, ValidationError):
    """Raised when transition input is unusable."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class VerificationOutcome:
    """What resolve_verification did.

    Attributes:
        accepted: Whether the report moved to ``verified``
        report: The report after the attempt
        reason: Rejection reason when not accepted
        points: Points granted to the collector when accepted
        collected_waste: Proof record when accepted
        judgment: The judgment that was applied
    """

    accepted: bool
    report: Report
    judgment: OracleJudgment
    reason: Optional[str] = None
    points: int = 0
    collected_waste: Optional[CollectedWaste] = None


# =============================================================================
# SERVICE
# =============================================================================


class CollectionTaskService:
    """Service driving reports through collection."""

    def __init__(
        self,
        db: Session,
        reward_policy: Optional[CollectRewardPolicy] = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ):
        """Initialize the task service.

        Args:
            db: SQLAlchemy database session.
            reward_policy: Policy for ``earned_collect`` amounts.
            confidence_threshold: Oracle confidence that must be exceeded.
        """
        self.db = db
        self.reward_policy = reward_policy or CollectRewardPolicy()
        self.confidence_threshold = confidence_threshold
        self.ledger = LedgerService(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_tasks(self, limit: int = 20, status: Optional[str] = None) -> list[Report]:
        """Reports as collection tasks, newest first."""
        if status is not None and status not in REPORT_STATUSES:
            raise TaskValidationError(
                f"status must be one of {REPORT_STATUSES}, got '{status}'"
            )

        query = self.db.query(Report)
        if status is not None:
            query = query.filter(Report.status == status)
        return (
            query.order_by(Report.created_at.desc(), Report.id.desc())
            .limit(max(1, limit))
            .all()
        )

    def _require_report(self, report_id: int) -> Report:
        report = self.db.query(Report).filter(Report.id == report_id).first()
        if report is None:
            raise ReportNotFoundError(f"Report {report_id} not found")
        return report

    def _require_assigned(self, report: Report, collector_id: int) -> None:
        """Check the report is in progress and held by ``collector_id``."""
        if report.status != ReportStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Report {report.id} is {report.status}, expected in_progress"
            )
        if report.collector_id != collector_id:
            raise NotAssignedCollectorError(
                f"Report {report.id} is assigned to another collector"
            )

    # =========================================================================
    # CLAIM
    # =========================================================================

    def claim(self, report_id: int, collector_id: int) -> Report:
        """Assign a pending report to a collector.

        A second claim by the same collector is a no-op.

        Raises:
            ReportNotFoundError: If the report does not exist.
            UserNotFoundError: If the collector does not exist.
            AlreadyClaimedError: If the report is not pending for this collector.
        """
        report = self._require_report(report_id)
        if self.db.query(User.id).filter(User.id == collector_id).first() is None:
            raise UserNotFoundError(f"User {collector_id} not found")

        updated = (
            self.db.query(Report)
            .filter(
                Report.id == report_id,
                Report.status == ReportStatus.PENDING,
            )
            .update(
                {
                    Report.status: ReportStatus.IN_PROGRESS,
                    Report.collector_id: collector_id,
                    Report.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        self.db.flush()
        self.db.refresh(report)

        if updated == 0:
            if (
                report.status == ReportStatus.IN_PROGRESS
                and report.collector_id == collector_id
            ):
                return report
            logger.warning(
                "Claim rejected",
                report_id=report_id,
                collector_id=collector_id,
                status=report.status,
            )
            raise AlreadyClaimedError(f"Report {report_id} is already claimed")

        logger.info("Report claimed", report_id=report_id, collector_id=collector_id)
        self.notifications.notify_safely(
            report.user_id,
            f"Your report at {report.location} is being collected.",
            NotificationType.TASK,
        )
        return report

    # =========================================================================
    # EVIDENCE
    # =========================================================================

    def submit_evidence(
        self, report_id: int, collector_id: int, image_url: str
    ) -> EvidenceSubmission:
        """Accept collection evidence from the assigned collector.

        Changes nothing; the result is the input for the verification gate.
        """
        if not (image_url or "").strip():
            raise TaskValidationError("An evidence image is required")

        report = self._require_report(report_id)
        self._require_assigned(report, collector_id)

        return EvidenceSubmission(
            report_id=report.id,
            collector_id=collector_id,
            image_url=image_url.strip(),
            waste_type=report.waste_type,
            amount=report.amount,
        )

    # =========================================================================
    # VERIFY
    # =========================================================================

    def resolve_verification(
        self,
        report_id: int,
        collector_id: int,
        judgment: OracleJudgment,
        rejection_reason: Optional[str] = None,
    ) -> VerificationOutcome:
        """Apply an oracle judgment to an in-progress report.

        Accepted when ``area_clean`` and ``confidence > threshold``. On
        acceptance the report becomes ``verified``, and a CollectedWaste
        record, an ``earned_collect`` entry and a reward grant are written
        together. On rejection nothing changes.

        Args:
            report_id: The report being collected.
            collector_id: The collector asking for verification.
            judgment: The oracle's judgment.
            rejection_reason: Set by the gate when the oracle gave no answer;
                forces rejection.

        Raises:
            ReportNotFoundError: If the report does not exist.
            InvalidTransitionError: If the report is not in progress.
            NotAssignedCollectorError: If the collector is not assigned.
            PersistenceError: If the store fails; nothing was written.
        """
        report = self._require_report(report_id)
        self._require_assigned(report, collector_id)

        reason = rejection_reason or evaluate(judgment, self.confidence_threshold)
        if reason is not None:
            logger.warning(
                "Verification rejected",
                report_id=report_id,
                collector_id=collector_id,
                reason=reason,
                confidence=judgment.confidence,
            )
            return VerificationOutcome(
                accepted=False, report=report, judgment=judgment, reason=reason
            )

        points = self.reward_policy.points_for(report.amount)
        try:
            with self.db.begin_nested():
                updated = (
                    self.db.query(Report)
                    .filter(
                        Report.id == report_id,
                        Report.status == ReportStatus.IN_PROGRESS,
                        Report.collector_id == collector_id,
                    )
                    .update(
                        {
                            Report.status: ReportStatus.VERIFIED,
                            Report.updated_at: datetime.utcnow(),
                        },
                        synchronize_session=False,
                    )
                )
                if updated == 0:
                    raise InvalidTransitionError(
                        f"Report {report_id} changed state during verification"
                    )

                collected = CollectedWaste(
                    report_id=report_id,
                    collector_id=collector_id,
                    collection_date=datetime.utcnow(),
                    status=ReportStatus.VERIFIED,
                    verification_json=judgment.to_payload(),
                )
                self.db.add(collected)
                self.db.flush()

                entry = self.ledger.append(
                    user_id=collector_id,
                    kind=LedgerKind.EARNED_COLLECT,
                    amount=points,
                    description="Points earned from collecting waste",
                    report_id=report_id,
                )

                self.db.add(
                    RewardGrant(
                        user_id=collector_id,
                        report_id=report_id,
                        ledger_entry_id=entry.id,
                        points=points,
                    )
                )
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Verification write failed",
                exc_info=True,
                report_id=report_id,
                collector_id=collector_id,
            )
            raise PersistenceError("Could not record verified collection") from e

        self.db.refresh(report)
        logger.info(
            "Report verified",
            report_id=report_id,
            collector_id=collector_id,
            points=points,
        )
        self.notifications.notify_safely(
            collector_id,
            f"Verification successful! You've earned {points} points.",
            NotificationType.REWARD,
        )
        return VerificationOutcome(
            accepted=True,
            report=report,
            judgment=judgment,
            points=points,
            collected_waste=collected,
        )

    # =========================================================================
    # COMPLETE
    # =========================================================================

    def complete(self, report_id: int, collector_id: int) -> Report:
        """Close an in-progress report without verification. Grants nothing."""
        report = self._require_report(report_id)
        self._require_assigned(report, collector_id)

        updated = (
            self.db.query(Report)
            .filter(
                Report.id == report_id,
                Report.status == ReportStatus.IN_PROGRESS,
                Report.collector_id == collector_id,
            )
            .update(
                {
                    Report.status: ReportStatus.COMPLETED,
                    Report.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        self.db.flush()
        self.db.refresh(report)
        if updated == 0:
            raise InvalidTransitionError(f"Report {report_id} is no longer in progress")

        logger.info("Report completed", report_id=report_id, collector_id=collector_id)
        self.notifications.notify_safely(
            report.user_id,
            f"Your report at {report.location} has been collected.",
            NotificationType.TASK,
        )
        return report
