"""Report registry for EcoLedger.

This service provides:
1. Report submission, crediting the reporter in the same transaction
2. Report retrieval and listing (recent, pending, per user)
3. Community impact statistics

Usage:
    service = ReportService(db=session, report_reward_points=10)

    report = service.submit(
        user_id=1,
        location="Riverside park, north gate",
        waste_type="plastic",
        amount="5 kg",
    )

    pending = service.list_pending()
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecoledger_core.domain.errors import NotFoundError, PersistenceError, ValidationError
from ecoledger_core.domain.models import (
    LedgerKind,
    NotificationType,
    Report,
    ReportStatus,
    User,
)
from ecoledger_core.domain.services.ledger import LedgerService, validate_amount
from ecoledger_core.domain.services.notifications import NotificationService
from ecoledger_core.domain.services.reward_policy import parse_quantity
from ecoledger_core.domain.services.users import UserNotFoundError
from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================


DEFAULT_REPORT_REWARD = 10

# kg of CO2 offset per unit of collected waste
CO2_PER_UNIT = 0.5

# Reports whose waste counts as collected
COLLECTED_STATUSES = (ReportStatus.COMPLETED, ReportStatus.VERIFIED)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ReportError(Exception):
    """Mixin base for report registry failures."""

    pass


class ReportValidationError(ReportError, ValidationError):
    """Raised when a report is missing required fields."""

    pass


class ReportNotFoundError(ReportError, NotFoundError):
    """Raised when a report does not exist."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ImpactStats:
    """Community-wide totals shown on the landing page."""

    reports_submitted: int
    waste_collected: float
    points_earned: int
    co2_offset: float


# =============================================================================
# SERVICE
# =============================================================================


class ReportService:
    """Service for submitting and listing waste reports."""

    def __init__(self, db: Session, report_reward_points: int = DEFAULT_REPORT_REWARD):
        """Initialize the report service.

        Args:
            db: SQLAlchemy database session.
            report_reward_points: Points credited for each submitted report.
        """
        self.db = db
        self.report_reward_points = validate_amount(report_reward_points)
        self.ledger = LedgerService(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # SUBMIT
    # =========================================================================

    def submit(
        self,
        user_id: int,
        location: str,
        waste_type: str,
        amount: str,
        image_url: Optional[str] = None,
        verification: Optional[dict[str, Any]] = None,
    ) -> Report:
        """Submit a waste report and credit the reporter.

        The report and its ``earned_report`` entry are written inside one
        savepoint: either both exist afterwards or neither does.

        Args:
            user_id: Reporting user.
            location: Free-text location.
            waste_type: Free-text waste type.
            amount: Free-text amount with an embedded quantity (e.g. "5 kg").
            image_url: Optional image reference.
            verification: Optional oracle classification captured at report time.

        Returns:
            The new Report, status ``pending`` and no collector.

        Raises:
            ReportValidationError: If a required field is blank.
            UserNotFoundError: If the reporter does not exist.
            PersistenceError: If the store fails; nothing was written.
        """
        fields = {"location": location, "waste_type": waste_type, "amount": amount}
        missing = [name for name, value in fields.items() if not (value or "").strip()]
        if missing:
            raise ReportValidationError(f"Missing required fields: {', '.join(missing)}")

        if self.db.query(User.id).filter(User.id == user_id).first() is None:
            raise UserNotFoundError(f"User {user_id} not found")

        try:
            with self.db.begin_nested():
                report = Report(
                    user_id=user_id,
                    location=location.strip(),
                    waste_type=waste_type.strip(),
                    amount=amount.strip(),
                    image_url=image_url,
                    verification_json=verification,
                    status=ReportStatus.PENDING,
                    collector_id=None,
                )
                self.db.add(report)
                self.db.flush()

                self.ledger.append(
                    user_id=user_id,
                    kind=LedgerKind.EARNED_REPORT,
                    amount=self.report_reward_points,
                    description="Points earned for reporting waste",
                    report_id=report.id,
                )
        except SQLAlchemyError as e:
            logger.error("Report submission failed", exc_info=True, user_id=user_id)
            raise PersistenceError("Could not store report") from e

        self.notifications.notify_safely(
            user_id,
            f"You've earned {self.report_reward_points} points!!",
            NotificationType.REWARD,
        )

        logger.info(
            "Report submitted",
            user_id=user_id,
            report_id=report.id,
            points=self.report_reward_points,
        )
        return report

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_report(self, report_id: int) -> Optional[Report]:
        return self.db.query(Report).filter(Report.id == report_id).first()

    def require_report(self, report_id: int) -> Report:
        """Get a report by ID or raise ``ReportNotFoundError``."""
        report = self.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(f"Report {report_id} not found")
        return report

    def list_recent(self, limit: int = 10) -> list[Report]:
        """Most recent reports, newest first."""
        return (
            self.db.query(Report)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .limit(max(1, limit))
            .all()
        )

    def list_pending(self) -> list[Report]:
        """Reports still waiting for a collector, oldest first."""
        return (
            self.db.query(Report)
            .filter(Report.status == ReportStatus.PENDING)
            .order_by(Report.created_at.asc(), Report.id.asc())
            .all()
        )

    def list_by_user(self, user_id: int, limit: int = 50) -> list[Report]:
        return (
            self.db.query(Report)
            .filter(Report.user_id == user_id)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .limit(max(1, limit))
            .all()
        )

    # =========================================================================
    # IMPACT
    # =========================================================================

    def impact_stats(self) -> ImpactStats:
        """Community totals: reports, collected quantity, points, CO2 offset."""
        reports_submitted = self.db.query(func.count(Report.id)).scalar() or 0

        amounts = (
            self.db.query(Report.amount)
            .filter(Report.status.in_(COLLECTED_STATUSES))
            .all()
        )
        waste_collected = sum(parse_quantity(row.amount) for row in amounts)

        return ImpactStats(
            reports_submitted=reports_submitted,
            waste_collected=round(waste_collected, 1),
            points_earned=self.ledger.total_earned(),
            co2_offset=round(waste_collected * CO2_PER_UNIT, 1),
        )
