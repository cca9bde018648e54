"""Points ledger service for EcoLedger.

Provides append-only transaction recording and derived balances.
Entries are never updated or deleted; a user's balance is always the
aggregate of their entries (earned kinds add, ``redeemed`` subtracts),
floored at zero. No balance counter is stored anywhere.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ecoledger_core.domain.errors import ValidationError
from ecoledger_core.domain.models import (
    EARNED_KINDS,
    LEDGER_KINDS,
    LedgerEntry,
    LedgerKind,
    User,
)
from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)

# Default number of entries returned by recent_entries
DEFAULT_RECENT_LIMIT = 10

# Hard cap for recent_entries and leaderboard
MAX_LIMIT = 100


# =============================================================================
# EXCEPTIONS
# =============================================================================


class LedgerError(ValidationError):
    """Base exception for rejected ledger writes."""

    pass


class InvalidAmountError(LedgerError):
    """Raised when an amount is not a positive integer."""

    pass


class InvalidLedgerKindError(LedgerError):
    """Raised when a ledger kind is unknown."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LedgerTotals:
    """Aggregates for one user, read in a single statement."""

    earned: int
    redeemed: int

    @property
    def balance(self) -> int:
        return max(self.earned - self.redeemed, 0)


@dataclass
class LeaderboardRow:
    """One leaderboard position."""

    user_id: int
    user_name: str
    points: int


def validate_amount(amount: object) -> int:
    """Return ``amount`` if it is a positive int, else raise InvalidAmountError."""
    # bool is an int subclass; True must not count as one point
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"amount must be a positive integer, got {amount!r}")
    if amount <= 0:
        raise InvalidAmountError(f"amount must be a positive integer, got {amount}")
    return amount


def _signed_amount():
    """SQL expression: amount for earned kinds, -amount for redemptions."""
    return case(
        (LedgerEntry.kind == LedgerKind.REDEEMED, -LedgerEntry.amount),
        else_=LedgerEntry.amount,
    )


# =============================================================================
# SERVICE
# =============================================================================


class LedgerService:
    """Service for ledger operations."""

    def __init__(self, db: Session):
        """Initialize the ledger service.

        Args:
            db: SQLAlchemy database session.
        """
        self.db = db

    def append(
        self,
        user_id: int,
        kind: str,
        amount: int,
        description: str,
        report_id: Optional[int] = None,
        reward_id: Optional[int] = None,
    ) -> LedgerEntry:
        """Append a ledger entry.

        Args:
            user_id: The user whose points change.
            kind: One of earned_report, earned_collect, redeemed.
            amount: Positive number of points; the sign comes from ``kind``.
            description: Free-text description shown to the user.
            report_id: Report that caused the entry, if any.
            reward_id: Catalog reward redeemed, if any.

        Returns:
            The flushed LedgerEntry.

        Raises:
            InvalidAmountError: If amount is not a positive integer.
            InvalidLedgerKindError: If kind is unknown.
        """
        validate_amount(amount)
        if kind not in LEDGER_KINDS:
            raise InvalidLedgerKindError(
                f"kind must be one of {LEDGER_KINDS}, got '{kind}'"
            )

        entry = LedgerEntry(
            user_id=user_id,
            kind=kind,
            amount=amount,
            description=description or "",
            report_id=report_id,
            reward_id=reward_id,
        )
        self.db.add(entry)
        self.db.flush()

        logger.info(
            "Ledger entry appended",
            user_id=user_id,
            entry_id=entry.id,
            kind=kind,
            points=amount,
        )
        return entry

    def totals(self, user_id: int) -> LedgerTotals:
        """Earned and redeemed sums for a user, from one aggregate query."""
        earned_sum = func.coalesce(
            func.sum(
                case(
                    (LedgerEntry.kind.in_(EARNED_KINDS), LedgerEntry.amount),
                    else_=0,
                )
            ),
            0,
        )
        redeemed_sum = func.coalesce(
            func.sum(
                case(
                    (LedgerEntry.kind == LedgerKind.REDEEMED, LedgerEntry.amount),
                    else_=0,
                )
            ),
            0,
        )
        earned, redeemed = (
            self.db.query(earned_sum, redeemed_sum)
            .filter(LedgerEntry.user_id == user_id)
            .one()
        )
        return LedgerTotals(earned=int(earned), redeemed=int(redeemed))

    def balance(self, user_id: int) -> int:
        """Current balance: sum of earned minus sum of redeemed, floored at 0."""
        raw = (
            self.db.query(func.coalesce(func.sum(_signed_amount()), 0))
            .filter(LedgerEntry.user_id == user_id)
            .scalar()
        )
        return max(int(raw or 0), 0)

    def recent_entries(
        self, user_id: int, limit: int = DEFAULT_RECENT_LIMIT
    ) -> Iterator[LedgerEntry]:
        """Yield a user's most recent entries, newest first.

        The view is finite and bounded by ``limit``; call again to restart it.
        """
        limit = max(1, min(limit, MAX_LIMIT))
        query = (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(limit)
        )
        for entry in query:
            yield entry

    def count_entries(self, user_id: int, kind: Optional[str] = None) -> int:
        query = self.db.query(func.count(LedgerEntry.id)).filter(
            LedgerEntry.user_id == user_id
        )
        if kind is not None:
            query = query.filter(LedgerEntry.kind == kind)
        return query.scalar() or 0

    def entries_for_report(self, report_id: int) -> list[LedgerEntry]:
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.report_id == report_id)
            .order_by(LedgerEntry.id.asc())
            .all()
        )

    def total_earned(self) -> int:
        """Sum of every earned entry across all users."""
        total = (
            self.db.query(func.coalesce(func.sum(LedgerEntry.amount), 0))
            .filter(LedgerEntry.kind.in_(EARNED_KINDS))
            .scalar()
        )
        return int(total or 0)

    def leaderboard(self, limit: int = 10) -> list[LeaderboardRow]:
        """Users ranked by balance, highest first.

        Users without ledger entries are omitted. Ties are broken by user id.
        """
        limit = max(1, min(limit, MAX_LIMIT))
        points = func.sum(_signed_amount()).label("points")
        rows = (
            self.db.query(User.id, User.name, points)
            .join(LedgerEntry, LedgerEntry.user_id == User.id)
            .group_by(User.id, User.name)
            .order_by(points.desc(), User.id.asc())
            .limit(limit)
            .all()
        )
        return [
            LeaderboardRow(
                user_id=row.id,
                user_name=row.name,
                points=max(int(row.points or 0), 0),
            )
            for row in rows
        ]
