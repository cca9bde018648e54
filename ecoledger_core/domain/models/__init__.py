"""Domain models for EcoLedger.

SQLAlchemy ORM models for reports, collection records, the points ledger,
the reward catalog, reward grants and notifications.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# =============================================================================
# ENUMS
# =============================================================================


class ReportStatus(str):
    """Report (collection task) status values."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VERIFIED = "verified"


class LedgerKind(str):
    """Ledger entry kinds."""

    EARNED_REPORT = "earned_report"
    EARNED_COLLECT = "earned_collect"
    REDEEMED = "redeemed"


class NotificationType(str):
    """Notification type tags."""

    REWARD = "reward"
    TASK = "task"
    REDEMPTION = "redemption"


REPORT_STATUSES = (
    ReportStatus.PENDING,
    ReportStatus.IN_PROGRESS,
    ReportStatus.COMPLETED,
    ReportStatus.VERIFIED,
)

LEDGER_KINDS = (
    LedgerKind.EARNED_REPORT,
    LedgerKind.EARNED_COLLECT,
    LedgerKind.REDEEMED,
)

EARNED_KINDS = (LedgerKind.EARNED_REPORT, LedgerKind.EARNED_COLLECT)


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """A reporter and/or collector, created lazily on first sign-in."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    # Relationships
    reports: Mapped[list["Report"]] = relationship(
        back_populates="reporter", foreign_keys="Report.user_id"
    )


class Report(Base):
    """A waste sighting; also the collection task it turns into."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    location: Mapped[str] = mapped_column(Text, nullable=False)
    waste_type: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[str] = mapped_column(String(255), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Oracle classification captured at report time, stored as-is
    verification_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(
        Enum(*REPORT_STATUSES, name="report_status_enum"),
        nullable=False,
        default=ReportStatus.PENDING,
    )
    collector_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    reporter: Mapped["User"] = relationship(
        back_populates="reports", foreign_keys=[user_id]
    )
    collected_waste: Mapped[Optional["CollectedWaste"]] = relationship(
        back_populates="report"
    )

    __table_args__ = (
        Index("idx_reports_status", "status", "created_at"),
        Index("idx_reports_created", "created_at"),
        Index("idx_reports_collector", "collector_id"),
    )


class CollectedWaste(Base):
    """Proof record of a verified collection. Written once, never changed."""

    __tablename__ = "collected_wastes"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("reports.id"), nullable=False, unique=True
    )
    collector_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    collection_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ReportStatus.VERIFIED
    )
    verification_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Relationships
    report: Mapped["Report"] = relationship(back_populates="collected_waste")


class LedgerEntry(Base):
    """Append-only points transaction; the only source of truth for balance."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(
        Enum(*LEDGER_KINDS, name="ledger_kind_enum"), nullable=False
    )
    # Always positive; the sign is implied by kind
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    report_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("reports.id"), nullable=True
    )
    reward_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("rewards.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("report_id", "kind", name="uq_transactions_report_kind"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("idx_transactions_user", "user_id", "created_at"),
    )


class CatalogReward(Base):
    """Something redeemable, with its point cost."""

    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    collection_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("cost > 0", name="ck_rewards_cost_positive"),
        Index("idx_rewards_available", "is_available", "cost"),
    )


class RewardGrant(Base):
    """Points granted for a verified collection.

    Denormalized copy of an ``earned_collect`` ledger entry. Never read for
    balance.
    """

    __tablename__ = "reward_grants"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    report_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("reports.id"), nullable=False, unique=True
    )
    ledger_entry_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("transactions.id"), nullable=False, unique=True
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    __table_args__ = (Index("idx_reward_grants_user", "user_id", "created_at"),)


class Notification(Base):
    """User-facing event; advisory only."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    __table_args__ = (Index("idx_notifications_user_read", "user_id", "is_read"),)
