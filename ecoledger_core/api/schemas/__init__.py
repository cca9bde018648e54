"""API schemas."""

from ecoledger_core.api.schemas.ledger import (
    BalanceResponse,
    LeaderboardResponse,
    LedgerEntryListResponse,
)
from ecoledger_core.api.schemas.notifications import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from ecoledger_core.api.schemas.reports import (
    ReportListResponse,
    ReportResponse,
    SubmitReportRequest,
    TaskListResponse,
    TaskResponse,
    VerifyCollectionRequest,
    VerifyCollectionResponse,
)
from ecoledger_core.api.schemas.rewards import (
    CatalogResponse,
    RedeemRequest,
    RedeemResponse,
    RewardGrantListResponse,
)
from ecoledger_core.api.schemas.stats import ImpactResponse
from ecoledger_core.api.schemas.users import SignInRequest, SignInResponse, UserResponse

__all__ = [
    # Ledger schemas
    "BalanceResponse",
    "LeaderboardResponse",
    "LedgerEntryListResponse",
    # Notification schemas
    "MarkReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
    # Report and task schemas
    "ReportListResponse",
    "ReportResponse",
    "SubmitReportRequest",
    "TaskListResponse",
    "TaskResponse",
    "VerifyCollectionRequest",
    "VerifyCollectionResponse",
    # Reward schemas
    "CatalogResponse",
    "RedeemRequest",
    "RedeemResponse",
    "RewardGrantListResponse",
    # Stats schemas
    "ImpactResponse",
    # User schemas
    "SignInRequest",
    "SignInResponse",
    "UserResponse",
]
