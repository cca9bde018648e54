"""Domain services for EcoLedger."""

from ecoledger_core.domain.services.catalog import RewardCatalogService
from ecoledger_core.domain.services.ledger import LedgerService
from ecoledger_core.domain.services.notifications import NotificationService
from ecoledger_core.domain.services.reports import ReportService
from ecoledger_core.domain.services.reward_policy import CollectRewardPolicy
from ecoledger_core.domain.services.tasks import CollectionTaskService
from ecoledger_core.domain.services.users import UserService
from ecoledger_core.domain.services.verification import VerificationGate

__all__ = [
    "CollectRewardPolicy",
    "CollectionTaskService",
    "LedgerService",
    "NotificationService",
    "ReportService",
    "RewardCatalogService",
    "UserService",
    "VerificationGate",
]
