"""Reward catalog and redemption.

The catalog lists redeemable rewards; it never holds balances. Redemption
appends a ``redeemed`` ledger entry after re-reading the balance while the
user's row is locked, so concurrent redemptions for one user are applied
one after the other and cannot both spend the same points.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ecoledger_core.domain.errors import ConflictError, NotFoundError, ValidationError
from ecoledger_core.domain.models import (
    CatalogReward,
    LedgerEntry,
    LedgerKind,
    NotificationType,
    RewardGrant,
    User,
)
from ecoledger_core.domain.services.ledger import LedgerService, validate_amount
from ecoledger_core.domain.services.notifications import NotificationService
from ecoledger_core.domain.services.users import UserNotFoundError
from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)

# Catalog id of the synthetic entry that stands for the caller's own points
POINTS_ENTRY_ID = 0
POINTS_ENTRY_NAME = "Your Points"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class CatalogError(Exception):
    """Mixin base for catalog failures."""

    pass


class InsufficientBalanceError(CatalogError, ConflictError):
    """Raised when a redemption costs more than the user's balance."""

    def __init__(self, balance: int, cost: int):
        super().__init__(f"Balance {balance} is lower than cost {cost}")
        self.balance = balance
        self.cost = cost


class RewardNotFoundError(CatalogError, NotFoundError):
    """Raised when a reward does not exist or is not available."""

    pass


class RewardCostMismatchError(CatalogError, ValidationError):
    """Raised when the requested cost differs from the catalog cost."""

    pass


class CatalogValidationError(CatalogError, ValidationError):
    """Raised when catalog input is unusable."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class CatalogItem:
    """One row of the catalog as shown to a user."""

    id: int
    name: str
    cost: int
    description: Optional[str] = None
    collection_info: Optional[str] = None


# =============================================================================
# SERVICE
# =============================================================================


class RewardCatalogService:
    """Service for the reward catalog, redemptions and the grant log."""

    def __init__(self, db: Session):
        """Initialize the catalog service.

        Args:
            db: SQLAlchemy database session.
        """
        self.db = db
        self.ledger = LedgerService(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # CATALOG
    # =========================================================================

    def list_available(self, user_id: int) -> list[CatalogItem]:
        """The caller's points entry followed by available catalog rewards."""
        items = [
            CatalogItem(
                id=POINTS_ENTRY_ID,
                name=POINTS_ENTRY_NAME,
                cost=self.ledger.balance(user_id),
                description="Redeem your earned points",
                collection_info="Points earned from reporting and collecting waste",
            )
        ]

        rewards = (
            self.db.query(CatalogReward)
            .filter(CatalogReward.is_available.is_(True))
            .order_by(CatalogReward.cost.asc(), CatalogReward.id.asc())
            .all()
        )
        items.extend(
            CatalogItem(
                id=reward.id,
                name=reward.name,
                cost=reward.cost,
                description=reward.description,
                collection_info=reward.collection_info,
            )
            for reward in rewards
        )
        return items

    def get_reward(self, reward_id: int) -> Optional[CatalogReward]:
        return self.db.query(CatalogReward).filter(CatalogReward.id == reward_id).first()

    def create_reward(
        self,
        name: str,
        cost: int,
        description: Optional[str] = None,
        collection_info: Optional[str] = None,
        is_available: bool = True,
    ) -> CatalogReward:
        """Add a reward to the catalog."""
        if not (name or "").strip():
            raise CatalogValidationError("Reward name must not be empty")
        validate_amount(cost)

        reward = CatalogReward(
            name=name.strip(),
            cost=cost,
            description=description,
            collection_info=collection_info,
            is_available=is_available,
        )
        self.db.add(reward)
        self.db.flush()
        return reward

    def set_availability(self, reward_id: int, is_available: bool) -> CatalogReward:
        reward = self.get_reward(reward_id)
        if reward is None:
            raise RewardNotFoundError(f"Reward {reward_id} not found")
        reward.is_available = is_available
        self.db.flush()
        return reward

    # =========================================================================
    # REDEEM
    # =========================================================================

    def redeem(self, user_id: int, reward_id: int, cost: int) -> LedgerEntry:
        """Spend ``cost`` points on a reward.

        ``reward_id`` 0 redeems raw points; any other id must be an available
        catalog reward whose cost equals ``cost``.

        Raises:
            InvalidAmountError: If cost is not a positive integer.
            UserNotFoundError: If the user does not exist.
            RewardNotFoundError: If the reward is unknown or unavailable.
            RewardCostMismatchError: If cost differs from the catalog cost.
            InsufficientBalanceError: If the balance is lower than cost.
        """
        validate_amount(cost)

        reward = None
        if reward_id != POINTS_ENTRY_ID:
            reward = self.get_reward(reward_id)
            if reward is None or not reward.is_available:
                raise RewardNotFoundError(f"Reward {reward_id} is not available")
            if reward.cost != cost:
                raise RewardCostMismatchError(
                    f"Reward {reward_id} costs {reward.cost}, not {cost}"
                )

        # Serializes redemptions per user until the transaction ends. The
        # balance read below must see the previous holder's commit, which
        # needs READ COMMITTED on InnoDB (see infra.db.engine_options).
        user = (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .first()
        )
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")

        balance = self.ledger.balance(user_id)
        if balance < cost:
            logger.warning(
                "Redemption rejected",
                user_id=user_id,
                reward_id=reward_id,
                balance=balance,
                cost=cost,
            )
            raise InsufficientBalanceError(balance=balance, cost=cost)

        description = (
            f"Redeemed {reward.name}" if reward is not None else f"Redeemed {cost} points"
        )
        entry = self.ledger.append(
            user_id=user_id,
            kind=LedgerKind.REDEEMED,
            amount=cost,
            description=description,
            reward_id=reward.id if reward is not None else None,
        )

        logger.info("Points redeemed", user_id=user_id, reward_id=reward_id, cost=cost)
        self.notifications.notify_safely(
            user_id,
            f"You redeemed {cost} points.",
            NotificationType.REDEMPTION,
        )
        return entry

    # =========================================================================
    # GRANTS
    # =========================================================================

    def list_grants(self, user_id: int, limit: int = 50) -> list[RewardGrant]:
        """Collection reward grants for a user, newest first."""
        return (
            self.db.query(RewardGrant)
            .filter(RewardGrant.user_id == user_id)
            .order_by(RewardGrant.created_at.desc(), RewardGrant.id.desc())
            .limit(max(1, limit))
            .all()
        )
