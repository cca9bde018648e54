"""API dependencies for dependency injection."""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ecoledger_core.config import Settings, get_settings
from ecoledger_core.domain.models import User
from ecoledger_core.domain.services.catalog import RewardCatalogService
from ecoledger_core.domain.services.ledger import LedgerService
from ecoledger_core.domain.services.notifications import NotificationService
from ecoledger_core.domain.services.reports import ReportService
from ecoledger_core.domain.services.reward_policy import CollectRewardPolicy
from ecoledger_core.domain.services.tasks import CollectionTaskService
from ecoledger_core.domain.services.users import UserService
from ecoledger_core.domain.services.verification import VerificationGate
from ecoledger_core.infra.db import get_sync_session_factory


def get_db() -> Session:
    """Get a database session; one transaction per request."""
    session_factory = get_sync_session_factory()
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_app_settings(request: Request) -> Settings:
    """Settings installed on the app at startup, else the cached defaults."""
    return getattr(request.app.state, "settings", None) or get_settings()


DBSession = Annotated[Session, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]


def get_current_user_optional(
    db: DBSession,
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> Optional[User]:
    """Resolve the caller from the ``X-User-Id`` header set by the auth gateway."""
    if not x_user_id:
        return None
    try:
        user_id = int(x_user_id)
    except ValueError:
        return None
    return UserService(db).get_user(user_id)


def get_current_user(
    user: Annotated[Optional[User], Depends(get_current_user_optional)],
) -> User:
    """Get the current authenticated user.

    Raises:
        HTTPException: If the caller is not identified.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def get_verification_gate(request: Request) -> VerificationGate:
    """The gate built in the app lifespan.

    Raises:
        HTTPException: 503 if no oracle is configured.
    """
    gate = getattr(request.app.state, "verification_gate", None)
    if gate is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Verification oracle is not configured",
        )
    return gate


def get_user_service(db: DBSession) -> UserService:
    return UserService(db)


def get_ledger_service(db: DBSession) -> LedgerService:
    return LedgerService(db)


def get_notification_service(db: DBSession) -> NotificationService:
    return NotificationService(db)


def get_report_service(db: DBSession, settings: AppSettings) -> ReportService:
    return ReportService(db, report_reward_points=settings.report_reward_points)


def get_reward_policy(request: Request, settings: AppSettings) -> CollectRewardPolicy:
    """Policy installed at startup (it owns the RNG), else one from settings."""
    policy = getattr(request.app.state, "reward_policy", None)
    return policy or CollectRewardPolicy.from_settings(settings)


def get_task_service(
    db: DBSession,
    settings: AppSettings,
    policy: Annotated[CollectRewardPolicy, Depends(get_reward_policy)],
) -> CollectionTaskService:
    return CollectionTaskService(
        db,
        reward_policy=policy,
        confidence_threshold=settings.verification_confidence_threshold,
    )


def get_catalog_service(db: DBSession) -> RewardCatalogService:
    return RewardCatalogService(db)


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserOptional = Annotated[Optional[User], Depends(get_current_user_optional)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
LedgerServiceDep = Annotated[LedgerService, Depends(get_ledger_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]
TaskServiceDep = Annotated[CollectionTaskService, Depends(get_task_service)]
CatalogServiceDep = Annotated[RewardCatalogService, Depends(get_catalog_service)]
VerificationGateDep = Annotated[VerificationGate, Depends(get_verification_gate)]
