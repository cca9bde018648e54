"""User directory service.

Users are created lazily the first time the external auth provider signs
them in; only the display name can change afterwards.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ecoledger_core.domain.errors import NotFoundError, ValidationError
from ecoledger_core.domain.models import User
from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)


class UserValidationError(ValidationError):
    """Raised when an email or name is unusable."""

    pass


class UserNotFoundError(NotFoundError):
    """Raised when a user id or email is unknown."""

    pass


def normalize_email(email: str) -> str:
    """Lower-case and strip an email address."""
    return (email or "").strip().lower()


class UserService:
    """Service for user lookup and lazy creation."""

    def __init__(self, db: Session):
        """Initialize the user service.

        Args:
            db: SQLAlchemy database session.
        """
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def require_user(self, user_id: int) -> User:
        """Get a user by ID or raise ``UserNotFoundError``."""
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.email == normalize_email(email))
            .first()
        )

    def get_or_create(self, email: str, name: str) -> tuple[User, bool]:
        """Return the user for ``email``, creating it on first sign-in.

        Args:
            email: Email address asserted by the auth provider.
            name: Display name to use when the user is new.

        Returns:
            Tuple of (User, created).

        Raises:
            UserValidationError: If the email is blank or malformed.
        """
        normalized = normalize_email(email)
        if not normalized or "@" not in normalized:
            raise UserValidationError("A valid email is required")

        existing = self.get_by_email(normalized)
        if existing is not None:
            return existing, False

        display_name = (name or "").strip() or normalized.split("@", 1)[0]
        user = User(email=normalized, name=display_name)
        try:
            with self.db.begin_nested():
                self.db.add(user)
                self.db.flush()
        except IntegrityError:
            # Concurrent first sign-in for the same email won the insert
            existing = self.get_by_email(normalized)
            if existing is None:
                raise
            return existing, False

        logger.info("User created", user_id=user.id)
        return user, True

    def rename(self, user_id: int, name: str) -> User:
        """Change a user's display name."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise UserValidationError("Name must not be empty")

        user = self.require_user(user_id)
        user.name = cleaned
        self.db.flush()
        return user
