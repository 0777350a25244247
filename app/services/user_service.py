"""User store adapter: keyed lookups and writes against the users table."""

import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.user import User
from app.services.exceptions import PersistenceError, UserNotFoundError

logger = logging.getLogger(__name__)

# Columns callers may write through the update helpers
UPDATABLE_FIELDS = frozenset({"name", "avatar", "google_id", "is_active", "last_login"})


class UserService:
    """Service for user persistence, keyed by internal ID, Google ID or email."""

    def __init__(self, db: Session):
        """
        Initialize the user service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Get user by internal ID.

        Args:
            user_id: User ID

        Returns:
            User instance or None
        """
        return self.db.get(User, user_id)

    def get_user_by_google_id(self, google_id: str) -> Optional[User]:
        """
        Get user by linked Google account ID.

        Args:
            google_id: Google account ID

        Returns:
            User instance or None
        """
        return self.db.scalars(select(User).where(User.google_id == google_id).limit(1)).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email.

        Args:
            email: User email

        Returns:
            User instance or None
        """
        return self.db.scalars(
            select(User).where(func.lower(User.email) == email.lower()).limit(1)
        ).first()

    def create_user(
        self,
        email: str,
        google_id: Optional[str] = None,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
        **fields: Any,
    ) -> User:
        """
        Insert a new user row.

        Args:
            email: User email (unique)
            google_id: Google account ID (unique when present)
            name: Display name
            avatar: Avatar URL
            **fields: Additional column values (e.g. last_login)

        Returns:
            Created User instance

        Raises:
            PersistenceError: If the insert fails (including unique violations)
        """
        user = User(email=email, google_id=google_id, name=name, avatar=avatar, **fields)
        self.db.add(user)
        self._commit(f"create user {email}")
        self.db.refresh(user)

        logger.info(f"Created user {user.id} with email {user.email}")
        return user

    def update_user_by_google_id(self, google_id: str, **fields: Any) -> Optional[User]:
        """Update the user linked to ``google_id``. Returns None if absent."""
        return self._apply(self.get_user_by_google_id(google_id), fields)

    def update_user_by_email(self, email: str, **fields: Any) -> Optional[User]:
        """Update the user owning ``email``. Returns None if absent."""
        return self._apply(self.get_user_by_email(email), fields)

    def update_user(self, user_id: int, **fields: Any) -> User:
        """
        Update a user by internal ID.

        Raises:
            UserNotFoundError: If user doesn't exist
            PersistenceError: If the update fails
        """
        user = self._apply(self.get_user_by_id(user_id), fields)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def deactivate_user(self, user_id: int) -> User:
        """Mark a user inactive. Users are never hard-deleted."""
        user = self.update_user(user_id, is_active=False)
        logger.info(f"Deactivated user {user_id}")
        return user

    def count_users(self) -> int:
        """Return the number of user rows."""
        return self.db.scalar(select(func.count()).select_from(User)) or 0

    def _apply(self, user: Optional[User], fields: dict[str, Any]) -> Optional[User]:
        if user is None:
            return None

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")

        for key, value in fields.items():
            setattr(user, key, value)

        self._commit(f"update user {user.id}")
        self.db.refresh(user)
        return user

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise PersistenceError(f"Failed to {action}: {e.__class__.__name__}") from e
