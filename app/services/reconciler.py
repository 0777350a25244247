"""
User reconciliation: map a verified provider profile to the canonical local user.

Matching runs through an ordered list of strategies (Google ID, then email);
the first match is updated in place, otherwise a new row is inserted.
Concurrent reconciliations of the same identity share a single in-flight
operation so a brand-new user is inserted exactly once per process.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Hashable, Optional, Sequence, TypeVar

from starlette.concurrency import run_in_threadpool

from app.models.user import User
from app.schemas.user import ProviderProfile
from app.services.exceptions import DomainNotAllowedError, PersistenceError, ReconciliationError
from app.services.identity import is_allowed_domain
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightRegistry:
    """
    Keyed map from an identity key to the in-progress reconciliation.

    Process-local: it collapses duplicate work inside one process only.
    Across processes the unique constraints on ``users.email`` and
    ``users.google_id`` remain the source of truth.
    """

    def __init__(self, grace_seconds: float = 5.0):
        """
        Args:
            grace_seconds: How long a finished entry keeps answering callers
                with the same key. Zero releases it as soon as it completes.
        """
        self.grace_seconds = grace_seconds
        self._pending: dict[Hashable, asyncio.Future] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def get_or_start(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Await the operation registered under ``key``, starting it if absent.

        Followers observe the leader's outcome, result or exception. The
        operation is shielded, so a caller going away does not cancel it.
        """
        pending = self._pending.get(key)
        if pending is not None:
            logger.info(f"Reconciliation already in progress for {key}")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(factory())
        self._pending[key] = task
        task.add_done_callback(lambda done: self._schedule_release(key, done))
        return await asyncio.shield(task)

    def _schedule_release(self, key: Hashable, task: asyncio.Future) -> None:
        if self.grace_seconds <= 0:
            self._release(key, task)
        else:
            task.get_loop().call_later(self.grace_seconds, self._release, key, task)

    def _release(self, key: Hashable, task: asyncio.Future) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]


class UserMatcher:
    """A strategy that locates an existing user for a profile and refreshes it."""

    name = "base"

    def find(self, store: UserService, profile: ProviderProfile) -> Optional[User]:
        raise NotImplementedError

    def update(self, store: UserService, profile: ProviderProfile, now: datetime) -> Optional[User]:
        raise NotImplementedError


class GoogleIdMatcher(UserMatcher):
    """Match on the linked Google account ID."""

    name = "google_id"

    def find(self, store: UserService, profile: ProviderProfile) -> Optional[User]:
        if not profile.id:
            return None
        return store.get_user_by_google_id(profile.id)

    def update(self, store: UserService, profile: ProviderProfile, now: datetime) -> Optional[User]:
        return store.update_user_by_google_id(
            profile.id,
            name=profile.name,
            avatar=profile.picture,
            last_login=now,
        )


class EmailMatcher(UserMatcher):
    """Match on email and link the Google account ID to the existing row."""

    name = "email"

    def find(self, store: UserService, profile: ProviderProfile) -> Optional[User]:
        return store.get_user_by_email(profile.email)

    def update(self, store: UserService, profile: ProviderProfile, now: datetime) -> Optional[User]:
        fields = {"name": profile.name, "avatar": profile.picture, "last_login": now}
        if profile.id:
            fields["google_id"] = profile.id
        return store.update_user_by_email(profile.email, **fields)


DEFAULT_MATCHERS: tuple[UserMatcher, ...] = (GoogleIdMatcher(), EmailMatcher())


class UserReconciler:
    """Create-or-update of local users from provider profiles."""

    def __init__(
        self,
        store: UserService,
        registry: InFlightRegistry,
        allowed_domain: str,
        matchers: Sequence[UserMatcher] = DEFAULT_MATCHERS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.registry = registry
        self.allowed_domain = allowed_domain
        self.matchers = tuple(matchers)
        self.clock = clock

    async def reconcile(self, profile: ProviderProfile) -> User:
        """
        Find or create the canonical user for ``profile``.

        Raises:
            DomainNotAllowedError: If the email is outside the allowed domain
            ReconciliationError: If a persistence step fails
        """
        return await self.registry.get_or_start(
            profile.identity_key,
            lambda: self._reconcile(profile),
        )

    async def find_existing(self, profile: ProviderProfile) -> Optional[User]:
        """Look the profile up with the matchers without writing anything."""
        try:
            for matcher in self.matchers:
                user = await run_in_threadpool(matcher.find, self.store, profile)
                if user is not None:
                    return user
        except PersistenceError as e:
            raise ReconciliationError(e.message) from e
        return None

    async def _reconcile(self, profile: ProviderProfile) -> User:
        if not is_allowed_domain(profile.email, self.allowed_domain):
            raise DomainNotAllowedError(profile.email, self.allowed_domain)

        now = self.clock()
        try:
            for matcher in self.matchers:
                existing = await run_in_threadpool(matcher.find, self.store, profile)
                if existing is None:
                    continue

                if matcher.name == "email" and profile.id and existing.google_id not in (None, profile.id):
                    logger.warning(f"Relinking user {existing.id} to a different Google account")

                user = await run_in_threadpool(matcher.update, self.store, profile, now)
                if user is None:
                    raise ReconciliationError(f"user {existing.id} disappeared during update")
                logger.info(f"Updated user {user.id} matched by {matcher.name}")
                return user

            return await run_in_threadpool(
                self.store.create_user,
                email=profile.email,
                google_id=profile.id,
                name=profile.name,
                avatar=profile.picture,
                last_login=now,
            )
        except PersistenceError as e:
            logger.error(f"Reconciliation failed for {profile.email}: {e.message}")
            raise ReconciliationError(e.message) from e
