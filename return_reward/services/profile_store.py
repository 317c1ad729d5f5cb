"""
Profile Store

One profile per principal. Reads are point lookups or a bounded live page;
writes are merges that keep every field not named in the write.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
import logging

from sqlmodel import select

from return_reward.errors import InputInvalid
from return_reward.models.profile import Profile
from return_reward.realtime.feed import Dispatch, Subscription
from return_reward.schemas.records import ProfileRead
from return_reward.services.base import SqlStore
from return_reward.utils.clock import utc_now

logger = logging.getLogger(__name__)

PROFILE_PAGE_SIZE = 50
PROFILE_FIELDS = ("display_name", "photo_reference", "email", "is_complete")

ProfilePage = Dict[str, ProfileRead]


class ProfileStore(ABC):
    """Typed access to profile documents."""

    @abstractmethod
    def get_by_principal(self, owner_id: str) -> Optional[ProfileRead]:
        """Point read. Returns None when the principal has no stored profile."""

    @abstractmethod
    def subscribe(
        self,
        on_change: Callable[[ProfilePage], None],
        on_error: Optional[Callable] = None,
        limit: int = PROFILE_PAGE_SIZE,
        dispatch: Optional[Dispatch] = None,
    ) -> Subscription:
        """Live bounded page of profiles keyed by owner."""

    @abstractmethod
    def watch(
        self,
        owner_id: str,
        on_change: Callable[[Optional[ProfileRead]], None],
        on_error: Optional[Callable] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> Subscription:
        """Live view of a single principal's profile (None while absent)."""

    @abstractmethod
    def upsert(self, owner_id: str, **fields: Any) -> None:
        """Merge write."""


class SqlProfileStore(SqlStore, ProfileStore):

    def get_by_principal(self, owner_id: str) -> Optional[ProfileRead]:
        with self._session("fetch profile") as session:
            profile = session.get(Profile, owner_id)
            return ProfileRead.model_validate(profile) if profile else None

    def _page(self, limit: int) -> ProfilePage:
        with self._session("load profiles") as session:
            statement = select(Profile).order_by(Profile.created_at).limit(limit)
            return {
                profile.owner_id: ProfileRead.model_validate(profile)
                for profile in session.exec(statement).all()
            }

    def subscribe(self, on_change, on_error=None, limit=PROFILE_PAGE_SIZE, dispatch=None) -> Subscription:
        return self.feed.listen("profiles", lambda: self._page(limit), on_change, on_error, dispatch)

    def watch(self, owner_id, on_change, on_error=None, dispatch=None) -> Subscription:
        return self.feed.listen(
            f"profile:{owner_id}", lambda: self.get_by_principal(owner_id), on_change, on_error, dispatch
        )

    def upsert(self, owner_id: str, **fields: Any) -> None:
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise InputInvalid(sorted(unknown)[0], f"Unknown profile fields: {', '.join(sorted(unknown))}")

        with self._session("save profile") as session:
            profile = session.get(Profile, owner_id)
            if profile is None:
                profile = Profile(owner_id=owner_id)
                session.add(profile)
            for name, value in fields.items():
                setattr(profile, name, value)
            profile.updated_at = utc_now()
            session.commit()

        logger.info(f"Profile saved for {owner_id}: {sorted(fields)}")
        self.feed.publish("profiles", f"profile:{owner_id}")
