"""Item registry: shared collection of registered items."""
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
import logging

from sqlmodel import select

from return_reward.errors import InputInvalid, StoreUnavailable, TransitionRejected
from return_reward.models.item import Item, ItemStatus
from return_reward.realtime.feed import Dispatch, Subscription
from return_reward.schemas.records import ItemRead
from return_reward.services.base import SqlStore
from return_reward.utils.clock import utc_now

logger = logging.getLogger(__name__)

ItemSnapshot = Dict[str, ItemRead]


class ItemRegistry(ABC):
    """Items are readable by every principal and never deleted."""

    @abstractmethod
    def create(self, item_name: str, description: Optional[str], owner_id: str) -> str:
        """Register a new item with status `missing`. Returns the store-assigned id."""

    @abstractmethod
    def get(self, item_id: str) -> Optional[ItemRead]:
        """Point read."""

    @abstractmethod
    def subscribe(
        self,
        on_change: Callable[[ItemSnapshot], None],
        on_error: Optional[Callable] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> Subscription:
        """Live view of the full collection keyed by id, unfiltered."""

    @abstractmethod
    def set_status(self, item_id: str, status: ItemStatus) -> None:
        """Merge write of the status field. Only missing -> returned changes anything."""

    def mark_returned(self, item_id: str) -> None:
        self.set_status(item_id, ItemStatus.RETURNED)


class SqlItemRegistry(SqlStore, ItemRegistry):

    def create(self, item_name: str, description: Optional[str], owner_id: str) -> str:
        if not item_name or not item_name.strip():
            raise InputInvalid("item_name", "Item name is required.")

        item = Item(
            item_name=item_name.strip(),
            description=(description or "").strip(),
            owner_id=owner_id,
            status=ItemStatus.MISSING.value,
            created_at=utc_now(),
        )
        with self._session("add item") as session:
            session.add(item)
            session.commit()
            item_id = item.id

        logger.info(f"Item {item_id} registered by {owner_id}")
        self.feed.publish("items")
        return item_id

    def get(self, item_id: str) -> Optional[ItemRead]:
        with self._session("fetch item") as session:
            item = session.get(Item, item_id)
            return ItemRead.model_validate(item) if item else None

    def _snapshot(self) -> ItemSnapshot:
        with self._session("load items") as session:
            return {
                item.id: ItemRead.model_validate(item)
                for item in session.exec(select(Item)).all()
            }

    def subscribe(self, on_change, on_error=None, dispatch=None) -> Subscription:
        return self.feed.listen("items", self._snapshot, on_change, on_error, dispatch)

    def set_status(self, item_id: str, status: ItemStatus) -> None:
        status = ItemStatus(status)
        with self._session("update item status") as session:
            item = session.get(Item, item_id)
            if item is None:
                raise StoreUnavailable("update item status", message=f"Item {item_id} does not exist.")
            if item.status == status.value:
                logger.info(f"Item {item_id} already {status.value}; nothing to write")
                return
            if status == ItemStatus.MISSING:
                raise TransitionRejected("A returned item cannot be marked missing again.")
            item.status = status.value
            session.commit()

        logger.info(f"Item {item_id} marked {status.value}")
        self.feed.publish("items")
