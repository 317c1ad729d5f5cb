"""
Chat Directory

Two-party chats keyed by the sorted participant pair, and their
append-only message sequences.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import or_, select

from return_reward.errors import InputInvalid, StoreUnavailable
from return_reward.models.chat import Chat
from return_reward.models.message import Message
from return_reward.realtime.feed import Dispatch, Subscription
from return_reward.schemas.records import ChatRead, MessageRead
from return_reward.services.base import SqlStore
from return_reward.utils.clock import utc_now

logger = logging.getLogger(__name__)

CHAT_ID_SEPARATOR = "_"

ChatSnapshot = Dict[str, ChatRead]


def chat_id_for(principal_a: str, principal_b: str) -> str:
    """Deterministic chat id: both principals sorted and joined."""
    return CHAT_ID_SEPARATOR.join(sorted([principal_a, principal_b]))


class ChatDirectory(ABC):

    @abstractmethod
    def upsert(self, chat_id: str, participants: Sequence[str], related_item_id: Optional[str]) -> None:
        """Create the chat if absent, otherwise refresh `last_activity_at` and `related_item_id`."""

    @abstractmethod
    def subscribe(
        self,
        principal: str,
        on_change: Callable[[ChatSnapshot], None],
        on_error: Optional[Callable] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> Subscription:
        """Live view of the chats the principal participates in."""

    @abstractmethod
    def append_message(self, chat_id: str, sender_id: str, text: str) -> str:
        """Append a message with a server-assigned timestamp. Returns the message id."""

    @abstractmethod
    def subscribe_messages(
        self,
        chat_id: str,
        on_change: Callable[[List[MessageRead]], None],
        on_error: Optional[Callable] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> Subscription:
        """Live ordered (oldest first) message sequence of one chat."""


class SqlChatDirectory(SqlStore, ChatDirectory):

    def upsert(self, chat_id: str, participants: Sequence[str], related_item_id: Optional[str]) -> None:
        pair = sorted(set(participants))
        if len(pair) != 2:
            raise InputInvalid("participants", "A chat needs exactly two different participants.")
        if chat_id != chat_id_for(*pair):
            raise InputInvalid("chat_id", f"Chat id {chat_id} does not match its participants.")

        try:
            self._merge_chat(chat_id, pair, related_item_id)
        except StoreUnavailable as e:
            if not isinstance(e.cause, IntegrityError):
                raise
            # Someone else created it between our read and insert; merge into theirs
            logger.info(f"Chat {chat_id} created concurrently; merging")
            self._merge_chat(chat_id, pair, related_item_id)

        self.feed.publish("chats")

    def _merge_chat(self, chat_id: str, pair: List[str], related_item_id: Optional[str]) -> None:
        now = utc_now()
        with self._session("start chat") as session:
            chat = session.get(Chat, chat_id)
            if chat is None:
                chat = Chat(
                    id=chat_id,
                    participant_a=pair[0],
                    participant_b=pair[1],
                    related_item_id=related_item_id,
                    last_activity_at=now,
                    created_at=now,
                )
                session.add(chat)
                logger.info(f"Chat {chat_id} created")
            else:
                chat.last_activity_at = now
                if related_item_id is not None:
                    chat.related_item_id = related_item_id
            session.commit()

    def _chats_for(self, principal: str) -> ChatSnapshot:
        with self._session("load chats") as session:
            statement = select(Chat).where(
                or_(Chat.participant_a == principal, Chat.participant_b == principal)
            )
            return {chat.id: ChatRead.model_validate(chat) for chat in session.exec(statement).all()}

    def subscribe(self, principal, on_change, on_error=None, dispatch=None) -> Subscription:
        return self.feed.listen("chats", lambda: self._chats_for(principal), on_change, on_error, dispatch)

    def append_message(self, chat_id: str, sender_id: str, text: str) -> str:
        if not text or not text.strip():
            raise InputInvalid("text", "Message text cannot be empty.")

        with self._session("send message") as session:
            chat = session.get(Chat, chat_id)
            if chat is None or sender_id not in (chat.participant_a, chat.participant_b):
                raise StoreUnavailable(
                    "send message", message="You do not have permission to post in this chat."
                )
            message = Message(chat_id=chat_id, sender_id=sender_id, text=text, timestamp=utc_now())
            session.add(message)
            chat.last_activity_at = message.timestamp
            session.commit()
            message_id = message.id

        self.feed.publish(f"messages:{chat_id}", "chats")
        return message_id

    def _messages(self, chat_id: str) -> List[MessageRead]:
        with self._session("load messages") as session:
            statement = (
                select(Message)
                .where(Message.chat_id == chat_id)
                .order_by(Message.timestamp, Message.sequence)
            )
            return [MessageRead.model_validate(message) for message in session.exec(statement).all()]

    def subscribe_messages(self, chat_id, on_change, on_error=None, dispatch=None) -> Subscription:
        return self.feed.listen(f"messages:{chat_id}", lambda: self._messages(chat_id), on_change, on_error, dispatch)
