"""
Session Controller

Single-threaded reactive core of one interactive session. Holds the current
view, the selected item/owner/chat, and the live store subscriptions that
feed them. Store notifications arrive through the session's EventQueue and
are only applied from `process_events()`.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import uuid

from return_reward.auth.identity import IdentitySession, Principal
from return_reward.backend import Backend
from return_reward.errors import (
    ConfigurationMissing,
    InputInvalid,
    ItemNotFound,
    OwnerProfileUnavailable,
    SelfScanRejected,
    StoreUnavailable,
    TransitionRejected,
)
from return_reward.qr import DEFAULT_QR_SERVICE_URL, DEFAULT_QR_SIZE, qr_download_name, qr_image_url, qr_payload
from return_reward.realtime.feed import Subscription
from return_reward.realtime.queue import EventQueue
from return_reward.schemas.records import ChatRead, ItemRead, MessageRead, ProfileRead
from return_reward.services.chat_directory import chat_id_for
from return_reward.session.notices import Confirmation, Notice, NoticeBoard, Notifier
from return_reward.models.item import ItemStatus
from return_reward.utils.clock import EPOCH_MIN
from return_reward.utils.logger import get_logger

logger = get_logger("return_reward.session")


class View(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AWAITING_IDENTITY = "awaiting-identity"
    NEEDS_PROFILE = "needs-profile"
    DASHBOARD = "dashboard"
    COMPOSING_ITEM = "composing-item"
    VIEWING_ITEM_CODE = "viewing-item-code"
    SCANNING = "scanning"
    VIEWING_OWNER = "viewing-owner"
    CHATTING = "chatting"


# Subscription slots
SELF_PROFILE = "profile:self"
ITEMS = "items"
PROFILES = "profiles"
CHATS = "chats"
MESSAGES = "messages"
DATA_SUBSCRIPTIONS = (ITEMS, PROFILES, CHATS)

BACK_TARGETS = {
    View.COMPOSING_ITEM: View.DASHBOARD,
    View.SCANNING: View.DASHBOARD,
    View.VIEWING_ITEM_CODE: View.DASHBOARD,
    View.VIEWING_OWNER: View.SCANNING,
    View.CHATTING: View.VIEWING_OWNER,
}
DASHBOARD_SOURCES = (View.COMPOSING_ITEM, View.SCANNING, View.VIEWING_ITEM_CODE)
SIGNED_IN_VIEWS = tuple(view for view in View if view != View.UNAUTHENTICATED)


class SessionController:
    """
    Navigation state machine plus subscription lifecycle for one user session.

    All collaborators are injected: the Backend bundle (identity provider and
    the three stores), the Notifier that shows notices, and the EventQueue
    through which store notifications are serialized.
    """

    def __init__(
        self,
        backend: Optional[Backend],
        notifier: Optional[Notifier] = None,
        queue: Optional[EventQueue] = None,
        resume_token: Optional[str] = None,
        configuration_error: Optional[ConfigurationMissing] = None,
        qr_service_url: str = DEFAULT_QR_SERVICE_URL,
        qr_size: int = DEFAULT_QR_SIZE,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.backend = backend
        self.notifier = notifier if notifier is not None else NoticeBoard()
        self.queue = queue if queue is not None else EventQueue()
        self.identity = IdentitySession(backend.identity) if backend else None
        self.qr_service_url = qr_service_url
        self.qr_size = qr_size

        self.view = View.UNAUTHENTICATED
        self.profile: Optional[ProfileRead] = None
        self.items: Dict[str, ItemRead] = {}
        self.profiles: Dict[str, ProfileRead] = {}
        self.chats: Dict[str, ChatRead] = {}
        self.messages: List[MessageRead] = []

        self.selected_item_id: Optional[str] = None
        self.selected_user: Optional[ProfileRead] = None
        self.selected_chat_id: Optional[str] = None
        self.pending_confirmation: Optional[Confirmation] = None
        # Where back navigation from `chatting` leads
        self.chat_origin = View.VIEWING_OWNER

        self._principal: Optional[Principal] = None
        self._selected_item: Optional[ItemRead] = None
        self._subscriptions: Dict[str, Subscription] = {}
        self._data_key: Optional[str] = None
        self._generation = 0

        if backend is None:
            self.configuration_error = configuration_error or ConfigurationMissing([])
            # Shown once, at the entry view
            self.notifier.notify(Notice.from_error("Error", self.configuration_error))
            logger.warning("Session started without backend", session=self.session_id,
                           missing=self.configuration_error.missing)
        else:
            self.configuration_error = None
            if resume_token:
                self._begin_sign_in(resume_token)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self._principal.user_id if self._principal else None

    @property
    def auth_ready(self) -> bool:
        return self.identity is not None and self.identity.ready

    @property
    def active_subscriptions(self) -> List[str]:
        return sorted(key for key, sub in self._subscriptions.items() if sub.active)

    @property
    def my_items(self) -> List[ItemRead]:
        """Own items: missing before returned, newest first within each group."""
        mine = [item for item in self.items.values() if item.owner_id == self.user_id]
        mine.sort(key=lambda item: item.created_at or EPOCH_MIN, reverse=True)
        mine.sort(key=lambda item: 0 if item.status == ItemStatus.MISSING else 1)
        return mine

    @property
    def current_item(self) -> Optional[ItemRead]:
        """The selected item, as last reported by the store when available."""
        if self.selected_item_id is None:
            return None
        return self.items.get(self.selected_item_id) or self._selected_item

    @property
    def current_chat(self) -> Optional[ChatRead]:
        if self.selected_chat_id is None:
            return None
        return self.chats.get(self.selected_chat_id)

    @property
    def chat_list(self) -> List[ChatRead]:
        """Chats the user takes part in, most recently active first."""
        return sorted(self.chats.values(), key=lambda chat: chat.last_activity_at or EPOCH_MIN, reverse=True)

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    def process_events(self) -> int:
        """Apply every queued store notification. Returns how many were processed."""
        return self.queue.drain()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def sign_in(self, token: Optional[str] = None) -> None:
        """Start sign-in. The identity is resolved when events are processed."""
        if self.backend is None:
            raise self.configuration_error
        self._require("sign in", View.UNAUTHENTICATED)
        self._begin_sign_in(token)

    def refresh_identity(self, token: Optional[str]) -> None:
        """
        Apply a new credential for a signed-in session.

        The same principal keeps the current view and subscriptions. A
        different principal resets the session and resolves its profile again.
        """
        self._require("refresh the session", *SIGNED_IN_VIEWS)
        self._generation += 1
        self.queue.post(self._resolve_identity, token, self._generation)

    def _begin_sign_in(self, token: Optional[str]) -> None:
        self._generation += 1
        self._set_view(View.AWAITING_IDENTITY)
        self.queue.post(self._resolve_identity, token, self._generation)

    def _resolve_identity(self, token: Optional[str], generation: int) -> None:
        if generation != self._generation:
            return

        try:
            principal = self.identity.resolve(token)
        except StoreUnavailable as e:
            self.notifier.notify(Notice.from_error("Login Error", e))
            self._reset()
            self._set_view(View.UNAUTHENTICATED)
            return

        if self._principal is not None and principal.user_id == self._principal.user_id:
            self._principal = principal
            return

        if self._principal is not None:
            logger.info("Principal changed", session=self.session_id, previous=self._principal.user_id,
                        principal=principal.user_id)
            self._reset()
            self._set_view(View.AWAITING_IDENTITY)
        self._principal = principal
        logger.info("Identity resolved", session=self.session_id, principal=principal.user_id,
                    anonymous=principal.anonymous)

        self._subscribe(
            SELF_PROFILE,
            lambda: self.backend.profiles.watch(
                principal.user_id,
                self._on_own_profile,
                self._store_error("load your profile"),
                dispatch=self.queue.post,
            ),
        )

    def sign_out(self) -> None:
        if self.view == View.UNAUTHENTICATED:
            return
        self._generation += 1
        self._reset()
        if self.identity is not None:
            self.identity.clear()
        self._set_view(View.UNAUTHENTICATED)

    def _reset(self) -> None:
        """Tear down every subscription and forget all per-principal state."""
        self._cancel_all()
        self._principal = None
        self._data_key = None
        self.profile = None
        self.items = {}
        self.profiles = {}
        self.chats = {}
        self.messages = []
        self._clear_selection()

    def _clear_selection(self) -> None:
        self.selected_item_id = None
        self._selected_item = None
        self.selected_user = None
        self.selected_chat_id = None
        self.chat_origin = View.VIEWING_OWNER
        self.pending_confirmation = None

    # ------------------------------------------------------------------
    # Store notifications
    # ------------------------------------------------------------------

    def _on_own_profile(self, stored: Optional[ProfileRead]) -> None:
        if self._principal is None:
            return
        if stored is None:
            self.profile = ProfileRead.placeholder(self._principal.user_id, self._principal.email)
        else:
            self.profile = stored

        if self.view == View.AWAITING_IDENTITY:
            self._set_view(View.DASHBOARD if self.profile.is_complete else View.NEEDS_PROFILE)

        if self.profile.is_complete and PROFILES in self._subscriptions:
            self.profiles[self.profile.owner_id] = self.profile

        self._sync_data_subscriptions()

    def _sync_data_subscriptions(self) -> None:
        """Keep item/profile/chat subscriptions in line with principal and completion state."""
        complete = bool(self.profile and self.profile.is_complete)
        key = f"{self.user_id}:{complete}"
        if key == self._data_key:
            return
        self._data_key = key

        for slot in DATA_SUBSCRIPTIONS:
            self._cancel(slot)
        if not complete:
            return

        user_id = self.user_id
        post = self.queue.post
        self._subscribe(ITEMS, lambda: self.backend.items.subscribe(
            self._on_items, self._store_error("load items"), dispatch=post))
        self._subscribe(PROFILES, lambda: self.backend.profiles.subscribe(
            self._on_profiles, self._store_error("load users"),
            limit=self.backend.profile_page_size, dispatch=post))
        self._subscribe(CHATS, lambda: self.backend.chats.subscribe(
            user_id, self._on_chats, self._store_error("load chats"), dispatch=post))

    def _on_items(self, snapshot: Dict[str, ItemRead]) -> None:
        self.items = dict(snapshot)

    def _on_profiles(self, page: Dict[str, ProfileRead]) -> None:
        profiles = dict(page)
        # Own entry always reflects the live self subscription
        if self.profile is not None:
            profiles[self.profile.owner_id] = self.profile
        self.profiles = profiles
        if self.selected_user is not None and self.selected_user.owner_id in profiles:
            self.selected_user = profiles[self.selected_user.owner_id]

    def _on_chats(self, snapshot: Dict[str, ChatRead]) -> None:
        self.chats = dict(snapshot)

    def _on_messages(self, messages: List[MessageRead]) -> None:
        self.messages = list(messages)

    def _store_error(self, operation: str) -> Callable[[StoreUnavailable], None]:
        def handle(error: StoreUnavailable) -> None:
            logger.error("Subscription error", session=self.session_id, operation=operation,
                         error=error.message)
            self.notifier.notify(Notice(title="Error", message=f"Failed to {operation}.", code=error.code))
        return handle

    # ------------------------------------------------------------------
    # Subscription bookkeeping
    # ------------------------------------------------------------------

    def _subscribe(self, slot: str, open_subscription: Callable[[], Subscription]) -> None:
        self._cancel(slot)
        self._subscriptions[slot] = open_subscription()
        logger.debug("Subscribed", session=self.session_id, slot=slot)

    def _cancel(self, slot: str) -> None:
        subscription = self._subscriptions.pop(slot, None)
        if subscription is not None:
            subscription.cancel()
            logger.debug("Unsubscribed", session=self.session_id, slot=slot)

    def _cancel_all(self) -> None:
        for slot in list(self._subscriptions):
            self._cancel(slot)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _set_view(self, view: View) -> None:
        previous = self.view
        if previous == view:
            return
        if previous == View.CHATTING:
            self._cancel(MESSAGES)
            self.messages = []
            self.selected_chat_id = None
        if previous == View.VIEWING_OWNER:
            self.pending_confirmation = None
        self.view = view
        logger.info("View transition", session=self.session_id, from_view=previous.value, to_view=view.value)

    def _require(self, action: str, *views: View) -> None:
        if self.view not in views:
            raise TransitionRejected(f"Cannot {action} from the {self.view.value} view.")

    def open_composer(self) -> None:
        self._require("add an item", View.DASHBOARD)
        self._set_view(View.COMPOSING_ITEM)

    def open_scanner(self) -> None:
        self._require("scan an item", View.DASHBOARD)
        self._set_view(View.SCANNING)

    def go_to_dashboard(self) -> None:
        self._require("open the dashboard", *DASHBOARD_SOURCES)
        self._set_view(View.DASHBOARD)

    def back(self) -> View:
        if self.view == View.CHATTING:
            target = self.chat_origin
        else:
            target = BACK_TARGETS.get(self.view)
        if target is None:
            raise TransitionRejected(f"There is nothing to go back to from the {self.view.value} view.")
        self._set_view(target)
        return target

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def complete_profile(self, display_name: str, photo_reference: Optional[str]) -> bool:
        self._require("complete your profile", View.NEEDS_PROFILE)
        name = (display_name or "").strip()
        if not name:
            raise InputInvalid("display_name", "Please enter your name.")
        if not photo_reference:
            raise InputInvalid("photo_reference", "Please add a profile photo.")

        try:
            self.backend.profiles.upsert(
                self.user_id,
                display_name=name,
                photo_reference=photo_reference,
                email=self._principal.email,
                is_complete=True,
            )
        except StoreUnavailable as e:
            logger.error("Profile save failed", session=self.session_id, error=e.message)
            self.notifier.notify(Notice("Error", "Failed to save profile. Please try again.", e.code))
            return False

        self._set_view(View.DASHBOARD)
        return True

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def register_item(self, item_name: str, description: str = "") -> Optional[str]:
        self._require("register an item", View.COMPOSING_ITEM)
        name = (item_name or "").strip()
        if not name:
            raise InputInvalid("item_name", "Item name is required.")
        description = (description or "").strip()

        try:
            item_id = self.backend.items.create(name, description, self.user_id)
        except StoreUnavailable as e:
            logger.error("Item registration failed", session=self.session_id, error=e.message)
            self.notifier.notify(Notice("Error", "Failed to add item. Please try again.", e.code))
            return None

        # Shown until the registry notification carries the stored record
        self._select_item(ItemRead(
            id=item_id,
            item_name=name,
            description=description,
            owner_id=self.user_id,
            status=ItemStatus.MISSING,
        ))
        self._set_view(View.VIEWING_ITEM_CODE)
        return item_id

    def view_item(self, item_id: str) -> ItemRead:
        """Open the QR view of one of the user's own items."""
        self._require("open an item", View.DASHBOARD)
        item = self.items.get(item_id)
        if item is None or item.owner_id != self.user_id:
            raise ItemNotFound(item_id)
        self._select_item(item)
        self._set_view(View.VIEWING_ITEM_CODE)
        return item

    def _select_item(self, item: ItemRead) -> None:
        self.selected_item_id = item.id
        self._selected_item = item

    def qr_for_current_item(self) -> Optional[Dict[str, str]]:
        item = self.current_item
        if item is None:
            return None
        return {
            "payload": qr_payload(item.id),
            "image_url": qr_image_url(item.id, self.qr_service_url, self.qr_size),
            "download_name": qr_download_name(item.item_name),
        }

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def submit_scan(self, identifier: str) -> Optional[ItemRead]:
        """
        Resolve a scanned identifier to an item and its owner.

        Returns None, staying in `scanning` with a notice, when the owner
        lookup itself fails.

        Raises:
            InputInvalid: Identifier is empty after trimming
            ItemNotFound: No item with that identifier
            SelfScanRejected: The item is the user's own (view moves to its QR code)
            OwnerProfileUnavailable: The owner's profile cannot be found
        """
        self._require("scan an item", View.SCANNING)
        item_id = (identifier or "").strip()
        if not item_id:
            raise InputInvalid("identifier", "Please enter an item ID.")

        item = self.items.get(item_id)
        if item is None:
            raise ItemNotFound(item_id)

        if item.owner_id == self.user_id:
            self._select_item(item)
            self._set_view(View.VIEWING_ITEM_CODE)
            raise SelfScanRejected(item)

        owner = self.profiles.get(item.owner_id)
        if owner is None:
            try:
                owner = self.backend.profiles.get_by_principal(item.owner_id)
            except StoreUnavailable as e:
                logger.error("Owner lookup failed", session=self.session_id, item=item.id, error=e.message)
                self.notifier.notify(Notice.from_error("Error", e))
                return None
        if owner is None:
            raise OwnerProfileUnavailable(item)

        self._select_item(item)
        self.selected_user = owner
        self._set_view(View.VIEWING_OWNER)
        return item

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def start_chat(self) -> Optional[str]:
        self._require("contact the owner", View.VIEWING_OWNER)
        item = self.current_item
        if item.owner_id == self.user_id:
            raise TransitionRejected("You cannot start a chat about your own item.")
        if item.status != ItemStatus.MISSING:
            raise TransitionRejected("This item has already been returned.")

        owner_id = item.owner_id
        chat_id = chat_id_for(self.user_id, owner_id)
        try:
            self.backend.chats.upsert(chat_id, [self.user_id, owner_id], item.id)
        except StoreUnavailable as e:
            logger.error("Chat start failed", session=self.session_id, error=e.message)
            self.notifier.notify(Notice("Chat Error", "Failed to start chat. Try again.", e.code))
            return None

        self.chat_origin = View.VIEWING_OWNER
        self._set_view(View.CHATTING)
        self._open_messages(chat_id)
        return chat_id

    def open_chat(self, chat_id: str) -> ChatRead:
        """Open one of the user's existing chats from the dashboard, or switch chats while chatting."""
        self._require("open a chat", View.DASHBOARD, View.CHATTING)
        chat = self.chats.get(chat_id)
        if chat is None:
            raise InputInvalid("chat_id", "You are not part of this chat.")

        if self.view == View.DASHBOARD:
            self.chat_origin = View.DASHBOARD
            self._set_view(View.CHATTING)
        else:
            self.messages = []

        other = chat.other_participant(self.user_id)
        self.selected_user = self.profiles.get(other)
        related = self.items.get(chat.related_item_id) if chat.related_item_id else None
        if related is not None:
            self._select_item(related)
        self._open_messages(chat_id)
        return chat

    def _open_messages(self, chat_id: str) -> None:
        self.selected_chat_id = chat_id
        self._subscribe(MESSAGES, lambda: self.backend.chats.subscribe_messages(
            chat_id, self._on_messages, self._store_error("load messages"), dispatch=self.queue.post))

    def send_message(self, text: str) -> Optional[str]:
        self._require("send a message", View.CHATTING)
        body = (text or "").strip()
        if not body:
            raise InputInvalid("text", "Message cannot be empty.")

        try:
            return self.backend.chats.append_message(self.selected_chat_id, self.user_id, body)
        except StoreUnavailable as e:
            logger.error("Message send failed", session=self.session_id, error=e.message)
            self.notifier.notify(Notice("Error", "Failed to send message.", e.code))
            return None

    # ------------------------------------------------------------------
    # Return confirmation
    # ------------------------------------------------------------------

    def request_return(self) -> Confirmation:
        """Open the yes/no gate in front of marking the selected item returned."""
        self._require("confirm a return", View.VIEWING_OWNER)
        item = self.current_item
        if item.owner_id == self.user_id:
            raise TransitionRejected("Only the finder can confirm a return.")
        if item.status != ItemStatus.MISSING:
            raise TransitionRejected("This item has already been returned.")

        self.pending_confirmation = Confirmation(
            title="Confirm Item Return",
            message=f'Are you sure you want to mark "{item.item_name}" as returned? '
                    'This action will notify the owner.',
            item_id=item.id,
        )
        return self.pending_confirmation

    def respond_to_confirmation(self, accepted: bool) -> bool:
        """Answer the pending confirmation. Returns True if the item was marked returned."""
        confirmation = self.pending_confirmation
        if confirmation is None:
            raise TransitionRejected("There is nothing to confirm.")
        self.pending_confirmation = None
        if not accepted:
            return False

        try:
            self.backend.items.mark_returned(confirmation.item_id)
        except StoreUnavailable as e:
            logger.error("Return confirmation failed", session=self.session_id, error=e.message)
            self.notifier.notify(Notice("Error", "Failed to update item status.", e.code))
            return False

        self.notifier.notify(Notice(
            "Success", "Item marked as returned! Thank you for your honesty.", "item_returned"))
        return True

    # ------------------------------------------------------------------
    # Render model
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Everything the view layer needs to draw the current screen."""
        item = self.current_item
        chat = self.current_chat
        return {
            "view": self.view.value,
            "auth_ready": self.auth_ready,
            "configured": self.backend is not None,
            "user_id": self.user_id,
            "profile": self.profile.model_dump(mode="json") if self.profile else None,
            "my_items": [i.model_dump(mode="json") for i in self.my_items],
            "selected_item": item.model_dump(mode="json") if item else None,
            "qr": self.qr_for_current_item() if self.view == View.VIEWING_ITEM_CODE else None,
            "selected_user": self.selected_user.model_dump(mode="json") if self.selected_user else None,
            "is_owner": bool(item and item.owner_id == self.user_id),
            "chats": [self._chat_entry(c) for c in self.chat_list],
            "chat": chat.model_dump(mode="json") if chat else None,
            "chat_id": self.selected_chat_id,
            "messages": [m.model_dump(mode="json") for m in self.messages],
            "pending_confirmation": self.pending_confirmation.to_dict() if self.pending_confirmation else None,
        }

    def _chat_entry(self, chat: ChatRead) -> Dict[str, Any]:
        other = chat.other_participant(self.user_id)
        profile = self.profiles.get(other)
        entry = chat.model_dump(mode="json")
        entry["other_participant"] = other
        entry["other_name"] = profile.display_name if profile else None
        return entry
