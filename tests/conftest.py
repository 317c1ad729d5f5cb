"""Shared fixtures: an in-memory backend and signed-in sessions."""
import pytest

from return_reward.backend import build_backend
from return_reward.config import Settings
from return_reward.db.config import create_db_engine
from return_reward.realtime.feed import ChangeFeed
from return_reward.services.chat_directory import SqlChatDirectory
from return_reward.services.item_registry import SqlItemRegistry
from return_reward.services.profile_store import SqlProfileStore
from return_reward.session.controller import SessionController, View
from return_reward.session.notices import NoticeBoard

TEST_SECRET = "test-secret-for-return-reward"


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", auth_secret=TEST_SECRET)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def backend(settings, engine):
    return build_backend(settings, engine)


@pytest.fixture
def feed(backend):
    return backend.feed


@pytest.fixture
def profiles(backend) -> SqlProfileStore:
    return backend.profiles


@pytest.fixture
def items(backend) -> SqlItemRegistry:
    return backend.items


@pytest.fixture
def chats(backend) -> SqlChatDirectory:
    return backend.chats


def token_for(backend, user_id, email=None):
    return backend.identity.issue_token(user_id, email)


def new_session(backend, user_id, name=None, photo="data:image/png;base64,AAAA"):
    """Sign a user in and, when a name is given, complete their profile."""
    controller = SessionController(backend, notifier=NoticeBoard())
    controller.sign_in(token_for(backend, user_id, f"{user_id}@example.com"))
    controller.process_events()
    if name is not None and controller.view == View.NEEDS_PROFILE:
        controller.complete_profile(name, photo)
        controller.process_events()
    return controller


@pytest.fixture
def owner(backend):
    return new_session(backend, "u1-owner", "Alice Owner")


@pytest.fixture
def finder(backend):
    return new_session(backend, "u2-finder", "Bob Finder")


@pytest.fixture
def bare_feed():
    return ChangeFeed()
