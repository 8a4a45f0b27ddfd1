import random

import pytest

from party.logic.engine import RuleContext
from party.logic.settings import GameSettings
from party.messaging.router import MessageRouter
from party.server.app import create_app
from party.server.settings import PartyServerSettings
from party.session.manager import SessionManager
from party.tests.helpers import FakeClock, make_content
from party.tests.mocks import MockConnection


@pytest.fixture
def settings():
    return GameSettings()


@pytest.fixture
def content():
    return make_content()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def ctx(settings, content, rng, clock):
    return RuleContext(settings=settings, content=content, rng=rng, clock=clock)


@pytest.fixture
def session_manager(settings, content, rng, clock):
    return SessionManager(content, settings, rng=rng, clock=clock)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return PartyServerSettings(cors_origins=["http://localhost:3000"])


@pytest.fixture
def app(server_settings, session_manager, message_router):
    return create_app(
        settings=server_settings,
        session_manager=session_manager,
        message_router=message_router,
    )
