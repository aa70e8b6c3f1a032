"""HTTP fixtures: the app served from the test's own transaction."""

import pytest
from fastapi.testclient import TestClient

from trade_api import create_app
from trade_config import TradeConfig

from tests.conftest import TEST_SECRET


@pytest.fixture
def api_config() -> TradeConfig:
    return TradeConfig(database_url="sqlite://", attestation_secret=TEST_SECRET, environment="test")


@pytest.fixture
def listener_calls() -> list:
    return []


@pytest.fixture
def app(api_config, session_factory, clock, listener_calls):
    return create_app(
        config=api_config,
        session_factory=session_factory,
        clock=clock,
        milestone_listeners=[listener_calls.append],
    )


@pytest.fixture
def client(app) -> TestClient:
    # Unhandled errors must come back as 500 responses, not test failures.
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
