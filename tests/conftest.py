"""Pytest configuration and shared fixtures."""

import pytest

from live_rotator.engine import ErrorPolicy, RotationLedger
from tests.fixtures.fakes import FakeClock, ScriptedGateway, make_set


@pytest.fixture
def product_sets():
    """Three rotatable product sets A, B, C."""
    return [make_set(1, "A"), make_set(2, "B"), make_set(3, "C")]


@pytest.fixture
def ledger(product_sets):
    return RotationLedger(product_sets)


@pytest.fixture
def policy():
    return ErrorPolicy(escalation_threshold=3)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def sample_config():
    """Provide a sample configuration for testing."""
    from live_rotator.models.config import RotatorConfig

    return RotatorConfig(
        base_url="https://api.test",
        member_email="member@example.com",
        member_password="secret",
        account_id=7,
        niche_id=1,
        delay_seconds=60.0,
        escalation_threshold=3,
    )
