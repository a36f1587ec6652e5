"""Pytest configuration and fixtures."""

import os

import pytest

# Settings are read at import time; give the client a key before anything imports it
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from authority_coach.models import WizardSession  # noqa: E402
from authority_coach.wizard import WizardStateMachine  # noqa: E402
from tests.fakes.fake_gateway import FakeGateway  # noqa: E402


@pytest.fixture
def gateway():
    """Scripted gateway with full-size batches."""
    return FakeGateway()


@pytest.fixture
def wizard(gateway):
    """Fresh wizard bound to the fake gateway."""
    return WizardStateMachine(gateway, WizardSession())
