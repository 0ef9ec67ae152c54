"""Shared fixtures."""

import pytest

from finance_tracker.config import AppSettings, GeminiSettings
from finance_tracker.models import AppState

from helpers import sequential_ids


@pytest.fixture
def configured_settings() -> GeminiSettings:
    return GeminiSettings(api_key="test-key")


@pytest.fixture
def unconfigured_settings() -> GeminiSettings:
    # Blank counts as unset, regardless of the environment
    return GeminiSettings(api_key="")


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        classifier_timeout_seconds=1.0,
        correction_examples_limit=10,
        insights_transaction_limit=20,
    )


@pytest.fixture
def state() -> AppState:
    return AppState()


@pytest.fixture
def ids():
    return sequential_ids()
