"""Core test fixtures for dice engine tests."""

import pytest

from src.config import get_settings
from src.dice.engine import DiceEngine
from src.dice.random_source import FallbackSource


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Isolate tests from DICE_* variables and cached settings."""
    import os

    for key in list(os.environ):
        if key.startswith("DICE_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine() -> DiceEngine:
    """Engine with the default random source."""
    return DiceEngine()


@pytest.fixture
def seeded_engine() -> DiceEngine:
    """Engine with a seeded pseudorandom source for reproducible rolls."""
    return DiceEngine(rng_source=FallbackSource(seed=1234))
