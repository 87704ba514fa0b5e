"""Engine construction for CLI commands."""

import dataclasses
import logging

from src.cli.display import display_info
from src.config import get_settings
from src.dice.engine import DiceEngine, EngineConfig

logger = logging.getLogger(__name__)


def build_engine(seed: int | None = None, show_diagnostics: bool = True, **overrides) -> DiceEngine:
    """Create an engine from settings.

    Args:
        seed: When given, skip the CSPRNG and use the seeded fallback so
            rolls are reproducible.
        show_diagnostics: Print random source diagnostics to the console.
        **overrides: EngineConfig fields to override.

    Returns:
        A new DiceEngine.
    """
    config = EngineConfig.from_settings(get_settings())
    if seed is not None:
        config = dataclasses.replace(config, rng_seed=seed, prefer_crypto=False)
    if overrides:
        config = dataclasses.replace(config, **overrides)

    engine = DiceEngine(config)
    logger.debug(f"Engine ready ({engine.quality_level.value} source)")

    if show_diagnostics:
        for message in engine.diagnostics:
            display_info(message)
    return engine
