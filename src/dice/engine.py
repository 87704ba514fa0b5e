"""Dice engine facade.

A DiceEngine owns its configuration, random source, and roll history.
Engines are constructed and passed explicitly; there is no shared global
instance. `roll` and `roll_batch` may be called from several threads at once.
"""

import dataclasses
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Sequence

from src.dice.errors import DiceParseError, ParseErrorKind
from src.dice.evaluator import evaluate
from src.dice.history import DEFAULT_HISTORY_CAPACITY, RollHistory, RollHistoryEntry
from src.dice.parser import (
    DEFAULT_EXPLODE_MAX,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DICE_COUNT,
    DEFAULT_MAX_DIE_SIDES,
    DEFAULT_MAX_TERMS,
    DEFAULT_REROLL_MAX,
    parse_dice,
)
from src.dice.random_source import FailoverSource, RandomSource, create_default_source
from src.dice.types import QualityLevel, RollExpression, RollResult

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

# Each nesting level costs a few parser stack frames
MAX_DEPTH_LIMIT = 100


@dataclass(frozen=True)
class EngineConfig:
    """Constructor-time engine configuration.

    Attributes:
        history_capacity: Rolls kept before FIFO eviction.
        reroll_max: Re-draws allowed per die for reroll modifiers.
        explode_max: Extra dice allowed per term for explode modifiers.
        max_dice_count: Largest dice count in one term.
        max_die_sides: Largest die size.
        max_depth: Deepest nesting of parentheses and unary minus.
        max_terms: Most numbers and dice terms in one expression.
        rng_seed: Seed for the pseudorandom fallback.
        prefer_crypto: Try the CSPRNG before the fallback.
    """

    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    reroll_max: int = DEFAULT_REROLL_MAX
    explode_max: int = DEFAULT_EXPLODE_MAX
    max_dice_count: int = DEFAULT_MAX_DICE_COUNT
    max_die_sides: int = DEFAULT_MAX_DIE_SIDES
    max_depth: int = DEFAULT_MAX_DEPTH
    max_terms: int = DEFAULT_MAX_TERMS
    rng_seed: int | None = None
    prefer_crypto: bool = True

    def __post_init__(self) -> None:
        if self.history_capacity <= 0:
            raise ValueError(f"history_capacity must be positive, got {self.history_capacity}")
        if self.reroll_max < 0:
            raise ValueError(f"reroll_max cannot be negative, got {self.reroll_max}")
        if self.explode_max < 0:
            raise ValueError(f"explode_max cannot be negative, got {self.explode_max}")
        if self.max_dice_count < 1:
            raise ValueError(f"max_dice_count must be at least 1, got {self.max_dice_count}")
        if self.max_die_sides < 1:
            raise ValueError(f"max_die_sides must be at least 1, got {self.max_die_sides}")
        if not 1 <= self.max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"max_depth must be between 1 and {MAX_DEPTH_LIMIT}, got {self.max_depth}")
        if self.max_terms < 1:
            raise ValueError(f"max_terms must be at least 1, got {self.max_terms}")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EngineConfig":
        """Build a config from application settings."""
        return cls(
            history_capacity=settings.history_capacity,
            reroll_max=settings.reroll_max,
            explode_max=settings.explode_max,
            max_dice_count=settings.max_dice_count,
            max_die_sides=settings.max_die_sides,
            max_depth=settings.max_depth,
            max_terms=settings.max_terms,
            rng_seed=settings.rng_seed,
            prefer_crypto=settings.prefer_crypto,
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking an expression without rolling it.

    Attributes:
        valid: Whether the expression parses.
        error: Error message when invalid.
        kind: Parse error kind when invalid.
        position: Offending position when invalid.
        term_count: Number of dice terms when valid.
    """

    valid: bool
    error: str | None = None
    kind: ParseErrorKind | None = None
    position: int | None = None
    term_count: int = 0


@dataclass(frozen=True)
class EngineStatus:
    """Snapshot of engine state for diagnostics."""

    history_size: int
    history_capacity: int
    total_rolls: int
    quality_level: QualityLevel
    reroll_max: int
    explode_max: int
    max_dice_count: int
    max_die_sides: int
    max_depth: int
    max_terms: int
    diagnostics: tuple[str, ...] = ()


class DiceEngine:
    """Parses, evaluates, and records dice expressions.

    Example:
        engine = DiceEngine(history_capacity=50)
        result = engine.roll("4d6dl1+2", context="strength")
        result.total, [d.value for d in result.kept_dice]
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        rng_source: RandomSource | None = None,
        **overrides: Any,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Base configuration. Defaults to EngineConfig().
            rng_source: Injected random source (e.g., a test double).
                When omitted, the CSPRNG is used if available.
            **overrides: EngineConfig fields to override.

        Raises:
            ValueError: If any configured limit is out of range.
        """
        config = config or EngineConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config

        self._diagnostics: list[str] = []
        self._diagnostics_lock = threading.Lock()

        if rng_source is None:
            rng_source = create_default_source(
                prefer_crypto=config.prefer_crypto,
                seed=config.rng_seed,
                on_unavailable=self._report,
            )
        self._source = FailoverSource(rng_source, config.rng_seed, on_failover=self._report)
        self.history = RollHistory(config.history_capacity)

    @classmethod
    def from_settings(cls, settings: "Settings", **kwargs: Any) -> "DiceEngine":
        """Build an engine from application settings."""
        return cls(EngineConfig.from_settings(settings), **kwargs)

    def _report(self, message: str) -> None:
        with self._diagnostics_lock:
            if self._diagnostics:
                return
            self._diagnostics.append(message)
        logger.warning(message)

    @property
    def diagnostics(self) -> tuple[str, ...]:
        """Non-fatal diagnostics, such as a random source failover."""
        with self._diagnostics_lock:
            return tuple(self._diagnostics)

    @property
    def quality_level(self) -> QualityLevel:
        """Quality level of the active random source."""
        return self._source.quality_level()

    # -------------------------------------------------------------------------
    # Rolling
    # -------------------------------------------------------------------------

    def parse(self, expression: str) -> RollExpression:
        """Parse an expression with this engine's limits. No dice are drawn.

        Raises:
            DiceParseError: If the expression is invalid.
        """
        if not isinstance(expression, str):
            raise TypeError(f"Dice expression must be a string, got {type(expression).__name__}")
        return parse_dice(
            expression,
            reroll_max=self.config.reroll_max,
            explode_max=self.config.explode_max,
            max_dice_count=self.config.max_dice_count,
            max_die_sides=self.config.max_die_sides,
            max_depth=self.config.max_depth,
            max_terms=self.config.max_terms,
        )

    def roll(self, expression: str, context: str = "") -> RollResult:
        """Parse and roll an expression.

        Args:
            expression: Dice notation (e.g., "4d6dl1+2").
            context: Opaque caller metadata stored with the result.

        Returns:
            RollResult with total and per-die breakdown.

        Raises:
            DiceParseError: If the expression is invalid.
            DiceEvaluationError: If evaluation hits a limit or divides by zero.
        """
        return self._evaluate(self.parse(expression), context)

    def roll_batch(self, expressions: Sequence[str], context: str = "") -> list[RollResult]:
        """Roll several expressions in order.

        Every expression is parsed before any dice are drawn, so an invalid
        member fails the whole batch without touching history.

        Args:
            expressions: Dice notations to roll.
            context: Metadata stored on every result.

        Returns:
            One RollResult per expression, in input order.
        """
        parsed = [self.parse(expression) for expression in expressions]
        return [self._evaluate(expression, context) for expression in parsed]

    def _evaluate(self, expression: RollExpression, context: str) -> RollResult:
        evaluation = evaluate(expression, self._source)
        result = RollResult(
            total=evaluation.total,
            per_die_results=evaluation.dice,
            modifier_breakdown=evaluation.breakdown,
            expression=expression.source,
            context=context,
            timestamp=datetime.now(timezone.utc),
            roll_id=uuid.uuid4().hex,
            source_quality=self._source.quality_level(),
        )
        self.history.append(result)
        logger.debug(f"Rolled '{expression.source}' = {result.total}")
        return result

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def validate(self, expression: str) -> ValidationResult:
        """Check an expression without rolling it. Never raises for bad input."""
        try:
            parsed = self.parse(expression)
        except DiceParseError as e:
            return ValidationResult(valid=False, error=str(e), kind=e.kind, position=e.position)
        except TypeError as e:
            return ValidationResult(valid=False, error=str(e))
        return ValidationResult(valid=True, term_count=len(parsed.terms))

    def find_roll(self, roll_id: str) -> RollHistoryEntry | None:
        """Look up a roll still held in history."""
        return self.history.find(roll_id)

    def clear_history(self) -> None:
        self.history.clear()
        logger.debug("Roll history cleared")

    def status(self) -> EngineStatus:
        """Current engine state and limits."""
        return EngineStatus(
            history_size=len(self.history),
            history_capacity=self.history.capacity,
            total_rolls=self.history.total_appended,
            quality_level=self.quality_level,
            reroll_max=self.config.reroll_max,
            explode_max=self.config.explode_max,
            max_dice_count=self.config.max_dice_count,
            max_die_sides=self.config.max_die_sides,
            max_depth=self.config.max_depth,
            max_terms=self.config.max_terms,
            diagnostics=self.diagnostics,
        )
