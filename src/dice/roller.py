"""Convenience rolls built on dice notation.

Advantage and disadvantage are plain notation: rolling 2d20 and keeping the
higher or lower die. The helpers here build that notation so callers do not
repeat it; the engine itself has no special tokens for them.
"""

from enum import Enum

from src.dice.engine import DiceEngine
from src.dice.types import RollResult


# 4d6, drop the lowest die
ABILITY_SCORE_EXPRESSION = "4d6dl1"
ABILITY_SCORE_COUNT = 6


class AdvantageType(str, Enum):
    """Type of advantage for a roll."""

    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"


def format_modifier(modifier: int) -> str:
    """Render a flat modifier as notation ("" for zero).

    Examples:
        >>> format_modifier(3)
        '+3'
        >>> format_modifier(-2)
        '-2'
    """
    if modifier == 0:
        return ""
    return f"+{modifier}" if modifier > 0 else str(modifier)


def d20_expression(
    modifier: int = 0,
    advantage_type: AdvantageType = AdvantageType.NORMAL,
) -> str:
    """Notation for a d20 roll with optional advantage/disadvantage.

    Examples:
        >>> d20_expression(5)
        '1d20+5'
        >>> d20_expression(2, AdvantageType.ADVANTAGE)
        '2d20kh1+2'
    """
    if advantage_type == AdvantageType.ADVANTAGE:
        base = "2d20kh1"
    elif advantage_type == AdvantageType.DISADVANTAGE:
        base = "2d20kl1"
    else:
        base = "1d20"
    return base + format_modifier(modifier)


def advantage(modifier: int = 0) -> str:
    """Notation for a d20 roll with advantage."""
    return d20_expression(modifier, AdvantageType.ADVANTAGE)


def disadvantage(modifier: int = 0) -> str:
    """Notation for a d20 roll with disadvantage."""
    return d20_expression(modifier, AdvantageType.DISADVANTAGE)


def roll_with_advantage(
    engine: DiceEngine,
    advantage_type: AdvantageType,
    modifier: int = 0,
    context: str = "",
) -> RollResult:
    """Roll a d20 with advantage, disadvantage, or neither.

    Args:
        engine: Engine to roll on.
        advantage_type: Whether to use advantage, disadvantage, or normal.
        modifier: Flat modifier to add.
        context: Metadata stored with the result.

    Returns:
        RollResult; with advantage/disadvantage one die is flagged dropped.
    """
    return engine.roll(d20_expression(modifier, advantage_type), context=context)


def roll_ability_scores(
    engine: DiceEngine,
    count: int = ABILITY_SCORE_COUNT,
    context: str = "ability score",
) -> list[RollResult]:
    """Roll ability scores with 4d6, dropping the lowest die of each."""
    return engine.roll_batch([ABILITY_SCORE_EXPRESSION] * count, context=context)
