"""Expression evaluator.

Walks a RollExpression, draws dice from a RandomSource, and applies each
term's modifiers in a fixed order: rerolls, then explosions, then keep/drop.
The result is a pure function of the expression and the sequence of draws.
"""

from dataclasses import dataclass, field
from typing import assert_never

from src.dice.errors import (
    DivisionByZeroError,
    ExplodeLimitExceededError,
    RerollLimitExceededError,
)
from src.dice.random_source import RandomSource
from src.dice.types import (
    BinaryOp,
    Constant,
    DieResult,
    DieTerm,
    DropHighest,
    DropLowest,
    KeepHighest,
    KeepLowest,
    ModifierOutcome,
    Negate,
    Node,
    Operator,
    RollExpression,
    SelectionModifier,
)


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating one expression.

    Attributes:
        total: Final integer value.
        dice: Every die drawn, in term order then roll order.
        breakdown: What each modifier did, per term.
    """

    total: int
    dice: tuple[DieResult, ...]
    breakdown: tuple[ModifierOutcome, ...]


@dataclass
class _Die:
    value: int
    kept: bool = True
    exploded: bool = False
    rerolls: list[int] = field(default_factory=list)


def truncating_divide(dividend: int, divisor: int) -> int:
    """Integer division rounding toward zero.

    Examples:
        >>> truncating_divide(7, 2)
        3
        >>> truncating_divide(-7, 2)
        -3
    """
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend >= 0) == (divisor > 0) else -quotient


def select_highest(dice: list[_Die], indices: list[int], count: int) -> list[int]:
    """Indices of the `count` highest dice; ties go to the earlier roll."""
    return sorted(indices, key=lambda i: -dice[i].value)[:count]


def select_lowest(dice: list[_Die], indices: list[int], count: int) -> list[int]:
    """Indices of the `count` lowest dice; ties go to the earlier roll."""
    return sorted(indices, key=lambda i: dice[i].value)[:count]


class Evaluator:
    """Evaluates one expression against a random source.

    An Evaluator holds per-call state, so create one per evaluation.
    """

    def __init__(self, source: RandomSource, expression: RollExpression) -> None:
        self.source = source
        self.expression = expression
        self._dice: list[DieResult] = []
        self._breakdown: list[ModifierOutcome] = []
        self._term_index = 0

    def run(self) -> Evaluation:
        total = self._visit(self.expression.root)
        return Evaluation(total=total, dice=tuple(self._dice), breakdown=tuple(self._breakdown))

    def _visit(self, root: Node) -> int:
        """Post-order walk with an explicit stack, left operand first."""
        values: list[int] = []
        # (node, children already evaluated)
        pending: list[tuple[Node, bool]] = [(root, False)]

        while pending:
            node, ready = pending.pop()
            match node:
                case Constant(value=value):
                    values.append(value)
                case DieTerm():
                    values.append(self._roll_term(node))
                case Negate(operand=operand):
                    if ready:
                        values.append(-values.pop())
                    else:
                        pending.append((node, True))
                        pending.append((operand, False))
                case BinaryOp(operator=operator, left=left, right=right):
                    if ready:
                        right_value = values.pop()
                        left_value = values.pop()
                        values.append(self._apply(operator, left_value, right_value))
                    else:
                        pending.append((node, True))
                        pending.append((right, False))
                        pending.append((left, False))
                case _:
                    assert_never(node)

        return values.pop()

    def _apply(self, operator: Operator, left: int, right: int) -> int:
        match operator:
            case Operator.ADD:
                return left + right
            case Operator.SUBTRACT:
                return left - right
            case Operator.MULTIPLY:
                return left * right
            case Operator.DIVIDE:
                if right == 0:
                    raise DivisionByZeroError(
                        f"Division by zero in '{self.expression.source}'",
                        expression=self.expression.source,
                    )
                return truncating_divide(left, right)
            case _:
                assert_never(operator)

    def _draw(self, sides: int) -> int:
        value = self.source.next_int(sides)
        if not 1 <= value <= sides:
            raise ValueError(f"Random source returned {value} for a d{sides}")
        return value

    # -------------------------------------------------------------------------
    # Dice terms
    # -------------------------------------------------------------------------

    def _roll_term(self, term: DieTerm) -> int:
        term_index = self._term_index
        self._term_index += 1

        for reroll in term.rerolls:
            if reroll.condition.matches_every_face(term.sides):
                raise RerollLimitExceededError(
                    f"Reroll condition '{reroll}' matches every face of a d{term.sides}; "
                    f"no roll can succeed within {reroll.max_rerolls} rerolls "
                    f"in '{self.expression.source}'",
                    expression=self.expression.source,
                    sides=term.sides,
                    limit=reroll.max_rerolls,
                )

        dice = [_Die(self._draw(term.sides)) for _ in range(term.count)]

        self._apply_rerolls(term, term_index, dice)
        self._apply_explosions(term, term_index, dice)
        for selection in term.selections:
            self._apply_selection(selection, term_index, dice)

        self._dice.extend(
            DieResult(
                sides=term.sides,
                value=die.value,
                kept=die.kept,
                term_index=term_index,
                exploded=die.exploded,
                rerolls=tuple(die.rerolls),
            )
            for die in dice
        )
        return sum(die.value for die in dice if die.kept)

    def _apply_rerolls(self, term: DieTerm, term_index: int, dice: list[_Die]) -> None:
        for reroll in term.rerolls:
            affected = []
            for index, die in enumerate(dice):
                attempts = 0
                while attempts < reroll.max_rerolls and reroll.condition.matches(die.value, term.sides):
                    die.rerolls.append(die.value)
                    die.value = self._draw(term.sides)
                    attempts += 1
                if attempts:
                    affected.append(index)
            self._breakdown.append(ModifierOutcome(term_index, reroll, tuple(affected)))

    def _apply_explosions(self, term: DieTerm, term_index: int, dice: list[_Die]) -> None:
        explosions = term.explosions
        if not explosions:
            return

        limit = min(explode.max_extra for explode in explosions)
        added: dict[int, list[int]] = {i: [] for i in range(len(explosions))}
        extra = 0
        index = 0

        # Dice added by an explosion are checked in turn, so chains continue
        while index < len(dice):
            value = dice[index].value
            trigger = next(
                (i for i, explode in enumerate(explosions) if explode.condition.matches(value, term.sides)),
                None,
            )
            if trigger is not None:
                if extra >= limit:
                    raise ExplodeLimitExceededError(
                        f"d{term.sides} kept exploding past {limit} extra dice "
                        f"in '{self.expression.source}'",
                        expression=self.expression.source,
                        sides=term.sides,
                        limit=limit,
                    )
                dice.append(_Die(self._draw(term.sides), exploded=True))
                added[trigger].append(len(dice) - 1)
                extra += 1
            index += 1

        for i, explode in enumerate(explosions):
            self._breakdown.append(ModifierOutcome(term_index, explode, tuple(added[i])))

    def _apply_selection(self, selection: SelectionModifier, term_index: int, dice: list[_Die]) -> None:
        candidates = [i for i, die in enumerate(dice) if die.kept]

        match selection:
            case KeepHighest(count=count):
                chosen = set(select_highest(dice, candidates, count))
                dropped = [i for i in candidates if i not in chosen]
            case KeepLowest(count=count):
                chosen = set(select_lowest(dice, candidates, count))
                dropped = [i for i in candidates if i not in chosen]
            case DropHighest(count=count):
                dropped = sorted(select_highest(dice, candidates, count))
            case DropLowest(count=count):
                dropped = sorted(select_lowest(dice, candidates, count))
            case _:
                assert_never(selection)

        for index in dropped:
            dice[index].kept = False
        self._breakdown.append(ModifierOutcome(term_index, selection, tuple(dropped)))


def evaluate(expression: RollExpression, source: RandomSource) -> Evaluation:
    """Evaluate a parsed expression.

    Args:
        expression: Parsed expression.
        source: Where dice values come from.

    Returns:
        Evaluation with total, every die, and the modifier breakdown.

    Raises:
        RerollLimitExceededError: A reroll condition covers every face.
        ExplodeLimitExceededError: Explosions would exceed the extra-dice cap.
        DivisionByZeroError: A divisor evaluated to zero.
    """
    return Evaluator(source, expression).run()
