"""Dice system type definitions.

Immutable dataclasses for parsed expressions, modifiers, and roll results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class QualityLevel(str, Enum):
    """Fidelity of a random source."""

    CRYPTOGRAPHIC = "cryptographic"
    PSEUDORANDOM = "pseudorandom"


class Operator(str, Enum):
    """Binary arithmetic operators, in source notation."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


class Comparison(str, Enum):
    """How a condition compares a die face to its target."""

    EQUAL = "="
    AT_MOST = "<"
    AT_LEAST = ">"


@dataclass(frozen=True)
class Condition:
    """Face test used by rerolls and explosions.

    Attributes:
        comparison: How to compare the face.
        target: Face to compare against. None means the die's maximum face.
    """

    comparison: Comparison = Comparison.EQUAL
    target: int | None = None

    def resolve(self, sides: int) -> int:
        """Target face for a die of the given size."""
        return sides if self.target is None else self.target

    def matches(self, value: int, sides: int) -> bool:
        """Check whether a rolled face satisfies the condition."""
        target = self.resolve(sides)
        if self.comparison == Comparison.AT_MOST:
            return value <= target
        if self.comparison == Comparison.AT_LEAST:
            return value >= target
        return value == target

    def matches_every_face(self, sides: int) -> bool:
        """True if no face of the die can fail the condition."""
        return all(self.matches(face, sides) for face in range(1, sides + 1))

    def __str__(self) -> str:
        if self.target is None:
            return ""
        if self.comparison == Comparison.EQUAL:
            return str(self.target)
        return f"{self.comparison.value}{self.target}"


# =============================================================================
# Modifiers
# =============================================================================


@dataclass(frozen=True)
class KeepHighest:
    """Keep the N highest dice of a term."""

    count: int = 1

    def __str__(self) -> str:
        return f"kh{self.count}"


@dataclass(frozen=True)
class KeepLowest:
    """Keep the N lowest dice of a term."""

    count: int = 1

    def __str__(self) -> str:
        return f"kl{self.count}"


@dataclass(frozen=True)
class DropHighest:
    """Drop the N highest dice of a term."""

    count: int = 1

    def __str__(self) -> str:
        return f"dh{self.count}"


@dataclass(frozen=True)
class DropLowest:
    """Drop the N lowest dice of a term."""

    count: int = 1

    def __str__(self) -> str:
        return f"dl{self.count}"


@dataclass(frozen=True)
class Reroll:
    """Re-draw dice matching a condition, at most max_rerolls times per die."""

    condition: Condition = field(default_factory=lambda: Condition(Comparison.EQUAL, 1))
    max_rerolls: int = 2

    def __str__(self) -> str:
        return f"r{self.condition}"


@dataclass(frozen=True)
class Explode:
    """Add a die for every die matching a condition, up to max_extra per term."""

    condition: Condition = field(default_factory=Condition)
    max_extra: int = 100

    def __str__(self) -> str:
        return f"!{self.condition}"


Modifier = Union[KeepHighest, KeepLowest, DropHighest, DropLowest, Reroll, Explode]
SelectionModifier = Union[KeepHighest, KeepLowest, DropHighest, DropLowest]


# =============================================================================
# Expression tree
# =============================================================================


@dataclass(frozen=True)
class Constant:
    """Integer literal."""

    value: int


@dataclass(frozen=True)
class DieTerm:
    """A dice term like 4d6dl1.

    Attributes:
        count: Number of dice to roll (>= 1).
        sides: Size of each die (>= 1).
        modifiers: Modifiers in the order they were written.
    """

    count: int
    sides: int
    modifiers: tuple[Modifier, ...] = ()

    @property
    def rerolls(self) -> tuple[Reroll, ...]:
        """Reroll modifiers in written order."""
        return tuple(m for m in self.modifiers if isinstance(m, Reroll))

    @property
    def explosions(self) -> tuple[Explode, ...]:
        """Explode modifiers in written order."""
        return tuple(m for m in self.modifiers if isinstance(m, Explode))

    @property
    def selections(self) -> tuple[SelectionModifier, ...]:
        """Keep and drop modifiers in written order."""
        return tuple(
            m
            for m in self.modifiers
            if isinstance(m, (KeepHighest, KeepLowest, DropHighest, DropLowest))
        )

    def __str__(self) -> str:
        return f"{self.count}d{self.sides}" + "".join(str(m) for m in self.modifiers)


@dataclass(frozen=True)
class Negate:
    """Unary minus."""

    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    """Arithmetic on two sub-expressions."""

    operator: Operator
    left: "Node"
    right: "Node"


Node = Union[Constant, DieTerm, Negate, BinaryOp]


@dataclass(frozen=True)
class RollExpression:
    """Parsed dice expression.

    Attributes:
        source: The raw text that was parsed.
        root: Root of the arithmetic tree.
    """

    source: str
    root: Node

    @property
    def terms(self) -> tuple[DieTerm, ...]:
        """Dice terms in left-to-right order."""
        found: list[DieTerm] = []
        stack: list[Node] = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, DieTerm):
                found.append(node)
            elif isinstance(node, Negate):
                stack.append(node.operand)
            elif isinstance(node, BinaryOp):
                stack.append(node.right)
                stack.append(node.left)
        return tuple(found)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class DieResult:
    """One die as it finally landed.

    Attributes:
        sides: Size of the die.
        value: Final face, always in [1, sides].
        kept: Whether the value counts toward its term's sum.
        term_index: Index of the owning dice term (left-to-right).
        exploded: True if this die was added by an explosion.
        rerolls: Faces replaced by rerolls, oldest first.
    """

    sides: int
    value: int
    kept: bool = True
    term_index: int = 0
    exploded: bool = False
    rerolls: tuple[int, ...] = ()

    @property
    def dropped(self) -> bool:
        return not self.kept

    def to_dict(self) -> dict[str, Any]:
        return {
            "sides": self.sides,
            "value": self.value,
            "kept": self.kept,
            "term_index": self.term_index,
            "exploded": self.exploded,
            "rerolls": list(self.rerolls),
        }


@dataclass(frozen=True)
class ModifierOutcome:
    """What one modifier did to one term.

    Attributes:
        term_index: Index of the dice term.
        modifier: The modifier that was applied.
        affected: Indices (within the term's dice) it rerolled, added, or dropped.
    """

    term_index: int
    modifier: Modifier
    affected: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "term_index": self.term_index,
            "modifier": str(self.modifier),
            "affected": list(self.affected),
        }


@dataclass(frozen=True)
class RollResult:
    """Result of rolling a dice expression.

    Attributes:
        total: Final integer value.
        per_die_results: Every die drawn, in term order then roll order.
        modifier_breakdown: Per-term outcome of each modifier.
        expression: The expression text as given by the caller.
        context: Opaque caller metadata.
        timestamp: When evaluation finished (UTC).
        roll_id: Unique identifier for history lookups.
        source_quality: Quality level of the source that produced the draws.
    """

    total: int
    per_die_results: tuple[DieResult, ...]
    modifier_breakdown: tuple[ModifierOutcome, ...] = ()
    expression: str = ""
    context: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    roll_id: str = ""
    source_quality: QualityLevel = QualityLevel.PSEUDORANDOM

    @property
    def kept_dice(self) -> tuple[DieResult, ...]:
        return tuple(d for d in self.per_die_results if d.kept)

    @property
    def dropped_dice(self) -> tuple[DieResult, ...]:
        return tuple(d for d in self.per_die_results if not d.kept)

    def dice_for_term(self, term_index: int) -> tuple[DieResult, ...]:
        """Dice belonging to one dice term."""
        return tuple(d for d in self.per_die_results if d.term_index == term_index)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe mapping of the result."""
        return {
            "roll_id": self.roll_id,
            "expression": self.expression,
            "context": self.context,
            "total": self.total,
            "dice": [d.to_dict() for d in self.per_die_results],
            "modifiers": [m.to_dict() for m in self.modifier_breakdown],
            "timestamp": self.timestamp.isoformat(),
            "source_quality": self.source_quality.value,
        }
