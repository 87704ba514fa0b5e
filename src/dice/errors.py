"""Dice engine exception definitions.

Custom exception hierarchy for parsing, evaluating, and drawing dice.
Every parse or evaluation failure is raised to the caller; the engine never
returns a partial result.
"""

from enum import Enum


class ParseErrorKind(str, Enum):
    """Kind of failure while reading an expression."""

    INVALID_TOKEN = "invalid_token"
    UNEXPECTED_TOKEN = "unexpected_token"
    UNBALANCED_PARENTHESES = "unbalanced_parentheses"
    INVALID_DIE_SIZE = "invalid_die_size"
    INVALID_DICE_COUNT = "invalid_dice_count"
    EXPRESSION_TOO_COMPLEX = "expression_too_complex"


class EvaluationErrorKind(str, Enum):
    """Kind of failure while evaluating a parsed expression."""

    REROLL_LIMIT_EXCEEDED = "reroll_limit_exceeded"
    EXPLODE_LIMIT_EXCEEDED = "explode_limit_exceeded"
    DIVISION_BY_ZERO = "division_by_zero"


class DiceError(Exception):
    """Base exception for dice engine operations."""

    pass


class DiceParseError(DiceError, ValueError):
    """Error reading dice notation.

    Attributes:
        kind: Which grammar rule was violated.
        expression: The raw expression text.
        position: 0-based offset of the offending character, if known.
        token: Text of the offending token, if any.
    """

    kind: ParseErrorKind = ParseErrorKind.UNEXPECTED_TOKEN

    def __init__(
        self,
        message: str,
        expression: str = "",
        position: int | None = None,
        token: str | None = None,
    ) -> None:
        super().__init__(message)
        self.expression = expression
        self.position = position
        self.token = token


class InvalidTokenError(DiceParseError):
    """A character that is not part of dice notation."""

    kind = ParseErrorKind.INVALID_TOKEN


class UnexpectedTokenError(DiceParseError):
    """A valid token in a place the grammar does not allow."""

    kind = ParseErrorKind.UNEXPECTED_TOKEN


class EmptyExpressionError(UnexpectedTokenError):
    """Blank input: end of expression where a term was expected."""

    def __init__(self, expression: str = "") -> None:
        super().__init__(
            "Dice expression cannot be empty",
            expression=expression,
            position=len(expression),
        )


class UnbalancedParenthesesError(DiceParseError):
    """Missing or extra parenthesis."""

    kind = ParseErrorKind.UNBALANCED_PARENTHESES


class InvalidDieSizeError(DiceParseError):
    """Die with zero sides or more sides than allowed."""

    kind = ParseErrorKind.INVALID_DIE_SIZE


class InvalidDiceCountError(DiceParseError):
    """Zero dice or more dice than allowed in one term."""

    kind = ParseErrorKind.INVALID_DICE_COUNT


class ExpressionTooComplexError(DiceParseError):
    """Too many operands or too deeply nested parentheses and minus signs."""

    kind = ParseErrorKind.EXPRESSION_TOO_COMPLEX


class DiceEvaluationError(DiceError, ArithmeticError):
    """Error evaluating a parsed expression.

    Attributes:
        kind: Which evaluation bound was violated.
        expression: Source text of the expression being evaluated.
    """

    kind: EvaluationErrorKind = EvaluationErrorKind.DIVISION_BY_ZERO

    def __init__(self, message: str, expression: str = "") -> None:
        super().__init__(message)
        self.expression = expression


class RerollLimitExceededError(DiceEvaluationError):
    """A reroll condition that no face of the die can escape.

    Attributes:
        sides: Size of the die the reroll applies to.
        limit: Configured maximum re-draws per die.
    """

    kind = EvaluationErrorKind.REROLL_LIMIT_EXCEEDED

    def __init__(self, message: str, expression: str = "", sides: int = 0, limit: int = 0) -> None:
        super().__init__(message, expression)
        self.sides = sides
        self.limit = limit


class ExplodeLimitExceededError(DiceEvaluationError):
    """An explosion owed after the extra-dice cap was reached.

    Attributes:
        sides: Size of the exploding die.
        limit: Configured maximum extra dice per term.
    """

    kind = EvaluationErrorKind.EXPLODE_LIMIT_EXCEEDED

    def __init__(self, message: str, expression: str = "", sides: int = 0, limit: int = 0) -> None:
        super().__init__(message, expression)
        self.sides = sides
        self.limit = limit


class DivisionByZeroError(DiceEvaluationError):
    """Right-hand side of a division evaluated to zero."""

    kind = EvaluationErrorKind.DIVISION_BY_ZERO


class RandomSourceUnavailableError(DiceError):
    """The platform random source could not produce bytes.

    Always recovered inside the engine by switching to the fallback source.
    """

    pass
