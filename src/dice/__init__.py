"""Dice expression engine.

Parses dice notation, evaluates it against a pluggable random source, and
records traceable results.

Usage:
    >>> from src.dice import DiceEngine
    >>> engine = DiceEngine()
    >>> result = engine.roll("4d6dl1+2", context="strength")
    >>> batch = engine.roll_batch(["2d20kh1+5", "1d8!"])
"""

# Types
from src.dice.types import (
    BinaryOp,
    Comparison,
    Condition,
    Constant,
    DieResult,
    DieTerm,
    DropHighest,
    DropLowest,
    Explode,
    KeepHighest,
    KeepLowest,
    Modifier,
    ModifierOutcome,
    Negate,
    Operator,
    QualityLevel,
    Reroll,
    RollExpression,
    RollResult,
)

# Errors
from src.dice.errors import (
    DiceError,
    DiceEvaluationError,
    DiceParseError,
    DivisionByZeroError,
    EmptyExpressionError,
    EvaluationErrorKind,
    ExplodeLimitExceededError,
    ExpressionTooComplexError,
    InvalidDiceCountError,
    InvalidDieSizeError,
    InvalidTokenError,
    ParseErrorKind,
    RandomSourceUnavailableError,
    RerollLimitExceededError,
    UnbalancedParenthesesError,
    UnexpectedTokenError,
)

# Lexer & Parser
from src.dice.lexer import Token, TokenType, tokenize
from src.dice.parser import parse_dice

# Random Sources
from src.dice.random_source import (
    CryptoSource,
    FailoverSource,
    FallbackSource,
    RandomSource,
    create_default_source,
)

# Evaluation & History
from src.dice.evaluator import Evaluation, evaluate
from src.dice.history import HistoryStatistics, RollHistory, RollHistoryEntry

# Engine
from src.dice.engine import DiceEngine, EngineConfig, EngineStatus, ValidationResult

# Convenience
from src.dice.roller import (
    AdvantageType,
    advantage,
    d20_expression,
    disadvantage,
    roll_ability_scores,
    roll_with_advantage,
)

__all__ = [
    # Types
    "BinaryOp",
    "Comparison",
    "Condition",
    "Constant",
    "DieResult",
    "DieTerm",
    "DropHighest",
    "DropLowest",
    "Explode",
    "KeepHighest",
    "KeepLowest",
    "Modifier",
    "ModifierOutcome",
    "Negate",
    "Operator",
    "QualityLevel",
    "Reroll",
    "RollExpression",
    "RollResult",
    # Errors
    "DiceError",
    "DiceEvaluationError",
    "DiceParseError",
    "DivisionByZeroError",
    "EmptyExpressionError",
    "EvaluationErrorKind",
    "ExplodeLimitExceededError",
    "ExpressionTooComplexError",
    "InvalidDiceCountError",
    "InvalidDieSizeError",
    "InvalidTokenError",
    "ParseErrorKind",
    "RandomSourceUnavailableError",
    "RerollLimitExceededError",
    "UnbalancedParenthesesError",
    "UnexpectedTokenError",
    # Lexer & Parser
    "Token",
    "TokenType",
    "tokenize",
    "parse_dice",
    # Random Sources
    "CryptoSource",
    "FailoverSource",
    "FallbackSource",
    "RandomSource",
    "create_default_source",
    # Evaluation & History
    "Evaluation",
    "evaluate",
    "HistoryStatistics",
    "RollHistory",
    "RollHistoryEntry",
    # Engine
    "DiceEngine",
    "EngineConfig",
    "EngineStatus",
    "ValidationResult",
    # Convenience
    "AdvantageType",
    "advantage",
    "d20_expression",
    "disadvantage",
    "roll_ability_scores",
    "roll_with_advantage",
]
