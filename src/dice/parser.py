"""Dice notation parser.

Recursive-descent parser producing an immutable RollExpression:

    Expr     := Term (('+'|'-') Term)*
    Term     := Factor (('*'|'/') Factor)*
    Factor   := '-' Factor | DiceTerm | Number | '(' Expr ')'
    DiceTerm := [Count] 'd' Sides Modifier*
    Modifier := ('kh'|'kl'|'dh'|'dl') [N] | 'r' [Cond] | '!' [Cond]
    Cond     := ['='|'<'|'>'] N

Parsing draws no random numbers and has no side effects. Nesting of
parentheses and unary minus is capped by max_depth and the operand count by
max_terms; exceeding either raises ExpressionTooComplexError.
"""

from src.dice.errors import (
    DiceParseError,
    EmptyExpressionError,
    ExpressionTooComplexError,
    InvalidDiceCountError,
    InvalidDieSizeError,
    UnbalancedParenthesesError,
    UnexpectedTokenError,
)
from src.dice.lexer import Token, TokenType, tokenize
from src.dice.types import (
    BinaryOp,
    Comparison,
    Condition,
    Constant,
    DieTerm,
    DropHighest,
    DropLowest,
    Explode,
    KeepHighest,
    KeepLowest,
    Modifier,
    Negate,
    Node,
    Operator,
    Reroll,
    RollExpression,
)

# Defaults mirrored by EngineConfig
DEFAULT_REROLL_MAX = 2
DEFAULT_EXPLODE_MAX = 100
DEFAULT_MAX_DICE_COUNT = 100
DEFAULT_MAX_DIE_SIDES = 1000
DEFAULT_MAX_DEPTH = 50
DEFAULT_MAX_TERMS = 1000

SELECTION_MODIFIERS = {
    TokenType.KEEP_HIGHEST: KeepHighest,
    TokenType.KEEP_LOWEST: KeepLowest,
    TokenType.DROP_HIGHEST: DropHighest,
    TokenType.DROP_LOWEST: DropLowest,
}

COMPARISONS = {
    TokenType.EQUALS: Comparison.EQUAL,
    TokenType.LESS: Comparison.AT_MOST,
    TokenType.GREATER: Comparison.AT_LEAST,
}

ADDITIVE = {TokenType.PLUS: Operator.ADD, TokenType.MINUS: Operator.SUBTRACT}
MULTIPLICATIVE = {TokenType.STAR: Operator.MULTIPLY, TokenType.SLASH: Operator.DIVIDE}


class Parser:
    """Single-use parser over one expression's tokens."""

    def __init__(
        self,
        expression: str,
        reroll_max: int = DEFAULT_REROLL_MAX,
        explode_max: int = DEFAULT_EXPLODE_MAX,
        max_dice_count: int = DEFAULT_MAX_DICE_COUNT,
        max_die_sides: int = DEFAULT_MAX_DIE_SIDES,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_terms: int = DEFAULT_MAX_TERMS,
    ):
        self.expression = expression
        self.reroll_max = reroll_max
        self.explode_max = explode_max
        self.max_dice_count = max_dice_count
        self.max_die_sides = max_die_sides
        self.max_depth = max_depth
        self.max_terms = max_terms
        self._tokens = tokenize(expression)
        self._index = 0
        # Open parentheses, and parentheses plus unary minus signs
        self._depth = 0
        self._nesting = 0
        self._operands = 0

    def parse(self) -> RollExpression:
        """Parse the whole expression."""
        if self._peek().type == TokenType.EOF:
            raise EmptyExpressionError(self.expression)

        root = self._expr()

        token = self._peek()
        if token.type == TokenType.RPAREN:
            raise self._error(UnbalancedParenthesesError, token, "Unmatched ')'")
        if token.type != TokenType.EOF:
            raise self._error(UnexpectedTokenError, token)

        return RollExpression(source=self.expression, root=root)

    # -------------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------------

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.type != TokenType.EOF:
            self._index += 1
        return token

    def _error(
        self,
        error_type: type[DiceParseError],
        token: Token,
        message: str | None = None,
    ) -> DiceParseError:
        if message is None:
            shown = token.text or token.type.value
            message = f"Unexpected '{shown}' at position {token.position}"
        return error_type(
            f"{message} in '{self.expression}'",
            expression=self.expression,
            position=token.position,
            token=token.text or None,
        )

    def _enter(self, token: Token) -> None:
        self._nesting += 1
        if self._nesting > self.max_depth:
            raise self._error(
                ExpressionTooComplexError,
                token,
                f"Nesting deeper than {self.max_depth} levels at position {token.position}",
            )

    def _count_operand(self, token: Token) -> None:
        self._operands += 1
        if self._operands > self.max_terms:
            raise self._error(
                ExpressionTooComplexError,
                token,
                f"More than {self.max_terms} operands at position {token.position}",
            )

    def _expect_number(self) -> Token:
        token = self._peek()
        if token.type != TokenType.NUMBER:
            raise self._error(UnexpectedTokenError, token)
        return self._advance()

    # -------------------------------------------------------------------------
    # Grammar rules
    # -------------------------------------------------------------------------

    def _expr(self) -> Node:
        node = self._term()
        while self._peek().type in ADDITIVE:
            operator = ADDITIVE[self._advance().type]
            node = BinaryOp(operator, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while self._peek().type in MULTIPLICATIVE:
            operator = MULTIPLICATIVE[self._advance().type]
            node = BinaryOp(operator, node, self._factor())
        return node

    def _factor(self) -> Node:
        token = self._peek()

        match token.type:
            case TokenType.MINUS:
                self._advance()
                self._enter(token)
                node = Negate(self._factor())
                self._nesting -= 1
                return node
            case TokenType.LPAREN:
                return self._group()
            case TokenType.DICE:
                self._count_operand(token)
                return self._dice_term(count_token=None)
            case TokenType.NUMBER:
                self._count_operand(token)
                self._advance()
                if self._peek().type == TokenType.DICE:
                    return self._dice_term(count_token=token)
                return Constant(token.value)
            case TokenType.EOF if self._depth > 0:
                raise self._error(UnbalancedParenthesesError, token, "Missing ')'")
            case _:
                raise self._error(UnexpectedTokenError, token)

    def _group(self) -> Node:
        opening = self._advance()
        self._enter(opening)
        self._depth += 1
        node = self._expr()

        token = self._peek()
        if token.type == TokenType.EOF:
            raise self._error(
                UnbalancedParenthesesError,
                opening,
                f"'(' at position {opening.position} is never closed",
            )
        if token.type != TokenType.RPAREN:
            raise self._error(UnexpectedTokenError, token)

        self._advance()
        self._depth -= 1
        self._nesting -= 1
        return node

    def _dice_term(self, count_token: Token | None) -> DieTerm:
        count = count_token.value if count_token is not None else 1
        if count < 1 or count > self.max_dice_count:
            raise self._error(
                InvalidDiceCountError,
                count_token,
                f"Number of dice must be between 1 and {self.max_dice_count}, got {count}",
            )

        self._advance()  # 'd'

        token = self._peek()
        if token.type == TokenType.MINUS and self._tokens[self._index + 1].type == TokenType.NUMBER:
            raise self._error(
                InvalidDieSizeError,
                token,
                f"Die size must be at least 1, got -{self._tokens[self._index + 1].text}",
            )

        sides_token = self._expect_number()
        sides = sides_token.value
        if sides < 1 or sides > self.max_die_sides:
            raise self._error(
                InvalidDieSizeError,
                sides_token,
                f"Die size must be between 1 and {self.max_die_sides}, got {sides}",
            )

        modifiers: list[Modifier] = []
        while True:
            modifier = self._modifier()
            if modifier is None:
                break
            modifiers.append(modifier)

        return DieTerm(count=count, sides=sides, modifiers=tuple(modifiers))

    def _modifier(self) -> Modifier | None:
        token = self._peek()

        if token.type in SELECTION_MODIFIERS:
            self._advance()
            amount = self._advance().value if self._peek().type == TokenType.NUMBER else 1
            return SELECTION_MODIFIERS[token.type](amount)

        if token.type == TokenType.REROLL:
            self._advance()
            condition = self._condition() or Condition(Comparison.EQUAL, 1)
            return Reroll(condition=condition, max_rerolls=self.reroll_max)

        if token.type == TokenType.EXPLODE:
            self._advance()
            condition = self._condition() or Condition()
            return Explode(condition=condition, max_extra=self.explode_max)

        return None

    def _condition(self) -> Condition | None:
        token = self._peek()

        if token.type == TokenType.NUMBER:
            return Condition(Comparison.EQUAL, self._advance().value)

        if token.type in COMPARISONS:
            self._advance()
            return Condition(COMPARISONS[token.type], self._expect_number().value)

        return None


def parse_dice(
    notation: str,
    *,
    reroll_max: int = DEFAULT_REROLL_MAX,
    explode_max: int = DEFAULT_EXPLODE_MAX,
    max_dice_count: int = DEFAULT_MAX_DICE_COUNT,
    max_die_sides: int = DEFAULT_MAX_DIE_SIDES,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_terms: int = DEFAULT_MAX_TERMS,
) -> RollExpression:
    """Parse dice notation into a RollExpression.

    Args:
        notation: Dice notation string (e.g., "4d6dl1+2", "2d20kh1", "1d8!").
        reroll_max: Re-draw cap stored on every reroll modifier.
        explode_max: Extra-dice cap stored on every explode modifier.
        max_dice_count: Largest dice count allowed in one term.
        max_die_sides: Largest die allowed.
        max_depth: Deepest nesting of parentheses and unary minus.
        max_terms: Most numbers and dice terms in one expression.

    Returns:
        RollExpression for the notation.

    Raises:
        DiceParseError: If notation is invalid. The concrete subclass names
            the violated rule and carries the offending position.

    Examples:
        >>> parse_dice("d20").root
        DieTerm(count=1, sides=20, modifiers=())
        >>> parse_dice("2d6+3").root.operator
        <Operator.ADD: '+'>
    """
    return Parser(
        notation,
        reroll_max=reroll_max,
        explode_max=explode_max,
        max_dice_count=max_dice_count,
        max_die_sides=max_die_sides,
        max_depth=max_depth,
        max_terms=max_terms,
    ).parse()
