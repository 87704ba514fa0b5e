"""Dice notation tokenizer.

Splits an expression like "4d6dl1 + 2" into tokens. Letters are matched
case-insensitively and whitespace is skipped. Any other character fails
immediately with the offending position.
"""

from dataclasses import dataclass
from enum import Enum

from src.dice.errors import InvalidTokenError


class TokenType(str, Enum):
    """Kinds of token in dice notation."""

    NUMBER = "number"
    DICE = "d"
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    LPAREN = "("
    RPAREN = ")"
    KEEP_HIGHEST = "kh"
    KEEP_LOWEST = "kl"
    DROP_HIGHEST = "dh"
    DROP_LOWEST = "dl"
    REROLL = "r"
    EXPLODE = "!"
    EQUALS = "="
    LESS = "<"
    GREATER = ">"
    EOF = "end of expression"


@dataclass(frozen=True)
class Token:
    """A lexed token.

    Attributes:
        type: Token kind.
        text: Source text of the token.
        position: 0-based offset of the first character.
    """

    type: TokenType
    text: str
    position: int

    @property
    def value(self) -> int:
        """Integer value of a NUMBER token."""
        return int(self.text)


SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "r": TokenType.REROLL,
    "!": TokenType.EXPLODE,
    "=": TokenType.EQUALS,
    "<": TokenType.LESS,
    ">": TokenType.GREATER,
}

# Longest digit run accepted as one number
MAX_NUMBER_LENGTH = 9

# Two-letter selection modifiers, keyed by their lowercase text
SELECTION_TOKENS = {
    "kh": TokenType.KEEP_HIGHEST,
    "kl": TokenType.KEEP_LOWEST,
    "dh": TokenType.DROP_HIGHEST,
    "dl": TokenType.DROP_LOWEST,
}


def tokenize(expression: str) -> list[Token]:
    """Tokenize dice notation.

    Args:
        expression: Raw expression text (e.g., "2d20kh1+5").

    Returns:
        Tokens in order, always ending with an EOF token.

    Raises:
        InvalidTokenError: On any character that is not dice notation, or a
            number longer than MAX_NUMBER_LENGTH digits.

    Examples:
        >>> [t.type.value for t in tokenize("2d6+3")]
        ['number', 'd', 'number', '+', 'number', 'end of expression']
    """
    tokens: list[Token] = []
    length = len(expression)
    pos = 0

    while pos < length:
        char = expression[pos].lower()

        if char.isspace():
            pos += 1
            continue

        if char.isdigit() and char.isascii():
            start = pos
            while pos < length and expression[pos].isdigit() and expression[pos].isascii():
                pos += 1
            if pos - start > MAX_NUMBER_LENGTH:
                raise InvalidTokenError(
                    f"Number at position {start} is longer than {MAX_NUMBER_LENGTH} digits "
                    f"({pos - start} digits)",
                    expression=expression,
                    position=start,
                    token=expression[start:pos],
                )
            tokens.append(Token(TokenType.NUMBER, expression[start:pos], start))
            continue

        pair = expression[pos : pos + 2].lower()
        if pair in SELECTION_TOKENS:
            tokens.append(Token(SELECTION_TOKENS[pair], expression[pos : pos + 2], pos))
            pos += 2
            continue

        if char == "k":
            # Bare "k" is shorthand for keep-highest
            tokens.append(Token(TokenType.KEEP_HIGHEST, expression[pos], pos))
            pos += 1
            continue

        if char == "d":
            tokens.append(Token(TokenType.DICE, expression[pos], pos))
            pos += 1
            continue

        if char in SINGLE_CHAR_TOKENS:
            tokens.append(Token(SINGLE_CHAR_TOKENS[char], expression[pos], pos))
            pos += 1
            continue

        raise InvalidTokenError(
            f"Invalid character '{expression[pos]}' at position {pos} in '{expression}'",
            expression=expression,
            position=pos,
            token=expression[pos],
        )

    tokens.append(Token(TokenType.EOF, "", length))
    return tokens
