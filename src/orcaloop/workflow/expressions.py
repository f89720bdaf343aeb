"""Condition expression engine for orcaloop workflows.

Conditions are small boolean expressions such as ``status == "ready" && retries < 3``.
They are evaluated in three stages:

1. ``ExpressionLexer`` splits the condition into tokens.
2. ``ExpressionParser`` reorders the tokens into postfix (reverse polish) notation.
3. ``ConditionEvaluator`` runs the postfix sequence on a value stack, looking up
   bare identifiers in the workflow context.

Supported operators, lowest precedence first: ``||``, ``&&``, then the comparisons
``==``, ``!=``, ``<``, ``>``, ``<=``, ``>=``. Parentheses group sub-expressions.
"""

import logging
import re
import threading
from collections.abc import Mapping
from enum import Enum
from typing import Any

from cachetools import LRUCache

from ..config import get_config

logger = logging.getLogger(__name__)


class ExpressionError(Exception):
    """Base class for condition expression failures."""

    pass


class ExpressionSyntaxError(ExpressionError):
    """Raised when a condition cannot be parsed (e.g. mismatched parentheses)."""

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)


class EvaluationError(ExpressionError):
    """Raised when a parsed condition cannot be evaluated against a context."""

    pass


class UnknownVariableError(EvaluationError):
    """Raised when an identifier is neither a literal nor a context key."""

    def __init__(self, name: str, position: int | None = None):
        self.name = name
        self.position = position
        super().__init__(f"Unknown variable or value: {name}")


class TypeMismatchError(EvaluationError):
    """Raised when an operator receives operands of the wrong type."""

    pass


class MalformedExpressionError(EvaluationError):
    """Raised when the postfix sequence does not reduce to a single value."""

    pass


class TokenType(Enum):
    """Token types for condition parsing."""

    OPERATOR = "OPERATOR"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    OPERAND = "OPERAND"
    SYMBOL = "SYMBOL"  # stray operator character, rejected at evaluation


class Token:
    """A token in a condition expression."""

    def __init__(self, type_: TokenType, value: str, position: int = 0):
        self.type = type_
        self.value = value
        self.position = position

    def __repr__(self):
        return f"Token({self.type}, {self.value!r})"

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.type == other.type and self.value == other.value and self.position == other.position

    def __hash__(self):
        return hash((self.type, self.value, self.position))


TWO_CHAR_OPERATORS = ("&&", "||", "==", "!=", "<=", ">=")
LOGICAL_OPERATORS = ("&&", "||")
EQUALITY_OPERATORS = ("==", "!=")
ORDERING_OPERATORS = ("<", ">", "<=", ">=")

# Characters that end a pending operand
OPERATOR_CHARS = "!=<>&|()"

PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 3,
    ">": 3,
    "<=": 3,
    ">=": 3,
}

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


class ExpressionLexer:
    """Tokenizes condition strings.

    The lexer never fails: unterminated strings and unknown symbols are
    passed through and reported by the evaluator.
    """

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.current_char = self.text[0] if text else None

    def advance(self, count: int = 1):
        """Move forward by ``count`` characters."""
        self.position += count
        if self.position >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.position]

    def peek_next(self, offset: int = 1) -> str | None:
        """Peek at the character ``offset`` positions ahead."""
        peek_pos = self.position + offset
        if peek_pos < len(self.text):
            return self.text[peek_pos]
        return None

    def read_string(self) -> str:
        """Read a double-quoted literal, keeping the quotes."""
        result = self.current_char
        self.advance()

        while self.current_char is not None and self.current_char != '"':
            result += self.current_char
            self.advance()

        if self.current_char == '"':
            result += self.current_char
            self.advance()

        return result

    def read_operand(self) -> str:
        """Read a bare operand up to whitespace or an operator character."""
        result = ""
        while (
            self.current_char is not None
            and not self.current_char.isspace()
            and self.current_char not in OPERATOR_CHARS
        ):
            if self.current_char == '"':
                result += self.read_string()
            else:
                result += self.current_char
                self.advance()
        return result

    def tokenize(self) -> list[Token]:
        """Tokenize the entire condition."""
        tokens = []

        while self.current_char is not None:
            if self.current_char.isspace():
                self.advance()
                continue

            start_pos = self.position
            pair = self.current_char + (self.peek_next() or "")

            # Two-character operators take priority over their first character
            if pair in TWO_CHAR_OPERATORS:
                tokens.append(Token(TokenType.OPERATOR, pair, start_pos))
                self.advance(2)

            elif self.current_char in "<>":
                tokens.append(Token(TokenType.OPERATOR, self.current_char, start_pos))
                self.advance()

            elif self.current_char == "(":
                tokens.append(Token(TokenType.LPAREN, "(", start_pos))
                self.advance()

            elif self.current_char == ")":
                tokens.append(Token(TokenType.RPAREN, ")", start_pos))
                self.advance()

            elif self.current_char in "!=&|":
                tokens.append(Token(TokenType.SYMBOL, self.current_char, start_pos))
                self.advance()

            else:
                tokens.append(Token(TokenType.OPERAND, self.read_operand(), start_pos))

        return tokens


class ExpressionParser:
    """Converts infix tokens to postfix with the shunting-yard algorithm."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens

    def to_postfix(self) -> list[Token]:
        """Return the tokens in postfix order.

        Raises:
            ExpressionSyntaxError: If the parentheses do not balance
        """
        output: list[Token] = []
        stack: list[Token] = []

        for token in self.tokens:
            if token.type == TokenType.OPERATOR:
                precedence = PRECEDENCE[token.value]
                while stack and stack[-1].type == TokenType.OPERATOR and PRECEDENCE[stack[-1].value] >= precedence:
                    output.append(stack.pop())
                stack.append(token)

            elif token.type == TokenType.LPAREN:
                stack.append(token)

            elif token.type == TokenType.RPAREN:
                while stack and stack[-1].type != TokenType.LPAREN:
                    output.append(stack.pop())
                if not stack:
                    raise ExpressionSyntaxError("Mismatched parentheses: unexpected ')'", token.position)
                stack.pop()

            else:
                output.append(token)

        while stack:
            token = stack.pop()
            if token.type == TokenType.LPAREN:
                raise ExpressionSyntaxError("Mismatched parentheses: unclosed '('", token.position)
            output.append(token)

        return output


def tokenize(condition: str) -> list[Token]:
    """Split a condition string into tokens."""
    return ExpressionLexer(condition).tokenize()


def to_postfix(tokens: list[Token]) -> list[Token]:
    """Convert infix tokens to postfix order."""
    return ExpressionParser(tokens).to_postfix()


def is_number(value: Any) -> bool:
    """Return True for ints and floats, excluding booleans."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def values_equal(left: Any, right: Any) -> bool:
    """Same-type equality used by ``==``, ``!=`` and switch case matching.

    Numbers compare numerically regardless of int/float representation.
    Values of different types are never equal.
    """
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


class ConditionEvaluator:
    """Evaluates condition strings against a context.

    The context may be any mapping, including ``orcaloop.workflow.context.Context``.
    Compiled postfix sequences are cached per condition string.
    """

    def __init__(self, cache_size: int | None = None):
        if cache_size is None:
            cache_size = get_config().expression_cache_size
        if cache_size <= 0:
            raise ValueError(f"cache_size must be positive, got {cache_size}")
        self._cache: LRUCache[str, list[Token]] = LRUCache(maxsize=cache_size)
        self._lock = threading.RLock()

    def compile(self, condition: str) -> list[Token]:
        """Tokenize and parse a condition, using the cache when possible."""
        with self._lock:
            cached = self._cache.get(condition)
            if cached is not None:
                return cached

        postfix = to_postfix(tokenize(condition))

        with self._lock:
            self._cache[condition] = postfix
        return postfix

    def clear_cache(self):
        """Drop all compiled conditions."""
        with self._lock:
            self._cache.clear()

    def evaluate(self, condition: str, context: Mapping[str, Any]) -> bool:
        """Evaluate a condition string.

        Raises:
            ExpressionSyntaxError: If the condition cannot be parsed
            EvaluationError: If evaluation fails
        """
        postfix = self.compile(condition)
        result = self.evaluate_postfix(postfix, context)
        logger.debug(f"Condition '{condition}' evaluated to {result}")
        return result

    def evaluate_postfix(self, postfix: list[Token], context: Mapping[str, Any]) -> bool:
        """Evaluate a postfix token sequence."""
        stack: list[Any] = []

        for token in postfix:
            if token.type == TokenType.OPERAND:
                stack.append(self.resolve_operand(token, context))

            elif token.type == TokenType.OPERATOR:
                if len(stack) < 2:
                    raise MalformedExpressionError(
                        f"Operator '{token.value}' at position {token.position} needs two operands"
                    )
                right = stack.pop()
                left = stack.pop()
                stack.append(self._apply_operator(token, left, right))

            else:
                raise MalformedExpressionError(f"Unexpected symbol '{token.value}' at position {token.position}")

        if len(stack) != 1:
            raise MalformedExpressionError(f"Expression reduced to {len(stack)} values, expected exactly one")

        result = stack[0]
        if not isinstance(result, bool):
            raise TypeMismatchError(f"Expression produced {type(result).__name__}, expected a boolean")
        return result

    def resolve_operand(self, token: Token, context: Mapping[str, Any]) -> Any:
        """Resolve an operand token to a string, number or boolean.

        Literals win over context lookup: a key that looks like a number is
        shadowed by the numeric literal.
        """
        value = token.value

        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            return value[1:-1]

        if _NUMBER_PATTERN.match(value):
            return float(value)

        if value not in context:
            raise UnknownVariableError(value, token.position)

        resolved = context[value]
        if is_number(resolved):
            try:
                return float(resolved)
            except OverflowError:
                raise TypeMismatchError(f"Variable '{value}' holds a number outside the float range") from None
        if isinstance(resolved, bool | str):
            return resolved

        raise TypeMismatchError(
            f"Variable '{value}' holds {type(resolved).__name__}, expected a string, number or boolean"
        )

    def _apply_operator(self, token: Token, left: Any, right: Any) -> bool:
        """Apply a binary operator to two resolved values."""
        op = token.value

        if op in LOGICAL_OPERATORS:
            if not isinstance(left, bool) or not isinstance(right, bool):
                raise TypeMismatchError(
                    f"Operator '{op}' at position {token.position} requires boolean operands, "
                    f"got {type(left).__name__} and {type(right).__name__}"
                )
            return (left and right) if op == "&&" else (left or right)

        if op in EQUALITY_OPERATORS:
            equal = values_equal(left, right)
            return equal if op == "==" else not equal

        if not is_number(left) or not is_number(right):
            raise TypeMismatchError(
                f"Operator '{op}' at position {token.position} requires numeric operands, "
                f"got {type(left).__name__} and {type(right).__name__}"
            )

        if op == "<":
            return left < right
        elif op == ">":
            return left > right
        elif op == "<=":
            return left <= right
        else:
            return left >= right


_default_evaluator: ConditionEvaluator | None = None


def get_evaluator() -> ConditionEvaluator:
    """Get the shared evaluator instance."""
    global _default_evaluator
    if _default_evaluator is None:
        _default_evaluator = ConditionEvaluator()
    return _default_evaluator


def evaluate_condition(condition: str, context: Mapping[str, Any]) -> bool:
    """Evaluate a condition string with the shared evaluator."""
    return get_evaluator().evaluate(condition, context)


def reset_evaluator() -> None:
    """Reset the shared evaluator (for testing)."""
    global _default_evaluator
    _default_evaluator = None
