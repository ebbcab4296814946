"""Boolean selection expressions over named atoms.

The same expression tree is used for two purposes: matching a step's ``os``
field against the host, and matching a ``--tags`` filter against a step's tags.

Grammar (lowest precedence first)::

    expr     := or_expr
    or_expr  := and_expr ("||" and_expr)*
    and_expr := not_expr ("&&" not_expr)*
    not_expr := "!"* atom
    atom     := "(" expr ")" | identifier

Identifiers starting with ``%`` match the host's ``ID_LIKE`` family when used
as an OS expression. For tag expressions they are ordinary names.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Union

from .errors import ExpressionError
from .system.os_info import OsInfo

IDENTIFIER_PATTERN = re.compile(r"%?[A-Za-z0-9_][A-Za-z0-9_.+:\-]*")
ID_LIKE_PREFIX = "%"

# Token kinds
_LPAREN = "("
_RPAREN = ")"
_NOT = "!"
_AND = "&&"
_OR = "||"
_IDENT = "ident"
_END = "end"


@dataclass(frozen=True)
class Atom:
    name: str

    def variables(self) -> set[str]:
        return {self.name}


@dataclass(frozen=True)
class Not:
    inner: "Expr"

    def variables(self) -> set[str]:
        return _variables(self)


@dataclass(frozen=True)
class And:
    left: "Expr"
    right: "Expr"

    def variables(self) -> set[str]:
        return _variables(self)


@dataclass(frozen=True)
class Or:
    left: "Expr"
    right: "Expr"

    def variables(self) -> set[str]:
        return _variables(self)


Expr = Union[Atom, Not, And, Or]


def _children(expr: Expr) -> tuple:
    if isinstance(expr, Atom):
        return ()
    if isinstance(expr, Not):
        return (expr.inner,)
    if isinstance(expr, (And, Or)):
        return (expr.left, expr.right)
    raise TypeError(f"Not an expression: {expr!r}")


def _variables(expr: Expr) -> set[str]:
    names = set()
    stack = [expr]
    while stack:
        node = stack.pop()
        if isinstance(node, Atom):
            names.add(node.name)
        else:
            stack.extend(_children(node))
    return names


def _evaluate(expr: Expr, atom_value: Callable[[str], bool]) -> bool:
    """Evaluate ``expr`` bottom-up with an explicit stack.

    Long ``||`` chains build trees as deep as the chain is long, so the
    walk must not recurse.
    """
    stack = [(expr, False)]
    values: list[bool] = []
    while stack:
        node, expanded = stack.pop()
        if isinstance(node, Atom):
            values.append(atom_value(node.name))
        elif not expanded:
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(_children(node)))
        elif isinstance(node, Not):
            values.append(not values.pop())
        else:
            right = values.pop()
            left = values.pop()
            values.append(left and right if isinstance(node, And) else left or right)
    return values.pop()


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    position: int


def _tokenize(text: str) -> list[_Token]:
    tokens = []
    i = 0
    n = len(text)

    while i < n:
        char = text[i]

        if char.isspace():
            i += 1
        elif char in "()":
            tokens.append(_Token(char, char, i))
            i += 1
        elif char == "!":
            tokens.append(_Token(_NOT, char, i))
            i += 1
        elif text.startswith("&&", i):
            tokens.append(_Token(_AND, "&&", i))
            i += 2
        elif text.startswith("||", i):
            tokens.append(_Token(_OR, "||", i))
            i += 2
        else:
            match = IDENTIFIER_PATTERN.match(text, i)
            if not match:
                raise ExpressionError(
                    "Unexpected character", fragment=text[i:i + 10], position=i
                )
            tokens.append(_Token(_IDENT, match.group(0), i))
            i = match.end()

    tokens.append(_Token(_END, "", n))
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0

    def _peek(self) -> _Token:
        return self.tokens[self.index]

    def _advance(self) -> _Token:
        token = self.tokens[self.index]
        if token.kind != _END:
            self.index += 1
        return token

    def _fail(self, message: str, token: _Token) -> ExpressionError:
        fragment = self.text[token.position:token.position + 10] or "<end of input>"
        return ExpressionError(message, fragment=fragment, position=token.position)

    def parse(self) -> Expr:
        if self._peek().kind == _END:
            raise ExpressionError("Empty expression")
        expr = self._or_expr()
        token = self._peek()
        if token.kind != _END:
            if token.kind == _RPAREN:
                raise self._fail("Unbalanced ')'", token)
            raise self._fail("Unexpected input", token)
        return expr

    def _or_expr(self) -> Expr:
        expr = self._and_expr()
        while self._peek().kind == _OR:
            self._advance()
            expr = Or(expr, self._and_expr())
        return expr

    def _and_expr(self) -> Expr:
        expr = self._not_expr()
        while self._peek().kind == _AND:
            self._advance()
            expr = And(expr, self._not_expr())
        return expr

    def _not_expr(self) -> Expr:
        negations = 0
        while self._peek().kind == _NOT:
            self._advance()
            negations += 1

        token = self._peek()
        if negations and token.kind not in (_IDENT, _LPAREN):
            raise self._fail("Missing atom after '!'", token)

        expr = self._atom()
        for _ in range(negations):
            expr = Not(expr)
        return expr

    def _atom(self) -> Expr:
        token = self._advance()

        if token.kind == _IDENT:
            return Atom(token.text)

        if token.kind == _LPAREN:
            if self._peek().kind == _RPAREN:
                raise self._fail("Empty parentheses", self._peek())
            expr = self._or_expr()
            closing = self._peek()
            if closing.kind != _RPAREN:
                raise self._fail("Unbalanced '(', expected ')'", closing)
            self._advance()
            return expr

        if token.kind == _END:
            raise self._fail("Expected a name or '('", token)
        raise self._fail(f"Unexpected '{token.text}'", token)


def parse(text: str) -> Expr:
    """Parse a selection expression.

    Args:
        text: Expression source, e.g. ``"linux && !arch"``

    Returns:
        The expression tree

    Raises:
        ExpressionError: If the input is empty, malformed or nested too deeply
    """
    if not isinstance(text, str):
        raise ExpressionError(f"Expression must be a string, got {type(text).__name__}")
    try:
        return _Parser(text).parse()
    except RecursionError:
        raise ExpressionError("Expression is nested too deeply") from None


def eval_os(expr: Expr, os_info: OsInfo) -> bool:
    """Evaluate an OS expression against host facts (case-insensitive)."""
    families = {family.lower() for family in os_info.id_like}
    distro = os_info.id.lower() if os_info.id is not None else None

    def matches(name: str) -> bool:
        name = name.lower()
        if name.startswith(ID_LIKE_PREFIX):
            return name[1:] in families
        return name == os_info.platform.value or name == distro

    return _evaluate(expr, matches)


def eval_tags(expr: Expr, tags: Iterable[str]) -> bool:
    """Evaluate a tag expression against a step's tags."""
    tag_set = tags if isinstance(tags, (set, frozenset)) else set(tags)
    return _evaluate(expr, tag_set.__contains__)


__all__ = [
    "Atom",
    "Not",
    "And",
    "Or",
    "Expr",
    "parse",
    "eval_os",
    "eval_tags",
]
