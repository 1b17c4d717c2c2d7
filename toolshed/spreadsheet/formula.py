"""Tokenizer and parser for spreadsheet formulas, and cell reference helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Union

from toolshed.spreadsheet.values import _parse_float


class FormulaError(ValueError):
    """A formula or cell reference could not be parsed."""


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class StringLit:
    value: str


@dataclass(frozen=True)
class CellRef:
    ref: str


@dataclass(frozen=True)
class BinaryExpr:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class FuncCall:
    name: str
    args: list = field(default_factory=list)


@dataclass(frozen=True)
class Range:
    start: str
    end: str


Expr = Union[Number, StringLit, CellRef, BinaryExpr, FuncCall, Range]

_TOKEN_RE = re.compile(
    r"\s*(>=|<=|==|!=|>|<|[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z0-9_]+)*|[0-9.]+|[(),:+\-*/])\s*",
    re.ASCII,
)
_CELL_RE = re.compile(r"([A-Za-z]+)([0-9]+)", re.ASCII)

_PRECEDENCE = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
    ">": 3,
    "<": 3,
    "<=": 3,
    ">=": 3,
    "==": 3,
    "!=": 3,
}


def tokenize(text: str) -> list[str]:
    """Split formula text into tokens, skipping characters no token matches."""
    return [match.group(1).strip() for match in _TOKEN_RE.finditer(text)]


class Parser:
    """Precedence-climbing parser over a token list."""

    def __init__(self, tokens: Iterable[str]) -> None:
        self._tokens = list(tokens)
        self._pos = 0

    def _next(self) -> str:
        if self._pos >= len(self._tokens):
            return ""
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _peek(self) -> str:
        if self._pos >= len(self._tokens):
            return ""
        return self._tokens[self._pos]

    def parse_expr(self) -> Expr:
        return self._parse_binary(0)

    def _parse_binary(self, min_prec: int) -> Expr:
        left = self._parse_primary()
        while True:
            op = self._peek()
            prec = _PRECEDENCE.get(op)
            if prec is None or prec < min_prec:
                return left
            self._next()
            right = self._parse_binary(prec + 1)
            left = BinaryExpr(op, left, right)

    def _parse_primary(self) -> Expr:
        token = self._next()

        number = _parse_float(token)
        if number is not None:
            return Number(number)

        if self._peek() == "(":
            self._next()
            args: list[Expr] = []
            while True:
                upcoming = self._peek()
                if upcoming == ")":
                    self._next()
                    break
                if upcoming == "":
                    raise FormulaError(f"unterminated call to {token}")
                args.append(self.parse_expr())
                if self._peek() == ",":
                    self._next()
            return FuncCall(token, args)

        if self._peek() == ":":
            self._next()
            return Range(token, self._next())

        return CellRef(token)


def parse_formula(formula: str) -> tuple[Expr, list[str]]:
    """Parse text starting with '=' into an expression and the cells it reads."""
    formula = formula.strip()
    if not formula.startswith("="):
        raise FormulaError("not a formula")
    expr = Parser(tokenize(formula[1:])).parse_expr()
    return expr, collect_deps(expr)


def collect_deps(expr: Expr) -> list[str]:
    """Cell references an expression reads, in first-seen order, without repeats."""
    seen: dict[str, None] = {}

    def visit(node: Expr) -> None:
        if isinstance(node, CellRef):
            seen.setdefault(node.ref, None)
        elif isinstance(node, BinaryExpr):
            visit(node.left)
            visit(node.right)
        elif isinstance(node, FuncCall):
            for arg in node.args:
                visit(arg)
        elif isinstance(node, Range):
            try:
                c1x, c1y = cell_to_coord(node.start)
                c2x, c2y = cell_to_coord(node.end)
            except FormulaError:
                return
            for x in range(min(c1x, c2x), max(c1x, c2x) + 1):
                for y in range(min(c1y, c2y), max(c1y, c2y) + 1):
                    seen.setdefault(coord_to_cell(x, y), None)

    visit(expr)
    return list(seen)


def cell_to_coord(cell: str) -> tuple[int, int]:
    """Turn a reference such as 'B3' into zero-based (column, row)."""
    match = _CELL_RE.fullmatch(cell)
    if match is None:
        raise FormulaError(f"invalid cell ref: {cell}")
    letters, digits = match.groups()
    col = 0
    for char in letters:
        col = col * 26 + (ord(char) - ord("A") + 1)
    return col - 1, int(digits) - 1


def coord_to_cell(col: int, row: int) -> str:
    """Turn zero-based (column, row) into a reference such as 'B3'."""
    label = ""
    col += 1
    while col > 0:
        col -= 1
        label = chr(ord("A") + col % 26) + label
        col //= 26
    return f"{label}{row + 1}"