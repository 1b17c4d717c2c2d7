"""Evaluation of parsed spreadsheet formulas against a set of cells."""

from __future__ import annotations

import math
import random
import time
from typing import Callable, Mapping, Optional, Sequence

from toolshed.spreadsheet.formula import (
    BinaryExpr,
    CellRef,
    Expr,
    FormulaError,
    FuncCall,
    Number,
    Range,
    StringLit,
    cell_to_coord,
    coord_to_cell,
)
from toolshed.spreadsheet.values import CellValue, Unimplemented, Value, _parse_float

Cells = Mapping[str, CellValue]


class EvalError(Exception):
    """A formula could not be evaluated."""


def evaluate(expr: Expr, data: Cells) -> Value:
    """Evaluate an expression, reading referenced cells from ``data``."""
    if isinstance(expr, (Number, StringLit)):
        return Value(expr.value)
    if isinstance(expr, CellRef):
        return _cell(expr.ref, data)
    if isinstance(expr, BinaryExpr):
        return _binary(expr, data)
    if isinstance(expr, Range):
        cells = (_cell(ref, data) for ref in expand_range(expr.start, expr.end))
        return Value(_sum_floats(cells))
    if isinstance(expr, FuncCall):
        return _call(expr, data)
    raise EvalError(f"unsupported expression type: {type(expr).__name__}")


def _cell(ref: str, data: Cells) -> Value:
    cell = data.get(ref)
    if cell is None:
        return Value()
    text = str(cell)
    number = _parse_float(text)
    return Value(number if number is not None else text)


def _sum_floats(values) -> float:
    return sum((v.value for v in values if isinstance(v.value, float)), 0.0)


_COMPARISONS: dict[str, Callable[[float, float], bool]] = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def _binary(expr: BinaryExpr, data: Cells) -> Value:
    left = evaluate(expr.left, data)
    right = evaluate(expr.right, data)
    try:
        lf = left.as_float()
    except TypeError:
        raise EvalError("left operand is not numeric") from None
    try:
        rf = right.as_float()
    except TypeError:
        raise EvalError("right operand is not numeric") from None

    if expr.op == "+":
        return Value(lf + rf)
    if expr.op == "-":
        return Value(lf - rf)
    if expr.op == "*":
        return Value(lf * rf)
    if expr.op == "/":
        if rf == 0:
            raise EvalError("division by zero")
        return Value(lf / rf)
    compare = _COMPARISONS.get(expr.op)
    if compare is None:
        raise EvalError(f"unsupported binary op: {expr.op}")
    return Value(1.0 if compare(lf, rf) else 0.0)


def _number_arg(args: Sequence[Value], index: int, name: str) -> float:
    if index >= len(args):
        raise EvalError(f"{name}: missing argument {index + 1}")
    try:
        return args[index].as_float()
    except TypeError as exc:
        raise EvalError(str(exc)) from None


def _safe(func: Callable[[float], float]) -> Callable[[float], float]:
    def wrapped(x: float) -> float:
        try:
            return func(x)
        except ValueError:
            return math.nan

    return wrapped


def _integral(func: Callable[[float], int]) -> Callable[[float], float]:
    def wrapped(x: float) -> float:
        if not math.isfinite(x):
            return x
        return math.copysign(float(func(x)), x)

    return wrapped


def _round_half_away(x: float) -> int:
    whole = math.trunc(x)
    if abs(x - whole) >= 0.5:
        whole += 1 if x > 0 else -1
    return whole


_UNARY: dict[str, Callable[[float], float]] = {
    "ABS": math.fabs,
    "SIN": _safe(math.sin),
    "COS": _safe(math.cos),
    "TAN": _safe(math.tan),
    "ROUND": _integral(_round_half_away),
    "CEIL": _integral(math.ceil),
    "FLOOR": _integral(math.floor),
}

_UNIMPLEMENTED = frozenset({"MEDIAN", "VAR", "BINOM.INV"})


def _call(call: FuncCall, data: Cells) -> Value:
    args: list[Value] = []
    for raw in call.args:
        if isinstance(raw, Range):
            args.extend(_cell(ref, data) for ref in expand_range(raw.start, raw.end))
        else:
            args.append(evaluate(raw, data))

    name = call.name.upper()

    if name == "E":
        return Value(math.e)
    if name == "PI":
        return Value(math.pi)
    unary = _UNARY.get(name)
    if unary is not None:
        return Value(unary(_number_arg(args, 0, name)))
    if name == "MOD":
        # both operands are read from the first argument
        dividend = _number_arg(args, 0, name)
        divisor = _number_arg(args, 0, name)
        return Value(_safe(lambda x: math.fmod(x, divisor))(dividend))
    if name == "NOW":
        return Value(int(time.time()))
    if name == "SUM":
        return Value(_sum_floats(args))
    if name == "MEAN":
        numbers = [v.value for v in args if isinstance(v.value, float)]
        total = sum(numbers, 0.0)
        return Value(total / len(numbers) if numbers else math.nan)
    if name in _UNIMPLEMENTED:
        raise Unimplemented()
    if name == "RAND":
        return Value(random.random())
    if name == "NORM":
        if len(args) != 2:
            raise EvalError("NORM(mu, sigma) expected 2 args")
        sigma = _number_arg(args, 1, name)
        mu = _number_arg(args, 0, name)
        return Value(random.gauss(0.0, 1.0) * sigma + mu)
    if name == "VLOOKUP":
        return _vlookup(args, call.args, data)
    raise EvalError(f"unknown function: {call.name}")


def _cell_value(data: Cells, ref: str) -> Optional[Value]:
    cell = data.get(ref)
    if cell is None:
        return None
    return Value(cell.current())


def _vlookup(args: Sequence[Value], raw_args: Sequence[Expr], data: Cells) -> Value:
    if len(args) < 3:
        raise EvalError("VLOOKUP requires at least 3 arguments")

    lookup = args[0]

    if len(raw_args) < 2 or not isinstance(raw_args[1], Range):
        raise EvalError("VLOOKUP expects a range as second argument")
    table = raw_args[1]

    if len(raw_args) < 3 or not isinstance(raw_args[2], Number):
        raise EvalError("VLOOKUP expects a column number as third argument")
    if not math.isfinite(raw_args[2].value):
        raise EvalError("VLOOKUP expects a finite column number")
    col_index = int(raw_args[2].value)

    exact = not args[3].is_zero() if len(args) > 3 else True

    for row in expand_range_to_grid(table.start, table.end):
        if len(row) < col_index or col_index < 1:
            continue
        candidate = _cell_value(data, row[0])
        if candidate is None:
            continue
        matched = lookup.equals(candidate) if exact else lookup.coerced_equals(candidate)
        if matched:
            result = _cell_value(data, row[col_index - 1])
            return Value() if result is None else result

    raise EvalError("VLOOKUP: value not found")


def _coord(ref: str) -> tuple[int, int]:
    try:
        return cell_to_coord(ref)
    except FormulaError:
        return 0, 0


def expand_range(start: str, end: str) -> list[str]:
    """Cells of a rectangular range, column by column."""
    c1x, c1y = _coord(start)
    c2x, c2y = _coord(end)
    return [
        coord_to_cell(x, y)
        for x in range(min(c1x, c2x), max(c1x, c2x) + 1)
        for y in range(min(c1y, c2y), max(c1y, c2y) + 1)
    ]


def expand_range_to_grid(start: str, end: str) -> list[list[str]]:
    """Cells of a rectangular range as a list of rows."""
    sx, sy = _coord(start)
    ex, ey = _coord(end)
    return [
        [coord_to_cell(x, y) for x in range(min(sx, ex), max(sx, ex) + 1)]
        for y in range(min(sy, ey), max(sy, ey) + 1)
    ]