"""Syntax tree nodes and errors for the Lisp interpreter."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

if TYPE_CHECKING:
    from toolshed.lisp.frame import Frame

SYM_TRUE = "#t"
SYM_FALSE = "#f"
SYM_NIL = "#nil"

TRUE_VAL = 1
FALSE_VAL = 0
NIL_VAL = -1

BOOL_NAMES = {
    TRUE_VAL: SYM_TRUE,
    FALSE_VAL: SYM_FALSE,
    NIL_VAL: SYM_NIL,
}


class NodeType(Enum):
    """The kind of value a node holds."""

    INT = 1
    FLOAT = 2
    STR = 3
    LIST = 4
    SYM = 5
    ERR = 6
    BOOL = 7
    FUNC = 8
    PRIM = 9

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    NodeType.INT: "int",
    NodeType.FLOAT: "float",
    NodeType.STR: "str",
    NodeType.LIST: "list",
    NodeType.SYM: "sym",
    NodeType.ERR: "err",
    NodeType.BOOL: "bool",
    NodeType.FUNC: "func",
    NodeType.PRIM: "primitive",
}


class LispError(Exception):
    """Base error of the interpreter; ``node`` holds the offending node, if any."""

    def __init__(self, message: str, node: Optional["Node"] = None) -> None:
        super().__init__(message)
        self.node = node


class LispTypeError(LispError):
    """A value had the wrong type, or a symbol could not be resolved."""

    def __init__(self, node: Optional["Node"] = None, message: str = "invalid type") -> None:
        super().__init__(message, node)


class ArgumentCountError(LispError):
    """A function was called with the wrong number of arguments."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(f"expected {expected} arguments, got {got}")
        self.expected = expected
        self.got = got


def _format_float(value: float) -> str:
    """Render a float the way the interpreter prints numbers (shortest %g style)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    point = len(digit_tuple) + exponent
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    count = len(digits)
    prefix = "-" if sign else ""

    exp10 = point - 1
    if exp10 < -4 or exp10 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= count:
        return f"{prefix}{digits}{'0' * (point - count)}"
    return f"{prefix}{digits[:point]}.{digits[point:]}"


@dataclass
class Node:
    """A node of the syntax tree; lists, functions and primitives carry children."""

    type: NodeType
    value: Any = None
    children: list[Optional["Node"]] = field(default_factory=list)

    def clone(self) -> "Node":
        """Return a deep copy of the node and its children; the value is shared."""
        return Node(
            type=self.type,
            value=self.value,
            children=[None if child is None else child.clone() for child in self.children],
        )

    def as_int(self) -> int:
        if self.type is not NodeType.INT:
            raise LispTypeError(self)
        return self.value

    def as_float(self) -> float:
        if self.type is not NodeType.FLOAT:
            raise LispTypeError(self)
        return self.value

    def as_str(self) -> str:
        if not isinstance(self.value, str):
            raise LispTypeError(self)
        return self.value

    def as_bool(self) -> int:
        if self.type is not NodeType.BOOL:
            raise LispTypeError(self)
        return self.value

    def __str__(self) -> str:
        if self.type is NodeType.BOOL:
            return BOOL_NAMES.get(self.value, str(self.value))
        if self.type is NodeType.FLOAT and isinstance(self.value, float):
            return _format_float(self.value)
        if self.type in (NodeType.LIST, NodeType.FUNC):
            inner = " ".join("nil" if child is None else str(child) for child in self.children)
            return f"({inner})"
        if self.type is NodeType.PRIM:
            return str(self.children[0]) if self.children else "primitive"
        return "nil" if self.value is None else str(self.value)


Primitive = Callable[[list[Node], "Frame"], Optional[Node]]


def new_primitive(name: str, func: Primitive) -> Node:
    return Node(NodeType.PRIM, func, [new_str(name)])


def new_bool(value: int) -> Node:
    return Node(NodeType.BOOL, value)


def new_int(value: int) -> Node:
    return Node(NodeType.INT, value)


def new_float(value: float) -> Node:
    return Node(NodeType.FLOAT, value)


def bool_node(value: bool) -> Node:
    """Map a Python truth value onto a #t / #f node."""
    return Node(NodeType.BOOL, TRUE_VAL if value else FALSE_VAL)


def new_str(value: str) -> Node:
    return Node(NodeType.STR, value)


def new_error(*args: Node) -> Node:
    """Build the list node that accompanies an evaluation error."""
    return Node(NodeType.LIST, children=list(args))


def new_list(*args: Optional[Node]) -> Node:
    return Node(NodeType.LIST, children=list(args))


def new_sym(value: str) -> Node:
    return Node(NodeType.SYM, value)


def has_float(nodes: Iterable[Node]) -> bool:
    return any(node.type is NodeType.FLOAT for node in nodes)


def is_all_int(nodes: Iterable[Node]) -> bool:
    return all(node.type is NodeType.INT for node in nodes)