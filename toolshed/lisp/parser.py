"""Tokenizer, parser and tree printer for the Lisp interpreter."""

from __future__ import annotations

import math
import re
from typing import Iterable, Optional, Union

from toolshed.lisp.nodes import (
    FALSE_VAL,
    NIL_VAL,
    SYM_FALSE,
    SYM_NIL,
    SYM_TRUE,
    TRUE_VAL,
    LispError,
    Node,
    NodeType,
    new_list,
    new_sym,
)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_FLOAT_RE = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_SPECIAL_FLOAT_RE = re.compile(r"[+-]?(?:inf|infinity)|nan", re.IGNORECASE)
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ParseError(LispError):
    """The token stream does not form an expression."""


def tokenize(text: str) -> list[str]:
    """Split a line into parentheses, quote marks, strings and atoms."""
    tokens: list[str] = []
    current: list[str] = []
    in_string = False

    def flush() -> None:
        if current:
            tokens.append("".join(current))
            current.clear()

    for char in text:
        if char == '"':
            if in_string:
                current.append(char)
                flush()
                in_string = False
            else:
                flush()
                current.append(char)
                in_string = True
        elif in_string:
            current.append(char)
        elif char.isspace():
            flush()
        elif char in "()":
            flush()
            tokens.append(char)
        elif char == "'":
            flush()
            tokens.append("'")
        else:
            current.append(char)

    flush()
    return tokens


def parse(tokens: Iterable[str]) -> tuple[Node, list[str]]:
    """Parse one expression; return it with the tokens left over."""
    token_list = list(tokens)
    node, position = _parse_at(token_list, 0)
    return node, token_list[position:]


def _parse_at(tokens: list[str], position: int) -> tuple[Node, int]:
    if position >= len(tokens):
        raise ParseError("empty input")

    token = tokens[position]
    position += 1

    if token == "(":
        children: list[Optional[Node]] = []
        while position < len(tokens) and tokens[position] != ")":
            child, position = _parse_at(tokens, position)
            children.append(child)
        if position >= len(tokens):
            raise ParseError("unexpected EOF")
        return Node(NodeType.LIST, children=children), position + 1

    if token == ")":
        raise ParseError("unexpected ')'")

    if token == "'":
        quoted, position = _parse_at(tokens, position)
        return new_list(new_sym("quote"), quoted), position

    return _parse_atom(token), position


def _parse_number(token: str) -> Union[int, float, None]:
    if _INT_RE.fullmatch(token):
        value = int(token)
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
    if _SPECIAL_FLOAT_RE.fullmatch(token):
        return float(token)
    if _FLOAT_RE.fullmatch(token):
        number = float(token)
    elif _HEX_FLOAT_RE.fullmatch(token):
        number = float.fromhex(token)
    else:
        return None
    return None if math.isinf(number) else number


def _parse_atom(token: str) -> Node:
    number = _parse_number(token)
    if isinstance(number, int):
        return Node(NodeType.INT, number)
    if isinstance(number, float):
        return Node(NodeType.FLOAT, number)

    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return Node(NodeType.STR, token[1:-1])

    booleans = {SYM_TRUE: TRUE_VAL, SYM_FALSE: FALSE_VAL, SYM_NIL: NIL_VAL}
    if token in booleans:
        return Node(NodeType.BOOL, booleans[token])

    return Node(NodeType.SYM, token)


def format_ast(node: Optional[Node], indent: str = "") -> str:
    """Render a tree one node per line, nesting lists by two spaces."""
    if node is None:
        return f"{indent}nil\n"
    if node.type in (NodeType.LIST, NodeType.FUNC):
        inner = "".join(format_ast(child, indent + "  ") for child in node.children)
        return f"{indent}(\n{inner}{indent})\n"
    if node.type is NodeType.PRIM:
        return f"{indent}{node}: <primitive>\n"
    return f"{indent}{node.type.label}: {node}\n"