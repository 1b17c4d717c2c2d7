"""Evaluation of Lisp syntax trees."""

from __future__ import annotations

from typing import Optional

from toolshed.lisp.frame import Frame
from toolshed.lisp.nodes import (
    ArgumentCountError,
    LispTypeError,
    Node,
    NodeType,
    new_error,
    new_primitive,
)


def evaluate(node: Optional[Node], frame: Frame) -> Optional[Node]:
    """Evaluate a node in a frame and return the resulting node."""
    if node is None:
        return None

    if node.type is NodeType.SYM:
        return _resolve_symbol(node, frame)

    if node.type is NodeType.LIST:
        if not node.children:
            return node

        head, *args = node.children
        if head is not None and head.type is NodeType.SYM:
            target = evaluate(head, frame)
            if target is None:
                return None
            if target.type is NodeType.FUNC:
                return _call_function(target, args, frame)
            if target.type is NodeType.PRIM:
                return target.value(args, frame)
            return target

        for position, child in enumerate(node.children):
            node.children[position] = evaluate(child, frame)
        return node

    return node.clone()


def _resolve_symbol(node: Node, frame: Frame) -> Optional[Node]:
    name = node.value
    if not isinstance(name, str):
        raise LispTypeError(new_error(node))

    primitive = frame.primitives.get(name)
    if primitive is not None:
        return new_primitive(name, primitive)

    if name in frame:
        bound = frame.get(name)
        return None if bound is None else bound.clone()

    raise LispTypeError(new_error(), f"symbol not found: {name}")


def _call_function(func: Node, args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    params, body = func.children[0], func.children[1]
    if len(params.children) != len(args):
        raise ArgumentCountError(len(params.children), len(args))

    scope = frame.child()
    for param, arg in zip(params.children, args):
        name = param.value if param is not None and isinstance(param.value, str) else ""
        value = evaluate(arg, frame)
        scope.define(name, None if value is None else value.clone())

    return evaluate(body, scope)