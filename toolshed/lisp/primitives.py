"""Built-in functions of the Lisp interpreter."""

from __future__ import annotations

import math
import operator
import random
from typing import Callable, Optional

from toolshed.lisp.evaluator import evaluate
from toolshed.lisp.frame import Frame
from toolshed.lisp.nodes import (
    NIL_VAL,
    SYM_NIL,
    TRUE_VAL,
    ArgumentCountError,
    LispError,
    LispTypeError,
    Node,
    NodeType,
    Primitive,
    bool_node,
    new_bool,
    new_error,
    new_float,
    new_int,
    new_list,
    new_str,
    new_sym,
)
from toolshed.lisp.parser import ParseError, parse, tokenize

_INT64_SPAN = 2**64
_INT64_HALF = 2**63


def _wrap(value: int) -> int:
    """Wrap an integer into the signed 64-bit range."""
    return (value + _INT64_HALF) % _INT64_SPAN - _INT64_HALF


def _require(args: list[Optional[Node]], count: int) -> None:
    if len(args) < count:
        raise ArgumentCountError(count, len(args))


def _value(node: Optional[Node], frame: Frame) -> Node:
    """Evaluate a node that must produce a value."""
    result = evaluate(node, frame)
    if result is None:
        raise LispTypeError(new_error())
    return result


def _item(children: list[Optional[Node]], index: int) -> Optional[Node]:
    if not 0 <= index < len(children):
        raise LispError(f"index {index} out of range")
    return children[index]


def _trunc_div(a: int, b: int) -> int:
    if b == 0:
        raise LispError("integer divide by zero")
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _trunc_mod(a: int, b: int) -> int:
    return a - b * _trunc_div(a, b)


def _float_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _float_mod(a: float, b: float) -> float:
    try:
        return math.fmod(a, b)
    except ValueError:
        return math.nan


def _float_pow(a: float, b: float) -> float:
    odd_power = b.is_integer() and b % 2 == 1
    if a == 0 and b < 0:
        return math.copysign(math.inf, a) if odd_power else math.inf
    try:
        return math.pow(a, b)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.copysign(math.inf, a) if odd_power else math.inf


def _go_round(number: float) -> int:
    """Round half away from zero."""
    whole = math.trunc(number)
    if abs(number - whole) >= 0.5:
        whole += 1 if number > 0 else -1
    return whole


# --- special forms -------------------------------------------------------


def _quit(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    return None


def _quote(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    return args[0]


def _apply(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    func, call_args = args[0], args[1]
    fn_args = list(call_args.children) if call_args is not None else []

    if func is not None and func.type is NodeType.FUNC:
        params = func.children[0].children
        body = func.children[1]
        if len(params) != len(fn_args):
            raise ArgumentCountError(len(params), len(fn_args))
        scope = frame.child()
        for param, arg in zip(params, fn_args):
            name = param.value if param is not None and isinstance(param.value, str) else ""
            scope.define(name, arg)
        return evaluate(body, scope)

    return evaluate(new_list(func, *fn_args), frame)


def _cond(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    for clause in args:
        if clause is None or len(clause.children) < 2:
            raise LispError("cond clause needs a test and an expression", clause)
        test, expr = clause.children[0], clause.children[1]
        result = evaluate(test, frame)
        if result is not None and result.type is NodeType.BOOL and result.value == TRUE_VAL:
            return evaluate(expr, frame)
    return new_sym(SYM_NIL)


def _def(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    target = args[0]
    if target is None or target.type is not NodeType.SYM:
        raise LispTypeError(new_error())
    value = evaluate(args[1], frame)
    frame.define(target.value, value)
    return new_str("ok")


def _lambda(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    return Node(NodeType.FUNC, children=[args[0], args[1]])


def _map(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    func = evaluate(args[0], frame)
    items = _value(args[1], frame)
    return new_list(*(evaluate(new_list(func, item), frame) for item in items.children))


# --- arithmetic ----------------------------------------------------------


def _add(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    int_total = 0
    float_total = 0.0
    saw_float = False
    for arg in args:
        value = _value(arg, frame)
        if value.type is NodeType.INT:
            int_total += value.value
        elif value.type is NodeType.FLOAT:
            float_total += value.value
            saw_float = True
        else:
            raise LispTypeError(new_error(value))
    if saw_float:
        return new_float(float(_wrap(int_total)) + float_total)
    return new_int(_wrap(int_total))


def _operand(node: Optional[Node]) -> tuple[int, float, bool]:
    if node is not None and node.type is NodeType.FLOAT:
        return 0, node.value, True
    if node is not None and node.type is NodeType.INT:
        return node.value, float(node.value), False
    return 0, 0.0, False


def _arithmetic(
    int_op: Callable[[int, int], int], float_op: Callable[[float, float], float]
) -> Primitive:
    def primitive(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
        _require(args, 2)
        a_int, a_float, a_is_float = _operand(evaluate(args[0], frame))
        b_int, b_float, b_is_float = _operand(evaluate(args[1], frame))
        if a_is_float or b_is_float:
            return new_float(float_op(a_float, b_float))
        return new_int(_wrap(int_op(a_int, b_int)))

    return primitive


def _to_float(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if value.type is NodeType.FLOAT:
        return value
    if value.type is not NodeType.INT:
        raise LispTypeError(new_error(value))
    return new_float(float(value.value))


def _float_arg(args: list[Optional[Node]], frame: Frame, position: int = 0) -> float:
    _require(args, position + 1)
    value = _value(args[position], frame)
    if value.type is not NodeType.FLOAT:
        raise LispTypeError(new_error())
    return value.value


def _rounding(func: Callable[[float], int]) -> Primitive:
    def primitive(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
        number = _float_arg(args, frame)
        if not math.isfinite(number):
            raise LispError(f"cannot convert {number} to int")
        return new_int(_wrap(func(number)))

    return primitive


def _unary_float(func: Callable[[float], float]) -> Primitive:
    def primitive(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
        number = _float_arg(args, frame)
        try:
            return new_float(func(number))
        except ValueError:
            return new_float(math.nan)

    return primitive


def _pow(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    base = _float_arg(args, frame, 0)
    exponent = _float_arg(args, frame, 1)
    return new_float(_float_pow(base, exponent))


def _rand(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    return new_float(random.random())


# --- lists ---------------------------------------------------------------


def _cons(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    if len(args) > 3:
        raise ArgumentCountError(2, len(args) - 1)
    first = evaluate(args[0], frame)
    second = evaluate(args[1], frame)
    return new_list(first, second)


def _car(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if not value.children:
        return new_bool(NIL_VAL)
    return new_list(*value.children[:-1])


def _cdr(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if not value.children:
        return new_sym("#NIL")
    return value.children[-1]


def _push(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    target = _value(args[0], frame)
    if target.type is not NodeType.LIST:
        raise LispTypeError(new_error(target))
    target.children.append(evaluate(args[1], frame))
    return target


def _pop(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    target = _value(args[0], frame)
    if target.type is not NodeType.LIST:
        raise LispTypeError(new_error(target))
    if not target.children:
        raise LispError("pop from an empty list", target)
    last = target.children[-1]
    target.children = target.children[-1:]
    return last


def _nth(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    seq = _value(args[0], frame)
    index = _value(args[1], frame)
    if seq.type is NodeType.LIST and index.type is NodeType.INT:
        return _item(seq.children, index.value)
    raise LispTypeError(new_error(*args))


def _set(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 3)
    seq = _value(args[0], frame)
    index = _value(args[1], frame)
    if index.type is not NodeType.INT:
        raise LispTypeError(new_error(index))
    item = evaluate(args[2], frame)
    result = seq.clone()
    _item(result.children, index.value)
    result.children[index.value] = None if item is None else item.clone()
    return result


# --- comparison and logic -----------------------------------------------


def _eq(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    a = evaluate(args[0], frame)
    b = evaluate(args[1], frame)
    return bool_node(compare_nodes(a, b))


_ORDERED = (NodeType.INT, NodeType.FLOAT, NodeType.STR)


def _lt(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    a = _value(args[0], frame)
    b = _value(args[1], frame)
    if a.type is b.type and a.type in _ORDERED:
        return bool_node(a.value < b.value)
    if a.type is b.type is NodeType.BOOL:
        # booleans carry no text, so they never order below one another
        return bool_node(False)
    raise LispTypeError(new_error(a, b))


def _gt(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 2)
    a = _value(args[0], frame)
    b = _value(args[1], frame)
    if a.type is b.type and a.type in _ORDERED:
        return bool_node(a.value > b.value)
    if a.type is b.type is NodeType.BOOL:
        return bool_node(a.value < b.value)
    raise LispTypeError(new_error(a, b))


def _logic(op: Callable[[bool, bool], bool]) -> Primitive:
    def primitive(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
        _require(args, 2)
        a = _value(args[0], frame)
        b = _value(args[1], frame)
        for operand in (a, b):
            if operand.type is not NodeType.BOOL:
                raise LispTypeError(new_error(operand))
        return bool_node(op(a.value == TRUE_VAL, b.value == TRUE_VAL))

    return primitive


def _not(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if value.type is not NodeType.BOOL:
        raise LispTypeError(new_error(value))
    return bool_node(value.value != TRUE_VAL)


def _even(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if value.type is NodeType.LIST:
        value = _value(value, frame)
    if value.type is NodeType.FLOAT:
        return bool_node(_float_mod(value.value, 2.0) == 0)
    if value.type is NodeType.INT:
        return bool_node(value.value % 2 == 0)
    raise LispTypeError(new_error(value))


def _odd(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if value.type is NodeType.FLOAT:
        return bool_node(_float_mod(value.value, 2.0) > 0)
    if value.type is NodeType.INT:
        return bool_node(_trunc_mod(value.value, 2) > 0)
    raise LispTypeError(new_error(value))


def _type_check(kind: NodeType) -> Primitive:
    def primitive(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
        _require(args, 1)
        value = _value(_value(args[0], frame), frame)
        return bool_node(value.type is kind)

    return primitive


def _empty(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if value.type is NodeType.LIST:
        return bool_node(not value.children)
    if value.type is NodeType.STR:
        return bool_node(value.value == "")
    raise LispTypeError(new_error(*args))


def _length(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    value = _value(args[0], frame)
    if value.type is NodeType.LIST:
        value = _value(value, frame)
    if value.type is NodeType.LIST:
        return new_int(len(value.children))
    if value.type is NodeType.STR:
        return new_int(len(value.value.encode("utf-8")))
    raise LispTypeError(new_error(*args))


# --- environment ---------------------------------------------------------


def _load(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    source = args[0]
    if source is None or source.type is not NodeType.STR:
        raise LispTypeError(new_error())

    try:
        with open("./" + source.value, encoding="utf-8", errors="replace") as handle:
            data = handle.read()
    except OSError as exc:
        raise LispError(str(exc), new_error()) from exc

    print(data)

    for line in data.split("\n"):
        if not line or line.startswith(";"):
            continue
        try:
            node, _ = parse(tokenize(line))
        except ParseError as exc:
            print("error:", exc)
            continue
        if evaluate(node, frame) is None:
            break

    return new_str("ok")


def _dump(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    return new_list(*(new_list(new_sym(name), value) for name, value in frame.entries()))


def _eval(args: list[Optional[Node]], frame: Frame) -> Optional[Node]:
    _require(args, 1)
    return evaluate(evaluate(args[0], frame), frame)


def compare_nodes(a: Optional[Node], b: Optional[Node]) -> bool:
    """Structural equality of two nodes; primitives never compare equal."""
    if a is None or b is None:
        return a is b
    if a.type is not b.type:
        return False
    if callable(a.value) or callable(b.value):
        return False
    if a.value != b.value:
        return False
    if a.type is NodeType.LIST:
        if len(a.children) != len(b.children):
            return False
        return all(compare_nodes(x, y) for x, y in zip(a.children, b.children))
    return True


def builtins() -> dict[str, Primitive]:
    """The table of primitive functions, keyed by name."""
    return {
        "quit": _quit,
        "quote": _quote,
        "apply": _apply,
        "cond": _cond,
        "def": _def,
        "lambda": _lambda,
        "map": _map,
        "+": _add,
        "-": _arithmetic(operator.sub, operator.sub),
        "*": _arithmetic(operator.mul, operator.mul),
        "/": _arithmetic(_trunc_div, _float_div),
        "%": _arithmetic(_trunc_mod, _float_mod),
        "float": _to_float,
        "ceil": _rounding(math.ceil),
        "floor": _rounding(math.floor),
        "round": _rounding(_go_round),
        "cos": _unary_float(math.cos),
        "sin": _unary_float(math.sin),
        "sqrt": _unary_float(math.sqrt),
        "pow": _pow,
        "rand": _rand,
        "cons": _cons,
        "car": _car,
        "cdr": _cdr,
        "push": _push,
        "pop": _pop,
        "nth": _nth,
        "set": _set,
        "eq?": _eq,
        "lt?": _lt,
        "gt?": _gt,
        "and": _logic(lambda a, b: a and b),
        "or": _logic(lambda a, b: a or b),
        "not": _not,
        "even?": _even,
        "odd?": _odd,
        "bool?": _type_check(NodeType.BOOL),
        "int?": _type_check(NodeType.INT),
        "float?": _type_check(NodeType.FLOAT),
        "str?": _type_check(NodeType.STR),
        "sym?": _type_check(NodeType.SYM),
        "list?": _type_check(NodeType.LIST),
        "empty?": _empty,
        "length?": _length,
        "load": _load,
        "dump": _dump,
        "eval": _eval,
    }


def new_frame() -> Frame:
    """Return a top-level scope with every primitive available."""
    return Frame(builtins())