"""A sheet of cells holding plain text or formulas, evaluated in dependency order."""

from __future__ import annotations

import re
from collections import deque
from typing import Any, Iterator

from toolshed.spreadsheet.formula import Expr, FormulaError, parse_formula
from toolshed.spreadsheet.interp import EvalError
from toolshed.spreadsheet.interp import evaluate as evaluate_expr
from toolshed.spreadsheet.values import INVALID, CellValue, Unimplemented

_TRAILING_DIGITS = re.compile(r"\d+\Z")


class CyclicDependencyError(ValueError):
    """Formulas refer to one another in a cycle."""

    def __init__(self, message: str = "cyclic dependency detected") -> None:
        super().__init__(message)


def _changed(previous: Any, current: Any) -> bool:
    return type(previous) is not type(current) or previous != current


class Sheet:
    """Cells keyed by reference such as 'A1', with formula dependency tracking."""

    def __init__(self) -> None:
        self._cols: list[str] = []
        self._rows: list[int] = []
        self._data: dict[str, CellValue] = {}
        self._dependencies: dict[str, list[str]] = {}
        self._reverse_deps: dict[str, list[str]] = {}
        self._formulas: dict[str, Expr] = {}
        self._dirty: dict[str, None] = {}

    def cols(self) -> Iterator[tuple[int, str]]:
        return enumerate(list(self._cols))

    def rows(self) -> Iterator[tuple[int, int]]:
        return enumerate(list(self._rows))

    def cells(self) -> Iterator[tuple[str, str]]:
        """Yield each non-empty cell with its displayed text."""
        for ref, cell in list(self._data.items()):
            yield ref, str(cell)

    def dirty(self) -> Iterator[str]:
        """Yield the cells changed since the last evaluation."""
        yield from list(self._dirty)

    def append_column(self, cell: str, values: list[str]) -> None:
        """Fill a column from row 1 down; any row number in ``cell`` is ignored."""
        column = _TRAILING_DIGITS.sub("", cell)
        for row, value in enumerate(values, start=1):
            self.update(f"{column}{row}", value)

    def _detach(self, cell: str) -> None:
        for dep in self._dependencies.pop(cell, []):
            dependents = self._reverse_deps.get(dep)
            if dependents:
                self._reverse_deps[dep] = [other for other in dependents if other != cell]

    def update(self, cell: str, value: str) -> None:
        """Set a cell's input; empty text clears it, text starting with '=' is a formula."""
        if value == "":
            self._detach(cell)
            self._data.pop(cell, None)
            self._formulas.pop(cell, None)
            self._dirty[cell] = None
            return

        if not value.startswith("="):
            self._detach(cell)
            self._formulas.pop(cell, None)
            self._data[cell] = CellValue(value)
            self._dirty[cell] = None
            return

        expr, deps = parse_formula(value)

        self._detach(cell)
        for dep in deps:
            self._reverse_deps.setdefault(dep, []).append(cell)

        self._data[cell] = CellValue(value)
        self._formulas[cell] = expr
        self._dependencies[cell] = deps
        self._dirty[cell] = None

    def evaluate(self) -> None:
        """Recompute every formula; afterwards ``dirty`` holds the cells whose value changed."""
        order = self.topo_sort()
        self._dirty.clear()

        for cell in order:
            expr = self._formulas.get(cell)
            if expr is None:
                continue
            target = self._data[cell]
            try:
                result = evaluate_expr(expr, self._data).value
            except (EvalError, Unimplemented, FormulaError, ArithmeticError):
                result = INVALID
            previous = target.value
            target.value = result
            if _changed(previous, result):
                self._dirty[cell] = None

    def reset(self) -> None:
        """Remove every cell and formula."""
        self._cols.clear()
        self._rows.clear()
        self._data.clear()
        self._formulas.clear()
        self._dirty.clear()
        self._reverse_deps.clear()
        self._dependencies.clear()

    def topo_sort(self) -> list[str]:
        """Formula cells and the cells they read, each after everything it reads."""
        in_degree: dict[str, int] = {}
        graph: dict[str, list[str]] = {}

        for cell in self._formulas:
            in_degree.setdefault(cell, 0)
            for dep in self._dependencies.get(cell, []):
                graph.setdefault(dep, []).append(cell)
                in_degree.setdefault(dep, 0)
                in_degree[cell] += 1

        queue = deque(cell for cell, degree in in_degree.items() if degree == 0)
        ordered: list[str] = []
        while queue:
            current = queue.popleft()
            ordered.append(current)
            for neighbour in graph.get(current, []):
                in_degree[neighbour] -= 1
                if in_degree[neighbour] == 0:
                    queue.append(neighbour)

        if len(ordered) != len(in_degree):
            raise CyclicDependencyError()
        return ordered