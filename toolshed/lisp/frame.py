"""Lexical scopes for the Lisp interpreter."""

from __future__ import annotations

from typing import Mapping, Optional

from toolshed.lisp.nodes import Node, Primitive


class Frame:
    """A scope of named values, chained to an optional parent scope."""

    def __init__(
        self,
        primitives: Optional[Mapping[str, Primitive]] = None,
        parent: Optional["Frame"] = None,
    ) -> None:
        if primitives is None:
            primitives = parent.primitives if parent is not None else {}
        self.primitives = primitives
        self.parent = parent
        self._data: dict[str, Optional[Node]] = {}

    def child(self) -> "Frame":
        """Return a new scope nested in this one, sharing its primitives."""
        return Frame(self.primitives, self)

    def define(self, name: str, value: Optional[Node]) -> None:
        """Bind a name in this scope, replacing any earlier binding here."""
        self._data[name] = value

    def set(self, name: str, value: Optional[Node]) -> None:
        """Rebind the nearest existing binding; do nothing if there is none."""
        frame: Optional[Frame] = self
        while frame is not None:
            if name in frame._data:
                frame._data[name] = value
                return
            frame = frame.parent

    def get(self, name: str) -> Optional[Node]:
        """Look a name up through the scope chain; None if unbound."""
        frame: Optional[Frame] = self
        while frame is not None:
            if name in frame._data:
                return frame._data[name]
            frame = frame.parent
        return None

    def __contains__(self, name: object) -> bool:
        frame: Optional[Frame] = self
        while frame is not None:
            if name in frame._data:
                return True
            frame = frame.parent
        return False

    def entries(self) -> list[tuple[str, Optional[Node]]]:
        """The bindings of this scope alone, sorted by name."""
        return sorted(self._data.items(), key=lambda item: item[0])

    def format(self, indent_level: int = 0) -> str:
        indent = "  " * indent_level
        lines = [f"{indent}Frame {{\n"]
        lines.extend(
            f"{indent}  {name}: {'nil' if value is None else value}\n"
            for name, value in self.entries()
        )
        if self.parent is not None:
            lines.append(self.parent.format(indent_level + 1))
        lines.append(f"{indent}}}\n")
        return "".join(lines)