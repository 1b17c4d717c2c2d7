"""Prepared statements for one table built from a model's column list.

Columns are listed key columns first; a column whose name starts with ``!`` is
written on insert but left alone when an upsert finds a conflict. Statements use
positional ``$N`` placeholders and run through a pool offering ``fetch``,
``fetchrow`` and ``execute``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SKIP = "!"


class _Pool(Protocol):
    def fetch(self, stmt: str, *args: Any) -> Iterable[Sequence[Any]]: ...

    def fetchrow(self, stmt: str, *args: Any) -> Optional[Sequence[Any]]: ...

    def execute(self, stmt: str, *args: Any) -> Any: ...


def skip_upsert(col: str) -> str:
    """Mark a column so an upsert does not overwrite it."""
    return _SKIP + col


def _clean(col: str) -> str:
    return col[len(_SKIP):] if col.startswith(_SKIP) else col


class PgRepo(Generic[T]):
    """Select, insert, update, delete and upsert rows of ``table`` as ``model`` instances.

    ``model`` provides ``id_columns()`` and ``columns()``, and optionally
    ``attributes()`` naming the attribute behind each column; by default the
    attribute is the column name without its ``!`` mark.
    """

    def __init__(self, pool: _Pool, model: type, table: str) -> None:
        ids = list(model.id_columns())
        cols = list(model.columns())
        attributes_of = getattr(model, "attributes", None)
        attributes = list(attributes_of()) if callable(attributes_of) else [_clean(c) for c in cols]

        if (ids and len(ids) >= len(cols)) or len(cols) != len(attributes):
            raise ValueError("number of columns does not match number of params")

        self.pool = pool
        self.model = model
        self.table = table
        self.ids = ids
        self._attributes = attributes

        key_count = len(ids)
        id_params = [f"{col} = ${index}" for index, col in enumerate(ids, start=1)]
        upsert_cols: list[str] = []
        set_params: list[str] = []
        value_cols: list[str] = []
        for position, col in enumerate(cols[key_count:], start=key_count + 1):
            name = _clean(col)
            if not col.startswith(_SKIP):
                upsert_cols.append(f"{name} = ${position}")
            set_params.append(f"{name} = ${position}")
            value_cols.append(name)

        all_cols = ", ".join(_clean(col) for col in cols)
        params = ", ".join(f"${index}" for index in range(1, len(cols) + 1))
        id_clause = ", ".join(id_params)

        self.statements = {
            "select": f"select {all_cols} from {table}",
            "insert": f"insert into {table} ({', '.join(value_cols)}) values ({params})",
            "update": f"update {table} set {', '.join(set_params)} where {id_clause}",
            "delete": f"delete from {table} where {id_clause}",
            "upsert": (
                f"insert into {table} ({all_cols}) values ({params}) "
                f"on conflict ({', '.join(ids)}) do update set {', '.join(upsert_cols)}"
            ),
        }

    def log(self) -> str:
        """Log the generated statements as indented JSON and return that text."""
        text = json.dumps(list(self.statements.values()), indent=2)
        logger.info("%s", text)
        return text

    def _query(self, filter: str) -> str:
        stmt = self.statements["select"]
        return f"{stmt} {filter}" if filter else stmt

    def _build(self, row: Sequence[Any]) -> T:
        return self.model(**dict(zip(self._attributes, row)))

    def _values(self, item: T) -> list[Any]:
        return [getattr(item, attribute) for attribute in self._attributes]

    def select(self, filter: str, *args: Any) -> list[T]:
        return [self._build(row) for row in self.pool.fetch(self._query(filter), *args)]

    def select_one(self, filter: str, *args: Any) -> T:
        """The first matching row; raises LookupError when there is none."""
        row = self.pool.fetchrow(self._query(filter) + " LIMIT 1", *args)
        if row is None:
            raise LookupError("no rows in result set")
        return self._build(row)

    def insert(self, item: T) -> None:
        self.pool.execute(self.statements["insert"], *self._values(item))

    def upsert(self, item: T) -> None:
        self.pool.execute(self.statements["upsert"], *self._values(item))

    def update(self, item: T) -> None:
        self.pool.execute(self.statements["update"], *self._values(item))

    def delete(self, item: T) -> None:
        """Delete the row whose key columns match those of ``item``."""
        self.pool.execute(self.statements["delete"], *self._values(item)[: len(self.ids)])

    def each(self, filter: str, args: Sequence[Any], handler: Callable[[T], None]) -> None:
        """Call ``handler`` on every matching row; an exception from it stops the walk."""
        for row in self.pool.fetch(self._query(filter), *args):
            handler(self._build(row))

    def values(self, filter: str, *args: Any) -> list[list[Any]]:
        """The model's column list followed by the raw values of each matching row."""
        rows = self.pool.fetch(self._query(filter), *args)
        return [list(self.model.columns())] + [list(row) for row in rows]