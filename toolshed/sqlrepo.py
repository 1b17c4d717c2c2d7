"""Table access for model classes over a DB-API connection.

Statements use named parameters written ``$c1``, ``$c2`` and so on, which is the
form SQLite accepts; arguments are bound through :func:`wrap_params`.
"""

from __future__ import annotations

import dataclasses
from contextlib import contextmanager
from typing import Any, Generic, Iterable, Iterator, Mapping, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

Params = Union[Mapping[str, Any], Sequence[Any]]


def wrap_params(*args: Any) -> dict[str, Any]:
    """Name arguments ``c1``, ``c2``, ... in order, for ``$cN`` placeholders."""
    return {f"c{index}": value for index, value in enumerate(args, start=1)}


def _column_map(model: type) -> dict[str, str]:
    """Column name to attribute name, from ``model.sql_map()`` or the dataclass fields."""
    sql_map = getattr(model, "sql_map", None)
    if callable(sql_map):
        mapping = dict(sql_map())
    elif dataclasses.is_dataclass(model):
        mapping = {item.name: item.name for item in dataclasses.fields(model)}
    else:
        raise TypeError(f"{model!r} is neither a dataclass nor defines sql_map()")
    if not mapping:
        raise ValueError("model maps no columns")
    return mapping


@contextmanager
def _cursor(db: Any, stmt: str, params: Optional[Params] = None) -> Iterator[Any]:
    cursor = db.cursor()
    try:
        if params:
            cursor.execute(stmt, params)
        else:
            cursor.execute(stmt)
        yield cursor
    finally:
        cursor.close()


class Repo(Generic[T]):
    """Reads and writes rows of one table as instances of ``model``.

    Every method takes the connection (or transaction) to run on, so the same
    repository works inside and outside a transaction; committing is left to the caller.
    Items are built by calling ``model`` with one keyword argument per mapped column.
    """

    def __init__(self, db: Any, model: type, table: str, pks: Iterable[str]) -> None:
        if not table:
            raise ValueError("table name must not be empty")
        mapping = _column_map(model)
        self.db = db
        self.model = model
        self.table = table
        self.pks = list(pks)
        self.keys = list(mapping)
        self._attributes = list(mapping.values())

    @property
    def _alias(self) -> str:
        return self.table[0]

    def _build(self, row: Sequence[Any]) -> T:
        return self.model(**dict(zip(self._attributes, row)))

    def _values(self, item: T) -> list[Any]:
        return [getattr(item, attribute) for attribute in self._attributes]

    def count(self, db: Any, stmt: str, *args: Any) -> int:
        """Number of rows matching the clause ``stmt``."""
        sql = f"SELECT COUNT(*) FROM {self.table} {stmt}"
        with _cursor(db, sql, wrap_params(*args)) as cursor:
            row = cursor.fetchone()
        if row is None:
            raise LookupError("no rows in result set")
        return int(row[0])

    def _select(self, db: Any, columns: Sequence[str], suffix: str, args: Sequence[Any]) -> list[T]:
        sql = f"SELECT {', '.join(columns)} FROM {self.table} {self._alias} {suffix}"
        with _cursor(db, sql, wrap_params(*args)) as cursor:
            return [self._build(row) for row in cursor.fetchall()]

    def select(self, db: Any, suffix: str, *args: Any) -> list[T]:
        """Rows matching ``suffix``; the table is aliased by its first letter."""
        return self._select(db, self.keys, suffix, args)

    def select_join(self, db: Any, suffix: str, *args: Any) -> list[T]:
        """Like ``select`` but with columns qualified by the alias, for joins in ``suffix``."""
        qualified = [f"{self._alias}.{key}" for key in self.keys]
        return self._select(db, qualified, suffix, args)

    def select_one(self, db: Any, suffix: str, *args: Any) -> T:
        """The first row matching ``suffix``; raises LookupError when there is none."""
        sql = f"SELECT {', '.join(self.keys)} FROM {self.table} {suffix} LIMIT 1"
        with _cursor(db, sql, wrap_params(*args)) as cursor:
            row = cursor.fetchone()
        if row is None:
            raise LookupError("no rows in result set")
        return self._build(row)

    def _placeholders(self) -> str:
        return ", ".join(f"$c{index}" for index in range(1, len(self.keys) + 1))

    def insert(self, db: Any, item: T) -> None:
        sql = (
            f"INSERT INTO {self.table} ({', '.join(self.keys)}) "
            f"VALUES ({self._placeholders()})"
        )
        with _cursor(db, sql, wrap_params(*self._values(item))):
            pass

    def update(self, db: Any, stmt: str, *args: Any) -> None:
        """Run ``UPDATE <table> <stmt>``."""
        sql = f"UPDATE {self.table} {stmt}"
        with _cursor(db, sql, wrap_params(*args)):
            pass

    def upsert(
        self,
        db: Any,
        item: T,
        ignored: Iterable[str] = (),
        conflict: Iterable[str] = (),
    ) -> None:
        """Insert ``item`` or, on conflict, update every column but the keys and ``ignored``.

        The conflict target is ``conflict`` when given, otherwise the primary keys.
        """
        ignored = set(ignored)
        conflict_keys = list(conflict) or self.pks
        setters = [
            f"{key} = $c{index}"
            for index, key in enumerate(self.keys, start=1)
            if key not in self.pks and key not in ignored
        ]
        sql = (
            f"INSERT INTO {self.table} ({', '.join(self.keys)}) "
            f"VALUES ({self._placeholders()}) "
            f"ON CONFLICT ({', '.join(conflict_keys)}) DO UPDATE SET {', '.join(setters)}"
        )
        with _cursor(db, sql, wrap_params(*self._values(item))):
            pass

    def delete(self, db: Any, suffix: str, *args: Any) -> None:
        """Run ``DELETE FROM <table> <suffix>`` with ``args`` bound by position."""
        sql = f"DELETE FROM {self.table} {suffix}"
        with _cursor(db, sql, args):
            pass