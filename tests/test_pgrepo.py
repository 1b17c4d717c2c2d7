import logging
from dataclasses import dataclass

import pytest

from toolshed.pgrepo import PgRepo, skip_upsert


@dataclass
class Account:
    id: int = 0
    name: str = ""
    balance: int = 0

    @classmethod
    def id_columns(cls):
        return ["id"]

    @classmethod
    def columns(cls):
        return ["id", "name", skip_upsert("balance")]


class BadKeys:
    @classmethod
    def id_columns(cls):
        return ["id", "name", "balance"]

    @classmethod
    def columns(cls):
        return ["id", "name", "balance"]


class BadAttributes(Account):
    @classmethod
    def attributes(cls):
        return ["id", "name"]


class FakePool:
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.calls = []

    def fetch(self, stmt, *args):
        self.calls.append(("fetch", stmt, args))
        return list(self.rows)

    def fetchrow(self, stmt, *args):
        self.calls.append(("fetchrow", stmt, args))
        return self.rows[0] if self.rows else None

    def execute(self, stmt, *args):
        self.calls.append(("execute", stmt, args))


def make(rows=()):
    pool = FakePool(rows)
    return pool, PgRepo(pool, Account, "accounts")


def test_skip_upsert_marks_column():
    assert skip_upsert("balance") == "!balance"


def test_generated_statements():
    _, repo = make()
    assert repo.statements["select"] == "select id, name, balance from accounts"
    assert repo.statements["update"] == "update accounts set name = $2, balance = $3 where id = $1"
    assert repo.statements["upsert"] == (
        "insert into accounts (id, name, balance) values ($1, $2, $3) "
        "on conflict (id) do update set name = $2"
    )


def test_upsert_leaves_marked_column_out():
    _, repo = make()
    update_part = repo.statements["upsert"].split("do update set", 1)[1]
    assert "balance" not in update_part


def test_insert_passes_all_values_in_order():
    pool, repo = make()
    repo.insert(Account(7, "x", 5))
    assert pool.calls == [("execute", repo.statements["insert"], (7, "x", 5))]


def test_delete_passes_only_keys():
    pool, repo = make()
    repo.delete(Account(7, "x", 5))
    assert pool.calls == [("execute", repo.statements["delete"], (7,))]


def test_update_and_upsert_use_their_statements():
    pool, repo = make()
    repo.update(Account(1, "a", 2))
    repo.upsert(Account(1, "a", 2))
    assert [call[1] for call in pool.calls] == [repo.statements["update"], repo.statements["upsert"]]


def test_select_appends_filter_and_builds_items():
    pool, repo = make([(1, "a", 10), (2, "b", 20)])
    items = repo.select("where id > $1", 0)
    assert items == [Account(1, "a", 10), Account(2, "b", 20)]
    assert pool.calls == [("fetch", repo.statements["select"] + " where id > $1", (0,))]


def test_select_without_filter_uses_plain_statement():
    pool, repo = make()
    assert repo.select("") == []
    assert pool.calls[0][1] == repo.statements["select"]


def test_select_one_limits_to_one_row():
    pool, repo = make([(3, "c", 30)])
    assert repo.select_one("where id = $1", 3) == Account(3, "c", 30)
    assert pool.calls[0][1].endswith(" LIMIT 1")


def test_select_one_missing_raises():
    _, repo = make()
    with pytest.raises(LookupError):
        repo.select_one("where id = $1", 9)


def test_each_visits_rows_and_stops_on_error():
    _, repo = make([(1, "a", 10), (2, "b", 20)])
    seen = []
    repo.each("", [], seen.append)
    assert seen == [Account(1, "a", 10), Account(2, "b", 20)]

    def failing(item):
        raise ValueError(item.name)

    with pytest.raises(ValueError, match="a"):
        repo.each("", [], failing)


def test_values_start_with_column_list():
    _, repo = make([(1, "a", 10)])
    assert repo.values("") == [["id", "name", "!balance"], [1, "a", 10]]


@pytest.mark.parametrize("model", [BadKeys, BadAttributes])
def test_mismatched_columns_rejected(model):
    with pytest.raises(ValueError):
        PgRepo(FakePool(), model, "accounts")


def test_log_writes_statements(caplog):
    _, repo = make()
    with caplog.at_level(logging.INFO, logger="toolshed.pgrepo"):
        repo.log()
    assert repo.statements["select"] in caplog.text