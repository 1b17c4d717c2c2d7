import sqlite3
from dataclasses import dataclass

import pytest

from toolshed.sqlrepo import Repo, wrap_params


@dataclass
class User:
    id: int = 0
    name: str = ""
    email: str = ""


@dataclass
class Record:
    ident: int = 0
    label: str = ""

    @classmethod
    def sql_map(cls):
        return {"id": "ident", "name": "label"}


@pytest.fixture
def conn():
    db = sqlite3.connect(":memory:")
    db.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT)")
    yield db
    db.close()


@pytest.fixture
def repo(conn):
    return Repo(conn, User, "users", ["id"])


ALICE = User(1, "alice", "alice@example.com")
BOB = User(2, "bob", "bob@example.com")


def test_wrap_params_names_from_one():
    assert wrap_params("a", 2) == {"c1": "a", "c2": 2}
    assert wrap_params() == {}


def test_insert_then_select_one(conn, repo):
    repo.insert(conn, ALICE)
    assert repo.select_one(conn, "WHERE id = $c1", 1) == ALICE


def test_select_uses_alias(conn, repo):
    repo.insert(conn, BOB)
    repo.insert(conn, ALICE)
    assert repo.select(conn, "WHERE u.id > $c1 ORDER BY u.id", 0) == [ALICE, BOB]


def test_select_join_matches_select(conn, repo):
    repo.insert(conn, ALICE)
    repo.insert(conn, BOB)
    suffix = "ORDER BY u.id"
    assert repo.select_join(conn, suffix) == repo.select(conn, suffix)


def test_count(conn, repo):
    repo.insert(conn, ALICE)
    repo.insert(conn, BOB)
    assert repo.count(conn, "") == 2
    assert repo.count(conn, "WHERE name = $c1", "bob") == 1


def test_select_one_missing_raises(conn, repo):
    with pytest.raises(LookupError):
        repo.select_one(conn, "WHERE id = $c1", 42)


def test_update(conn, repo):
    repo.insert(conn, ALICE)
    repo.update(conn, "SET name = $c1 WHERE id = $c2", "carol", 1)
    assert repo.select_one(conn, "WHERE id = $c1", 1).name == "carol"


def test_upsert_keeps_ignored_columns(conn, repo):
    repo.insert(conn, ALICE)
    repo.upsert(conn, User(1, "alicia", "other@example.com"), ["email"], [])
    stored = repo.select_one(conn, "WHERE id = $c1", 1)
    assert stored == User(1, "alicia", "alice@example.com")


def test_upsert_with_explicit_conflict_inserts_new_row(conn, repo):
    repo.upsert(conn, BOB, [], ["id"])
    assert repo.select(conn, "") == [BOB]


def test_delete_binds_by_position(conn, repo):
    repo.insert(conn, ALICE)
    repo.insert(conn, BOB)
    repo.delete(conn, "WHERE id = ?", 1)
    assert repo.select(conn, "") == [BOB]


def test_sql_map_model_round_trip(conn):
    records = Repo(conn, Record, "users", ["id"])
    records.insert(conn, Record(5, "five"))
    assert records.keys == ["id", "name"]
    assert records.select_one(conn, "WHERE id = $c1", 5) == Record(5, "five")


def test_model_without_mapping_rejected(conn):
    with pytest.raises(TypeError):
        Repo(conn, int, "users", ["id"])


def test_empty_table_name_rejected(conn):
    with pytest.raises(ValueError):
        Repo(conn, User, "", ["id"])