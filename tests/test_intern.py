import threading

import pytest

from toolshed.intern import ConcurrentStringIntern, StringIntern


def fresh(*parts):
    return "".join(parts)


def test_equal_strings_share_first_object():
    interner = StringIntern(4)
    first = fresh("ab", "cd")
    second = fresh("a", "bcd")
    assert interner.intern(first) is first
    assert interner.intern(second) is first


def test_evicted_strings_are_stored_again():
    interner = StringIntern(1)
    first = fresh("ab", "cd")
    interner.intern(first)
    interner.intern(fresh("zz", "yy"))
    again = fresh("abc", "d")
    assert interner.intern(again) is again


def test_result_is_equal_to_input():
    interner = StringIntern(2)
    for word in ["alpha", "beta", "alpha", "gamma"]:
        assert interner.intern(word) == word


def test_invalid_capacity():
    with pytest.raises(ValueError):
        StringIntern(0)


def test_concurrent_intern_returns_one_object():
    interner = ConcurrentStringIntern(8)
    results = []
    lock = threading.Lock()

    def worker():
        local = [interner.intern(fresh("sha", "red")) for _ in range(200)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = interner.intern(fresh("sh", "ared"))
    assert final == "shared"
    assert len(results) == 1600
    assert all(result is final for result in results)