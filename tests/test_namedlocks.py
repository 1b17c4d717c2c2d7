import threading
import time

import pytest

from toolshed.namedlocks import LockRegistry, RWLock, main


def test_readers_share_the_lock():
    lock = RWLock()
    barrier = threading.Barrier(2, timeout=2)
    outcomes = []

    def reader():
        with lock.reading():
            try:
                barrier.wait()
                outcomes.append("shared")
            except threading.BrokenBarrierError:
                outcomes.append("blocked")

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(3)
    assert outcomes == ["shared", "shared"]
    with pytest.raises(RuntimeError):
        lock.release_read()


def test_writer_excludes_reader():
    lock = RWLock()
    lock.acquire_write()
    got = threading.Event()

    def reader():
        lock.acquire_read()
        got.set()
        lock.release_read()

    thread = threading.Thread(target=reader)
    thread.start()
    assert not got.wait(0.1)
    lock.release_write()
    assert got.wait(2)
    thread.join(2)
    with pytest.raises(RuntimeError):
        lock.release_write()
    with pytest.raises(RuntimeError):
        lock.release_read()


def test_writers_serialise_updates():
    lock = RWLock()
    counter = [0]

    def work():
        for _ in range(50):
            with lock.writing():
                value = counter[0]
                time.sleep(0)
                counter[0] = value + 1

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)
    assert counter[0] == 400
    with pytest.raises(RuntimeError):
        lock.release_write()


def test_release_without_acquire_raises():
    lock = RWLock()
    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()


def test_registry_lock_is_exclusive_per_name():
    registry = LockRegistry(init_delay=0.05)
    registry.lock("x")
    acquired = threading.Event()

    def other():
        registry.lock("x")
        acquired.set()
        registry.unlock("x")

    thread = threading.Thread(target=other)
    thread.start()
    assert not acquired.wait(0.2)
    registry.unlock("x")
    assert acquired.wait(2)
    thread.join(2)
    with pytest.raises(RuntimeError):
        registry.unlock("x")


def test_registry_different_names_do_not_block():
    registry = LockRegistry(init_delay=0.0)
    registry.lock("a")
    acquired = threading.Event()

    def other():
        registry.lock("b")
        acquired.set()
        registry.unlock("b")

    thread = threading.Thread(target=other)
    thread.start()
    assert acquired.wait(2)
    registry.unlock("a")
    thread.join(2)
    with pytest.raises(RuntimeError):
        registry.unlock("b")


def test_registry_writer_waits_for_all_readers():
    registry = LockRegistry(init_delay=0.0)
    registry.rlock("r")
    registry.rlock("r")
    acquired = threading.Event()

    def writer():
        registry.lock("r")
        acquired.set()
        registry.unlock("r")

    thread = threading.Thread(target=writer)
    thread.start()
    assert not acquired.wait(0.1)
    registry.runlock("r")
    assert not acquired.wait(0.1)
    registry.runlock("r")
    assert acquired.wait(2)
    thread.join(2)
    with pytest.raises(RuntimeError):
        registry.runlock("r")


def test_main_completes():
    assert main(["--init-delay", "0.01"]) == 0