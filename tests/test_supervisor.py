import threading
import time

import pytest

from toolshed.supervisor import Job, Supervisor


def run_until(sup, done, timeout=5.0):
    thread = threading.Thread(target=sup.run, daemon=True)
    thread.start()
    finished = done.wait(timeout)
    time.sleep(0.2)
    sup.stop()
    thread.join(2)
    return finished, thread


def test_supervisor_runs_jobs_and_retries_failures():
    sup = Supervisor()
    sup.retry_interval = 0.05
    events = []
    done = threading.Event()
    ran = []

    def handler(event):
        events.append(event)
        if len(events) >= 7:
            done.set()

    sup.use_event_handler(handler)

    def job1(ctx):
        ran.append(ctx.name)
        return None

    def job2(ctx):
        return RuntimeError("job 2 error")

    def job3(ctx):
        raise RuntimeError("job 3 recover")

    def job4(ctx):
        test = "hello world"
        return int(test)

    sup.push(Job(name="job 1", func=job1))
    sup.push(Job(name="job 2", func=job2, retries=1))
    sup.push(Job(name="job 3", func=job3, retries=1))
    sup.push(Job(name="job 4", func=job4, retries=1))

    finished, thread = run_until(sup, done)
    assert finished
    assert not thread.is_alive()

    assert ran == ["job 1"]
    assert [(e.name, e.status) for e in events[:4]] == [
        ("job 1", "finished"),
        ("job 2", "error"),
        ("job 3", "panic"),
        ("job 4", "panic"),
    ]
    assert len(events) == 7
    assert str(events[1].err) == "job 2 error"
    assert "job 3 recover" in events[2].stack_trace
    assert isinstance(events[3].err, ValueError)
    assert [e.retry for e in events if e.name == "job 2"] == [1, 0]
    assert events[0].err is None


def test_stop_makes_run_return():
    sup = Supervisor(4)
    done = threading.Event()
    done.set()
    _, thread = run_until(sup, done)
    assert not thread.is_alive()
    assert sup.stopped


def test_negative_buffer_size_is_rejected():
    with pytest.raises(ValueError):
        Supervisor(-1)