import logging

import pytest
import sniffio

from .tutil import FakeIOManager, TaskRecorder
from ... import _core
from ..._core import (
    Scheduler, TaskErrorPolicy, get_task_id, kill_task, new_task
)


def idle():
    yield


def forever(record=None, label=None):
    while True:
        if record is not None:
            record.append(label)
        yield


def test_basic():
    record = []

    def trivial(x):
        record.append(x)
        yield

    scheduler = Scheduler()
    scheduler.new_task(trivial(8))
    scheduler.run()
    assert record == [8]
    assert scheduler.tasks == {}

    with pytest.raises(TypeError):
        # Not a generator object
        scheduler.new_task(trivial)


def test_task_ids_start_at_one_and_are_never_reused():
    scheduler = Scheduler()
    assert [scheduler.new_task(idle()) for _ in range(3)] == [1, 2, 3]
    assert scheduler.kill_task(3)
    assert scheduler.new_task(idle()) == 4
    scheduler.run()
    assert scheduler.tasks == {}
    assert scheduler.new_task(idle()) == 5


def test_basic_interleave():
    def looper(whoami, record):
        for i in range(3):
            record.append((whoami, i))
            yield

    record = []
    scheduler = Scheduler()
    for whoami in "abc":
        scheduler.new_task(looper(whoami, record))
    scheduler.run()

    # Strict FIFO, so every round visits the tasks in creation order
    assert record == [
        ("a", 0), ("b", 0), ("c", 0),
        ("a", 1), ("b", 1), ("c", 1),
        ("a", 2), ("b", 2), ("c", 2),
    ]


def test_schedule_keeps_a_single_slot():
    scheduler = Scheduler()
    t1 = scheduler.new_task(idle())
    t2 = scheduler.new_task(idle())
    scheduler.schedule(scheduler.tasks[t1])
    scheduler.schedule(scheduler.tasks[t2])
    assert list(scheduler.runq) == [t1, t2]


def test_kill_task():
    record = []
    scheduler = Scheduler()
    victim = scheduler.new_task(forever(record, "victim"))
    other = scheduler.new_task(idle())

    assert scheduler.kill_task(victim) is True
    assert not scheduler.has_task(victim)
    assert list(scheduler.runq) == [other]
    scheduler.run()
    assert record == []

    assert scheduler.kill_task(victim) is False
    assert scheduler.kill_task(12345) is False


def test_get_task_id():
    record = []

    def whoami():
        record.append((yield get_task_id()))
        record.append((yield get_task_id()))

    scheduler = Scheduler()
    scheduler.new_task(idle())
    scheduler.new_task(whoami())
    scheduler.run()
    assert record == [2, 2]


def test_new_task_system_call_does_not_wait_for_the_child():
    record = []

    def child():
        record.append("child")
        yield

    def parent():
        child_id = yield new_task(child())
        record.append(("spawned", child_id))

    scheduler = Scheduler()
    scheduler.new_task(parent())
    scheduler.run()
    # The child was queued ahead of the parent
    assert record == ["child", ("spawned", 2)]


def test_kill_task_system_call():
    record = []
    scheduler = Scheduler()

    def main():
        child_id = yield new_task(forever(record, "child"))
        yield
        yield kill_task(child_id)
        record.append(("alive", scheduler.has_task(child_id)))

    scheduler.new_task(main())
    scheduler.run()
    assert record == ["child", "child", ("alive", False)]


def test_kill_unknown_task_raises_in_the_requester():
    record = []

    def main():
        try:
            yield kill_task(99)
        except _core.InvalidTaskIdError as exc:
            record.append(("invalid", str(exc)))
        yield
        record.append("still running")

    scheduler = Scheduler()
    scheduler.new_task(main())
    scheduler.run()
    assert record == [("invalid", "no task with id 99"), "still running"]


def test_task_can_kill_itself():
    record = []

    def suicidal():
        my_id = yield get_task_id()
        record.append(my_id)
        yield kill_task(my_id)
        record.append("resurrected")  # pragma: no cover

    scheduler = Scheduler()
    scheduler.new_task(suicidal())
    scheduler.run()
    assert record == [1]
    assert scheduler.tasks == {}


def test_failing_system_call_is_thrown_into_the_task():
    record = []

    def explode(task, scheduler):
        raise LookupError("nope")

    def main():
        try:
            yield _core.SystemCall(explode)
        except LookupError as exc:
            record.append(exc.args)

    scheduler = Scheduler()
    scheduler.new_task(main())
    scheduler.run()
    assert record == [("nope",)]


def test_system_call_that_does_not_reschedule_leaves_the_task_parked():
    def park(task, scheduler):
        pass

    def main():
        yield _core.SystemCall(park, "park")

    scheduler = Scheduler()
    tid = scheduler.new_task(main())
    scheduler.run()
    assert scheduler.has_task(tid)
    assert not scheduler.runq

    # Someone else can pick it back up later
    scheduler.schedule(scheduler.tasks[tid])
    scheduler.run()
    assert not scheduler.has_task(tid)


def test_system_call_repr():
    assert repr(get_task_id()) == "<SystemCall get_task_id>"


def test_task_error_aborts_run_by_default():
    def crasher():
        yield
        raise ValueError("argh")

    scheduler = Scheduler()
    crasher_id = scheduler.new_task(crasher())
    bystander_id = scheduler.new_task(forever())
    with pytest.raises(ValueError) as excinfo:
        scheduler.run()
    assert excinfo.value.args == ("argh",)
    assert not scheduler.has_task(crasher_id)
    assert scheduler.has_task(bystander_id)

    # The loop can be entered again afterwards
    scheduler.kill_task(bystander_id)
    scheduler.run()


def test_task_error_policy_drop_logs_and_continues(caplog):
    record = []

    def crasher():
        yield
        raise ValueError("argh")

    def worker():
        for i in range(3):
            yield
        record.append("worker done")

    scheduler = Scheduler(task_error_policy=TaskErrorPolicy.DROP)
    scheduler.new_task(crasher())
    scheduler.new_task(worker())
    with caplog.at_level(logging.ERROR, logger="yieldloop.Task"):
        scheduler.run()

    assert record == ["worker done"]
    assert scheduler.tasks == {}
    assert "crashed and has been dropped" in caplog.text
    assert caplog.records[0].exc_info[0] is ValueError


def test_task_error_policy_accepts_strings():
    assert Scheduler(task_error_policy="drop").task_error_policy is (
        TaskErrorPolicy.DROP
    )
    with pytest.raises(ValueError):
        Scheduler(task_error_policy="ignore")


def test_run_nesting():
    scheduler = Scheduler()

    def inception():
        scheduler.run()
        yield  # pragma: no cover

    scheduler.new_task(inception())
    with pytest.raises(_core.SchedulerInternalError) as excinfo:
        scheduler.run()
    assert "from inside" in str(excinfo.value)


def test_with_io_poll_twice():
    scheduler = Scheduler(io_manager=FakeIOManager()).with_io_poll()
    assert scheduler.io_poll_task_id == 1
    with pytest.raises(_core.SchedulerInternalError):
        scheduler.with_io_poll()


def test_sniffio_reports_yieldloop():
    record = []

    def main():
        record.append(sniffio.current_async_library())
        yield

    scheduler = Scheduler()
    scheduler.new_task(main())
    scheduler.run()
    assert record == ["yieldloop"]
    assert sniffio.thread_local.name is None


def test_current_statistics():
    scheduler = Scheduler(io_manager=FakeIOManager())
    scheduler.new_task(idle())
    scheduler.new_task(idle())
    stats = scheduler.current_statistics()
    assert stats.tasks_living == 2
    assert stats.tasks_runnable == 2
    assert stats.io_statistics.tasks_waiting_read == 0
    assert stats.io_statistics.tasks_waiting_write == 0
    scheduler.run()
    stats = scheduler.current_statistics()
    assert stats.tasks_living == 0
    assert stats.tasks_runnable == 0


def test_default_io_backend():
    scheduler = Scheduler()
    backend = scheduler.current_statistics().io_statistics.backend
    assert backend in {"epoll", "kqueue", "devpoll", "poll", "select"}
    scheduler.close()


def test_instruments():
    r = TaskRecorder()

    def main():
        yield
        yield

    scheduler = Scheduler(instruments=[r])
    task = scheduler.tasks[scheduler.new_task(main())]
    scheduler.run()

    assert r.record == [
        ("spawned", task),
        ("schedule", task),
        ("before_run",),
        ("before", task),
        ("schedule", task),
        ("after", task),
        ("before", task),
        ("schedule", task),
        ("after", task),
        ("before", task),
        ("exited", task),
        ("after", task),
        ("after_run",),
    ]


def test_instruments_add_remove():
    r = TaskRecorder()
    scheduler = Scheduler()
    scheduler.add_instrument(r)
    scheduler.add_instrument(r)
    assert list(scheduler.instruments) == [r]
    scheduler.remove_instrument(r)
    with pytest.raises(KeyError):
        scheduler.remove_instrument(r)
    scheduler.new_task(idle())
    scheduler.run()
    assert r.record == []


def test_null_instrument():
    # undefined instrument methods are skipped
    class NullInstrument:
        pass

    scheduler = Scheduler(instruments=[NullInstrument()])
    scheduler.new_task(idle())
    scheduler.run()


def test_instrument_killed_task_exits():
    r = TaskRecorder()
    scheduler = Scheduler(instruments=[r])
    tid = scheduler.new_task(forever())
    task = scheduler.tasks[tid]
    scheduler.kill_task(tid)
    assert ("exited", task) in r.record


def test_instruments_crash(caplog):
    record = []

    class BrokenInstrument:
        def task_scheduled(self, task):
            record.append("scheduled")
            raise ValueError("oops")

    def main():
        record.append("main ran")
        yield

    r = TaskRecorder()
    scheduler = Scheduler(instruments=[r, BrokenInstrument()])
    task = scheduler.tasks[scheduler.new_task(main())]
    scheduler.run()
    assert record == ["scheduled", "main ran"]
    # the TaskRecorder kept going throughout, even though the BrokenInstrument
    # was disabled
    assert ("after", task) in r.record
    assert ("after_run",) in r.record
    assert "Instrument has been disabled" in caplog.text
    assert caplog.records[0].exc_info[0] is ValueError


def test_system_call_is_final():
    with pytest.raises(TypeError):

        class CustomCall(_core.SystemCall):
            pass
