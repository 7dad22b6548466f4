import enum
import logging
from collections import OrderedDict

import attr
import sniffio

from ._exceptions import ClosedResourceError, SchedulerInternalError
from ._instrumentation import Instruments
from ._io_selector import SelectorIOManager
from ._task import Task
from ._traps import SystemCall

__all__ = ["Scheduler", "TaskErrorPolicy"]

# Used to log tasks dropped under TaskErrorPolicy.DROP
TASK_LOGGER = logging.getLogger("yieldloop.Task")


class TaskErrorPolicy(enum.Enum):
    """What :meth:`Scheduler.run` does when an error escapes a task.

    .. data:: ABORT

       Re-raise the error out of :meth:`Scheduler.run`, stopping the whole
       loop. Tasks that are still alive stay registered, so ``run()`` may be
       called again.

    .. data:: DROP

       Log the error on the ``yieldloop.Task`` logger, forget the task, and
       keep going.

    """
    ABORT = "abort"
    DROP = "drop"


@attr.s(frozen=True)
class _RunStatistics:
    tasks_living = attr.ib()
    tasks_runnable = attr.ib()
    io_statistics = attr.ib()


@attr.s(slots=True, eq=False, frozen=True)
class _Waiter:
    sock = attr.ib()
    task = attr.ib()


@attr.s(eq=False, hash=False, repr=False)
class Scheduler:
    """A single-threaded cooperative scheduler for generator-based tasks.

    Tasks run one at a time, in FIFO order, each until its next ``yield``.
    Yielding a :class:`SystemCall` asks the scheduler to do something on the
    task's behalf; yielding anything else just lets the other tasks run.

    Args:
      instruments (list of yieldloop.abc.Instrument): Any instrumentation you
          want to apply to this scheduler.
      task_error_policy (TaskErrorPolicy): What to do with an error that
          escapes a task. Defaults to :data:`TaskErrorPolicy.ABORT`.
      io_manager: The readiness primitive used by the I/O poll task. Defaults
          to a :class:`SelectorIOManager`.

    """
    instruments = attr.ib(default=(), converter=Instruments)
    task_error_policy = attr.ib(
        default=TaskErrorPolicy.ABORT, converter=TaskErrorPolicy
    )
    io_manager = attr.ib(factory=SelectorIOManager)

    # {task id: Task}; the authoritative set of live tasks
    tasks = attr.ib(factory=dict, init=False)
    # {task id: Task}, in run order
    runq = attr.ib(factory=OrderedDict, init=False)
    # {socket handle_id: _Waiter}
    _read_waiters = attr.ib(factory=dict, init=False)
    _write_waiters = attr.ib(factory=dict, init=False)

    _last_id = attr.ib(default=0, init=False)
    io_poll_task_id = attr.ib(default=None, init=False)
    _running = attr.ib(default=False, init=False)

    def close(self):
        self.io_manager.close()

    def current_statistics(self):
        """Returns an object containing scheduler-level debugging information.

        Currently the following fields are defined:

        * ``tasks_living`` (int): The number of tasks that have been created
          and not yet exited or been killed.
        * ``tasks_runnable`` (int): The number of tasks that are currently
          queued on the run queue (as opposed to waiting for I/O).
        * ``io_statistics`` (object): Some statistics from the I/O
          backend. This always has an attribute ``backend`` which is a string
          naming the backend in use, plus ``tasks_waiting_read`` and
          ``tasks_waiting_write``.

        """
        return _RunStatistics(
            tasks_living=len(self.tasks),
            tasks_runnable=len(self.runq),
            io_statistics=self.io_manager.statistics(
                tasks_waiting_read=len(self._read_waiters),
                tasks_waiting_write=len(self._write_waiters),
            ),
        )

    ################
    # Task table
    ################

    def new_task(self, coro, *, name=None):
        """Register the generator ``coro`` as a new task and queue it to run.

        Returns:
          int: The new task's id. Ids start at 1 and are never reused.

        """
        self._last_id += 1
        task = Task(self._last_id, coro, name)
        self.tasks[task.id] = task
        if self.instruments.task_spawned:
            self.instruments.task_spawned(task)
        self.schedule(task)
        return task.id

    def kill_task(self, task_id):
        """Forget the task with the given id.

        The task is dropped from the task table, the run queue and any I/O
        wait. Nothing is thrown into it and its generator is not closed.

        Returns:
          bool: Whether such a task existed.

        """
        task = self.tasks.get(task_id)
        if task is None:
            return False
        self.runq.pop(task_id, None)
        for waiters in (self._read_waiters, self._write_waiters):
            for handle_id, waiter in list(waiters.items()):
                if waiter.task is task:
                    del waiters[handle_id]
        self._task_exited(task)
        return True

    def has_task(self, task_id):
        return task_id in self.tasks

    def schedule(self, task):
        """Put ``task`` at the tail of the run queue.

        A task that is already queued keeps its place; it is never queued
        twice.

        """
        self.runq[task.id] = task
        if self.instruments.task_scheduled:
            self.instruments.task_scheduled(task)

    def _task_exited(self, task):
        if self.tasks.pop(task.id, None) is None:
            return
        # Killed or crashed, either way polling has to be installed again
        if task.id == self.io_poll_task_id:
            self.io_poll_task_id = None
        if self.instruments.task_exited:
            self.instruments.task_exited(task)

    ################
    # Run loop
    ################

    def run(self):
        """Run queued tasks until the run queue is empty.

        Raises:
          SchedulerInternalError: if this scheduler is already running.
          Exception: whatever escaped a task, under
              :data:`TaskErrorPolicy.ABORT`.

        """
        if self._running:
            raise SchedulerInternalError(
                "Attempted to call Scheduler.run() from inside a running task"
            )
        self._running = True
        previous_library = sniffio.thread_local.name
        sniffio.thread_local.name = "yieldloop"
        try:
            if self.instruments.before_run:
                self.instruments.before_run()
            while self.runq:
                _, task = self.runq.popitem(last=False)
                self._step(task)
        finally:
            sniffio.thread_local.name = previous_library
            self._running = False
            if self.instruments.after_run:
                self.instruments.after_run()

    def _step(self, task):
        if self.instruments.before_task_step:
            self.instruments.before_task_step(task)

        crash = None
        try:
            msg = task.run()
        except Exception as task_exc:
            crash = task_exc
        else:
            if task.id not in self.tasks:
                # Killed from inside its own step; nothing left to do
                pass
            elif isinstance(msg, SystemCall):
                try:
                    msg(task, self)
                except Exception as exc:
                    task.throw(exc)
                    self.schedule(task)
            elif task.is_finished():
                self._task_exited(task)
            else:
                self.schedule(task)

        if self.instruments.after_task_step:
            self.instruments.after_task_step(task)

        # Handled outside the except: block, so that re-raising doesn't chain
        # the error onto unrelated exception context.
        if crash is not None:
            self._task_exited(task)
            if self.task_error_policy is TaskErrorPolicy.ABORT:
                raise crash
            TASK_LOGGER.error(
                "Task %r crashed and has been dropped", task, exc_info=crash
            )

    ################
    # I/O
    ################

    def wait_for_read(self, sock, task):
        """Make ``task`` the one task woken when ``sock`` becomes readable.

        Replaces any previous read waiter on ``sock``. Doesn't queue ``task``.

        """
        self._read_waiters[sock.handle_id] = _Waiter(sock, task)

    def wait_for_write(self, sock, task):
        """Make ``task`` the one task woken when ``sock`` becomes writable.

        Replaces any previous write waiter on ``sock``. Doesn't queue ``task``.

        """
        self._write_waiters[sock.handle_id] = _Waiter(sock, task)

    def with_io_poll(self):
        """Install the I/O poll task, and return this scheduler.

        The poll task never finishes by itself; once installed, :meth:`run`
        only returns after it is killed (its id is :attr:`io_poll_task_id`)
        or a task error aborts the loop. If the poll task itself exits, for
        example because the I/O manager raised, :attr:`io_poll_task_id` goes
        back to ``None`` and polling may be installed again.

        """
        if self.io_poll_task_id is not None:
            raise SchedulerInternalError("I/O polling is already installed")
        self.io_poll_task_id = self.new_task(
            self._io_poll_task(), name="<io poll>"
        )
        return self

    def _io_poll_task(self):
        while True:
            self._poll_io()
            yield

    def _poll_io(self):
        self._wake_closed(self._read_waiters)
        self._wake_closed(self._write_waiters)
        if not self._read_waiters and not self._write_waiters:
            return

        # Only block if nobody else could use the time. The poll task itself
        # has already been taken off the run queue.
        timeout = 0 if self.runq else None

        if self.instruments.before_io_wait:
            self.instruments.before_io_wait(timeout)

        readable, writable = self.io_manager.wait(
            [waiter.sock for waiter in self._read_waiters.values()],
            [waiter.sock for waiter in self._write_waiters.values()],
            timeout,
        )
        # Waiting is one-shot: a woken task has to register again.
        for sock in readable:
            waiter = self._read_waiters.pop(sock.handle_id, None)
            if waiter is not None:
                self.schedule(waiter.task)
        for sock in writable:
            waiter = self._write_waiters.pop(sock.handle_id, None)
            if waiter is not None:
                self.schedule(waiter.task)

        if self.instruments.after_io_wait:
            self.instruments.after_io_wait(timeout)

    def _wake_closed(self, waiters):
        for handle_id, waiter in list(waiters.items()):
            if waiter.sock.closed:
                del waiters[handle_id]
                waiter.task.throw(
                    ClosedResourceError(
                        "socket was closed while a task was waiting on it"
                    )
                )
                self.schedule(waiter.task)

    ################
    # Instrumentation
    ################

    def add_instrument(self, instrument):
        """Start instrumenting this scheduler with the given instrument.

        If ``instrument`` is already active, does nothing.

        """
        self.instruments.add_instrument(instrument)

    def remove_instrument(self, instrument):
        """Stop instrumenting this scheduler with the given instrument.

        Raises:
          KeyError: if the instrument is not currently active.

        """
        self.instruments.remove_instrument(instrument)
