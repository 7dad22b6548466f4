# System calls: the requests a task yields to ask the scheduler to act on
# its behalf. The scheduler invokes each one exactly once, through
# SystemCall.__call__, and then leaves the requesting task wherever the
# callback put it.

import attr

from ._exceptions import InvalidTaskIdError
from .._util import Final

__all__ = [
    "SystemCall", "get_task_id", "kill_task", "new_task", "wait_readable",
    "wait_writable"
]


@attr.s(frozen=True, slots=True, repr=False)
class SystemCall(metaclass=Final):
    """A deferred action for the scheduler to run.

    ``callback`` is called as ``callback(task, scheduler)`` when a task
    yields this object. Its return value is ignored. It is solely
    responsible for what happens to ``task`` next: if it doesn't reschedule
    the task, the task stays suspended until something else does. If it
    raises, the scheduler throws the error into ``task`` and reschedules it.

    """
    callback = attr.ib()
    name = attr.ib(default=None)

    def __call__(self, task, scheduler):
        self.callback(task, scheduler)

    def __repr__(self):
        return "<SystemCall {}>".format(
            self.name or getattr(self.callback, "__qualname__", "?")
        )


def get_task_id():
    """Resume the requesting task with its own task id::

        my_id = yield get_task_id()

    """

    def callback(task, scheduler):
        task.send(task.id)
        scheduler.schedule(task)

    return SystemCall(callback, "get_task_id")


def kill_task(task_id):
    """Kill the task with the given id.

    The requesting task resumes once the target is gone. If there is no such
    task, :exc:`InvalidTaskIdError` is raised at the ``yield`` instead. A
    task that kills itself does not resume.

    The target gets no chance to clean up; it simply never runs again.

    """

    def callback(task, scheduler):
        if not scheduler.kill_task(task_id):
            raise InvalidTaskIdError(
                "no task with id {!r}".format(task_id)
            )
        if scheduler.has_task(task.id):
            scheduler.schedule(task)

    return SystemCall(callback, "kill_task")


def new_task(coro):
    """Start ``coro`` as a new, independent task and resume the requesting
    task with the new task's id. The requester does not wait for the new
    task to finish.

    """

    def callback(task, scheduler):
        task.send(scheduler.new_task(coro))
        scheduler.schedule(task)

    return SystemCall(callback, "new_task")


def wait_readable(sock):
    """Suspend the requesting task until ``sock`` is readable.

    The task is not rescheduled by this call; the scheduler's I/O poll task
    does that once the socket becomes readable. Only one task may wait on a
    given socket for reading; a later waiter replaces an earlier one.

    """

    def callback(task, scheduler):
        scheduler.wait_for_read(sock, task)

    return SystemCall(callback, "wait_readable")


def wait_writable(sock):
    """Suspend the requesting task until ``sock`` is writable.

    See :func:`wait_readable`.

    """

    def callback(task, scheduler):
        scheduler.wait_for_write(sock, task)

    return SystemCall(callback, "wait_writable")
