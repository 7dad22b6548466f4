class SchedulerInternalError(Exception):
    """Raised when the scheduler is driven in a way it cannot support, for
    example calling :meth:`Scheduler.run` from inside a running task, or
    installing the I/O poll task twice.

    If you get this error, the scheduler's bookkeeping is still intact; it
    is the call that was refused.

    """
    pass


class InvalidTaskIdError(ValueError):
    """Raised inside the requesting task when it asks to kill a task id that
    the scheduler does not know about.

    The scheduler never lets this escape :meth:`Scheduler.run`; it is thrown
    back into the task that issued the :func:`kill_task` system call.

    """
    pass


class ClosedResourceError(Exception):
    """Raised when attempting to use a :class:`~yieldloop.socket.Socket`
    that has already been closed.

    """
    pass
