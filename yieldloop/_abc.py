from abc import ABCMeta

__all__ = ["Instrument"]


# We use ABCMeta instead of ABC, plus set __slots__=(), so as not to force a
# __dict__ onto subclasses.
class Instrument(metaclass=ABCMeta):
    """The interface for run loop instrumentation.

    Instruments don't have to inherit from this abstract base class, and all
    of these methods are optional. This class serves mostly as documentation.

    """
    __slots__ = ()

    def before_run(self):
        """Called at the beginning of :meth:`Scheduler.run`.

        """

    def after_run(self):
        """Called just before :meth:`Scheduler.run` returns or raises.

        """

    def task_spawned(self, task):
        """Called when the given task is created.

        Args:
            task (yieldloop.Task): The new task.

        """

    def task_scheduled(self, task):
        """Called when the given task is put on the run queue.

        It may still be some time before it actually runs, if there are other
        runnable tasks ahead of it.

        Args:
            task (yieldloop.Task): The task that became runnable.

        """

    def before_task_step(self, task):
        """Called immediately before we resume running the given task.

        Args:
            task (yieldloop.Task): The task that is about to run.

        """

    def after_task_step(self, task):
        """Called when we return to the main run loop after a task has yielded.

        Args:
            task (yieldloop.Task): The task that just ran.

        """

    def task_exited(self, task):
        """Called when the given task finishes, crashes or is killed.

        Args:
            task (yieldloop.Task): The finished task.

        """

    def before_io_wait(self, timeout):
        """Called before the I/O poll task waits for readiness.

        Args:
            timeout (float or None): The number of seconds we are willing to
                wait; ``None`` means we block until something is ready.

        """

    def after_io_wait(self, timeout):
        """Called after the I/O poll task has handled readiness events.

        Args:
            timeout (float or None): The timeout that was passed to the wait.

        """
