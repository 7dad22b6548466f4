import collections.abc

import attr
from outcome import Error, Value

__all__ = ["ReturnValue", "Task"]


@attr.s(frozen=True, slots=True)
class ReturnValue:
    """Yielded by a nested generator to hand ``value`` back to the generator
    that delegated to it.

    The delegating generator receives ``value`` as the result of its
    ``yield`` expression. A nested generator can equally just ``return
    value``; both forms are delivered the same way.

    """
    value = attr.ib(default=None)


# Marks a frame that ran off its end. ``value`` is the generator's return
# value (None for a bare exhaustion).
@attr.s(frozen=True, slots=True)
class _Finished:
    value = attr.ib()


def _resume(coro, next_send):
    try:
        return next_send.send(coro)
    except StopIteration as stop:
        return _Finished(stop.value)


def _flatten(coro):
    # Explicit stack of suspended parent frames; ``coro`` is the current one.
    # ``next_send`` is what the current frame gets resumed with next: a Value
    # (including the None that primes a fresh generator) or an Error.
    stack = []
    next_send = Value(None)

    while True:
        try:
            produced = _resume(coro, next_send)
        except Exception as exc:
            if not stack:
                raise
            # The failing frame is dead; its parent gets a chance to handle
            # the error at the point where it delegated.
            coro = stack.pop()
            next_send = Error(exc)
            continue

        if isinstance(produced, collections.abc.Generator):
            stack.append(coro)
            coro = produced
            next_send = Value(None)
            continue

        if isinstance(produced, (_Finished, ReturnValue)):
            if not stack:
                # A ReturnValue at the top level just ends the task.
                return
            coro = stack.pop()
            next_send = Value(produced.value)
            continue

        try:
            sent = yield produced
        except Exception as exc:
            next_send = Error(exc)
        else:
            next_send = Value(sent)


@attr.s(eq=False, hash=False, repr=False)
class Task:
    """A single generator-based coroutine being driven by a
    :class:`Scheduler`.

    The wrapped generator may delegate to nested generators by yielding
    them; the task splices those in so that, from the outside, it looks
    like one flat sequence of produced values. Errors raised in a nested
    generator surface in its parent at the delegating ``yield``.

    Tasks are normally created by :meth:`Scheduler.new_task`.

    """
    id = attr.ib()
    coro = attr.ib()
    name = attr.ib(default=None)

    # A pending error wins over a pending value; run() clears both.
    _send_value = attr.ib(default=None, init=False)
    _throw_error = attr.ib(default=None, init=False)

    _before_first_yield = attr.ib(default=True, init=False)
    _finished = attr.ib(default=False, init=False)
    _flat = attr.ib(default=None, init=False)

    def __attrs_post_init__(self):
        if not isinstance(self.coro, collections.abc.Generator):
            raise TypeError(
                "Task expects a generator object, not {!r}. Did you forget "
                "to call the generator function?".format(self.coro)
            )
        if self.name is None:
            self.name = getattr(self.coro, "__qualname__", repr(self.coro))
        self._flat = _flatten(self.coro)

    def __repr__(self):
        return "<Task {} {!r} at {:#x}>".format(self.id, self.name, id(self))

    def get_id(self):
        return self.id

    def run(self):
        """Resume the task and return the next value it produces.

        The first call starts the task. Later calls resume it with the error
        stored by :meth:`throw`, if any, otherwise with the value stored by
        :meth:`send` (``None`` if nothing was stored).

        Returns ``None`` once the task has finished; check
        :meth:`is_finished`. Any error that escapes the task's outermost
        generator propagates out of this call, and the task is then finished.

        """
        if self._finished:
            return None
        if self._before_first_yield:
            self._before_first_yield = False
            next_send = Value(None)
        else:
            if self._throw_error is not None:
                next_send = Error(self._throw_error)
            else:
                next_send = Value(self._send_value)
            self._throw_error = None
            self._send_value = None

        try:
            return next_send.send(self._flat)
        except StopIteration:
            self._finished = True
            return None
        except BaseException:
            self._finished = True
            raise

    def send(self, value):
        """Store ``value`` to be delivered by the next :meth:`run`."""
        self._send_value = value

    def throw(self, error):
        """Store ``error`` to be raised inside the task by the next
        :meth:`run`. A pending error takes precedence over any value stored
        by :meth:`send`.

        """
        self._throw_error = error

    def is_finished(self):
        return self._finished
