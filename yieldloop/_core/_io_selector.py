import selectors
from typing import Any, Dict, List, Optional, Sequence, Tuple

import attr


@attr.s(slots=True, eq=False, frozen=True)
class _SelectorStatistics:
    tasks_waiting_read = attr.ib()
    tasks_waiting_write = attr.ib()
    backend = attr.ib()


def _backend_name(selector: selectors.BaseSelector) -> str:
    # EpollSelector -> "epoll", KqueueSelector -> "kqueue", ...
    name = type(selector).__name__
    if name.endswith("Selector"):
        name = name[: -len("Selector")]
    return name.lower()


@attr.s(slots=True, eq=False, hash=False)
class SelectorIOManager:
    """Readiness multiplexing on top of the best :mod:`selectors` backend
    for the platform (epoll on Linux, kqueue on BSD and macOS).

    The scheduler owns the wait tables; this object only answers "which of
    these are ready?". ``readers`` and ``writers`` are objects with a
    ``fileno()`` method, and the same objects are handed back.

    A ``timeout`` of ``None`` blocks until at least one of them is ready,
    ``0`` polls without blocking.

    Registrations only last for a single :meth:`wait`, since every wait in
    the scheduler is one-shot anyway.

    """

    _selector = attr.ib(factory=selectors.DefaultSelector)

    def wait(
        self,
        readers: Sequence[Any],
        writers: Sequence[Any],
        timeout: Optional[float],
    ) -> Tuple[List[Any], List[Any]]:
        if not readers and not writers:
            return [], []

        # {fd: [reader or None, writer or None]}
        interest: Dict[int, List[Any]] = {}
        for sock in readers:
            interest.setdefault(sock.fileno(), [None, None])[0] = sock
        for sock in writers:
            interest.setdefault(sock.fileno(), [None, None])[1] = sock

        registered = []
        try:
            for fd, (reader, writer) in interest.items():
                events = 0
                if reader is not None:
                    events |= selectors.EVENT_READ
                if writer is not None:
                    events |= selectors.EVENT_WRITE
                self._selector.register(fd, events, (reader, writer))
                registered.append(fd)
            # The selector retries by itself on EINTR (PEP 475)
            ready = self._selector.select(timeout)
        finally:
            for fd in registered:
                self._selector.unregister(fd)

        readable, writable = [], []
        for key, events in ready:
            reader, writer = key.data
            if events & selectors.EVENT_READ and reader is not None:
                readable.append(reader)
            if events & selectors.EVENT_WRITE and writer is not None:
                writable.append(writer)
        return readable, writable

    def statistics(self, tasks_waiting_read: int, tasks_waiting_write: int):
        return _SelectorStatistics(
            tasks_waiting_read=tasks_waiting_read,
            tasks_waiting_write=tasks_waiting_write,
            backend=_backend_name(self._selector),
        )

    def close(self) -> None:
        self._selector.close()
