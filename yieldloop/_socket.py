import itertools
import socket as _stdlib_socket

import attr

from ._core import ClosedResourceError, ReturnValue, wait_readable, wait_writable

__all__ = ["Socket", "from_stdlib_socket", "socketpair"]

_handle_ids = itertools.count(1)


def from_stdlib_socket(sock):
    """Convert a standard library :class:`socket.socket` object into a
    :class:`Socket`, switching it to non-blocking mode.

    """
    sock.setblocking(False)
    return Socket(sock)


def socketpair(*args, **kwargs):
    """Like :func:`socket.socketpair`, but returns a pair of non-blocking
    :class:`Socket` objects.

    """
    left, right = _stdlib_socket.socketpair(*args, **kwargs)
    return (from_stdlib_socket(left), from_stdlib_socket(right))


@attr.s(eq=False, hash=False, repr=False)
class Socket:
    """A non-blocking stream socket whose operations are generators to be
    delegated to from inside a task::

        conn = yield listener.accept()
        data = yield conn.read(1024)
        yield conn.write(data)

    Each operation first waits (through the scheduler) for the socket to be
    ready, then performs a single non-blocking call.

    The wrapped socket must already be in non-blocking mode; use
    :func:`from_stdlib_socket` if it isn't.

    """
    _sock = attr.ib()
    handle_id = attr.ib(init=False, factory=_handle_ids.__next__)

    def __repr__(self):
        return "<yieldloop.socket.Socket {} fd={}>".format(
            self.handle_id, self._sock.fileno()
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def closed(self):
        return self._sock.fileno() == -1

    def fileno(self):
        return self._sock.fileno()

    def getpeername(self):
        return self._sock.getpeername()

    def getsockname(self):
        return self._sock.getsockname()

    def _check_open(self):
        if self.closed:
            raise ClosedResourceError("this socket was already closed")

    def accept(self):
        """Wait for an incoming connection; the result is a new
        :class:`Socket` for it.

        """
        self._check_open()
        yield wait_readable(self)
        sock, _ = self._sock.accept()
        yield ReturnValue(from_stdlib_socket(sock))

    def read(self, size):
        """Wait until readable, then receive at most ``size`` bytes. The
        result is ``b""`` at end of stream.

        """
        self._check_open()
        yield wait_readable(self)
        yield ReturnValue(self._sock.recv(size))

    def write(self, data):
        """Wait until writable, then send ``data``. The result is the number
        of bytes actually sent, which may be less than ``len(data)``.

        """
        self._check_open()
        yield wait_writable(self)
        yield ReturnValue(self._sock.send(data))

    def close(self):
        """Close the socket. Errors are ignored, and closing twice is fine."""
        try:
            self._sock.close()
        except OSError:
            pass
