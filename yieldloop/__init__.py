"""yieldloop - cooperative multitasking with plain generators and
non-blocking sockets
"""

# General layout:
#
# yieldloop/_core/... is the self-contained scheduling engine: tasks,
# delegation flattening, system calls and the run loop.
#
# yieldloop/*.py define things on top of it (the socket wrapper, the
# instrument interface) and import from yieldloop._core.
#
# This file pulls together the public API.

from ._version import __version__

from ._core import (
    SchedulerInternalError, InvalidTaskIdError, ClosedResourceError,
    ReturnValue, Task, SystemCall, get_task_id, kill_task, new_task,
    wait_readable, wait_writable, SelectorIOManager, Scheduler,
    TaskErrorPolicy
)

from ._socket import Socket

from . import abc
from . import socket
