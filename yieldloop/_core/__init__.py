"""
This namespace represents the core functionality: tasks, system calls and the
scheduler that drives them. Things in this namespace are publicly available
from the top-level yieldloop package.
"""

from ._exceptions import (
    SchedulerInternalError, InvalidTaskIdError, ClosedResourceError
)

from ._task import ReturnValue, Task

from ._traps import (
    SystemCall, get_task_id, kill_task, new_task, wait_readable, wait_writable
)

from ._io_selector import SelectorIOManager

from ._run import Scheduler, TaskErrorPolicy
