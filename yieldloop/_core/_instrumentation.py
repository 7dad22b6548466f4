import logging
import types
from typing import Any, Callable, Dict, List, Sequence

from .._abc import Instrument

# Instruments that raise are reported here, then switched off
INSTRUMENT_LOGGER = logging.getLogger("yieldloop.abc.Instrument")

HookImpl = Callable[..., Any]

HOOK_NAMES = tuple(
    name for name in vars(Instrument) if not name.startswith("_")
)


class Hook(Dict[Instrument, HookImpl]):
    """The instruments implementing one hook, mapped to their bound methods.

    Being a dict, an unused hook is falsy, which lets the scheduler write
    ``if instruments.task_scheduled: ...`` around every call site.

    """

    __slots__ = ("_name", "_parent")

    def __init__(self, name: str, parent: "Instruments"):
        self._name = name
        self._parent = parent

    def __call__(self, *args: Any) -> None:
        for instrument, method in list(self.items()):
            try:
                method(*args)
            except Exception:
                self._parent.remove_instrument(instrument)
                INSTRUMENT_LOGGER.exception(
                    "%r hook of instrument %r raised. "
                    "Instrument has been disabled.",
                    self._name,
                    instrument,
                )


def _implemented_hooks(instrument: Any) -> Dict[str, HookImpl]:
    # Methods left as the no-op defaults of yieldloop.abc.Instrument don't
    # count, and neither do hooks the object doesn't define at all.
    found = {}
    for name in HOOK_NAMES:
        impl = getattr(instrument, name, None)
        if impl is None:
            continue
        if (
            isinstance(impl, types.MethodType)
            and impl.__func__ is vars(Instrument)[name]
        ):
            continue
        found[name] = impl
    return found


class Instruments:
    """The instruments installed on a :class:`Scheduler`, with one
    :class:`Hook` attribute per hook name."""

    __slots__ = HOOK_NAMES + ("_installed",)

    def __init__(self, incoming: Sequence[Instrument]):
        # {instrument: names of the hooks it was installed under}
        self._installed: Dict[Any, List[str]] = {}
        for name in HOOK_NAMES:
            setattr(self, name, Hook(name, self))
        for instrument in incoming:
            self.add_instrument(instrument)

    def __iter__(self):
        return iter(list(self._installed))

    def add_instrument(self, instrument: Instrument) -> None:
        if instrument in self._installed:
            return
        hooks = _implemented_hooks(instrument)
        for name, impl in hooks.items():
            getattr(self, name)[instrument] = impl
        self._installed[instrument] = list(hooks)

    def remove_instrument(self, instrument: Instrument) -> None:
        # KeyError if it was never added, or was already disabled
        for name in self._installed.pop(instrument):
            del getattr(self, name)[instrument]
