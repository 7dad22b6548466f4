# This is a public namespace, so we don't want to expose any non-underscored
# attributes that aren't actually part of our public API. The implementation
# lives in an underscored module and we re-export the public parts here.

from ._abc import Instrument
