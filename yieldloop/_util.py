# Little utilities we use internally

from abc import ABCMeta


class Final(ABCMeta):
    """Metaclass that enforces a class to be final (i.e., subclass not allowed).

    If a class uses this metaclass like this::

        class SomeClass(metaclass=Final):
            pass

    The metaclass will ensure that no sub class can be created.

    Raises
    ------
    - TypeError if a sub class is created
    """

    def __new__(cls, name, bases, cls_namespace):
        for base in bases:
            if isinstance(base, Final):
                raise TypeError(
                    "`%s` does not support subclassing" % base.__name__
                )
        return super().__new__(cls, name, bases, cls_namespace)
