"""
Small helpers shared by the object model, the layout compiler and the session.

- Unset: the "not given" sentinel. Slots, options and store lookups use it
  where None is a meaningful value (a cleared infix, a missing help hook).
- coalesce(value, default): Unset becomes default; None, 0, "" and [] stay.
- @rename(name): give generated callables (reprs, prefix commands, slot
  getters) a stable __name__ for level overrides, help and tracebacks.
- mirror("slot"): read-only property over self._slot returning thawed copies.
- freeze(object) / thaw(object): layout nodes hold frozen containers, live
  suffixes and instances work on thawed ones.
"""
import functools
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType


class UnsetType:
    """
    Type of the Unset sentinel (one falsy instance per process).

    str | Unset builds a union usable with isinstance and in match patterns.
    """

    def __or__(self, other, /):
        return type(self) | other

    def __ror__(self, other, /):
        return other | type(self)

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    Return object, or default when object is Unset.

        coalesce(None, 4)  -> None
        coalesce(Unset, 4) -> 4
    """
    return object if object is not Unset else default


def rename(name, /):
    """
    Decorator setting __name__ and __qualname__ of a generated callable.
    """
    if not isinstance(name, str):
        raise TypeError("@rename() argument must be a string")

    def decorator(callable):
        callable.__qualname__ = name
        callable.__name__ = name
        return callable

    return decorator


def thaw(object):
    """
    Deep copy of object with fresh mutable containers: lists, dicts and sets.

    Tuples stay tuples. A value such as ("--", ["a.py"]) is a pair, not a
    list to edit in place.
    """
    if isinstance(object, tuple):
        return tuple(map(thaw, object))
    elif isinstance(object, Sequence) and not isinstance(object, (str, bytes, bytearray)):
        return list(map(thaw, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(thaw, object.values())))
    elif isinstance(object, Set):
        return set(map(thaw, object))
    return object


def freeze(object):
    """
    Inverse of thaw for layout nodes: sequences become tuples, mappings
    read-only proxies and sets frozensets, recursively.
    """
    if isinstance(object, Sequence) and not isinstance(object, (str, bytes, bytearray)):
        return tuple(map(freeze, object))
    elif isinstance(object, Mapping):
        return MappingProxyType(dict(zip(object.keys(), map(freeze, object.values()))))
    elif isinstance(object, Set):
        return frozenset(map(freeze, object))
    return object


def mirror(name, /):
    """
    Read-only property over "_{name}". Container values come back thawed, so
    a caller editing them never touches the object that owns them.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return thaw(getattr(self, "_" + name))

    return property(getter)


Unset = UnsetType()


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "freeze",
    "thaw",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
