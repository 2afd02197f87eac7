"""
Suspended menus.

Suspending or replacing a menu pushes a StackEntry capturing what is needed to
bring it back: the prefix, its pruned tree as of that moment, the edit-mode
flag, its scope and its value. The live objects themselves are not kept; they
are re-derived from the captured tree when the entry is resumed.
"""
from .objects import ObjectType


class StackEntry(metaclass=ObjectType):
    __introspectable__ = (
        "prefix",
        "tree",
        "edit",
        "scope",
        "value",
    )
    __displayable__ = (
        "prefix",
        "edit",
        "value",
    )

    def __init__(self, prefix, tree, edit, scope, value):
        self._prefix = prefix
        self._tree = tree
        self._edit = edit
        self._scope = scope
        self._value = list(value)

    @classmethod
    def capture(cls, instance, /):
        """
        Snapshot a live instance.
        """
        return cls(instance.definition, instance.tree, instance.edit, instance.scope, instance.get_value())


class Stack:
    """
    Last-in, first-out sequence of suspended menus.
    """

    def __init__(self):
        self._entries = []

    def push(self, entry, /):
        self._entries.append(entry)

    def pop(self):
        """
        Remove and return the most recently pushed entry, or None when empty.
        """
        return self._entries.pop() if self._entries else None

    def peek(self):
        return self._entries[-1] if self._entries else None

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __bool__(self):
        return bool(self._entries)

    def __iter__(self):
        return iter(reversed(self._entries))

    def __repr__(self):
        return f"stack({', '.join(entry.prefix.name for entry in self._entries)})"


__all__ = (
    "StackEntry",
    "Stack",
)
