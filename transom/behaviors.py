"""
Pre-command behaviors.

A behavior runs before the command bound to a pressed key and decides whether
the menu stays active (Outcome.STAY) or is torn down (Outcome.EXIT). Behaviors
receive the session and may export the value, push the stack or clear it.

- do_stay:     the command runs, the menu remains active.
- do_call:     export the value, then stay.
- do_exit:     export the value, clear the stack, tear down.
- do_replace:  export the value, push the current menu, tear down; the nested
               prefix that the command enters becomes active.
- do_suspend:  push the current menu, tear down without clearing the stack.
- do_quit_one: tear down; the stack is popped afterwards, so the parent menu
               (if any) resumes.
- do_quit_all: clear the stack, tear down.
- do_warn:     report an undefined key, stay.
- do_noop:     stay without running anything meaningful (placeholders, inapt
               suffixes).
"""
from enum import Enum

from .faults import UndefinedKeyWarning


class Outcome(Enum):
    STAY = "stay"
    EXIT = "exit"


def do_stay(session, /):
    return Outcome.STAY


def do_call(session, /):
    session.export()
    return Outcome.STAY


def do_exit(session, /):
    session.export()
    session.stack.clear()
    return Outcome.EXIT


def do_replace(session, /):
    session.export()
    session.push()
    session.exitp = "replace"
    return Outcome.EXIT


def do_suspend(session, /):
    session.push()
    session.exitp = "suspend"
    return Outcome.EXIT


def do_quit_one(session, /):
    return Outcome.EXIT


def do_quit_all(session, /):
    session.stack.clear()
    return Outcome.EXIT


def do_warn(session, /):
    session.notify(UndefinedKeyWarning(f"{' '.join(session.pending)} is undefined"))
    return Outcome.STAY


def do_noop(session, /):
    return Outcome.STAY


def from_flag(flag, /, *, nested=False):
    """
    Turn a transient flag (True, False, or a behavior function) into a behavior.
    True means stay, or replace when the target is itself a prefix.
    """
    match flag:
        case True:
            return do_replace if nested else do_stay
        case False:
            return do_exit
        case _ if callable(flag):
            return flag
        case _:
            raise TypeError(f"expected a boolean or a behavior function, got {flag!r}")


__all__ = (
    "Outcome",
    "do_stay",
    "do_call",
    "do_exit",
    "do_replace",
    "do_suspend",
    "do_quit_one",
    "do_quit_all",
    "do_warn",
    "do_noop",
    "from_flag",
)
