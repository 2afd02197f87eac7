"""
Built-in menu commands, their behaviors and the common-commands group.

Every command takes the session. The behavior each one runs with is listed in
PREDICATES, so they behave the same in every menu regardless of the prefix's
fallback behaviors.

Common commands (bound in every menu, displayed on demand)
    C-g      quit_one       leave help/edit mode, or the current menu
    C-q      quit_all       leave every menu, including suspended ones
    C-z      suspend        suspend the current menu (see resume)
    C-h      show_help      show help for the next key
    C-x l    set_level      edit levels
    C-x s    set_values     set the value for this session
    C-x C-s  save_values    save the value for future sessions
    C-x C-k  reset_values   forget the set and saved values
    C-M-p    history_prev   show the previous value from history
    C-M-n    history_next   show the next value from history
    C-x t    toggle_common  show or hide this group
"""
from .behaviors import do_call, do_quit_all, do_quit_one, do_stay, do_suspend
from .config import MAX_LEVEL, MIN_LEVEL
from .faults import EndOfHistoryWarning, InvalidInputWarning
from .instances import command_name
from .layout import InfixCommand, compile_layout, prefixes
from .logger import logger
from .utils import Unset


def quit_one(session, /):
    """Leave help or edit mode, else the current menu (resuming its parent)."""


def quit_all(session, /):
    """Leave every menu, including suspended ones."""


def suspend(session, /):
    """Suspend the current menu; resume brings it back."""


def resume(session, /):
    """Resume the most recently suspended menu."""
    session.resume()


def show_help(session, /):
    """Show help for the command bound to the next key."""
    session.help = True


def set_level(session, /):
    """
    Edit levels.

    Outside edit mode, switch the menu to edit mode (every suffix up to level 7
    becomes visible). In edit mode, read a new level for the suffix whose key
    was pressed, or for the menu itself when this command's own key is pressed.
    """
    instance = session.prefix
    if not instance.edit:
        session.refresh(edit=True)
        return
    target = session.current_suffix
    current = instance.level if target is Unset else target.level
    label = instance.name if target is Unset else command_name(target.command)
    answer = session.read(
        f"Level for {label}: ",
        initial=str(current),
        choices=[str(level) for level in range(MIN_LEVEL, MAX_LEVEL + 1)],
    )
    try:
        level = int(answer)
    except (TypeError, ValueError):
        level = None
    if level is None or not MIN_LEVEL <= level <= MAX_LEVEL:
        session.notify(InvalidInputWarning(f"level must be between {MIN_LEVEL} and {MAX_LEVEL}, got {answer!r}"))
        return
    if target is Unset:
        session.stores.levels.set_prefix_level(instance.name, level)
    else:
        session.stores.levels.set_suffix_level(instance.name, command_name(target.command), level)
    logger.info("level of %s set to %d", label, level)
    session.refresh()


def set_values(session, /):
    """Set the current value for the rest of this session."""
    value = session.prefix.get_value(savable=True)
    session.stores.values.set(_name(session), value)
    logger.info("set value of %s: %r", _name(session), value)


def save_values(session, /):
    """Save the current value for this and future sessions."""
    value = session.prefix.get_value(savable=True)
    session.stores.values.set(_name(session), value, persist=True)
    session.stores.values.flush()
    logger.info("saved value of %s: %r", _name(session), value)


def reset_values(session, /):
    """Forget the set and saved values and restore the default value."""
    name = _name(session)
    session.stores.values.discard(name)
    session.stores.values.flush()
    session.prefix.set_value(list(session.prefix.definition.value))
    logger.info("reset value of %s", name)


def history_prev(session, /):
    """Show the previous value from history."""
    if not session.prefix.move_history(+1):
        session.notify(EndOfHistoryWarning("no previous value in history"))


def history_next(session, /):
    """Show the next value from history."""
    if not session.prefix.move_history(-1):
        session.notify(EndOfHistoryWarning("no next value in history"))


def toggle_common(session, /):
    """Show or hide the common commands."""
    session.show_common = not session.show_common


def _name(session):
    return session.prefix.name


PREDICATES = {
    quit_one: do_quit_one,
    quit_all: do_quit_all,
    suspend: do_suspend,
    show_help: do_stay,
    set_level: do_stay,
    set_values: do_call,
    save_values: do_call,
    reset_values: do_stay,
    history_prev: do_stay,
    history_next: do_stay,
    toggle_common: do_stay,
}


COMMON = compile_layout([
    [1, "Common commands",
        [("C-g", "Quit one", quit_one),
         ("C-q", "Quit all", quit_all),
         ("C-z", "Suspend", suspend)],
        [("C-h", "Help", show_help),
         ("C-x l", "Edit levels", set_level),
         ("C-x t", "Toggle common", toggle_common)],
        [("C-x s", "Set", set_values),
         ("C-x C-s", "Save", save_values),
         ("C-x C-k", "Reset", reset_values)],
        [("C-M-p", "Previous value", history_prev),
         ("C-M-n", "Next value", history_next)],
        {"class": "columns"}],
], "transom-common")


BUILTINS = tuple(PREDICATES) + (resume,)


def complete(text="", /):
    """
    Complete a command name: built-in commands, registered prefixes and every
    command bound in their layouts. Anonymous infix commands are left out.
    """
    names = {command_name(command) for command in BUILTINS}
    for definition in prefixes():
        names.add(definition.name)
        names.update(
            command_name(command) for command in definition.commands()
            if not isinstance(command, InfixCommand)
        )
    return sorted(name for name in names if name.startswith(text))


__all__ = (
    "quit_one",
    "quit_all",
    "suspend",
    "resume",
    "show_help",
    "set_level",
    "set_values",
    "save_values",
    "reset_values",
    "history_prev",
    "history_next",
    "toggle_common",
    "PREDICATES",
    "COMMON",
    "BUILTINS",
    "complete",
)
