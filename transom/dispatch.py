r"""
Transom dispatch: the session state machine.

A Session owns everything that used to be global in a modal menu engine: the
active instance, its keymap, the pending key sequence, the stack of suspended
menus, the deferred-display timer, the exported value slot and the exit
callbacks. Hosts feed it keys (press) and it answers with an Action.

States
- INACTIVE:  no menu.
- ACTIVE:    a menu is installed and accepts keys.
- READING:   a line is being read through the host (the menu hooks are paused).
- HELP:      the next key shows help for its target instead of running it.
- EDIT:      the next key sets the level of its target.
- SUSPENDED: no menu is installed, but a suspended one can be resumed.

Per key
1. Accumulate the key into the pending sequence. A proper prefix of a binding
   waits for more keys; an unbound sequence is reported as a notice.
2. Help mode intercepts the target (quit-one only leaves help mode).
3. Edit mode redirects the target to set_level (quit and help commands excepted).
4. Resolve the behavior: the suffix's own transient flag, else the predicate
   table (prefix commands replace), else the definition's fallback, else exit.
5. Run the behavior; an exit tears the menu down before the command runs.
6. Run the command. If the menu stayed, re-render it; if it exited, pop and
   resume the stack (unless the exit was a replace or suspend), else run the
   exit callbacks and clear the exported value.

Errors raised by commands or reads while a menu is involved tear every menu
down (the equivalent of quit-all), are logged, reported through the host and
recorded on the returned Action. DefinitionError and ConflictError are raised
after the teardown.
"""
from enum import Enum

from .behaviors import Outcome, do_exit, do_noop, do_replace, do_stay, do_warn, from_flag
from .commands import COMMON, PREDICATES, quit_all, quit_one, set_level, show_help
from .config import Config
from .faults import (
    CommandFailure,
    ConflictError,
    DefinitionError,
    InaptSuffixWarning,
    ReadCancelled,
    RenderFailure,
    RuntimeReadError,
)
from .instances import build_keymap, command_name, instantiate, parse_keys
from .layout import Prefix, get_prefix
from .logger import logger
from .objects import ObjectType
from .display import describe, render
from .stack import Stack, StackEntry
from .store import Stores
from .utils import Unset, coalesce


class State(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    READING = "reading"
    HELP = "help"
    EDIT = "edit"
    SUSPENDED = "suspended"


class Action(metaclass=ObjectType):
    """
    Outcome of one key press or command execution.

    - keys: the key sequence handled (empty for direct execution).
    - command: the command that was run (None for pending or undefined keys).
    - behavior: name of the behavior applied.
    - outcome: Outcome.STAY, Outcome.EXIT or None.
    - state: the session state afterwards.
    - value: the exported value, when the behavior exported one.
    - error: the fault that caused an emergency teardown, if any.
    - notices: warnings handed to the host while handling the key.
    """
    __introspectable__ = (
        "keys",
        "command",
        "behavior",
        "outcome",
        "state",
        "value",
        "error",
        "notices",
    )

    def __init__(self, keys, command=None, behavior=None, outcome=None, state=None,
                 value=None, error=None, notices=()):
        self._keys = tuple(keys)
        self._command = command
        self._behavior = behavior
        self._outcome = outcome
        self._state = state
        self._value = value
        self._error = error
        self._notices = tuple(notices)

    @property
    def pending(self):
        return self._command is None and self._behavior is None and self._error is None and not self._notices


class Session:
    """
    The single explicit context of a menu engine.

    Parameters
    - host: a Host implementation (display surface, key installation, line
      reader, timers, notices).
    - config: Config (defaults to Config()).
    - stores: Stores (defaults to the stores in config.directory, loaded).
    """

    def __init__(self, host, /, *, config=Unset, stores=Unset):
        self.config = coalesce(config, Config())
        self.stores = stores if stores is not Unset else Stores(self.config.directory).load()
        self.host = host
        self.stack = Stack()
        self.prefix = None
        self.keymap = None
        self.pending = ()
        self.current_suffix = Unset
        self.current_command = None
        self.exported = None
        self.exitp = None
        self.on_exit = []
        self.show_common = self.config.show_common
        self._exported_from = None
        self._timer = None
        self._busy = False
        self._reading = False
        self._help = False
        self._suspended = False
        self._entered = None
        self._notices = []

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def state(self):
        if self._reading:
            return State.READING
        if self.prefix is None:
            return State.SUSPENDED if self._suspended and self.stack else State.INACTIVE
        if self._help:
            return State.HELP
        if self.prefix.edit:
            return State.EDIT
        return State.ACTIVE

    @property
    def active(self):
        return self.prefix is not None

    @property
    def help(self):
        return self._help

    @help.setter
    def help(self, enabled):
        self._help = bool(enabled) and self.prefix is not None
        logger.debug("help mode %s", "on" if self._help else "off")

    # ── Entry and teardown ───────────────────────────────────────────────────

    def enter(self, prefix, /, *, scope=Unset, tree=Unset, edit=False, value=Unset):
        """
        Instantiate prefix and make it the active menu.

        The instance and its keymap are built before anything is installed, so a
        ConflictError (or DefinitionError) leaves the session untouched. Entering
        while another menu is active from inside a command suspends the current
        one (as a replace would); from outside a command, the current menu and
        the stack are discarded.

        Returns
        - PrefixInstance
        """
        definition = get_prefix(prefix)
        instance = instantiate(
            definition, self.stores, self.config,
            tree=tree, scope=scope, value=value, edit=edit, common=COMMON,
        )
        keymap = build_keymap(instance.suffixes, self.config, common=instance.common)

        if self.prefix is not None:
            if self._busy:
                self.push()
                self.exitp = "replace"
            else:
                self.stack.clear()
            self._teardown()

        self.prefix = instance
        self.keymap = keymap
        self.pending = ()
        self._suspended = False
        self._entered = instance
        self.host.install(keymap, self)
        logger.debug("entered %r (stack depth %d)", definition.name, len(self.stack))
        if self.config.show_delay > 0:
            self._timer = self.host.schedule(self.config.show_delay, self._show_deferred)
        else:
            self.show()
        return instance

    def _show_deferred(self):
        try:
            self.show()
        except RenderFailure:
            # Already torn down and reported to the host.
            logger.debug("deferred display failed")

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _teardown(self):
        """
        Remove the display, cancel the timer, uninstall the keymap and clear
        the active fields.
        """
        self._cancel_timer()
        if self.prefix is None:
            return
        logger.debug("tearing down %r", self.prefix.name)
        self.host.hide()
        self.host.uninstall()
        self.prefix = None
        self.keymap = None
        self.pending = ()
        self._help = False

    def _finish(self):
        for callback in list(self.on_exit):
            callback(self)
        self.exported = None
        self._exported_from = None

    def _emergency(self, fault):
        """
        Tear every menu down after an error (quit-all) and report the fault.
        """
        logger.exception("emergency teardown: %s", fault.message)
        self.stack.clear()
        self._reading = False
        self._suspended = False
        self.exitp = None
        self._teardown()
        self._finish()
        self.notify(fault)

    def close(self):
        """
        Quit every menu and flush the stores.
        """
        self._cancel_timer()
        self.stack.clear()
        self._suspended = False
        self._teardown()
        self.stores.flush(history=self.config.save_history)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ── Display ──────────────────────────────────────────────────────────────

    def show(self):
        """
        Render the active menu through the host.

        Raises
        - RenderFailure: rendering raised; every menu was torn down first.
        """
        self._timer = None
        if self.prefix is None:
            return
        try:
            renderable = render(
                self.prefix,
                pending=self.pending,
                colorful=self.config.colorful,
                fancy=self.config.fancy,
                show_common=self.show_common,
            )
        except Exception as error:
            fault = RenderFailure(f"rendering {self.prefix.name!r} failed: {error}")
            self._emergency(fault)
            raise fault from error
        self.host.show(renderable)

    def rebind(self):
        """
        Rebuild and reinstall the keymap of the active menu after its live
        suffixes were re-derived (no pruning).
        """
        keymap = build_keymap(self.prefix.suffixes, self.config, common=self.prefix.common)
        self.host.uninstall()
        self.keymap = keymap
        self.host.install(keymap, self)

    def notify(self, notice, /):
        """
        Hand a notice (or a fault) to the host.
        """
        logger.debug("notice: %s", notice)
        self._notices.append(notice)
        self.host.notify(notice)

    def refresh(self, *, edit=Unset):
        """
        Re-instantiate the active menu (pruning again), keeping its value.
        """
        if self.prefix is None:
            return None
        current = self.prefix
        instance = instantiate(
            current.definition, self.stores, self.config,
            scope=current.scope, value=current.get_value(), edit=coalesce(edit, current.edit), common=COMMON,
        )
        keymap = build_keymap(instance.suffixes, self.config, common=instance.common)
        self.host.uninstall()
        self.prefix = instance
        self.keymap = keymap
        self.host.install(keymap, self)
        self.show()
        return instance

    # ── Values ───────────────────────────────────────────────────────────────

    def export(self):
        """
        Copy the active value into the exported slot and record it in history.
        """
        value = self.prefix.get_value()
        self.exported = value
        self._exported_from = self.prefix.definition
        self.stores.history.push(self.prefix.definition.history_key, value, self.config.history_limit)
        return value

    def push(self):
        self.stack.push(StackEntry.capture(self.prefix))

    def get_value(self, prefix=Unset, /):
        """
        Current value of prefix (default: the active or just exited menu).

        The active instance answers with its live value and a menu that just
        exited with its exported value; any other prefix is instantiated
        without being shown to compute its initial value.
        """
        definition = None if prefix is Unset else get_prefix(prefix)
        if self.prefix is not None and definition in (None, self.prefix.definition):
            return self.prefix.get_value()
        if self.exported is not None and definition in (None, self._exported_from):
            return list(self.exported)
        if definition is None:
            return []
        return instantiate(definition, self.stores, self.config).get_value()

    @property
    def args(self):
        return self.get_value()

    def read(self, prompt, /, *, initial=None, history=None, choices=()):
        """
        Read a line through the host.

        Raises
        - ReadCancelled: the user aborted the read (values are left unchanged).
        - RuntimeReadError: the host failed to read.
        """
        entries = [
            entry[0] for entry in self.stores.history.get(history) if entry and isinstance(entry[0], str)
        ] if history else []
        self._reading = True
        try:
            value = self.host.read(prompt, initial=initial, history=entries, choices=list(choices))
        except ReadCancelled:
            logger.debug("read of %r cancelled", prompt)
            raise
        except Exception as error:
            raise RuntimeReadError(f"reading {prompt!r} failed: {error}") from error
        finally:
            self._reading = False
        if history and value:
            self.stores.history.push(history, [value], self.config.history_limit)
        return value

    # ── Keys ─────────────────────────────────────────────────────────────────

    def _guard(self):
        if self._busy:
            raise RuntimeError("a key is already being handled by this session")

    def press(self, key, /):
        """
        Handle one key of the active menu.

        Returns
        - Action
        """
        self._guard()
        self._notices = []
        if self.prefix is None:
            return Action((key,), state=self.state)
        self._cancel_timer()

        keys = self.pending + tuple(parse_keys(key))
        if self.pending and keys[-1] == "C-g":
            self.pending = ()
            return self._redisplay(keys, behavior="abort", outcome=Outcome.STAY)

        suffix = self.keymap.get(keys)
        if suffix is None:
            if self.keymap.is_pending(keys):
                self.pending = keys
                return self._redisplay(keys)
            self.pending = keys
            self._busy = True
            try:
                outcome = do_warn(self)
            finally:
                self._busy = False
                self.pending = ()
            return self._redisplay(keys, behavior=do_warn.__name__, outcome=outcome)

        self.pending = ()
        return self.execute(suffix.command, suffix, keys=keys)

    def _redisplay(self, keys, /, **fields):
        try:
            self.show()
        except RenderFailure as error:
            fields["error"] = error
        return Action(keys, state=self.state, notices=self._notices, **fields)

    def behavior_for(self, command, suffix=None, /):
        """
        Resolve the pre-command behavior of command (bound through suffix, if any).
        """
        nested = isinstance(command, Prefix)
        if suffix is not None and suffix.transient is not Unset:
            return from_flag(suffix.transient, nested=nested)
        if (behavior := PREDICATES.get(command)) is not None:
            return behavior
        if nested:
            return do_replace
        if self.prefix is not None:
            definition = self.prefix.definition
            fallback = definition.transient_suffix if suffix is not None else definition.transient_non_suffix
            if fallback is not None:
                return from_flag(fallback, nested=nested)
        return do_exit

    def _intercept(self, command, suffix):
        """
        Help and edit mode: return (command, suffix, behavior) to run instead,
        or None to proceed normally.
        """
        if self._help:
            if command is quit_all:
                self._help = False
                return None
            self._help = False
            if command is quit_one:
                return do_noop, None, do_stay
            if command is show_help:
                self.host.help(describe(self.prefix.definition))
            elif suffix is not None and suffix.help is not None:
                suffix.help(self)
            else:
                self.host.help(describe(command, suffix=suffix))
            return do_noop, None, do_stay
        if self.prefix.edit:
            if command is quit_one:
                return _leave_edit, None, do_stay
            if command in (quit_all, show_help):
                return None
            if command is set_level:
                return set_level, None, do_stay
            return set_level, suffix, do_stay
        return None

    def execute(self, command, suffix=None, /, *, keys=()):
        """
        Run command through the pre-command behavior and the post-command step.

        Returns
        - Action
        """
        self._guard()
        if keys == ():
            self._notices = []
        self._busy = True
        self._entered = None
        self.exitp = None
        self._cancel_timer()
        behavior = outcome = None
        self.current_suffix = suffix if suffix is not None else Unset
        self.current_command = command
        try:
            if self.prefix is None:
                command(self)
                return Action(keys, command, None, None, self.state, None, None, self._notices)
            instance, suffixes = self.prefix, self.prefix.suffixes
            if (redirect := self._intercept(command, suffix)) is not None:
                command, suffix, behavior = redirect
            elif suffix is not None and suffix.inapt:
                self.notify(InaptSuffixWarning(f"{suffix.describe() or suffix.key} is not applicable right now"))
                command, behavior = do_noop, do_noop
            else:
                behavior = self.behavior_for(command, suffix)

            self.current_suffix = suffix if suffix is not None else Unset
            self.current_command = command
            logger.debug("%s: %s with %s", " ".join(keys) or "-", command_name(command), behavior.__name__)
            outcome = behavior(self)
            value = list(self.exported) if self.exported is not None else None
            if outcome is Outcome.EXIT:
                self._teardown()

            try:
                command(self)
            except ReadCancelled:
                pass

            if outcome is Outcome.STAY:
                if self.prefix is not None and self._entered is None:
                    if self.prefix is instance and instance.suffixes is not suffixes:
                        self.rebind()
                    self.show()
                elif self.prefix is None:
                    self._post_exit()
            else:
                self._post_exit()
            return Action(keys, command, behavior.__name__, outcome, self.state, value, None, self._notices)
        except (DefinitionError, ConflictError) as error:
            self._emergency(error)
            raise
        except RuntimeReadError as error:
            self._emergency(error)
            return Action(keys, command, getattr(behavior, "__name__", None), outcome, self.state,
                          None, error, self._notices)
        except RenderFailure as error:
            return Action(keys, command, getattr(behavior, "__name__", None), outcome, self.state,
                          None, error, self._notices)
        except Exception as error:
            fault = CommandFailure(f"{command_name(command)} failed: {error}")
            fault.__cause__ = error
            self._emergency(fault)
            return Action(keys, command, getattr(behavior, "__name__", None), outcome, self.state,
                          None, fault, self._notices)
        finally:
            self._busy = False
            self.current_suffix = Unset
            self.current_command = None

    def _post_exit(self):
        """
        After a teardown: resume the stack, or finish the session's menu run.
        """
        if self.prefix is not None:
            return
        if self.exitp in ("replace", "suspend"):
            self._suspended = bool(self.stack)
            logger.debug("suspended with %d menu(s) on the stack", len(self.stack))
            return
        if entry := self.stack.pop():
            logger.debug("resuming %r", entry.prefix.name)
            self.enter(entry.prefix, tree=entry.tree, edit=entry.edit, scope=entry.scope, value=entry.value)
            return
        self._finish()

    def resume(self):
        """
        Resume the most recently suspended menu.

        Returns
        - PrefixInstance, or None when nothing can be resumed.
        """
        if self.prefix is not None or not self.stack:
            return None
        entry = self.stack.pop()
        self._suspended = False
        return self.enter(entry.prefix, tree=entry.tree, edit=entry.edit, scope=entry.scope, value=entry.value)

    def run(self, prefix, keys, /):
        """
        Enter prefix and press every key of keys (a key description such as
        "-a l" or an iterable of keys). Returns the list of Actions.
        """
        get_prefix(prefix)(self)
        if isinstance(keys, str):
            keys = parse_keys(keys)
        return [self.press(key) for key in keys]


def _leave_edit(session, /):
    session.refresh(edit=False)


def get_current_value(prefix, session, /):
    """
    Value of prefix as seen by session (see Session.get_value).
    """
    return session.get_value(prefix)


__all__ = (
    "State",
    "Action",
    "Session",
    "get_current_value",
)
