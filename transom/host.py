"""
Host boundary.

A session never touches a terminal, window or event loop directly. Everything
outside the engine goes through a Host:

- install(keymap, session) / uninstall(): take over and release key dispatch.
- show(renderable) / hide(): display and remove the menu.
- read(prompt, *, initial, history, choices) -> str: read a line; raise
  ReadCancelled when the user aborts it.
- schedule(delay, callback) -> Timer: one-shot, cancellable deferred call.
- notify(notice): report a notice or fault.
- help(renderable): display help.

ConsoleHost is a small rich-based host: it prints the menu to a console, reads
lines with rich.prompt.Prompt, runs due timers from idle() and feeds keys from
an input function in loop().
"""
import time
from abc import ABC, abstractmethod

from rich.console import Console
from rich.prompt import Prompt
from rich.text import Text

from .faults import ReadCancelled
from .logger import logger


class Timer:
    """
    One-shot cancellable deferred call.
    """

    def __init__(self, deadline, callback, /):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def pending(self):
        return not self.cancelled and not self.fired

    def fire(self):
        if self.pending:
            self.fired = True
            self.callback()


class Host(ABC):
    """
    Collaborator contract of a Session.
    """

    @abstractmethod
    def install(self, keymap, session, /):
        ...

    @abstractmethod
    def uninstall(self):
        ...

    @abstractmethod
    def show(self, renderable, /):
        ...

    @abstractmethod
    def hide(self):
        ...

    @abstractmethod
    def read(self, prompt, /, *, initial=None, history=(), choices=()):
        ...

    @abstractmethod
    def schedule(self, delay, callback, /):
        ...

    def notify(self, notice, /):
        logger.info("%s", notice)

    def help(self, renderable, /):
        self.show(renderable)


class ConsoleHost(Host):
    """
    Rich console host.

    Keys are whitespace-separated key descriptions read from the console
    (e.g. "-a", "C-x s"). Timers are checked whenever idle() runs; loop() calls
    it between keys.
    """

    def __init__(self, console=None, /, *, clock=time.monotonic):
        self.console = console or Console()
        self.clock = clock
        self.keymap = None
        self.session = None
        self.timers = []

    def install(self, keymap, session, /):
        self.keymap = keymap
        self.session = session

    def uninstall(self):
        self.keymap = None

    def show(self, renderable, /):
        self.console.print(renderable)

    def hide(self):
        self.console.print(Text("─" * 3, style="dim"))

    def read(self, prompt, /, *, initial=None, history=(), choices=()):
        if history:
            self.console.print(Text(f"history: {', '.join(history)}", style="dim"))
        try:
            return Prompt.ask(
                prompt.rstrip(": "),
                console=self.console,
                default=initial if initial is not None else "",
                choices=list(choices) or None,
                show_default=initial is not None,
            )
        except (KeyboardInterrupt, EOFError):
            raise ReadCancelled(prompt) from None

    def schedule(self, delay, callback, /):
        timer = Timer(self.clock() + delay, callback)
        self.timers.append(timer)
        return timer

    def idle(self):
        """
        Fire every due timer.
        """
        now = self.clock()
        due = [timer for timer in self.timers if timer.pending and timer.deadline <= now]
        self.timers = [timer for timer in self.timers if timer.pending and timer not in due]
        for timer in due:
            timer.fire()

    def notify(self, notice, /):
        self.console.print(notice)

    def help(self, renderable, /):
        self.console.print(renderable)

    def loop(self, session, /, input=None):
        """
        Feed keys to session until no menu is active.
        """
        input = input or (lambda: self.console.input("key> "))
        while session.active:
            self.idle()
            try:
                keys = input()
            except (KeyboardInterrupt, EOFError):
                keys = "C-q"
            for key in keys.split() or ("RET",):
                session.press(key)
                if not session.active:
                    break


__all__ = (
    "Timer",
    "Host",
    "ConsoleHost",
)
