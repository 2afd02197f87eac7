"""
Transom faults (errors, notices) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every developer- or
  user-facing issue. Codes are grouped by domain to keep copy consistent and
  make logs/searches predictable.
- MenuException / MenuWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, actionable way.
- trigger(): central entry point to surface a fault outside a session.

Propagation policy
- DefinitionError and ConflictError are hard failures: raised to the caller.
- RuntimeReadError and any other error raised while a menu is active are
  converted by the session into an emergency teardown, then reported.
- StoreError never leaves the store layer: it is logged and demoted to an
  empty mapping.
- MenuWarning subclasses are transient notices; the active menu is retained.

Integration
- Sessions hand notices to their host (host.notify), which typically prints
  the rich rendering; trigger() raises exceptions and warns for warnings.
"""
import inspect
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the engine (stable identifiers).

    grouping (by high-level domain)
    - definition (21xxx)
      • MALFORMED_GROUP, MALFORMED_SUFFIX, MIXED_SIBLINGS, UNKNOWN_CLASS,
        INVALID_LOCATOR, LOCATOR_NOT_FOUND, INVALID_LEVEL, INVALID_INCOMPATIBLE,
        UNKNOWN_PREFIX
    - conflicts (22xxx)
      • KEY_CONFLICT
    - runtime (23xxx)
      • READ_FAILURE, COMMAND_FAILURE, RENDER_FAILURE
    - store (24xxx)
      • MALFORMED_STORE, UNREADABLE_STORE
    - notices (25xxx)
      • UNDEFINED_KEY, INAPT_SUFFIX, INVALID_INPUT, END_OF_HISTORY

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- definition errors (21xxx) ---
    MALFORMED_GROUP             = 21101
    MALFORMED_SUFFIX            = 21102
    MIXED_SIBLINGS              = 21103
    UNKNOWN_CLASS               = 21104
    INVALID_LOCATOR             = 21111
    LOCATOR_NOT_FOUND           = 21112
    INVALID_LEVEL               = 21121
    INVALID_INCOMPATIBLE        = 21122
    UNKNOWN_PREFIX              = 21131

    # --- conflicts (22xxx) ---
    KEY_CONFLICT                = 22101

    # --- runtime errors (23xxx) ---
    READ_FAILURE                = 23101
    COMMAND_FAILURE             = 23102
    RENDER_FAILURE              = 23103

    # --- store errors (24xxx) ---
    MALFORMED_STORE             = 24101
    UNREADABLE_STORE            = 24102

    # --- notices (25xxx) ---
    UNDEFINED_KEY               = 25101
    INAPT_SUFFIX                = 25102
    INVALID_INPUT               = 25103
    END_OF_HISTORY              = 25104

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(self, palette, title_style, message_style):
    """
    shared rich rendering for exceptions and warnings.

    options consulted: prefix, code, title, hint, colorful, fancy.
    """
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = self.options.get("colorful", True)
    fancy = self.options.get("fancy", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prefix = self.options.get("prefix", Unset)
    header = Text.assemble(
        "[ ",
        text(getattr(main, "__prog__", prefix or "transom"), styler("prog-name")),
        " — ",
        text(self.code.normalize(), styler("code")),
        " | ",
        text(self.title.title(), styler(title_style)),
        " ]"
    )
    message = text(self.message, styler(message_style))
    renders = [message]
    if self.hint:
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

    if fancy:
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class MenuException(Exception):
    """
    base class of every transom error.

    subclasses declare __code__, __title__ and __hint__ as class-level
    defaults; any of them can be overridden per instance through options
    (code=..., title=..., hint=...).
    """
    __code__ = FaultCode.COMMAND_FAILURE
    __title__ = "menu error"
    __hint__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint", type(self).__hint__)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error-title", "error-message")

    def __trigger__(self):
        raise self from None

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DefinitionError(MenuException, ValueError):
    __code__ = FaultCode.MALFORMED_SUFFIX
    __title__ = "malformed definition"


class ConflictError(MenuException):
    __code__ = FaultCode.KEY_CONFLICT
    __title__ = "key conflict"
    __hint__ = "bind one of the commands to another key, or use a key substitution"


class RuntimeReadError(MenuException, RuntimeError):
    __code__ = FaultCode.READ_FAILURE
    __title__ = "read failed"
    __hint__ = "the menu was closed; invoke it again to retry"


class CommandFailure(MenuException, RuntimeError):
    __code__ = FaultCode.COMMAND_FAILURE
    __title__ = "command failed"
    __hint__ = "the menu was closed; invoke it again to retry"


class RenderFailure(MenuException, RuntimeError):
    __code__ = FaultCode.RENDER_FAILURE
    __title__ = "display failed"
    __hint__ = "the menu was closed; check the description and format callables of its suffixes"


class StoreError(MenuException):
    __code__ = FaultCode.MALFORMED_STORE
    __title__ = "unusable store"
    __hint__ = "the store was ignored and will be rewritten on the next save"


class ReadCancelled(Exception):
    """raised by a host's line reader when the user aborts the read."""


class MenuWarning(ABC, Warning):
    """
    base class of transient notices (the active menu is retained).
    """
    __code__ = FaultCode.UNDEFINED_KEY
    __title__ = "notice"
    __hint__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    code = MenuException.code
    title = MenuException.title
    hint = MenuException.hint

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",  # amber fault code for notices
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning-title", "warning-message")

    def __trigger__(self):
        warnings.warn(self, stacklevel=len(inspect.stack()))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UndefinedKeyWarning(MenuWarning):
    __code__ = FaultCode.UNDEFINED_KEY
    __title__ = "unbound key"
    __hint__ = "press C-h to see which keys are bound"


class InaptSuffixWarning(MenuWarning):
    __code__ = FaultCode.INAPT_SUFFIX
    __title__ = "inapt suffix"


class InvalidInputWarning(MenuWarning):
    __code__ = FaultCode.INVALID_INPUT
    __title__ = "invalid input"


class EndOfHistoryWarning(MenuWarning):
    __code__ = FaultCode.END_OF_HISTORY
    __title__ = "end of history"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - exceptions are raised, warnings are emitted through the warnings module.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "MenuException",
    "DefinitionError",
    "ConflictError",
    "RuntimeReadError",
    "CommandFailure",
    "RenderFailure",
    "StoreError",
    "ReadCancelled",
    "MenuWarning",
    "UndefinedKeyWarning",
    "InaptSuffixWarning",
    "InvalidInputWarning",
    "EndOfHistoryWarning",
    "trigger",
)
