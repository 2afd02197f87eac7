r"""
Transom object model: live suffix and infix variants.

Overview
- Variants (closed set, looked up by kind tag)
  • Suffix   ("suffix"):   plain command binding, carries no value.
  • Switch   ("switch"):   toggleable argument, e.g. "--all".
  • Option   ("option"):   value-taking argument, e.g. "--author=".
  • Switches ("switches"): mutually exclusive set rendered as one infix,
                           e.g. "--color=%s" over ("always", "never", "auto").
  • Files    ("files"):    side list of paths contributed as ("--", [...]).
  • Variable ("variable"): binds a host variable through get/set callables;
                           contributes nothing to the prefix value.

- Interface (every variant)
  • init_scope(instance): bind per-invocation scope (no-op by default).
  • init_value(instance): derive the value from the prefix instance's value.
  • read_value(session): produce the next value (toggle, cycle or prompt).
  • contribute(): the exported argument(s), or None.
  • format_value(styler) / format(styler): rich Text for the popup.
  • invoke(session): read the next value and assign it through the owning
    prefix instance (which enforces incompatibilities).

Prototypes and cloning
- Each kind has one registered prototype (see prototype(kind)). Live objects are
  created with prototype(kind).clone(**fields): the prototype's slots are thawed
  into fresh containers, merged with the layout spec's fields, sanitized, and
  stored on a new object. Nothing is shared with the prototype or with the
  (immutable) layout tree.

Empty values
- __empty_is_unset__ is declared per variant. Option, Switches and Files treat an
  empty read as "unset" unless allow_empty is true; Variable keeps "" as a
  legitimate value.
"""
import functools
import operator
import re
from collections.abc import Callable, Iterable

from rich.text import Text

from .config import MAX_LEVEL
from .faults import DefinitionError, FaultCode
from .utils import Unset, coalesce, mirror, rename, thaw


class ObjectType(type):
    """
    Metaclass that turns variant classes into introspectable live-object types.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens).
    - Expose every name listed in __introspectable__ as a read-only property
      mirroring the private backing field "_{name}".
    - Provide stable, readable __repr__/__rich_repr__ implementations.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


_prototypes = {}


def _register(kind):
    """
    Register the decorated class's prototype under a kind tag (module-private;
    the set of variants is closed).
    """
    def wrapper(cls):
        cls.__kind__ = kind
        _prototypes[kind] = cls()
        return cls
    return wrapper


def prototype(kind, /):
    """
    Return the registered prototype for a kind tag.

    Raises
    - DefinitionError: when the kind is not one of the closed set of variants.
    """
    try:
        return _prototypes[kind]
    except KeyError:
        raise DefinitionError(
            f"unknown suffix class {kind!r}, expected one of {', '.join(map(repr, _prototypes))}",
            code=FaultCode.UNKNOWN_CLASS,
        ) from None


def kinds():
    return tuple(_prototypes)


def _text(fragment, style=""):
    if isinstance(fragment, Text):
        return fragment
    return Text(str(fragment), style)


@_register("suffix")
class Suffix(metaclass=ObjectType):
    """
    Plain suffix: a key bound to a command inside one live prefix instance.

    Slots
    - key: str, the (possibly substituted) key description, e.g. "c" or "C-x s".
    - command: callable invoked with the session when the key is pressed.
    - description: str | callable(suffix) -> str | None.
    - level: int, the effective visibility level resolved at instantiation.
    - transient: Unset | bool | callable. Explicit behavior override.
    - format: str, the popup line template (%k key, %d description, %v value).
    - if / if_not: callable(instance) predicates, checked when the layout is
      pruned (live objects never carry them).
    - inapt_if: callable(instance), keeps the suffix visible but inapt.
    - help: callable(session) | None, custom help for help mode.
    - scope: per-invocation scope, bound by init_scope.
    """
    __empty_is_unset__ = True

    __introspectable__ = (
        "key",
        "command",
        "description",
        "level",
        "transient",
        "format",
        "inapt",
        "scope",
    )
    __displayable__ = (
        "key",
        "command",
        "description",
        "level",
    )

    __defaults__ = {
        "key": Unset,
        "command": Unset,
        "description": None,
        "level": 1,
        "transient": Unset,
        "format": " %k %d",
        "if": None,
        "if_not": None,
        "inapt_if": None,
        "help": None,
        "inapt": False,
        "scope": None,
    }

    def __init__(self, **fields):
        if unknown := set(fields) - set(type(self).__defaults__):
            raise DefinitionError(
                f"{type(self).__typename__} got unexpected field(s) {', '.join(sorted(unknown))}",
                code=FaultCode.MALFORMED_SUFFIX,
            )
        metadata = thaw(type(self).__defaults__) | fields
        self._sanitize(metadata)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def _sanitize(self, metadata):
        cls = type(self)
        if not isinstance(metadata["key"], str | Unset):
            raise DefinitionError(f"{cls.__typename__} 'key' must be a string", code=FaultCode.MALFORMED_SUFFIX)
        if not isinstance(metadata["description"], str | Text | Callable | None):
            raise DefinitionError(f"{cls.__typename__} 'description' must be a string or callable")
        if isinstance(level := metadata["level"], bool) or not isinstance(level, int) or not 0 <= level <= MAX_LEVEL:
            raise DefinitionError(f"{cls.__typename__} 'level' must be an integer between 0 and {MAX_LEVEL}",
                                  code=FaultCode.INVALID_LEVEL)
        if not isinstance(metadata["transient"], bool | Callable | Unset):
            raise DefinitionError(f"{cls.__typename__} 'transient' must be a boolean or a behavior function")
        if not isinstance(metadata["format"], str):
            raise DefinitionError(f"{cls.__typename__} 'format' must be a string")
        for name in ("if", "if_not", "inapt_if", "help"):
            if metadata[name] is not None and not callable(metadata[name]):
                raise DefinitionError(f"{cls.__typename__} {name!r} must be callable")

    def clone(self, **fields):
        """
        Return a fresh object of the same variant: this object's slots (copied
        into new containers) overridden by fields.
        """
        slots = {name: thaw(getattr(self, "_" + name)) for name in type(self).__defaults__}
        return type(self)(**slots | fields)

    @property
    def kind(self):
        return type(self).__kind__

    @property
    def help(self):
        return self._help

    @property
    def value(self):
        return None

    def is_infix(self):
        return False

    def init_scope(self, instance, /):
        self._scope = instance.scope

    def init_value(self, instance, /):
        pass

    def init_inapt(self, instance, /):
        self._inapt = bool(self._inapt_if is not None and self._inapt_if(instance))

    def read_value(self, session, /):
        return None

    def contribute(self):
        return None

    def describe(self):
        """
        Resolve the description to a plain value (callables receive this object).
        """
        if callable(self._description):
            return self._description(self)
        return self._description

    def format_value(self, styler, /):
        return Text("")

    def format_key(self, styler, /, pending=()):
        """
        Render the key; keys already typed as part of a pending sequence are dimmed.
        """
        if pending:
            typed = " ".join(pending)
            if self._key.startswith(typed):
                return Text.assemble((typed, styler("pending-key")), (self._key[len(typed):], styler("key")))
            return _text(self._key, styler("unreachable-key"))
        return _text(self._key, styler("inapt-key" if self._inapt else "key"))

    def format(self, styler, /, pending=()):
        """
        Expand the format template into a single rich Text line.
        """
        parts = []
        for token in re.split(r"(%[kdv])", self._format):
            match token:
                case "%k":
                    parts.append(self.format_key(styler, pending))
                case "%d":
                    description = self.describe()
                    parts.append(_text(coalesce(description, "") or "", styler("inapt" if self._inapt else "description")))
                case "%v":
                    parts.append(self.format_value(styler))
                case "":
                    continue
                case _:
                    parts.append(Text(token))
        return Text.assemble(*parts)


class Infix(Suffix):
    """
    Abstract value-carrying suffix. Not registered: instantiate a concrete variant.

    Additional slots
    - argument: the argument string, e.g. "--all" or "--author=".
    - shortarg: optional short form shown next to the argument, e.g. "-a".
    - reader: callable(session, prompt, initial, history) -> str, replaces the host prompt.
    - prompt: str | None, the prompt shown when reading (defaults to the argument).
    - choices: sequence | callable() -> sequence, offered while reading.
    - always_read: when false, invoking a set option unsets it instead of prompting.
    - allow_empty: accept "" as a value even where empty normally means unset.
    - history_key: key in the history store (defaults to "<prefix>:<argument>").
    - multi_value: None | "repeat" | "rest".
    - init: callable(infix, instance) that initializes the value instead of the
      variant's default lookup.
    - unsavable: exclude this infix from values saved to the value store.
    - value: current value (None means unset).
    """
    __introspectable__ = Suffix.__introspectable__ + (
        "argument",
        "shortarg",
        "prompt",
        "choices",
        "always_read",
        "allow_empty",
        "history_key",
        "multi_value",
        "unsavable",
        "value",
    )
    __displayable__ = (
        "key",
        "argument",
        "description",
        "level",
        "value",
    )

    __defaults__ = Suffix.__defaults__ | {
        "transient": True,
        "format": " %k %d (%v)",
        "argument": Unset,
        "shortarg": None,
        "reader": None,
        "prompt": None,
        "choices": (),
        "always_read": False,
        "allow_empty": False,
        "history_key": None,
        "multi_value": None,
        "init": None,
        "unsavable": False,
        "value": None,
    }

    def _sanitize(self, metadata):
        super()._sanitize(metadata)
        cls = type(self)
        if not isinstance(metadata["argument"], str | Unset):
            raise DefinitionError(f"{cls.__typename__} 'argument' must be a string")
        if isinstance(metadata["argument"], str) and not metadata["argument"]:
            raise DefinitionError(f"{cls.__typename__} 'argument' cannot be empty")
        if metadata["multi_value"] not in (None, "repeat", "rest"):
            raise DefinitionError(f"{cls.__typename__} 'multi_value' must be None, 'repeat' or 'rest'")
        for name in ("reader", "init"):
            if metadata[name] is not None and not callable(metadata[name]):
                raise DefinitionError(f"{cls.__typename__} {name!r} must be callable")
        if not callable(metadata["choices"]):
            if not isinstance(metadata["choices"], Iterable) or isinstance(metadata["choices"], str):
                raise DefinitionError(f"{cls.__typename__} 'choices' must be an iterable or a callable")
            metadata["choices"] = list(metadata["choices"])
        metadata["always_read"] = bool(metadata["always_read"])
        metadata["allow_empty"] = bool(metadata["allow_empty"])
        metadata["unsavable"] = bool(metadata["unsavable"])

    def is_infix(self):
        return True

    def resolved_choices(self):
        return list(self._choices()) if callable(self._choices) else list(self._choices)

    def init_value(self, instance, /):
        if self._init is not None:
            self._init(self, instance)
        else:
            self._value = self._lookup(list(instance.value))

    def _lookup(self, values, /):
        return None

    def assign(self, value, /):
        """
        Store a new value without any incompatibility resolution. Use
        PrefixInstance.set_infix_value to assign from commands.
        """
        self._value = value

    def _read(self, session, /, *, initial=None):
        """
        Prompt for a raw string through the custom reader or the session.
        """
        prompt = self._prompt or self._argument
        if self._reader is not None:
            return self._reader(session, prompt, initial, self._history_key)
        return session.read(prompt, initial=initial, history=self._history_key, choices=self.resolved_choices())

    def _empty(self, value, /):
        return value == "" and type(self).__empty_is_unset__ and not self._allow_empty

    def invoke(self, session, /):
        """
        Read the next value and assign it through the owning prefix instance.
        """
        session.prefix.set_infix_value(self, self.read_value(session))

    def format_value(self, styler, /):
        if self._value is None:
            return _text(self._argument, styler("inactive-value"))
        return _text(self._render(self._value), styler("value"))

    def _render(self, value, /):
        return str(value)


@_register("switch")
class Switch(Infix):
    """
    Toggleable argument: the value is either the argument itself or None.
    """

    def _lookup(self, values, /):
        return self._argument if self._argument in values else None

    def read_value(self, session, /):
        return None if self._value is not None else self._argument

    def contribute(self):
        return self._value

    def format_value(self, styler, /):
        argument = self._argument
        if self._shortarg:
            argument = f"{self._shortarg}, {self._argument}"
        return _text(argument, styler("value" if self._value is not None else "inactive-value"))


@_register("option")
class Option(Infix):
    """
    Value-taking argument. The argument usually ends with "=", and the
    contributed value is argument + value.

    multi_value
    - None: one value, contributed as "--arg=value".
    - "repeat": a list, contributed as one "--arg=value" element per entry.
    - "rest": a list, contributed as the pair ("--arg", [values]).
    """

    def _lookup(self, values, /):
        match self._multi_value:
            case "rest":
                for value in values:
                    if isinstance(value, tuple) and value and value[0] == self._argument:
                        return list(value[1])
                return None
            case "repeat":
                found = [value[len(self._argument):] for value in values
                         if isinstance(value, str) and value.startswith(self._argument)]
                return found or None
            case _:
                for value in values:
                    if isinstance(value, str) and value.startswith(self._argument):
                        return value[len(self._argument):]
                return None

    def read_value(self, session, /):
        if self._value is not None and not self._always_read:
            return None
        initial = self._render(self._value) if self._value is not None else None
        value = self._read(session, initial=initial)
        if self._multi_value:
            value = [item.strip() for item in value.split(",") if item.strip()]
            return value or None
        if self._empty(value):
            return None
        return value

    def contribute(self):
        if self._value is None:
            return None
        match self._multi_value:
            case "rest":
                return self._argument, list(self._value)
            case "repeat":
                return [f"{self._argument}{value}" for value in self._value]
            case _:
                return f"{self._argument}{self._value}"

    def _render(self, value, /):
        if self._multi_value:
            return f"{self._argument}{','.join(value)}"
        return f"{self._argument}{value}"


@_register("switches")
class Switches(Infix):
    """
    A set of mutually exclusive values rendered as one infix, e.g.
    "--color=%s" over ("always", "never", "auto"). Invoking cycles through the
    choices and finally back to unset.
    """
    __introspectable__ = Infix.__introspectable__ + (
        "argument_format",
        "argument_regexp",
    )

    __defaults__ = Infix.__defaults__ | {
        "argument_format": Unset,
        "argument_regexp": None,
    }

    def _sanitize(self, metadata):
        super()._sanitize(metadata)
        cls = type(self)
        format = metadata["argument_format"]
        if format is Unset:
            return
        if not isinstance(format, str) or format.count("%s") != 1:
            raise DefinitionError(f"{cls.__typename__} 'argument_format' must contain exactly one %s")
        if metadata["argument"] is Unset:
            metadata["argument"] = format
        if metadata["argument_regexp"] is None and not callable(metadata["choices"]):
            before, after = format.split("%s")
            metadata["argument_regexp"] = "{}(?P<value>{}){}".format(
                re.escape(before), "|".join(map(re.escape, metadata["choices"])), re.escape(after)
            )

    def _lookup(self, values, /):
        pattern = self._argument_regexp
        if pattern is None:
            before, after = self._argument_format.split("%s")
            pattern = "{}(?P<value>{}){}".format(
                re.escape(before), "|".join(map(re.escape, self.resolved_choices())), re.escape(after)
            )
        for value in values:
            if isinstance(value, str) and (match := re.fullmatch(pattern, value)):
                return match.group("value")
        return None

    def read_value(self, session, /):
        choices = self.resolved_choices()
        if not choices:
            return None
        if self._value not in choices:
            return choices[0]
        index = choices.index(self._value) + 1
        return choices[index] if index < len(choices) else None

    def contribute(self):
        if self._value is None:
            return None
        return self._argument_format % self._value

    def format_value(self, styler, /):
        before, after = self._argument_format.split("%s")
        choices = Text("|").join(
            _text(choice, styler("selected-choice" if choice == self._value else "choice"))
            for choice in self.resolved_choices()
        )
        style = styler("value" if self._value is not None else "inactive-value")
        return Text.assemble(_text(before, style), "[", choices, "]", _text(after, style))


@_register("files")
class Files(Infix):
    """
    Side list of paths, contributed as the pair (argument, [paths]). The
    argument defaults to "--".
    """
    __defaults__ = Infix.__defaults__ | {
        "argument": "--",
        "multi_value": "rest",
    }

    def _lookup(self, values, /):
        for value in values:
            if isinstance(value, tuple) and value and value[0] == self._argument:
                return list(value[1]) or None
        return None

    def read_value(self, session, /):
        initial = ",".join(self._value) if self._value else None
        value = self._read(session, initial=initial)
        files = [item.strip() for item in value.split(",") if item.strip()]
        return files or None

    def contribute(self):
        if not self._value:
            return None
        return self._argument, list(self._value)

    def _render(self, value, /):
        return " ".join([self._argument, *value])


@_register("variable")
class Variable(Infix):
    """
    Binds a host variable. The value is read through get() at instantiation
    and written through set(value) whenever it changes; nothing is contributed
    to the prefix value. An empty string is a legitimate value.
    """
    __empty_is_unset__ = False

    __defaults__ = Infix.__defaults__ | {
        "get": None,
        "set": None,
        "argument": "variable",
        "format": " %k %d %v",
    }

    def _sanitize(self, metadata):
        super()._sanitize(metadata)
        for name in ("get", "set"):
            if metadata[name] is not None and not callable(metadata[name]):
                raise DefinitionError(f"{type(self).__typename__} {name!r} must be callable")

    def init_value(self, instance, /):
        if self._init is not None:
            self._init(self, instance)
        elif self._get is not None:
            self._value = self._get()

    def read_value(self, session, /):
        initial = None if self._value is None else str(self._value)
        value = self._read(session, initial=initial)
        if self._empty(value):
            return None
        return value

    def assign(self, value, /):
        self._value = value
        if self._set is not None:
            self._set(value)

    def contribute(self):
        return None

    def format_value(self, styler, /):
        if self._value is None:
            return _text("unset", styler("inactive-value"))
        return _text(repr(self._value), styler("value"))


__all__ = (
    "Suffix",
    "Infix",
    "Switch",
    "Option",
    "Switches",
    "Files",
    "Variable",
    "prototype",
    "kinds",
)
