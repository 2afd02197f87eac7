r"""
Transom layout compiler: prefix definitions, layout trees and layout edits.

Literal grammar
- A list is a group, a tuple is a suffix spec, a plain string inside a group is
  a literal info line.
- A leading int sets an explicit level (otherwise it is inherited).
- A trailing dict holds keyword overrides ("class", "if", "if_not", and any
  suffix field such as "transient", "choices" or "reader").
- Groups: the first string (or callable) is the description. Nested lists imply
  a "columns" group, a flat list implies a "column" group. A group may not mix
  nested groups and suffix specs.
- Suffix specs are parsed positionally:
    (key, [description,] target, [{overrides}])
  where target is a command (any callable, including a Prefix), an argument
  string ("--all", "--author="), or a (shortarg, argument) pair. A lone string
  after the key is an argument when it starts with "-" or ends with "=",
  otherwise a description.
- An argument ending in "=" defaults to an "option", any other argument to a
  "switch"; "argument_format" with "choices" defaults to "switches".

Example
    define_prefix(
        "log",
        ["Arguments",
            ("-a", "Show all", "--all"),
            ("-A", "Author", ("-A", "--author=")),
            (5, "-c", "Color", {"argument_format": "--color=%s", "choices": ("always", "never")})],
        ["Actions",
            ("l", "Log", show_log)],
    )

Editing
- insert_before, insert_after, append, replace, remove, get, set_property
  address nodes with locators: a command (callable), a key (str), or a
  coordinate tuple of child indices (negative indices count from the end)
  optionally terminated by a key or command. The first structural match wins.
- Edits never mutate a tree: they build a new one and store it on the
  definition. An unedited definition always returns the identical cached tree.
"""
import re
from collections.abc import Callable

from .config import MAX_LEVEL
from .exclusive import normalize_incompatible
from .faults import DefinitionError, FaultCode
from .logger import logger
from .objects import ObjectType, prototype
from .utils import Unset, UnsetType, coalesce, freeze, rename, thaw

GROUP_KINDS = ("column", "row", "columns", "subgroups")
GROUP_PROPERTIES = ("if", "if_not")


def _sanitize_level(level, /, *, where):
    if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= MAX_LEVEL:
        raise DefinitionError(
            f"{where} level must be an integer between 0 and {MAX_LEVEL}, got {level!r}",
            code=FaultCode.INVALID_LEVEL,
        )
    return level


class Node(metaclass=ObjectType):
    """
    Immutable layout node. Nodes compare structurally (same type, same fields).
    """
    __fields__ = ()

    def __init__(self, **fields):
        for name in type(self).__fields__:
            object.__setattr__(self, "_" + name, freeze(fields[name]))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__typename__} nodes are immutable")

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return all(
            getattr(self, "_" + name) == getattr(other, "_" + name)
            for name in type(self).__fields__
        )

    __hash__ = None

    def evolve(self, **changes):
        """
        Return a copy of this node with some fields replaced.
        """
        return type(self)(**{name: getattr(self, "_" + name) for name in type(self).__fields__} | changes)


class Group(Node):
    """
    A group of child nodes. kind is one of "column", "row", "columns" or
    "subgroups"; description is a string or a callable(instance).
    """
    __introspectable__ = (
        "level",
        "kind",
        "description",
        "properties",
        "children",
    )
    __fields__ = __introspectable__


class Spec(Node):
    """
    A suffix spec: a kind tag and the argument map merged into the kind's
    prototype at instantiation.
    """
    __introspectable__ = (
        "level",
        "kind",
        "arguments",
    )
    __fields__ = __introspectable__

    @property
    def key(self):
        return self._arguments.get("key")

    @property
    def command(self):
        return self._arguments.get("command")


class Info(Node):
    """
    A literal line of text (or a callable(instance) producing one).
    """
    __introspectable__ = (
        "level",
        "text",
    )
    __fields__ = __introspectable__


class InfixCommand:
    """
    Callable stand-in synthesized for argument-only suffix specs.

    Calling it invokes the infix bound to the key that was just pressed in the
    given session. Stand-ins are registered by "<prefix>:<argument>" and reused,
    so compiling the same literal twice yields equal trees.
    """

    def __init__(self, name, /):
        self.__name__ = self.__qualname__ = name

    def __call__(self, session, /):
        suffix = session.current_suffix
        if suffix is Unset or not suffix.is_infix():
            raise RuntimeError(f"{self.__name__} can only be invoked from an active menu")
        suffix.invoke(session)

    def __repr__(self):
        return f"infix-command({self.__name__!r})"


_infix_commands = {}


def infix_command(name, /):
    """
    Return the registered stand-in for name, creating it on first use.
    """
    if (command := _infix_commands.get(name)) is None:
        command = _infix_commands[name] = InfixCommand(name)
    return command


def _split_level(items, /):
    if items and isinstance(items[0], int) and not isinstance(items[0], bool):
        return items.pop(0)
    return Unset


def _split_overrides(items, /):
    if items and isinstance(items[-1], dict):
        return dict(items.pop())
    return {}


def _is_argument(object, /):
    return isinstance(object, str) and (object.startswith("-") or object.endswith("="))


def _compile_suffix(literal, name, /):
    """
    Compile one suffix tuple into a Spec node.
    """
    items = list(literal)
    level = _split_level(items)
    overrides = _split_overrides(items)

    if not items or not isinstance(items[0], str) or not items[0]:
        raise DefinitionError(f"suffix {literal!r} must start with a key", code=FaultCode.MALFORMED_SUFFIX)
    fields = {"key": items.pop(0)}

    match items:
        case []:
            target = Unset
        case [str() as description, target]:
            fields["description"] = description
        case [target] if callable(target) or isinstance(target, tuple) or _is_argument(target):
            pass
        case [str() as description]:
            fields["description"] = description
            target = Unset
        case _:
            raise DefinitionError(
                f"suffix {literal!r} must be (key, [description,] command-or-argument, [overrides])",
                code=FaultCode.MALFORMED_SUFFIX,
            )

    match target:
        case UnsetType():
            pass
        case (str() as shortarg, str() as argument):
            fields["shortarg"] = shortarg
            fields["argument"] = argument
        case str() as argument:
            fields["argument"] = argument
        case _ if callable(target):
            fields["command"] = target
        case _:
            raise DefinitionError(f"suffix {literal!r} has an invalid target {target!r}",
                                  code=FaultCode.MALFORMED_SUFFIX)

    fields |= overrides
    if "level" in fields:
        level = fields.pop("level")
    if level is not Unset:
        _sanitize_level(level, where=f"suffix {fields['key']!r}")

    kind = fields.pop("class", Unset)
    if kind is Unset:
        if "argument_format" in fields:
            kind = "switches"
        elif isinstance(fields.get("argument"), str):
            kind = "option" if fields["argument"].endswith("=") else "switch"
        else:
            kind = "suffix"

    template = prototype(kind)
    if template.is_infix() and "command" not in fields:
        argument = coalesce(fields.get("argument", Unset), fields.get("argument_format", Unset))
        if argument is Unset:
            argument = template.argument
        if argument is Unset:
            raise DefinitionError(f"{kind} {fields['key']!r} needs an argument", code=FaultCode.MALFORMED_SUFFIX)
        fields["command"] = infix_command(f"{name}:{argument}")
    if not callable(fields.get("command")):
        raise DefinitionError(
            f"suffix {fields['key']!r} has neither a command nor an argument",
            code=FaultCode.MALFORMED_SUFFIX,
        )

    # Validate every field against the variant now so errors surface at definition time.
    template.clone(**fields)
    return Spec(level=level, kind=kind, arguments=fields)


def _compile_child(object, name, /):
    match object:
        case Node():
            return object
        case list():
            return _compile_group(object, name)
        case tuple():
            return _compile_suffix(object, name)
        case str():
            return Info(level=Unset, text=object)
        case _:
            raise DefinitionError(f"unexpected layout element {object!r}", code=FaultCode.MALFORMED_GROUP)


def _check_siblings(children, /, *, where):
    if any(isinstance(child, Group) for child in children) and any(isinstance(child, Spec) for child in children):
        raise DefinitionError(
            f"{where} mixes nested groups and suffixes",
            code=FaultCode.MIXED_SIBLINGS,
            hint="wrap the suffixes in their own group",
        )


def _compile_group(literal, name, /):
    """
    Compile one group list into a Group node.
    """
    items = list(literal)
    level = _split_level(items)
    overrides = _split_overrides(items)

    description = overrides.pop("description", None)
    if items and (isinstance(items[0], str) or callable(items[0])) and description is None:
        description = items.pop(0)

    children = tuple(_compile_child(item, name) for item in items)
    where = f"group {description!r}" if isinstance(description, str) else "group"
    _check_siblings(children, where=where)

    if "level" in overrides:
        level = overrides.pop("level")
    if level is not Unset:
        _sanitize_level(level, where=where)

    kind = overrides.pop("class", Unset)
    if kind is Unset:
        kind = "columns" if any(isinstance(child, Group) for child in children) else "column"
    if kind not in GROUP_KINDS:
        raise DefinitionError(f"{where} class must be one of {', '.join(GROUP_KINDS)}",
                              code=FaultCode.MALFORMED_GROUP)

    if unknown := set(overrides) - set(GROUP_PROPERTIES):
        raise DefinitionError(f"{where} got unexpected propert(y/ies) {', '.join(sorted(unknown))}",
                              code=FaultCode.MALFORMED_GROUP)
    for property, predicate in overrides.items():
        if not callable(predicate):
            raise DefinitionError(f"{where} property {property!r} must be callable", code=FaultCode.MALFORMED_GROUP)

    return Group(level=level, kind=kind, description=description, properties=overrides, children=children)


def compile_layout(groups, name, /):
    """
    Compile top-level group literals into a layout tree (a tuple of Groups).

    A sequence made only of suffix tuples is wrapped in a single column group.

    Raises
    - DefinitionError: when any literal is malformed.
    """
    groups = list(groups)
    if groups and all(isinstance(group, tuple) for group in groups):
        groups = [groups]
    layout = tuple(_compile_child(group, name) for group in groups)
    if not all(isinstance(node, Group) for node in layout):
        raise DefinitionError("top-level layout elements must be groups", code=FaultCode.MALFORMED_GROUP)
    return layout


_prefixes = {}


class Prefix(metaclass=ObjectType):
    """
    A prefix definition: the static half of a menu.

    Responsibilities
    - Holds the static slots (name, description, level, man/info reference,
      incompatible groups, fallback behaviors, initial value, scope, history key).
    - Owns the cached layout tree; edits replace it with a new tree.
    - Acts as a command: calling it with a session enters the menu (or runs the
      custom entry body, which must call session.enter itself).

    Notes
    - Definitions are registered by name; defining the same name again replaces
      the previous definition.
    """
    __introspectable__ = (
        "name",
        "description",
        "level",
        "man",
        "info",
        "incompatible",
        "transient_suffix",
        "transient_non_suffix",
        "init_value",
        "value",
        "scope",
        "history_key",
        "body",
    )
    __displayable__ = (
        "name",
        "description",
        "level",
        "incompatible",
        "value",
    )

    def __init__(
            self,
            name,
            groups=(),
            /,
            *,
            description=Unset,
            level=Unset,
            man=None,
            info=None,
            incompatible=(),
            transient_suffix=None,
            transient_non_suffix=None,
            init_value=None,
            value=(),
            scope=None,
            history_key=Unset,
            body=None,
    ):
        if not isinstance(name, str) or not re.fullmatch(r"[\w.-]+", name):
            raise DefinitionError(f"prefix name must be a non-empty identifier-like string, got {name!r}",
                                  code=FaultCode.UNKNOWN_PREFIX)
        if level is not Unset:
            _sanitize_level(level, where=f"prefix {name!r}")
        for slot, object in (("transient_suffix", transient_suffix), ("transient_non_suffix", transient_non_suffix)):
            if not isinstance(object, bool | Callable | None):
                raise DefinitionError(f"prefix {name!r} {slot!r} must be a boolean or a behavior function")
        for slot, object in (("init_value", init_value), ("body", body)):
            if object is not None and not callable(object):
                raise DefinitionError(f"prefix {name!r} {slot!r} must be callable")
        if isinstance(value, str):
            raise DefinitionError(f"prefix {name!r} 'value' must be a sequence of arguments")

        if description is Unset:
            description = body.__doc__.strip() if body is not None and body.__doc__ else None

        self._name = name
        self._description = description
        self._level = level
        self._man = man
        self._info = info
        self._incompatible = normalize_incompatible(incompatible)
        self._transient_suffix = transient_suffix
        self._transient_non_suffix = transient_non_suffix
        self._init_value = init_value
        self._value = freeze(list(value))
        self._scope = scope
        self._history_key = coalesce(history_key, name)
        self._body = body
        self._layout = compile_layout(groups, name)

    @property
    def layout(self):
        return self._layout

    @property
    def __name__(self):
        return self._name

    def __call__(self, session, /, *parameters):
        if self._body is not None:
            return self._body(session, *parameters)
        return session.enter(self)

    def commands(self):
        """
        Yield every command bound in the current layout, depth first.
        """
        for _, node in walk(self._layout):
            if isinstance(node, Spec):
                yield node.command


def define_prefix(name, /, *groups, **slots):
    """
    Define (or redefine) a prefix and register it by name.

    Parameters
    - name: the prefix identifier.
    - *groups: group literals (see the module documentation for the grammar).
    - **slots: Prefix slots (description, level, man, info, incompatible,
      transient_suffix, transient_non_suffix, init_value, value, scope,
      history_key, body).

    Returns
    - Prefix
    """
    definition = Prefix(name, groups, **slots)
    if name in _prefixes:
        logger.debug("redefining prefix %r", name)
    _prefixes[name] = definition
    return definition


def prefix(*groups, **slots):
    """
    Decorator form of define_prefix: the decorated function becomes the entry
    body, called as body(session, *parameters). The body must call
    session.enter(...) to open the menu.

        @prefix(["Actions", ("c", "Commit", commit)], level=4)
        def commit_menu(session, amend=False):
            session.enter(commit_menu, value=["--amend"] if amend else [])
    """
    @rename("prefix")
    def wrapper(body, /):
        if not callable(body):
            raise TypeError("@prefix() must be applied to a callable")
        options = dict(slots)
        return define_prefix(options.pop("name", body.__name__), *groups, body=body, **options)
    return wrapper


def get_prefix(name, /):
    """
    Return the registered definition for name.

    Raises
    - DefinitionError: when no prefix is registered under that name.
    """
    if isinstance(name, Prefix):
        return name
    try:
        return _prefixes[name]
    except KeyError:
        raise DefinitionError(f"no prefix named {name!r}", code=FaultCode.UNKNOWN_PREFIX) from None


def prefixes():
    return tuple(_prefixes.values())


def walk(nodes, /, path=()):
    """
    Yield (path, node) pairs for every node below nodes, depth first, in
    declaration order.
    """
    for index, node in enumerate(nodes):
        yield path + (index,), node
        if isinstance(node, Group):
            yield from walk(node.children, path + (index,))


def _matches(node, target, /):
    if not isinstance(node, Spec):
        return False
    if isinstance(target, str):
        return node.key == target
    return node.command is target or node.command == target


def _children(layout, path, /):
    nodes = layout
    for index in path:
        nodes = nodes[index].children
    return nodes


def _locate(layout, locator, /):
    """
    Resolve a locator to a coordinate path, or None when nothing matches.
    """
    match locator:
        case str() | Callable():
            for path, node in walk(layout):
                if _matches(node, locator):
                    return path
            return None
        case tuple() if locator:
            *indices, terminal = locator
            if isinstance(terminal, int) and not isinstance(terminal, bool):
                indices, terminal = [*indices, terminal], Unset
            if not all(isinstance(index, int) and not isinstance(index, bool) for index in indices):
                raise DefinitionError(f"invalid locator {locator!r}", code=FaultCode.INVALID_LOCATOR)
            path, nodes = (), layout
            for position, index in enumerate(indices):
                if not -len(nodes) <= index < len(nodes):
                    return None
                index %= len(nodes)
                path += (index,)
                node = nodes[index]
                if position < len(indices) - 1 or terminal is not Unset:
                    if not isinstance(node, Group):
                        return None
                    nodes = node.children
            if terminal is Unset:
                return path or None
            for subpath, node in walk(nodes, path):
                if _matches(node, terminal):
                    return subpath
            return None
        case _:
            raise DefinitionError(f"invalid locator {locator!r}", code=FaultCode.INVALID_LOCATOR,
                                  hint="use a command, a key or a tuple of indices")


def _require(layout, locator, /):
    if (path := _locate(layout, locator)) is None:
        raise DefinitionError(f"locator {locator!r} did not match any node", code=FaultCode.LOCATOR_NOT_FOUND)
    return path


def _rebuild(layout, path, update, /):
    """
    Return a new tree where the children tuple addressed by path (a group path,
    () for the top level) is replaced by update(children).
    """
    if not path:
        return tuple(update(tuple(layout)))
    index, *rest = path
    group = layout[index]
    children = _rebuild(group.children, tuple(rest), update)
    return layout[:index] + (group.evolve(children=children),) + layout[index + 1:]


def _validate(layout, /):
    if not all(isinstance(node, Group) for node in layout):
        raise DefinitionError("top-level layout elements must be groups", code=FaultCode.MIXED_SIBLINGS)
    for path, node in walk(layout):
        if isinstance(node, Group):
            _check_siblings(node.children, where=f"group at {path}")
    return layout


def _discard_duplicates(layout, node, keep, /):
    """
    Remove earlier bindings of the inserted spec's key or command, keeping the
    node at path keep.
    """
    if not isinstance(node, Spec):
        return layout
    stale = [
        path for path, other in walk(layout)
        if path != keep and isinstance(other, Spec) and (other.key == node.key or other.command is node.command)
    ]
    for path in sorted(stale, reverse=True):
        layout = _rebuild(layout, path[:-1], lambda children, index=path[-1]: children[:index] + children[index + 1:])
    return layout


def _edit(definition, layout, action, /):
    definition._layout = _validate(layout)
    logger.debug("%s edited layout of prefix %r", action, definition.name)
    return definition._layout


def _insert(prefix, locator, node, /, *, offset, action):
    definition = get_prefix(prefix)
    node = _compile_child(node, definition.name)
    path = _require(definition.layout, locator)
    parent, index = path[:-1], path[-1] + offset
    layout = _rebuild(definition.layout, parent, lambda children: children[:index] + (node,) + children[index:])
    layout = _discard_duplicates(layout, node, parent + (index,))
    return _edit(definition, layout, action)


def insert_before(prefix, locator, node, /):
    """
    Insert node (a literal or a Node) before the node matched by locator.
    """
    return _insert(prefix, locator, node, offset=0, action="insert-before")


def insert_after(prefix, locator, node, /):
    """
    Insert node (a literal or a Node) after the node matched by locator.
    """
    return _insert(prefix, locator, node, offset=1, action="insert-after")


def append(prefix, locator, node, /):
    """
    Append node as the last child of the group matched by locator. An empty
    tuple locator appends a top-level group.
    """
    definition = get_prefix(prefix)
    node = _compile_child(node, definition.name)
    path = () if locator == () else _require(definition.layout, locator)
    if path and not isinstance(get(definition, path), Group):
        raise DefinitionError(f"locator {locator!r} does not address a group", code=FaultCode.INVALID_LOCATOR)
    layout = _rebuild(definition.layout, path, lambda children: children + (node,))
    layout = _discard_duplicates(layout, node, path + (len(_children(definition.layout, path)),))
    return _edit(definition, layout, "append")


def replace(prefix, locator, node, /):
    """
    Replace the node matched by locator with node.
    """
    definition = get_prefix(prefix)
    node = _compile_child(node, definition.name)
    path = _require(definition.layout, locator)
    parent, index = path[:-1], path[-1]
    layout = _rebuild(definition.layout, parent, lambda children: children[:index] + (node,) + children[index + 1:])
    layout = _discard_duplicates(layout, node, path)
    return _edit(definition, layout, "replace")


def remove(prefix, locator, /):
    """
    Remove the node matched by locator. Removing a missing node does nothing.
    """
    definition = get_prefix(prefix)
    if (path := _locate(definition.layout, locator)) is None:
        logger.debug("remove: locator %r not found in prefix %r", locator, definition.name)
        return definition.layout
    parent, index = path[:-1], path[-1]
    layout = _rebuild(definition.layout, parent, lambda children: children[:index] + children[index + 1:])
    return _edit(definition, layout, "remove")


def get(prefix, locator, /):
    """
    Return the node matched by locator.

    Raises
    - DefinitionError: when nothing matches.
    """
    definition = get_prefix(prefix)
    path = _require(definition.layout, locator)
    node = definition.layout[path[0]]
    for index in path[1:]:
        node = node.children[index]
    return node


def set_property(prefix, locator, name, value, /):
    """
    Set one field of the node matched by locator.

    - Spec: any suffix field ("description", "transient", "level", ...).
    - Group: "description", "level", "class", or a predicate property.
    - Info: "text" or "level".
    """
    definition = get_prefix(prefix)
    path = _require(definition.layout, locator)
    node = get(definition, path)
    match node:
        case Spec():
            if name == "level":
                node = node.evolve(level=_sanitize_level(value, where=f"suffix {node.key!r}"))
            elif name == "class":
                prototype(value).clone(**thaw(node.arguments))
                node = node.evolve(kind=value)
            else:
                arguments = thaw(node.arguments) | {name: value}
                prototype(node.kind).clone(**arguments)
                node = node.evolve(arguments=arguments)
        case Group():
            match name:
                case "level":
                    node = node.evolve(level=_sanitize_level(value, where="group"))
                case "class" if value in GROUP_KINDS:
                    node = node.evolve(kind=value)
                case "description":
                    node = node.evolve(description=value)
                case _ if name in GROUP_PROPERTIES and callable(value):
                    node = node.evolve(properties=thaw(node.properties) | {name: value})
                case _:
                    raise DefinitionError(f"cannot set group property {name!r} to {value!r}",
                                          code=FaultCode.MALFORMED_GROUP)
        case Info():
            if name not in Info.__fields__:
                raise DefinitionError(f"cannot set info property {name!r}", code=FaultCode.MALFORMED_GROUP)
            node = node.evolve(**{name: value})
    parent, index = path[:-1], path[-1]
    layout = _rebuild(definition.layout, parent, lambda children: children[:index] + (node,) + children[index + 1:])
    return _edit(definition, layout, "set-property")


__all__ = (
    "Node",
    "Group",
    "Spec",
    "Info",
    "InfixCommand",
    "Prefix",
    "GROUP_KINDS",
    "compile_layout",
    "define_prefix",
    "prefix",
    "get_prefix",
    "prefixes",
    "infix_command",
    "walk",
    "insert_before",
    "insert_after",
    "append",
    "replace",
    "remove",
    "get",
    "set_property",
)
