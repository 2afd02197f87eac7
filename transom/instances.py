r"""
Transom instantiation engine: live prefix instances and their keymaps.

Lifecycle of one invocation
1. Seed the instance: level (level store override, else the definition's level,
   else the configured default), scope, and value (explicit value, else the
   definition's init_value callable, else the saved value, else the
   definition's default value).
2. Prune the definition's layout tree for this invocation: groups whose "if" /
   "if_not" predicates fail are dropped with their whole subtree, suffix specs
   above the instance level (or whose own predicates fail) are dropped, and
   groups left without any suffix are dropped. Every surviving spec records its
   effective level: level store override > explicit level > inherited group
   level > 1. Level 0 is never reachable. In edit mode every level up to 7 is
   kept so levels can be changed.
3. Realize the pruned tree: every spec becomes a fresh live object cloned from
   its variant's prototype, with the (possibly substituted) key, then its scope,
   value and inapt state are initialized.

A tree captured earlier (for instance from the stack) is realized as-is,
without pruning again.

Keys
- parse_keys("C-x s") -> ("C-x", "s"), parse_keys("-a") -> ("-", "a").
  Tokens carrying modifiers ("C-x", "M-p", "C-M-n"), named keys ("RET", "TAB",
  "SPC", "ESC", "DEL") and bracketed keys ("<f1>") are single keys; any other
  token is typed one character at a time.
- build_keymap() maps key sequences to live suffixes. With conflict detection,
  two distinct commands on the same sequence, or a sequence that is a prefix of
  another binding, raise ConflictError; without it, the later binding wins.
"""
import re

from .config import MAX_LEVEL
from .exclusive import resolve
from .faults import ConflictError, DefinitionError, FaultCode
from .layout import Group, Info, Spec, get_prefix, walk
from .logger import logger
from .objects import ObjectType, prototype
from .utils import Unset, coalesce, freeze, thaw

NAMED_KEYS = frozenset(("RET", "TAB", "SPC", "ESC", "DEL", "LFD", "BS", "NUL"))


def parse_keys(description, /):
    """
    Split a key description into the sequence of keys to be typed.

    Raises
    - DefinitionError: when the description is empty.
    """
    if not isinstance(description, str) or not description.strip():
        raise DefinitionError(f"invalid key description {description!r}", code=FaultCode.MALFORMED_SUFFIX)
    keys = []
    for token in description.split():
        if token in NAMED_KEYS or re.fullmatch(r"<[^<>\s]+>", token) or re.fullmatch(r"(?:[ACHMSs]-)+\S+", token):
            keys.append(token)
        else:
            keys.extend(token)
    return tuple(keys)


def command_name(command, /):
    """
    Stable name of a command, used for level overrides and history keys.
    """
    return getattr(command, "__name__", None) or repr(command)


def _predicates_hold(properties, instance, /):
    if (predicate := properties.get("if")) is not None and not predicate(instance):
        return False
    if (predicate := properties.get("if_not")) is not None and predicate(instance):
        return False
    return True


class Keymap:
    """
    Key-sequence trie over live suffixes.
    """

    def __init__(self):
        self._bindings = {}

    def bind(self, keys, suffix, /, *, detect=False, shadow=()):
        """
        Bind keys to suffix. Bindings listed in shadow (common commands) are
        silently overridden.
        """
        clashes = [
            other for other in self._bindings
            if other != keys and (other[:len(keys)] == keys or keys[:len(other)] == other)
        ]
        if (existing := self._bindings.get(keys)) is not None and existing.command is not suffix.command:
            clashes.append(keys)
        for other in clashes:
            occupant = self._bindings[other]
            if detect and occupant not in shadow:
                raise ConflictError(
                    f"key {' '.join(keys)!r} of {command_name(suffix.command)} conflicts with "
                    f"key {' '.join(other)!r} of {command_name(occupant.command)}",
                )
            logger.debug("key %r overrides %r", " ".join(keys), " ".join(other))
            del self._bindings[other]
        self._bindings[keys] = suffix

    def get(self, keys, /):
        return self._bindings.get(tuple(keys))

    def is_pending(self, keys, /):
        """
        True when keys is a proper prefix of at least one binding.
        """
        keys = tuple(keys)
        return any(len(other) > len(keys) and other[:len(keys)] == keys for other in self._bindings)

    def __contains__(self, keys):
        return tuple(keys) in self._bindings

    def __iter__(self):
        return iter(self._bindings.items())

    def __len__(self):
        return len(self._bindings)


def build_keymap(suffixes, config, /, *, common=()):
    """
    Build the keymap for one live instance.

    Common commands are bound first and are shadowed by the instance's own
    suffixes without counting as conflicts.

    Raises
    - ConflictError: when config.detect_conflicts is set and two distinct
      commands of the instance resolve to clashing keys.
    """
    keymap = Keymap()
    for suffix in common:
        keymap.bind(parse_keys(suffix.key), suffix)
    for suffix in suffixes:
        keymap.bind(parse_keys(suffix.key), suffix, detect=config.detect_conflicts, shadow=common)
    return keymap


class PrefixInstance(metaclass=ObjectType):
    """
    The per-invocation, mutable half of a menu.

    Fields
    - definition: the Prefix this instance realizes.
    - level: current visibility level.
    - value: the value the live infixes were initialized from.
    - scope: per-invocation scope handed to predicates and infixes.
    - history / history_position: the value history (index 0 is the value at
      entry) and the position currently shown.
    - suffixes: live objects, in layout order.
    - common: live common commands (always bound, rendered on demand).
    - tree: the pruned tree the suffixes were realized from.
    - edit: whether the instance was created for level editing.
    """
    __introspectable__ = (
        "definition",
        "level",
        "value",
        "scope",
        "history",
        "history_position",
        "edit",
    )
    __displayable__ = (
        "definition",
        "level",
        "value",
        "edit",
    )

    def __init__(self, definition, /, *, level, scope, value, edit, config):
        self._definition = definition
        self._level = level
        self._scope = scope
        self._value = list(value)
        self._edit = edit
        self._config = config
        self._history = []
        self._history_position = 0
        self._suffixes = ()
        self._common = ()
        self._tree = ()
        self.resolving = False

    @property
    def suffixes(self):
        return self._suffixes

    @property
    def common(self):
        return self._common

    @property
    def tree(self):
        return self._tree

    @property
    def name(self):
        return self._definition.name

    def prune(self, stores, /):
        """
        Return the definition's layout filtered for this instance.
        """
        limit = MAX_LEVEL if self._edit else self._level

        def visit(nodes, inherited):
            kept = []
            for node in nodes:
                match node:
                    case Group():
                        level = coalesce(node.level, inherited)
                        if level == 0 or level > limit or not _predicates_hold(node.properties, self):
                            continue
                        children = visit(node.children, level)
                        has_suffixes = any(isinstance(child, Group | Spec) for child in node.children)
                        if has_suffixes and not any(isinstance(child, Group | Spec) for child in children):
                            continue
                        kept.append(node.evolve(level=level, children=children))
                    case Spec():
                        level = stores.levels.suffix_level(self.name, command_name(node.command))
                        if level is None:
                            level = coalesce(node.level, inherited)
                        if level == 0 or level > limit or not _predicates_hold(node.arguments, self):
                            continue
                        kept.append(node.evolve(level=level))
                    case Info():
                        level = coalesce(node.level, inherited)
                        if level == 0 or level > limit:
                            continue
                        kept.append(node.evolve(level=level))
            return tuple(kept)

        return visit(self._definition.layout, 1)

    def _realize(self, spec, /):
        fields = thaw(spec.arguments)
        fields.pop("if", None)
        fields.pop("if_not", None)
        key = fields["key"]
        if self._config.substitute_key is not None:
            key = self._config.substitute_key(key)
            if not isinstance(key, str) or not key:
                raise DefinitionError(f"key substitution returned {key!r} for {fields['key']!r}",
                                      code=FaultCode.MALFORMED_SUFFIX)
        fields["key"] = key
        template = prototype(spec.kind)
        if template.is_infix() and fields.get("history_key") is None:
            fields["history_key"] = command_name(fields["command"])
        suffix = template.clone(**fields, level=coalesce(spec.level, 1))
        suffix.init_scope(self)
        suffix.init_value(self)
        suffix.init_inapt(self)
        return suffix

    def realize(self, tree, /, *, common=()):
        """
        Create live suffixes for every spec in tree (no pruning) and for the
        common-commands groups.
        """
        self._tree = freeze(tree)
        self._suffixes = tuple(self._realize(node) for _, node in walk(self._tree) if isinstance(node, Spec))
        self._common = tuple(self._realize(node) for _, node in walk(common) if isinstance(node, Spec))
        return self

    def reinit(self):
        """
        Re-derive the live suffixes from the retained tree (values are taken
        from self.value again).
        """
        self._suffixes = tuple(self._realize(node) for _, node in walk(self._tree) if isinstance(node, Spec))
        return self

    def get_value(self, *, savable=False):
        """
        Contributed values of the live suffixes, in layout order, unset ones
        dropped. With savable, infixes marked unsavable are left out.
        """
        value = []
        for suffix in self._suffixes:
            if savable and suffix.is_infix() and suffix.unsavable:
                continue
            match suffix.contribute():
                case None:
                    pass
                case list() as contribution:
                    value.extend(contribution)
                case contribution:
                    value.append(contribution)
        return value

    def get_savable_value(self):
        """
        Like get_value, without infixes marked unsavable.
        """
        return self.get_value(savable=True)

    def set_infix_value(self, infix, value, /):
        """
        Assign value to a live infix, unsetting incompatible infixes when the
        new value is not None.
        """
        infix.assign(value)
        if value is not None:
            resolve(self, infix)

    def set_value(self, value, /):
        self._value = list(value)
        self.reinit()

    def find(self, command, /):
        """
        First live suffix (own or common) bound to command.
        """
        for suffix in self._suffixes + self._common:
            if suffix.command is command:
                return suffix
        return None

    def seed_history(self, stores, /):
        self._history = [self.get_value(), *stores.history.get(self._definition.history_key)]
        self._history_position = 0

    def move_history(self, offset, /):
        """
        Show an older (offset > 0) or newer (offset < 0) history entry.

        Returns False when there is no such entry.
        """
        position = self._history_position + offset
        if not 0 <= position < len(self._history):
            return False
        if self._history_position == 0:
            self._history[0] = self.get_value()
        self._history_position = position
        self.set_value(self._history[position])
        return True


def instantiate(definition, stores, config, /, *, tree=Unset, scope=Unset, value=Unset, edit=False, common=()):
    """
    Create a live instance of definition.

    Parameters
    - definition: a Prefix or the name of a registered one.
    - stores: Stores consulted for levels, saved values and history.
    - config: Config (default level, key substitution).
    - tree: a previously pruned tree; when given it is realized without pruning.
    - scope / value: explicit scope and value, overriding the definition's.
    - edit: instantiate for level editing (every level up to 7 is kept).
    - common: layout groups of always-bound common commands.

    Returns
    - PrefixInstance
    """
    definition = get_prefix(definition)
    level = stores.levels.prefix_level(definition.name)
    if level is None:
        level = coalesce(definition.level, config.default_level)

    instance = PrefixInstance(
        definition,
        level=level,
        scope=coalesce(scope, definition.scope),
        value=(),
        edit=edit,
        config=config,
    )
    if value is not Unset:
        instance._value = list(value)
    elif definition.init_value is not None:
        instance._value = list(definition.init_value(instance))
    elif (saved := stores.values.get(definition.name)) is not None:
        instance._value = saved
    else:
        instance._value = thaw(list(definition.value))

    if tree is Unset:
        tree = instance.prune(stores)
    instance.realize(tree, common=common)
    instance.seed_history(stores)
    logger.debug("instantiated %r at level %d (%d suffixes)", definition.name, level, len(instance.suffixes))
    return instance


__all__ = (
    "NAMED_KEYS",
    "parse_keys",
    "command_name",
    "Keymap",
    "build_keymap",
    "PrefixInstance",
    "instantiate",
)
