"""
Mutually exclusive infix arguments.

A prefix declares incompatible groups as sequences of argument strings, e.g.
[["--first-parent", "--no-merges"], ["--color=always", "--color=never"]].
Setting an infix to a non-None value unsets every other live infix whose
argument shares a group with it.

An infix is matched through its argument ("--author=") and, for infixes whose
contribution is a single string, through that contribution ("--color=always"),
so both plain and formatted arguments can be listed in a group.
"""
from collections.abc import Iterable

from .faults import DefinitionError, FaultCode
from .logger import logger


def normalize_incompatible(groups, /):
    """
    Validate incompatible groups and return them as a tuple of tuples.

    Raises
    - DefinitionError: when groups is not a sequence of sequences of at least
      two argument strings.
    """
    if isinstance(groups, str) or not isinstance(groups, Iterable):
        raise DefinitionError("'incompatible' must be a sequence of argument groups",
                              code=FaultCode.INVALID_INCOMPATIBLE)
    normalized = []
    for group in groups:
        if isinstance(group, str) or not isinstance(group, Iterable):
            raise DefinitionError(f"incompatible group {group!r} must be a sequence of arguments",
                                  code=FaultCode.INVALID_INCOMPATIBLE)
        group = tuple(group)
        if len(group) < 2 or not all(isinstance(argument, str) and argument for argument in group):
            raise DefinitionError(f"incompatible group {group!r} must list at least two arguments",
                                  code=FaultCode.INVALID_INCOMPATIBLE)
        normalized.append(group)
    return tuple(normalized)


def arguments_of(infix, /):
    """
    Return the set of strings an infix is known by in incompatible groups.
    """
    names = {infix.argument}
    if isinstance(contribution := infix.contribute(), str):
        names.add(contribution)
    return names


def resolve(instance, infix, /):
    """
    Unset every live infix of instance that is incompatible with infix.

    Unsetting goes through instance.set_infix_value so variable bindings see the
    change; the instance's guard keeps an unset performed here from starting
    another cascade within the same transaction.
    """
    if instance.resolving or not instance.definition.incompatible:
        return
    names = arguments_of(infix)
    conflicting = {
        argument
        for group in instance.definition.incompatible if names.intersection(group)
        for argument in group if argument not in names
    }
    if not conflicting:
        return
    instance.resolving = True
    try:
        for suffix in instance.suffixes:
            if suffix is infix or not suffix.is_infix() or suffix.value is None:
                continue
            if arguments_of(suffix) & conflicting:
                logger.debug("unsetting %s (incompatible with %s)", suffix.argument, infix.argument)
                instance.set_infix_value(suffix, None)
    finally:
        instance.resolving = False


__all__ = (
    "normalize_incompatible",
    "arguments_of",
    "resolve",
)
