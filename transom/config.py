"""
Transom runtime configuration.

Config is an immutable, sanitized bag of session-wide settings. Every field is
validated on construction (the same metadata-sanitizing approach the object
model uses) and exposed through read-only properties.

Fields
- default_level: int 1..7 (default 4). Prefix level used when neither the
  definition nor the level store overrides it.
- history_limit: int >= 1 (default 10). Maximum entries kept per history key.
- show_delay: float >= 0 (default 0). Idle seconds before the popup is shown;
  0 shows it immediately on entry.
- detect_conflicts: bool (default False). When true, two distinct commands
  resolving to the same key abort entry with ConflictError.
- substitute_key: callable | None. Applied to every live key before the keymap
  is built and before conflicts are detected.
- show_common: bool (default False). Display the common-commands group (it is
  always bound, this only controls whether it is rendered).
- save_history: bool (default True). Flush the history store on close.
- directory: str | PathLike. Location of values.json, history.json and
  levels.json. Defaults to $TRANSOM_HOME, else ~/.local/state/transom.
- colorful / fancy: rendering flags for the popup and fault panels.
"""
import os
from pathlib import Path

from .utils import Unset, coalesce, mirror

MIN_LEVEL = 1
MAX_LEVEL = 7


def _default_directory():
    if home := os.environ.get("TRANSOM_HOME"):
        return Path(home).expanduser()
    return Path("~/.local/state/transom").expanduser()


def _sanitize_level(name, level, /):
    if isinstance(level, bool) or not isinstance(level, int):
        raise TypeError(f"config {name!r} must be an integer")
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise ValueError(f"config {name!r} must be between {MIN_LEVEL} and {MAX_LEVEL}")
    return level


class Config:
    """
    Immutable session settings. Use replace(**overrides) to derive a variant.
    """
    __introspectable__ = (
        "default_level",
        "history_limit",
        "show_delay",
        "detect_conflicts",
        "substitute_key",
        "show_common",
        "save_history",
        "directory",
        "colorful",
        "fancy",
    )

    default_level = mirror("default_level")
    history_limit = mirror("history_limit")
    show_delay = mirror("show_delay")
    detect_conflicts = mirror("detect_conflicts")
    substitute_key = mirror("substitute_key")
    show_common = mirror("show_common")
    save_history = mirror("save_history")
    directory = mirror("directory")
    colorful = mirror("colorful")
    fancy = mirror("fancy")

    def __init__(
            self,
            *,
            default_level=4,
            history_limit=10,
            show_delay=0,
            detect_conflicts=False,
            substitute_key=None,
            show_common=False,
            save_history=True,
            directory=Unset,
            colorful=True,
            fancy=False,
    ):
        if isinstance(history_limit, bool) or not isinstance(history_limit, int):
            raise TypeError("config 'history_limit' must be an integer")
        if history_limit < 1:
            raise ValueError("config 'history_limit' must be at least 1")

        if isinstance(show_delay, bool) or not isinstance(show_delay, int | float):
            raise TypeError("config 'show_delay' must be a number")
        if show_delay < 0:
            raise ValueError("config 'show_delay' cannot be negative")

        if substitute_key is not None and not callable(substitute_key):
            raise TypeError("config 'substitute_key' must be callable")

        if not isinstance(directory, str | os.PathLike | Unset):
            raise TypeError("config 'directory' must be a path")

        self._default_level = _sanitize_level("default_level", default_level)
        self._history_limit = history_limit
        self._show_delay = float(show_delay)
        self._detect_conflicts = bool(detect_conflicts)
        self._substitute_key = substitute_key
        self._show_common = bool(show_common)
        self._save_history = bool(save_history)
        self._directory = Path(coalesce(directory, _default_directory()))
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)

    def replace(self, **overrides):
        """
        Return a new Config with the given fields replaced.
        """
        if unknown := set(overrides) - set(self.__introspectable__):
            raise TypeError(f"config got unexpected field(s) {', '.join(sorted(unknown))}")
        return type(self)(**{name: getattr(self, "_" + name) for name in self.__introspectable__} | overrides)

    def __rich_repr__(self):
        for name in self.__introspectable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return f"config({', '.join(f'{name}={object!r}' for name, object in self.__rich_repr__())})"


__all__ = (
    "Config",
    "MIN_LEVEL",
    "MAX_LEVEL",
)
