"""
Persisted values, history and levels.

Three independent mappings, each serialized as JSON text with sorted keys:
- values.json:  prefix name → last explicitly saved value list.
- history.json: history key → past value lists, most recent first,
                de-duplicated and capped.
- levels.json:  prefix name → {"level": n, "suffixes": {command: n}}.

Values are lists of argument strings and (argument, [items]) pairs. Pairs are
tuples in memory and two-element lists on disk; load converts them back.

Loading never raises to the caller: a missing file yields an empty mapping, an
unreadable or malformed one is reported as a StoreError through the logger and
discarded.
"""
import json
from pathlib import Path

from .faults import FaultCode, StoreError
from .logger import logger


def _is_pair(item):
    return (
        isinstance(item, list) and len(item) == 2 and isinstance(item[0], str) and
        isinstance(item[1], list) and all(isinstance(element, str) for element in item[1])
    )


def _restore(value):
    """Turn a JSON value list back into argument strings and (argument, items) pairs."""
    return [(item[0], list(item[1])) if _is_pair(item) else item for item in value]


def _is_value(value):
    return isinstance(value, list) and all(isinstance(item, str) or _is_pair(item) for item in value)


class Store:
    """
    One persisted mapping backed by a JSON file.
    """
    filename = None

    def __init__(self, directory, /):
        self._path = Path(directory) / self.filename
        self._data = {}

    @property
    def path(self):
        return self._path

    def _check(self, data):
        if not isinstance(data, dict):
            raise StoreError(f"{self._path} does not hold a mapping", code=FaultCode.MALFORMED_STORE)
        return data

    def _discard(self, fault):
        logger.warning("discarding store: %s", fault)
        self._data = {}
        return self

    def load(self):
        """
        Read the file into memory. Missing or malformed files leave the store empty.
        """
        try:
            with open(self._path, encoding="utf-8") as file:
                data = json.load(file)
        except FileNotFoundError:
            self._data = {}
            return self
        except (OSError, ValueError) as error:
            return self._discard(
                StoreError(f"{self._path} is unreadable: {error}", code=FaultCode.UNREADABLE_STORE)
            )
        try:
            self._data = self._check(data)
        except StoreError as fault:
            self._discard(fault)
        return self

    def flush(self):
        """
        Write the mapping to disk, keys sorted for reproducible output.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as file:
            json.dump(self._data, file, indent=2, sort_keys=True)
            file.write("\n")
        logger.debug("wrote %s", self._path)

    def __contains__(self, key):
        return key in self._data

    def __len__(self):
        return len(self._data)

    def keys(self):
        return sorted(self._data)

    def clear(self):
        self._data.clear()


class ValueStore(Store):
    """
    Last explicitly set or saved value per prefix.

    Values that are only set live in a session layer that shadows the saved
    ones and is never written to disk.
    """
    filename = "values.json"

    def __init__(self, directory, /):
        super().__init__(directory)
        self._session = {}

    def _check(self, data):
        data = super()._check(data)
        if not all(_is_value(value) for value in data.values()):
            raise StoreError(f"{self._path} holds a malformed value", code=FaultCode.MALFORMED_STORE)
        return data

    def __contains__(self, name):
        return name in self._session or name in self._data

    def get(self, name, default=None, /):
        if name in self._session:
            return _restore(self._session[name])
        if name in self._data:
            return _restore(self._data[name])
        return default

    def set(self, name, value, /, *, persist=False):
        value = [list(item) if isinstance(item, tuple) else item for item in value]
        self._session[name] = value
        if persist:
            self._data[name] = list(value)

    def discard(self, name, /):
        self._session.pop(name, None)
        self._data.pop(name, None)


class HistoryStore(Store):
    """
    Past value lists per history key, most recent first.
    """
    filename = "history.json"

    def _check(self, data):
        data = super()._check(data)
        if not all(isinstance(entries, list) and all(map(_is_value, entries)) for entries in data.values()):
            raise StoreError(f"{self._path} holds a malformed history", code=FaultCode.MALFORMED_STORE)
        return data

    def get(self, key, /):
        return [_restore(entry) for entry in self._data.get(key, [])]

    def push(self, key, value, limit, /):
        """
        Record value as the most recent entry for key: an equal older entry is
        removed and the list is capped at limit.
        """
        value = [list(item) if isinstance(item, tuple) else item for item in value]
        entries = [entry for entry in self._data.get(key, []) if entry != value]
        self._data[key] = [value, *entries][:limit]
        return self.get(key)


class LevelStore(Store):
    """
    Level overrides: one overall level per prefix plus per-suffix levels
    keyed by command name.
    """
    filename = "levels.json"

    def _check(self, data):
        data = super()._check(data)
        for entry in data.values():
            if (
                not isinstance(entry, dict) or
                not isinstance(entry.get("level", 0), int) or
                not isinstance(entry.get("suffixes", {}), dict) or
                not all(isinstance(level, int) for level in entry.get("suffixes", {}).values())
            ):
                raise StoreError(f"{self._path} holds a malformed level entry", code=FaultCode.MALFORMED_STORE)
        return data

    def prefix_level(self, name, /):
        return self._data.get(name, {}).get("level")

    def suffix_level(self, name, command, /):
        return self._data.get(name, {}).get("suffixes", {}).get(command)

    def set_prefix_level(self, name, level, /):
        self._data.setdefault(name, {})["level"] = level

    def set_suffix_level(self, name, command, level, /):
        self._data.setdefault(name, {}).setdefault("suffixes", {})[command] = level


class Stores:
    """
    The three stores of one session, rooted in a directory.
    """

    def __init__(self, directory, /):
        self.values = ValueStore(directory)
        self.history = HistoryStore(directory)
        self.levels = LevelStore(directory)

    def load(self):
        for store in (self.values, self.history, self.levels):
            store.load()
        return self

    def flush(self, *, history=True):
        self.values.flush()
        self.levels.flush()
        if history:
            self.history.flush()


__all__ = (
    "Store",
    "ValueStore",
    "HistoryStore",
    "LevelStore",
    "Stores",
)
