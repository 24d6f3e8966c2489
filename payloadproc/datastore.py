"""Thread-safe in-memory registry of models and their runtime attributes."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any


class AttributeMap:
    """A thread-safe map of attribute names to values; None values are ignored."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        """Store a value under key; storing None does nothing."""
        if value is None:
            return
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> Any | None:
        """Return the value stored under key, or None if there is none."""
        with self._lock:
            return self._data.get(key)

    def keys(self) -> list[str]:
        """Return the names of all stored attributes."""
        with self._lock:
            return list(self._data)


@dataclass(eq=False)
class Model:
    """A tracked model with its attributes."""

    name: str
    attributes: AttributeMap = field(default_factory=AttributeMap)


class InMemoryDatastore:
    """Models keyed by name; all operations are thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._models: dict[str, Model] = {}

    def get_or_create_model(self, name: str) -> Model:
        """Return the model called name, creating it if it does not exist."""
        with self._lock:
            model = self._models.get(name)
            if model is None:
                model = self._models[name] = Model(name)
            return model

    def delete_model(self, name: str) -> None:
        """Remove a model; does nothing if it does not exist."""
        with self._lock:
            self._models.pop(name, None)

    def models(self) -> list[str]:
        """Return the names of all tracked models, in no particular order."""
        with self._lock:
            return list(self._models)