"""Compute-once holder for memoized metadata fields."""

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class OnceCell(Generic[T]):
    """
    Holds a value computed on first access.

    The loader runs at most once per cell, including under concurrent first
    access. If the loader raises, the cell stays empty and the exception
    propagates.
    """

    def __init__(self, loader: Callable[[], T]):
        self._loader = loader
        self._value: object = _UNSET
        self._lock = threading.Lock()

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    def get(self) -> T:
        value = self._value
        if value is _UNSET:
            with self._lock:
                value = self._value
                if value is _UNSET:
                    value = self._loader()
                    self._value = value
        return value  # type: ignore[return-value]
