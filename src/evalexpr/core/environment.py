"""Named value environment."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from loguru import logger

from evalexpr.eval.types import ValueType
from evalexpr.eval.value import Value


@dataclass
class Binding:
    name: str
    value: Value

    @property
    def type(self) -> ValueType:
        return self.value.type


class Environment:
    """Ordered, name-keyed store of values.

    The position of a binding is the parameter index the compiler and the
    executor use for it. Rebinding keeps the position; removing a binding
    shifts every later binding down by one.
    """

    def __init__(self) -> None:
        self._bindings: list[Binding] = []

    def _index_of(self, name: str) -> int | None:
        for idx, binding in enumerate(self._bindings):
            if binding.name == name:
                return idx
        return None

    def bind(self, name: str, value: Value) -> bool:
        """Bind `name` to `value`; return True if an existing binding was replaced."""
        idx = self._index_of(name)
        if idx is not None:
            self._bindings[idx].value = value
            logger.debug("env.rebind name={} index={} type={}", name, idx, value.type)
            return True
        self._bindings.append(Binding(name, value))
        logger.debug("env.bind name={} index={} type={}", name, len(self._bindings) - 1, value.type)
        return False

    def remove(self, name: str) -> bool:
        """Remove the binding for `name`; return whether it existed."""
        idx = self._index_of(name)
        if idx is None:
            return False
        del self._bindings[idx]
        logger.debug("env.remove name={} index={}", name, idx)
        return True

    def get(self, name: str) -> Value | None:
        idx = self._index_of(name)
        return None if idx is None else self._bindings[idx].value

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[Binding]:
        return iter(list(self._bindings))

    def name_at(self, idx: int) -> str:
        return self._bindings[idx].name

    def type_at(self, idx: int) -> ValueType:
        return self._bindings[idx].type

    def names(self) -> list[str]:
        return [binding.name for binding in self._bindings]

    def types(self) -> list[ValueType]:
        return [binding.type for binding in self._bindings]

    def positional_values(self) -> list[Value]:
        """Parameter vector for one evaluation.

        The values are shared with the environment; do not bind or remove
        while an evaluation using them is running.
        """
        return [binding.value for binding in self._bindings]
