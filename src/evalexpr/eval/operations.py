"""Cell-level operations and their generic/dense tensor implementations.

Every scalar operation is a numpy function, so the same callable works on
single cells (generic steps) and on whole arrays (dense steps). Callers
run these under ``np.errstate(all="ignore")`` to get IEEE results instead
of warnings.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from evalexpr.eval.types import ValueType
from evalexpr.eval.value import Address, Value, dense_addresses


@dataclass(frozen=True)
class Operation:
    """A named vectorized scalar function."""

    name: str
    fn: Callable[..., Any]

    def __call__(self, *args: Any) -> Any:
        return self.fn(*args)

    def __str__(self) -> str:
        return self.name


def _as_double(fn: Callable[..., Any]) -> Callable[..., Any]:
    def wrapper(*args: Any) -> Any:
        return np.asarray(fn(*args), dtype=np.float64)

    return wrapper


def _ldexp(a: Any, b: Any) -> Any:
    return np.multiply(a, np.exp2(np.trunc(b)))


def _relu(x: Any) -> Any:
    return np.maximum(x, 0.0)


def _sigmoid(x: Any) -> Any:
    return 1.0 / (1.0 + np.exp(np.negative(x)))


def _elu(x: Any) -> Any:
    return np.where(np.less(x, 0.0), np.expm1(x), x)


_erf = np.vectorize(math.erf, otypes=[np.float64])

NEG = Operation("neg", np.negative)
NOT = Operation("not", _as_double(np.logical_not))

BINARY_OPERATORS: dict[str, Operation] = {
    "+": Operation("add", np.add),
    "-": Operation("sub", np.subtract),
    "*": Operation("mul", np.multiply),
    "/": Operation("div", np.divide),
    "%": Operation("mod", np.fmod),
    "^": Operation("pow", np.power),
    "==": Operation("equal", _as_double(np.equal)),
    "!=": Operation("not_equal", _as_double(np.not_equal)),
    "<": Operation("less", _as_double(np.less)),
    "<=": Operation("less_equal", _as_double(np.less_equal)),
    ">": Operation("greater", _as_double(np.greater)),
    ">=": Operation("greater_equal", _as_double(np.greater_equal)),
    "&&": Operation("and", _as_double(np.logical_and)),
    "||": Operation("or", _as_double(np.logical_or)),
}

UNARY_FUNCTIONS: dict[str, Operation] = {
    "abs": Operation("abs", np.abs),
    "acos": Operation("acos", np.arccos),
    "asin": Operation("asin", np.arcsin),
    "atan": Operation("atan", np.arctan),
    "ceil": Operation("ceil", np.ceil),
    "cos": Operation("cos", np.cos),
    "cosh": Operation("cosh", np.cosh),
    "elu": Operation("elu", _elu),
    "erf": Operation("erf", _erf),
    "exp": Operation("exp", np.exp),
    "floor": Operation("floor", np.floor),
    "isNan": Operation("isNan", _as_double(np.isnan)),
    "log": Operation("log", np.log),
    "log10": Operation("log10", np.log10),
    "relu": Operation("relu", _relu),
    "sigmoid": Operation("sigmoid", _sigmoid),
    "sin": Operation("sin", np.sin),
    "sinh": Operation("sinh", np.sinh),
    "sqrt": Operation("sqrt", np.sqrt),
    "tan": Operation("tan", np.tan),
    "tanh": Operation("tanh", np.tanh),
}

BINARY_FUNCTIONS: dict[str, Operation] = {
    "atan2": Operation("atan2", np.arctan2),
    "fmod": Operation("fmod", np.fmod),
    "ldexp": Operation("ldexp", _ldexp),
    "max": Operation("max", np.maximum),
    "min": Operation("min", np.minimum),
    "pow": Operation("pow", np.power),
}


def _count(array: np.ndarray, axis: Any = None) -> Any:
    if axis is None:
        return float(array.size)
    return np.sum(np.ones_like(array), axis=axis)


AGGREGATORS: dict[str, Callable[..., Any]] = {
    "avg": np.mean,
    "count": _count,
    "max": np.max,
    "min": np.min,
    "prod": np.prod,
    "sum": np.sum,
}


def _apply(fn: Callable[..., Any], *args: float) -> float:
    return float(fn(*args))


# ---------------------------------------------------------------------
# Generic implementations: work on any tensor, one cell at a time
# ---------------------------------------------------------------------


def generic_map(value: Value, fn: Callable[..., Any], result_type: ValueType) -> Value:
    cells = {address: _apply(fn, number) for address, number in value.cells.items()}
    return Value.create(result_type, cells)


def generic_join(lhs: Value, rhs: Value, fn: Callable[..., Any], result_type: ValueType) -> Value:
    lhs_names = lhs.type.dimension_names()
    rhs_names = rhs.type.dimension_names()
    shared = [name for name in lhs_names if name in rhs_names]
    lhs_shared = [lhs_names.index(name) for name in shared]
    rhs_shared = [rhs_names.index(name) for name in shared]

    rhs_by_key: dict[Address, list[tuple[Address, float]]] = defaultdict(list)
    for address, number in rhs.cells.items():
        rhs_by_key[tuple(address[i] for i in rhs_shared)].append((address, number))

    cells: dict[Address, float] = {}
    for lhs_address, lhs_number in lhs.cells.items():
        key = tuple(lhs_address[i] for i in lhs_shared)
        for rhs_address, rhs_number in rhs_by_key.get(key, ()):
            labels = dict(zip(lhs_names, lhs_address, strict=True))
            labels.update(zip(rhs_names, rhs_address, strict=True))
            address = tuple(labels[name] for name in result_type.dimension_names())
            cells[address] = _apply(fn, lhs_number, rhs_number)
    return Value.create(result_type, cells)


def _aggregate(aggr: str, numbers: Sequence[float]) -> float:
    if not numbers:
        return 0.0
    return float(AGGREGATORS[aggr](np.asarray(numbers, dtype=np.float64)))


def generic_reduce(value: Value, aggr: str, dimensions: Sequence[str], result_type: ValueType) -> Value:
    names = value.type.dimension_names()
    keep = [idx for idx, name in enumerate(names) if dimensions and name not in dimensions]
    groups: dict[Address, list[float]] = defaultdict(list)
    for address, number in value.cells.items():
        groups[tuple(address[i] for i in keep)].append(number)
    if result_type.is_double:
        return Value.double(_aggregate(aggr, groups.get((), [])))
    cells = {address: _aggregate(aggr, numbers) for address, numbers in groups.items()}
    return Value.create(result_type, cells)


def rename(value: Value, from_: Sequence[str], to: Sequence[str], result_type: ValueType) -> Value:
    mapping = dict(zip(from_, to, strict=True))
    names = [mapping.get(name, name) for name in value.type.dimension_names()]
    order = [names.index(name) for name in result_type.dimension_names()]
    cells = {tuple(address[i] for i in order): number for address, number in value.cells.items()}
    return Value.create(result_type, cells)


def create(result_type: ValueType, addresses: Sequence[Address], cell_values: Sequence[Value]) -> Value:
    cells = {address: value.as_double() for address, value in zip(addresses, cell_values, strict=True)}
    return Value.create(result_type, cells)


def generic_lambda(result_type: ValueType, fn: Callable[..., Any], captured: Sequence[float]) -> Value:
    cells = {
        address: _apply(fn, *(float(label) for label in address), *captured)
        for address in dense_addresses(result_type)
    }
    return Value.create(result_type, cells)


# ---------------------------------------------------------------------
# Dense implementations: whole-array numpy evaluation
# ---------------------------------------------------------------------


def _expand(value: Value, result_type: ValueType) -> np.ndarray:
    """Array of `value` with size-1 axes for result dimensions it lacks."""
    array = value.to_array()
    names = value.type.dimension_names()
    shape = [dim.size if dim.name in names else 1 for dim in result_type.dimensions]
    return array.reshape(shape)


def _fill(result: Any, result_type: ValueType) -> Value:
    array = np.broadcast_to(np.asarray(result, dtype=np.float64), result_type.dense_shape)
    return Value.from_array(result_type, array)


def dense_map(value: Value, fn: Callable[..., Any], result_type: ValueType) -> Value:
    return _fill(fn(value.to_array()), result_type)


def dense_join(lhs: Value, rhs: Value, fn: Callable[..., Any], result_type: ValueType) -> Value:
    return _fill(fn(_expand(lhs, result_type), _expand(rhs, result_type)), result_type)


def dense_reduce(value: Value, aggr: str, dimensions: Sequence[str], result_type: ValueType) -> Value:
    array = value.to_array()
    if dimensions:
        axes = tuple(value.type.dimension_index(name) for name in dimensions)
        result = AGGREGATORS[aggr](array, axis=axes)
    else:
        result = AGGREGATORS[aggr](array)
    return _fill(result, result_type)


def dense_lambda(result_type: ValueType, fn: Callable[..., Any], captured: Sequence[float]) -> Value:
    indices = np.indices(result_type.dense_shape, dtype=np.float64)
    return _fill(fn(*indices, *captured), result_type)
