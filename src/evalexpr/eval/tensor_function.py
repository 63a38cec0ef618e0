"""Data-flow graph of tensor operations built from a typed AST."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from evalexpr.eval import ast, operations
from evalexpr.eval.checker import NodeTypes
from evalexpr.eval.operations import (
    BINARY_FUNCTIONS,
    BINARY_OPERATORS,
    NEG,
    NOT,
    UNARY_FUNCTIONS,
    Operation,
)
from evalexpr.eval.types import ValueType
from evalexpr.eval.value import Address, Value


class TensorFunction:
    """Base class for graph nodes.

    `compute` receives the values of `children()` in order and the
    positional parameters of the program.
    """

    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return ()

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return self

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        raise NotImplementedError

    @property
    def class_name(self) -> str:
        return type(self).__name__

    @property
    def symbol(self) -> str:
        return self.class_name.lower()


@dataclass(frozen=True)
class ConstValue(TensorFunction):
    value: Value

    @property
    def result_type(self) -> ValueType:  # type: ignore[override]
        return self.value.type

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return self.value

    @property
    def symbol(self) -> str:
        return f"const({self.value.type})"


@dataclass(frozen=True)
class Inject(TensorFunction):
    param_idx: int
    result_type: ValueType

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return params[self.param_idx]

    @property
    def symbol(self) -> str:
        return f"param[{self.param_idx}]"


@dataclass(frozen=True)
class Map(TensorFunction):
    child: TensorFunction
    function: Operation
    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return (self.child,)

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return dataclasses.replace(self, child=children[0])

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.generic_map(inputs[0], self.function, self.result_type)

    @property
    def symbol(self) -> str:
        return self.function.name


@dataclass(frozen=True)
class Join(TensorFunction):
    lhs: TensorFunction
    rhs: TensorFunction
    function: Operation
    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return (self.lhs, self.rhs)

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return dataclasses.replace(self, lhs=children[0], rhs=children[1])

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.generic_join(inputs[0], inputs[1], self.function, self.result_type)

    @property
    def symbol(self) -> str:
        return self.function.name


@dataclass(frozen=True)
class Reduce(TensorFunction):
    child: TensorFunction
    aggr: str
    dimensions: tuple[str, ...]
    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return (self.child,)

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return dataclasses.replace(self, child=children[0])

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.generic_reduce(inputs[0], self.aggr, self.dimensions, self.result_type)

    @property
    def symbol(self) -> str:
        return f"{self.aggr}({','.join(self.dimensions)})"


@dataclass(frozen=True)
class Rename(TensorFunction):
    child: TensorFunction
    from_: tuple[str, ...]
    to: tuple[str, ...]
    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return (self.child,)

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return dataclasses.replace(self, child=children[0])

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.rename(inputs[0], self.from_, self.to, self.result_type)

    @property
    def symbol(self) -> str:
        return f"({','.join(self.from_)})->({','.join(self.to)})"


@dataclass(frozen=True)
class Create(TensorFunction):
    addresses: tuple[Address, ...]
    cells: tuple[TensorFunction, ...]
    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return self.cells

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return dataclasses.replace(self, cells=tuple(children))

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.create(self.result_type, self.addresses, inputs)

    @property
    def symbol(self) -> str:
        return f"create({len(self.cells)})"


@dataclass(frozen=True)
class Lambda(TensorFunction):
    """Tensor generated cell by cell from a scalar function of the indices."""

    bindings: tuple[int, ...]
    function: Operation
    result_type: ValueType

    def captured(self, params: Sequence[Value]) -> list[float]:
        return [params[idx].as_double() for idx in self.bindings]

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.generic_lambda(self.result_type, self.function, self.captured(params))

    @property
    def symbol(self) -> str:
        return self.function.name


@dataclass(frozen=True)
class If(TensorFunction):
    """Conditional; compiled into skip steps rather than computed directly."""

    cond: TensorFunction
    true_branch: TensorFunction
    false_branch: TensorFunction
    result_type: ValueType

    def children(self) -> tuple[TensorFunction, ...]:
        return (self.cond, self.true_branch, self.false_branch)

    def with_children(self, children: Sequence[TensorFunction]) -> TensorFunction:
        return dataclasses.replace(
            self, cond=children[0], true_branch=children[1], false_branch=children[2]
        )

    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        cond, true_value, false_value = inputs
        return true_value if cond.as_double() != 0.0 else false_value


# Dense variants produced by the optimizer; same semantics, vectorized


@dataclass(frozen=True)
class DenseMap(Map):
    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.dense_map(inputs[0], self.function, self.result_type)


@dataclass(frozen=True)
class DenseJoin(Join):
    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.dense_join(inputs[0], inputs[1], self.function, self.result_type)


@dataclass(frozen=True)
class DenseReduce(Reduce):
    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.dense_reduce(inputs[0], self.aggr, self.dimensions, self.result_type)


@dataclass(frozen=True)
class DenseLambda(Lambda):
    def compute(self, inputs: Sequence[Value], params: Sequence[Value]) -> Value:
        return operations.dense_lambda(self.result_type, self.function, self.captured(params))


# ---------------------------------------------------------------------
# Scalar lambda compilation
# ---------------------------------------------------------------------

ScalarCode = Callable[[Sequence[Any]], Any]


def _compile_scalar(node: ast.Node) -> ScalarCode:
    match node:
        case ast.Number(value):
            return lambda args: value
        case ast.Symbol(id=idx):
            return lambda args: args[idx]
        case ast.Neg(child):
            code = _compile_scalar(child)
            return lambda args: NEG(code(args))
        case ast.Not(child):
            code = _compile_scalar(child)
            return lambda args: NOT(code(args))
        case ast.Operator(op, lhs, rhs):
            return _compile_binary(BINARY_OPERATORS[op], lhs, rhs)
        case ast.Call(name, (lhs, rhs)):
            return _compile_binary(BINARY_FUNCTIONS[name], lhs, rhs)
        case ast.Call(name, (child,)):
            fn = UNARY_FUNCTIONS[name]
            code = _compile_scalar(child)
            return lambda args: fn(code(args))
        case ast.If(cond, true_expr, false_expr):
            cond_code = _compile_scalar(cond)
            true_code = _compile_scalar(true_expr)
            false_code = _compile_scalar(false_expr)
            return lambda args: np.where(np.not_equal(cond_code(args), 0.0), true_code(args), false_code(args))
        case _:
            raise ValueError(f"not a scalar expression: {node}")


def _compile_binary(fn: Operation, lhs: ast.Node, rhs: ast.Node) -> ScalarCode:
    lhs_code = _compile_scalar(lhs)
    rhs_code = _compile_scalar(rhs)
    return lambda args: fn(lhs_code(args), rhs_code(args))


def compile_lambda(body: ast.Node, name: str) -> Operation:
    """Turn a scalar expression into a vectorized operation.

    Positional arguments map to symbol ids of the body.
    """
    code = _compile_scalar(body)
    return Operation(name, lambda *args: code(args))


# ---------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------


class _Builder:
    def __init__(self, types: NodeTypes) -> None:
        self.types = types

    def build(self, node: ast.Node) -> TensorFunction:
        result_type = self.types.get_type(node)
        match node:
            case ast.Number(value):
                return ConstValue(Value.double(value))
            case ast.Symbol(id=idx):
                return Inject(idx, result_type)
            case ast.Neg(child):
                return Map(self.build(child), NEG, result_type)
            case ast.Not(child):
                return Map(self.build(child), NOT, result_type)
            case ast.Operator(op, lhs, rhs):
                return Join(self.build(lhs), self.build(rhs), BINARY_OPERATORS[op], result_type)
            case ast.Call(name, (lhs, rhs)):
                return Join(self.build(lhs), self.build(rhs), BINARY_FUNCTIONS[name], result_type)
            case ast.Call(name, (child,)):
                return Map(self.build(child), UNARY_FUNCTIONS[name], result_type)
            case ast.If(cond, true_expr, false_expr):
                return If(self.build(cond), self.build(true_expr), self.build(false_expr), result_type)
            case ast.TensorMap(child, function):
                return Map(self.build(child), compile_lambda(function.body, str(function)), result_type)
            case ast.TensorJoin(lhs, rhs, function):
                fn = compile_lambda(function.body, str(function))
                return Join(self.build(lhs), self.build(rhs), fn, result_type)
            case ast.TensorReduce(child, aggr, dimensions):
                return Reduce(self.build(child), aggr, dimensions, result_type)
            case ast.TensorRename(child, from_, to):
                return Rename(self.build(child), from_, to, result_type)
            case ast.TensorCreate(_, cells):
                addresses = tuple(address for address, _ in cells)
                children = tuple(self.build(cell) for _, cell in cells)
                return Create(addresses, children, result_type)
            case ast.TensorLambda(_, bindings, body):
                return Lambda(bindings, compile_lambda(body, f"f({body})"), result_type)
            case _:
                raise ValueError(f"cannot build tensor function for {node}")


def make_tensor_function(function: ast.Function, types: NodeTypes) -> TensorFunction:
    """Build the data-flow graph of a successfully typed function."""
    return _Builder(types).build(function.root)
