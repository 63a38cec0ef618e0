"""Static type resolution for tensor expressions."""

from __future__ import annotations

from collections.abc import Sequence

from evalexpr.eval.ast import (
    Call,
    Function,
    If,
    Lambda,
    Neg,
    Node,
    Not,
    Number,
    Operator,
    Symbol,
    TensorCreate,
    TensorJoin,
    TensorLambda,
    TensorMap,
    TensorReduce,
    TensorRename,
)
from evalexpr.eval.types import ValueType


class NodeTypes:
    """Resolved type of every node in a function, plus collected issues.

    Types are keyed by node identity, so a NodeTypes is only meaningful
    for the exact AST it was resolved from.
    """

    def __init__(self) -> None:
        self._types: dict[int, ValueType] = {}
        self.errors: list[str] = []

    def set_type(self, node: Node, value_type: ValueType) -> None:
        self._types[id(node)] = value_type

    def get_type(self, node: Node) -> ValueType:
        return self._types.get(id(node), ValueType.error())


class TypeResolver:
    """Bottom-up type inference.

    Every issue is recorded, not just the first. A node whose input is
    already an error type becomes an error without adding another issue.
    """

    def __init__(self, types: NodeTypes) -> None:
        self.types = types

    def _issue(self, node: Node, message: str) -> ValueType:
        self.types.errors.append(f"[{node}]: {message}")
        return ValueType.error()

    def resolve(self, node: Node, scope: Sequence[ValueType]) -> ValueType:
        result = self._infer(node, scope)
        self.types.set_type(node, result)
        return result

    def _infer(self, node: Node, scope: Sequence[ValueType]) -> ValueType:
        match node:
            case Number():
                return ValueType.double()

            case Symbol(id=symbol_id):
                if symbol_id >= len(scope):
                    return self._issue(node, f"unbound symbol: '{node.name}'")
                return scope[symbol_id]

            case Neg(child) | Not(child):
                return self.resolve(child, scope).map()

            case Operator(lhs=lhs, rhs=rhs) | Call(args=(lhs, rhs)):
                return self._join(node, self.resolve(lhs, scope), self.resolve(rhs, scope))

            case Call(args=(child,)):
                return self.resolve(child, scope).map()

            case If(cond, true_expr, false_expr):
                cond_type = self.resolve(cond, scope)
                true_type = self.resolve(true_expr, scope)
                false_type = self.resolve(false_expr, scope)
                if cond_type.is_error or true_type.is_error or false_type.is_error:
                    return ValueType.error()
                if not cond_type.is_double:
                    return self._issue(node, f"condition must be double, got {cond_type}")
                result = ValueType.either(true_type, false_type)
                if result.is_error:
                    return self._issue(node, f"branch types differ: {true_type} vs {false_type}")
                return result

            case TensorMap(child, function):
                child_type = self.resolve(child, scope)
                if not self._check_lambda(function):
                    return ValueType.error()
                return child_type.map()

            case TensorJoin(lhs, rhs, function):
                lhs_type = self.resolve(lhs, scope)
                rhs_type = self.resolve(rhs, scope)
                if not self._check_lambda(function):
                    return ValueType.error()
                return self._join(node, lhs_type, rhs_type)

            case TensorReduce(child, _, dimensions):
                child_type = self.resolve(child, scope)
                result = child_type.reduce(dimensions)
                if result.is_error and not child_type.is_error:
                    return self._issue(node, f"cannot reduce {child_type} over {list(dimensions)}")
                return result

            case TensorRename(child, from_, to):
                child_type = self.resolve(child, scope)
                result = child_type.rename(from_, to)
                if result.is_error and not child_type.is_error:
                    return self._issue(node, f"cannot rename {list(from_)} to {list(to)} in {child_type}")
                return result

            case TensorCreate(value_type, cells):
                ok = True
                for _, cell in cells:
                    cell_type = self.resolve(cell, scope)
                    if cell_type.is_error:
                        ok = False
                    elif not cell_type.is_double:
                        ok = False
                        self._issue(cell, f"tensor cell must be double, got {cell_type}")
                return value_type if ok else ValueType.error()

            case TensorLambda(value_type, bindings, body):
                inner: list[ValueType] = [ValueType.double()] * len(value_type.dimensions)
                for outer_id in bindings:
                    captured = scope[outer_id]
                    if not captured.is_double:
                        return self._issue(node, f"tensor lambda can only capture double values, got {captured}")
                    inner.append(captured)
                body_type = self.resolve(body, inner)
                if body_type.is_error:
                    return body_type
                if not body_type.is_double:
                    return self._issue(node, f"tensor lambda body must be double, got {body_type}")
                return value_type

            case _:
                return self._issue(node, f"unsupported node: {type(node).__name__}")

    def _join(self, node: Node, lhs: ValueType, rhs: ValueType) -> ValueType:
        if lhs.is_error or rhs.is_error:
            return ValueType.error()
        result = ValueType.join(lhs, rhs)
        if result.is_error:
            return self._issue(node, f"incompatible dimensions: {lhs} and {rhs}")
        return result

    def _check_lambda(self, function: Lambda) -> bool:
        body_type = self.resolve(function.body, [ValueType.double()] * len(function.params))
        self.types.set_type(function, body_type)
        if body_type.is_error:
            return False
        if not body_type.is_double:
            self._issue(function, f"lambda must return double, got {body_type}")
            return False
        return True


def resolve_types(function: Function, param_types: Sequence[ValueType]) -> NodeTypes:
    """Infer the type of every node of `function`.

    `param_types` gives the type of each free parameter by position.
    Check `errors` and the root type before using the result.
    """
    types = NodeTypes()
    TypeResolver(types).resolve(function.root, list(param_types))
    return types
