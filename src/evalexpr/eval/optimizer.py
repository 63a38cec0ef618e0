"""Rewrites of tensor function graphs.

Two passes are applied bottom-up in one walk:
  - constant folding: nodes whose inputs are all constants (and which
    read no parameters) are evaluated at compile time
  - dense specialization: map/join/reduce/lambda over indexed-only
    types are replaced by their numpy vectorized variants
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from evalexpr.eval.tensor_function import (
    ConstValue,
    DenseJoin,
    DenseLambda,
    DenseMap,
    DenseReduce,
    If,
    Inject,
    Join,
    Lambda,
    Map,
    Reduce,
    TensorFunction,
)


def _fold(node: TensorFunction) -> TensorFunction | None:
    match node:
        case ConstValue() | Inject():
            return None
        case Lambda(bindings=bindings) if bindings:
            return None
        case If(cond=ConstValue(value=cond)):
            return node.true_branch if cond.as_double() != 0.0 else node.false_branch
    children = node.children()
    if not all(isinstance(child, ConstValue) for child in children):
        return None
    with np.errstate(all="ignore"):
        value = node.compute([child.value for child in children], ())  # type: ignore[attr-defined]
    logger.debug("optimize.fold class={} symbol={}", node.class_name, node.symbol)
    return ConstValue(value)


def _specialize(node: TensorFunction) -> TensorFunction:
    match node:
        case Map(child, function, result_type) if type(node) is Map and child.result_type.is_dense:
            return DenseMap(child, function, result_type)
        case Join(lhs, rhs, function, result_type) if (
            type(node) is Join and lhs.result_type.is_dense and rhs.result_type.is_dense
        ):
            return DenseJoin(lhs, rhs, function, result_type)
        case Reduce(child, aggr, dimensions, result_type) if type(node) is Reduce and child.result_type.is_dense:
            return DenseReduce(child, aggr, dimensions, result_type)
        case Lambda(bindings, function, result_type) if type(node) is Lambda:
            return DenseLambda(bindings, function, result_type)
    return node


def optimize_tensor_function(node: TensorFunction) -> TensorFunction:
    """Return an equivalent, cheaper graph. The input graph is not modified."""
    children = node.children()
    if children:
        node = node.with_children([optimize_tensor_function(child) for child in children])
    folded = _fold(node)
    if folded is not None:
        return folded
    return _specialize(node)
