"""Tensor expression compiler and program executor."""

from evalexpr.eval.checker import NodeTypes, resolve_types
from evalexpr.eval.errors import LexerError, ParseError
from evalexpr.eval.optimizer import optimize_tensor_function
from evalexpr.eval.parser import parse, parse_value_type
from evalexpr.eval.program import ProfileStep, Program
from evalexpr.eval.tensor_function import TensorFunction, make_tensor_function
from evalexpr.eval.types import CellType, Dimension, ValueType
from evalexpr.eval.value import Value

__all__ = [
    "CellType",
    "Dimension",
    "LexerError",
    "NodeTypes",
    "ParseError",
    "ProfileStep",
    "Program",
    "TensorFunction",
    "Value",
    "ValueType",
    "make_tensor_function",
    "optimize_tensor_function",
    "parse",
    "parse_value_type",
    "resolve_types",
]
