import math

import pytest

from evalexpr.eval import Value, ValueType
from evalexpr.eval.value import number_to_expr


def test_number_to_expr() -> None:
    assert number_to_expr(4.0) == "4"
    assert number_to_expr(-3.0) == "-3"
    assert number_to_expr(2.5) == "2.5"
    assert number_to_expr(-0.0) == "-0"
    assert number_to_expr(0.0) == "0"
    assert number_to_expr(math.inf) == "(1/0)"
    assert number_to_expr(-math.inf) == "(-1/0)"
    assert number_to_expr(math.nan) == "(0/0)"


def test_dense_value_fills_missing_cells() -> None:
    value = Value.create(ValueType.from_spec("tensor(x[3])"), {(1,): 5.0})
    assert value.sorted_cells() == [((0,), 0.0), ((1,), 5.0), ((2,), 0.0)]


def test_float_cells_are_rounded() -> None:
    value = Value.create(ValueType.from_spec("tensor<float>(x[1])"), {(0,): 0.1})
    assert value.cells[(0,)] != 0.1
    assert value.cells[(0,)] == pytest.approx(0.1)


def test_to_string() -> None:
    value = Value.create(ValueType.from_spec("tensor(x{})"), {("b",): 2.0, ("a",): 1.0})
    assert value.to_string() == "spec(tensor(x{})) {\n  {x:a}: 1\n  {x:b}: 2\n}"


def test_to_expr_quotes_mapped_labels() -> None:
    value = Value.create(ValueType.from_spec("tensor(x{},y[2])"), {("a", 1): 0.5})
    assert value.to_expr() == 'tensor(x{},y[2]):{{x:"a",y:1}:0.5}'


def test_error_type_has_no_values() -> None:
    with pytest.raises(ValueError):
        Value.create(ValueType.error(), {})


def test_equality_compares_type_and_cells() -> None:
    assert Value.double(1) == Value.double(1)
    assert Value.double(1) != Value.double(2)
    assert Value.double(1) != Value.create(ValueType.from_spec("tensor(x[1])"), {(0,): 1.0})
