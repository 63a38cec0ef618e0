"""Tests for the expression parser and type specs."""

import pytest

from evalexpr.eval import ParseError, ValueType, parse, parse_value_type
from evalexpr.eval.ast import Neg, Operator, Symbol, TensorCreate, TensorLambda


class TestExpressions:
    """Operator precedence and symbol resolution."""

    def test_multiplication_binds_tighter(self):
        assert str(parse("1+2*3")) == "(1+(2*3))"

    def test_power_binds_tighter_than_unary_minus(self):
        root = parse("-2^2").root
        assert isinstance(root, Neg)
        assert str(root) == "-(2^2)"

    def test_power_is_right_associative(self):
        assert str(parse("2^3^2")) == "(2^(3^2))"

    def test_logical_operators_are_loosest(self):
        assert str(parse("1<2&&3>=2||0")) == "(((1<2)&&(3>=2))||0)"

    def test_symbols_resolve_to_positions(self):
        root = parse("b-a", ["a", "b"]).root
        assert isinstance(root, Operator)
        assert isinstance(root.lhs, Symbol) and root.lhs.id == 1
        assert isinstance(root.rhs, Symbol) and root.rhs.id == 0

    def test_unknown_symbol(self):
        with pytest.raises(ParseError) as exc_info:
            parse("x+1")
        assert exc_info.value.message == "unknown symbol: 'x'"
        assert str(exc_info.value) == "at column 1: unknown symbol: 'x'"

    def test_unknown_function(self):
        with pytest.raises(ParseError, match="unknown function: 'foo'"):
            parse("foo(1)")

    def test_wrong_argument_count(self):
        with pytest.raises(ParseError, match="wrong number of arguments"):
            parse("max(1)")

    def test_trailing_input(self):
        with pytest.raises(ParseError, match="after expression"):
            parse("1 2")

    def test_empty_expression(self):
        with pytest.raises(ParseError, match="end of input"):
            parse("")

    def test_unexpected_character(self):
        with pytest.raises(ParseError, match="unexpected character"):
            parse("1 $ 2")


class TestLambdas:
    def test_lambda_sees_only_its_parameters(self):
        with pytest.raises(ParseError, match="unknown symbol: 'a'"):
            parse("map(a, f(x)(x+a))", ["a"])

    def test_lambda_arity(self):
        with pytest.raises(ParseError, match="must take 2 parameter"):
            parse("join(a, a, f(x)(x))", ["a"])

    def test_tensor_operations_not_allowed_in_lambda(self):
        with pytest.raises(ParseError, match="not allowed inside lambda"):
            parse("map(a, f(x)(reduce(a, sum)))", ["a"])

    def test_unknown_aggregator(self):
        with pytest.raises(ParseError, match="unknown aggregator: 'median'"):
            parse("reduce(a, median)", ["a"])

    def test_tensor_lambda_captures_outer_symbols(self):
        root = parse("tensor(x[3])(x+b)", ["a", "b"]).root
        assert isinstance(root, TensorLambda)
        assert root.bindings == (1,)


class TestTensorLiterals:
    def test_dense_literal(self):
        root = parse("tensor(x[3]):[1,2,3]").root
        assert isinstance(root, TensorCreate)
        assert [address for address, _ in root.cells] == [(0,), (1,), (2,)]

    def test_nested_dense_literal(self):
        root = parse("tensor(x[2],y[2]):[[1,2],[3,4]]").root
        assert [address for address, _ in root.cells] == [(0, 0), (0, 1), (1, 0), (1, 1)]

    def test_short_mapped_literal(self):
        root = parse('tensor(x{}):{a:1,"b c":2}').root
        assert [address for address, _ in root.cells] == [("a",), ("b c",)]

    def test_verbose_literal_orders_labels_by_dimension(self):
        root = parse("tensor(y[2],x{}):{{y:1,x:a}:5}").root
        assert [address for address, _ in root.cells] == [("a", 1)]

    def test_index_out_of_range(self):
        with pytest.raises(ParseError, match="bad label '2'"):
            parse("tensor(x[2]):{{x:2}:1}")

    def test_too_many_dense_cells(self):
        with pytest.raises(ParseError, match="too many cells"):
            parse("tensor(x[2]):[1,2,3]")

    def test_duplicate_address(self):
        with pytest.raises(ParseError, match="duplicate cell address"):
            parse("tensor(x{}):{a:1,a:2}")


class TestValueTypes:
    def test_dimensions_are_sorted(self):
        assert parse_value_type("tensor<float>(y{},x[3])").to_spec() == "tensor<float>(x[3],y{})"

    def test_tensor_without_dimensions_is_double(self):
        assert ValueType.from_spec("tensor()") == ValueType.double()

    def test_duplicate_dimensions(self):
        with pytest.raises(ParseError, match="duplicate dimension"):
            parse_value_type("tensor(x[2],x[3])")

    def test_unknown_cell_type(self):
        with pytest.raises(ParseError, match="unknown cell type"):
            parse_value_type("tensor<int8>(x[2])")
