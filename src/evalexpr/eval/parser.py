"""Recursive descent parser for tensor expressions.

Implements a hand-written parser with precedence climbing for operators.
Free symbols are resolved while parsing: a name that is not a known
parameter (or lambda parameter) is a parse error.
"""

from __future__ import annotations

import itertools
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
from evalexpr.eval.errors import ParseError
from evalexpr.eval.lexer import Lexer, Token, unquote
from evalexpr.eval.operations import AGGREGATORS, BINARY_FUNCTIONS, UNARY_FUNCTIONS
from evalexpr.eval.types import CellType, Dimension, ValueType
from evalexpr.eval.value import Address, Label

# Binary operators by precedence level, loosest first
PRECEDENCE: list[dict[str, str]] = [
    {"OR": "||"},
    {"AND": "&&"},
    {"EQ": "==", "NE": "!=", "LT": "<", "LE": "<=", "GT": ">", "GE": ">="},
    {"PLUS": "+", "MINUS": "-"},
    {"STAR": "*", "SLASH": "/", "PERCENT": "%"},
]

TENSOR_OPERATIONS = {"map", "join", "reduce", "rename", "tensor"}


class Scope:
    """Resolves symbol names to ids."""

    def __init__(self, names: Sequence[str]) -> None:
        self._ids = {}
        for idx, name in enumerate(names):
            self._ids.setdefault(name, idx)

    def resolve(self, name: str) -> int | None:
        return self._ids.get(name)


class TensorLambdaScope(Scope):
    """Dimension names first, then captured names from the enclosing scope."""

    def __init__(self, dimensions: Sequence[str], outer: Scope) -> None:
        super().__init__(dimensions)
        self.outer = outer
        self.num_dims = len(dimensions)
        self.bindings: list[int] = []

    def resolve(self, name: str) -> int | None:
        idx = super().resolve(name)
        if idx is not None:
            return idx
        outer_id = self.outer.resolve(name)
        if outer_id is None:
            return None
        if outer_id not in self.bindings:
            self.bindings.append(outer_id)
        return self.num_dims + self.bindings.index(outer_id)


class Parser:
    """Parser for one expression.

    Grammar:
        expr    ::= or
        or      ::= and ("||" and)*
        and     ::= cmp ("&&" cmp)*
        cmp     ::= add (("=="|"!="|"<"|"<="|">"|">=") add)*
        add     ::= mul (("+"|"-") mul)*
        mul     ::= unary (("*"|"/"|"%") unary)*
        unary   ::= ("-"|"!") unary | pow
        pow     ::= primary ("^" unary)?
        primary ::= NUMBER | "(" expr ")" | ident | call | tensor

        call    ::= func "(" expr ("," expr)* ")"
                  | "if" "(" expr "," expr "," expr ")"
                  | "map" "(" expr "," lambda ")"
                  | "join" "(" expr "," expr "," lambda ")"
                  | "reduce" "(" expr "," aggr ("," ident)* ")"
                  | "rename" "(" expr "," names "," names ")"
        lambda  ::= "f" "(" ident ("," ident)* ")" "(" expr ")"
        names   ::= ident | "(" ident ("," ident)* ")"

        tensor  ::= "tensor" ("<" cell ">")? "(" dim ("," dim)* ")" (":" literal | "(" expr ")")
        dim     ::= ident "[" NUMBER "]" | ident "{" "}"
        literal ::= dense | "{" (label ":" expr ("," label ":" expr)*)? "}"
                  | "{" address ":" expr ("," address ":" expr)* "}"
        address ::= "{" (ident ":" label ("," ident ":" label)*)? "}"
    """

    def __init__(self, source: str, names: Sequence[str] = ()) -> None:
        self.source = source
        self.tokens = Lexer(source).tokenize()
        self.pos = 0
        self._scopes: list[Scope] = [Scope(names)]
        self._lambda_depth = 0

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def _advance(self) -> Token:
        token = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def _match(self, *token_types: str) -> bool:
        return self._current().type in token_types

    def _consume(self, token_type: str) -> bool:
        if self._match(token_type):
            self._advance()
            return True
        return False

    def _expect(self, token_type: str, what: str) -> Token:
        token = self._current()
        if token.type != token_type:
            raise ParseError(f"expected {what}, got {token}", token.location)
        return self._advance()

    def _error(self, message: str, token: Token | None = None) -> ParseError:
        token = token or self._current()
        return ParseError(message, token.location)

    # =====================================================================
    # Expressions
    # =====================================================================

    def parse(self) -> Node:
        """Parse the whole input as one expression."""
        node = self.parse_expression()
        if not self._match("EOF"):
            raise self._error(f"unexpected {self._current()} after expression")
        return node

    def parse_expression(self) -> Node:
        return self._parse_binary(0)

    def _parse_binary(self, level: int) -> Node:
        if level == len(PRECEDENCE):
            return self._parse_unary()
        operators = PRECEDENCE[level]
        node = self._parse_binary(level + 1)
        while self._current().type in operators:
            op = operators[self._advance().type]
            rhs = self._parse_binary(level + 1)
            node = Operator(op, node, rhs)
        return node

    def _parse_unary(self) -> Node:
        if self._consume("MINUS"):
            return Neg(self._parse_unary())
        if self._consume("BANG"):
            return Not(self._parse_unary())
        return self._parse_pow()

    def _parse_pow(self) -> Node:
        node = self._parse_primary()
        if self._consume("CARET"):
            return Operator("^", node, self._parse_unary())
        return node

    def _parse_primary(self) -> Node:
        token = self._current()
        match token.type:
            case "NUMBER":
                self._advance()
                return Number(float(token.value))
            case "LPAREN":
                self._advance()
                node = self.parse_expression()
                self._expect("RPAREN", "')'")
                return node
            case "IDENT":
                return self._parse_identifier()
            case _:
                raise self._error(f"expected expression, got {token}")

    def _parse_identifier(self) -> Node:
        token = self._advance()
        name = token.value
        if name == "tensor" and self._match("LPAREN", "LT"):
            self._check_tensor_allowed(token)
            return self._parse_tensor()
        if not self._match("LPAREN"):
            return self._resolve_symbol(token)
        if name in TENSOR_OPERATIONS:
            self._check_tensor_allowed(token)
        match name:
            case "if":
                cond, true_expr, false_expr = self._parse_args(3, name)
                return If(cond, true_expr, false_expr)
            case "map":
                self._expect("LPAREN", "'('")
                child = self.parse_expression()
                self._expect("COMMA", "','")
                function = self._parse_lambda(1)
                self._expect("RPAREN", "')'")
                return TensorMap(child, function)
            case "join":
                self._expect("LPAREN", "'('")
                lhs = self.parse_expression()
                self._expect("COMMA", "','")
                rhs = self.parse_expression()
                self._expect("COMMA", "','")
                function = self._parse_lambda(2)
                self._expect("RPAREN", "')'")
                return TensorJoin(lhs, rhs, function)
            case "reduce":
                return self._parse_reduce()
            case "rename":
                return self._parse_rename()
            case _ if name in UNARY_FUNCTIONS:
                return Call(name, tuple(self._parse_args(1, name)))
            case _ if name in BINARY_FUNCTIONS:
                return Call(name, tuple(self._parse_args(2, name)))
            case _:
                raise self._error(f"unknown function: '{name}'", token)

    def _resolve_symbol(self, token: Token) -> Node:
        symbol_id = self._scopes[-1].resolve(token.value)
        if symbol_id is None:
            raise self._error(f"unknown symbol: '{token.value}'", token)
        return Symbol(symbol_id, token.value)

    def _check_tensor_allowed(self, token: Token) -> None:
        if self._lambda_depth > 0:
            raise self._error(f"tensor operation '{token.value}' not allowed inside lambda", token)

    def _parse_args(self, count: int, name: str) -> list[Node]:
        self._expect("LPAREN", "'('")
        args = [self.parse_expression()]
        while self._consume("COMMA"):
            args.append(self.parse_expression())
        self._expect("RPAREN", "')'")
        if len(args) != count:
            raise self._error(f"wrong number of arguments to '{name}': expected {count}, got {len(args)}")
        return args

    def _parse_identifier_list(self) -> tuple[str, ...]:
        if not self._consume("LPAREN"):
            return (self._expect("IDENT", "dimension name").value,)
        names = [self._expect("IDENT", "dimension name").value]
        while self._consume("COMMA"):
            names.append(self._expect("IDENT", "dimension name").value)
        self._expect("RPAREN", "')'")
        return tuple(names)

    def _parse_lambda(self, arity: int) -> Lambda:
        token = self._expect("IDENT", "lambda")
        if token.value != "f":
            raise self._error(f"expected lambda 'f(...)(...)', got {token}", token)
        self._expect("LPAREN", "'('")
        params = [self._expect("IDENT", "lambda parameter").value]
        while self._consume("COMMA"):
            params.append(self._expect("IDENT", "lambda parameter").value)
        self._expect("RPAREN", "')'")
        if len(params) != arity:
            raise self._error(f"lambda must take {arity} parameter(s), got {len(params)}", token)
        self._expect("LPAREN", "'('")
        self._scopes.append(Scope(params))
        self._lambda_depth += 1
        try:
            body = self.parse_expression()
        finally:
            self._lambda_depth -= 1
            self._scopes.pop()
        self._expect("RPAREN", "')'")
        return Lambda(tuple(params), body)

    def _parse_reduce(self) -> Node:
        self._expect("LPAREN", "'('")
        child = self.parse_expression()
        self._expect("COMMA", "','")
        aggr_token = self._expect("IDENT", "aggregator")
        if aggr_token.value not in AGGREGATORS:
            raise self._error(f"unknown aggregator: '{aggr_token.value}'", aggr_token)
        dims = []
        while self._consume("COMMA"):
            dims.append(self._expect("IDENT", "dimension name").value)
        self._expect("RPAREN", "')'")
        return TensorReduce(child, aggr_token.value, tuple(dims))

    def _parse_rename(self) -> Node:
        self._expect("LPAREN", "'('")
        child = self.parse_expression()
        self._expect("COMMA", "','")
        from_ = self._parse_identifier_list()
        self._expect("COMMA", "','")
        to = self._parse_identifier_list()
        self._expect("RPAREN", "')'")
        if len(from_) != len(to):
            raise self._error("rename needs the same number of source and target dimensions")
        return TensorRename(child, from_, to)

    # =====================================================================
    # Tensor types and literals
    # =====================================================================

    def parse_value_type(self) -> ValueType:
        """Parse 'double', 'error' or 'tensor<cell>(dims)'."""
        token = self._expect("IDENT", "type")
        match token.value:
            case "double":
                return ValueType.double()
            case "error":
                return ValueType.error()
            case "tensor":
                return self._parse_tensor_type()
            case _:
                raise self._error(f"unknown type: '{token.value}'", token)

    def _parse_tensor_type(self) -> ValueType:
        cell_type = CellType.DOUBLE
        if self._consume("LT"):
            cell_token = self._expect("IDENT", "cell type")
            try:
                cell_type = CellType(cell_token.value)
            except ValueError:
                raise self._error(f"unknown cell type: '{cell_token.value}'", cell_token) from None
            self._expect("GT", "'>'")
        self._expect("LPAREN", "'('")
        dims: list[Dimension] = []
        if not self._match("RPAREN"):
            dims.append(self._parse_dimension())
            while self._consume("COMMA"):
                dims.append(self._parse_dimension())
        self._expect("RPAREN", "')'")
        names = [dim.name for dim in dims]
        if len(set(names)) != len(names):
            raise self._error("duplicate dimension name in tensor type")
        return ValueType.tensor(dims, cell_type)

    def _parse_dimension(self) -> Dimension:
        name = self._expect("IDENT", "dimension name").value
        if self._consume("LBRACE"):
            self._expect("RBRACE", "'}'")
            return Dimension(name)
        self._expect("LBRACKET", "'[' or '{'")
        size_token = self._expect("NUMBER", "dimension size")
        if not size_token.value.isdigit() or int(size_token.value) < 1:
            raise self._error(f"bad dimension size: {size_token.value}", size_token)
        self._expect("RBRACKET", "']'")
        return Dimension(name, int(size_token.value))

    def _parse_tensor(self) -> Node:
        value_type = self._parse_tensor_type()
        if self._consume("COLON"):
            return self._parse_tensor_literal(value_type)
        if self._match("LPAREN"):
            return self._parse_tensor_lambda(value_type)
        raise self._error(f"expected ':' or '(' after tensor type, got {self._current()}")

    def _parse_tensor_lambda(self, value_type: ValueType) -> Node:
        if not value_type.is_dense or value_type.is_double:
            raise self._error("tensor lambda requires indexed dimensions")
        scope = TensorLambdaScope(value_type.dimension_names(), self._scopes[-1])
        self._expect("LPAREN", "'('")
        self._scopes.append(scope)
        self._lambda_depth += 1
        try:
            body = self.parse_expression()
        finally:
            self._lambda_depth -= 1
            self._scopes.pop()
        self._expect("RPAREN", "')'")
        return TensorLambda(value_type, tuple(scope.bindings), body)

    def _parse_tensor_literal(self, value_type: ValueType) -> Node:
        cells: dict[Address, Node] = {}
        if self._match("LBRACKET"):
            self._parse_dense_cells(value_type, cells)
        elif self._consume("LBRACE"):
            if self._match("LBRACE"):
                self._parse_verbose_cells(value_type, cells)
            elif not self._match("RBRACE"):
                self._parse_short_cells(value_type, cells)
            self._expect("RBRACE", "'}'")
        else:
            raise self._error(f"expected tensor literal, got {self._current()}")
        return TensorCreate(value_type, tuple(cells.items()))

    def _add_cell(self, cells: dict[Address, Node], address: Address, token: Token) -> None:
        if address in cells:
            raise self._error(f"duplicate cell address: {address}", token)
        cells[address] = self.parse_expression()

    def _parse_dense_cells(self, value_type: ValueType, cells: dict[Address, Node]) -> None:
        shape = value_type.dense_shape
        if value_type.is_double or not value_type.is_dense:
            raise self._error("dense tensor literal requires indexed dimensions")
        if len(shape) > 1 and self._peek().type != "LBRACKET":
            # flat form: all cells in row-major order
            token = self._expect("LBRACKET", "'['")
            addresses = list(itertools.product(*(range(size) for size in shape)))
            for idx, address in enumerate(addresses):
                if idx > 0:
                    self._expect("COMMA", "','")
                self._add_cell(cells, address, token)
            self._expect("RBRACKET", "']'")
            return
        self._parse_dense_block(shape, (), cells)

    def _parse_dense_block(self, shape: tuple[int, ...], prefix: Address, cells: dict[Address, Node]) -> None:
        token = self._expect("LBRACKET", "'['")
        size, rest = shape[0], shape[1:]
        for idx in range(size):
            if idx > 0:
                self._expect("COMMA", "','")
            if rest:
                self._parse_dense_block(rest, prefix + (idx,), cells)
            else:
                self._add_cell(cells, prefix + (idx,), token)
        if not self._match("RBRACKET"):
            raise self._error(f"too many cells for dimension of size {size}")
        self._advance()

    def _parse_label(self, dimension: Dimension) -> Label:
        token = self._current()
        if token.type == "STRING":
            text = unquote(token.value)
        elif token.type in ("IDENT", "NUMBER"):
            text = token.value
        else:
            raise self._error(f"expected label, got {token}")
        self._advance()
        if dimension.size is None:
            return text
        if not text.isdigit() or int(text) >= dimension.size:
            raise self._error(f"bad label '{text}' for dimension {dimension}", token)
        return int(text)

    def _parse_short_cells(self, value_type: ValueType, cells: dict[Address, Node]) -> None:
        if len(value_type.dimensions) != 1:
            raise self._error("short tensor literal requires exactly one dimension")
        dim = value_type.dimensions[0]
        while True:
            token = self._current()
            label = self._parse_label(dim)
            self._expect("COLON", "':'")
            self._add_cell(cells, (label,), token)
            if not self._consume("COMMA"):
                break

    def _parse_verbose_cells(self, value_type: ValueType, cells: dict[Address, Node]) -> None:
        while True:
            token = self._current()
            address = self._parse_address(value_type)
            self._expect("COLON", "':'")
            self._add_cell(cells, address, token)
            if not self._consume("COMMA"):
                break

    def _parse_address(self, value_type: ValueType) -> Address:
        start = self._expect("LBRACE", "'{'")
        labels: dict[str, Label] = {}
        while not self._match("RBRACE"):
            if labels:
                self._expect("COMMA", "','")
            name_token = self._expect("IDENT", "dimension name")
            idx = value_type.dimension_index(name_token.value)
            if idx is None or name_token.value in labels:
                raise self._error(f"bad dimension in address: '{name_token.value}'", name_token)
            self._expect("COLON", "':'")
            labels[name_token.value] = self._parse_label(value_type.dimensions[idx])
        self._advance()
        if len(labels) != len(value_type.dimensions):
            raise self._error("incomplete cell address", start)
        return tuple(labels[dim.name] for dim in value_type.dimensions)


def parse(expression: str, names: Sequence[str] = ()) -> Function:
    """Parse an expression whose free symbols must be among `names`.

    Raises:
        ParseError: if the expression is malformed or uses unknown symbols
    """
    root = Parser(expression, names).parse()
    return Function(root, tuple(names), expression)


def parse_value_type(spec: str) -> ValueType:
    parser = Parser(spec)
    value_type = parser.parse_value_type()
    if not parser._match("EOF"):
        raise parser._error(f"unexpected {parser._current()} after type")
    return value_type

