"""Expression AST for tensor expressions."""

from __future__ import annotations

from dataclasses import dataclass

from evalexpr.eval.types import ValueType
from evalexpr.eval.value import Address, label_to_expr, number_to_expr


class Node:
    """Base class for expression nodes."""

    def children(self) -> tuple[Node, ...]:
        return ()


@dataclass(frozen=True, eq=False)
class Number(Node):
    value: float

    def __str__(self) -> str:
        return number_to_expr(self.value)


@dataclass(frozen=True, eq=False)
class Symbol(Node):
    """Reference to a parameter of the enclosing scope by position.

    At the top level the id is the binding index. Inside a lambda it is
    the lambda parameter index.
    """

    id: int
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class Neg(Node):
    child: Node

    def children(self) -> tuple[Node, ...]:
        return (self.child,)

    def __str__(self) -> str:
        return f"-{self.child}"


@dataclass(frozen=True, eq=False)
class Not(Node):
    child: Node

    def children(self) -> tuple[Node, ...]:
        return (self.child,)

    def __str__(self) -> str:
        return f"!{self.child}"


@dataclass(frozen=True, eq=False)
class Operator(Node):
    op: str
    lhs: Node
    rhs: Node

    def children(self) -> tuple[Node, ...]:
        return (self.lhs, self.rhs)

    def __str__(self) -> str:
        return f"({self.lhs}{self.op}{self.rhs})"


@dataclass(frozen=True, eq=False)
class Call(Node):
    """Built-in scalar function call, such as sqrt(x) or max(a,b)."""

    name: str
    args: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        return self.args

    def __str__(self) -> str:
        return f"{self.name}({','.join(str(arg) for arg in self.args)})"


@dataclass(frozen=True, eq=False)
class If(Node):
    cond: Node
    true_expr: Node
    false_expr: Node

    def children(self) -> tuple[Node, ...]:
        return (self.cond, self.true_expr, self.false_expr)

    def __str__(self) -> str:
        return f"if({self.cond},{self.true_expr},{self.false_expr})"


@dataclass(frozen=True, eq=False)
class Lambda(Node):
    """Scalar lambda f(a,b)(body); the body sees only its own parameters."""

    params: tuple[str, ...]
    body: Node

    def __str__(self) -> str:
        return f"f({','.join(self.params)})({self.body})"


@dataclass(frozen=True, eq=False)
class TensorMap(Node):
    child: Node
    function: Lambda

    def children(self) -> tuple[Node, ...]:
        return (self.child,)

    def __str__(self) -> str:
        return f"map({self.child},{self.function})"


@dataclass(frozen=True, eq=False)
class TensorJoin(Node):
    lhs: Node
    rhs: Node
    function: Lambda

    def children(self) -> tuple[Node, ...]:
        return (self.lhs, self.rhs)

    def __str__(self) -> str:
        return f"join({self.lhs},{self.rhs},{self.function})"


@dataclass(frozen=True, eq=False)
class TensorReduce(Node):
    child: Node
    aggr: str
    dimensions: tuple[str, ...]

    def children(self) -> tuple[Node, ...]:
        return (self.child,)

    def __str__(self) -> str:
        dims = "".join(f",{dim}" for dim in self.dimensions)
        return f"reduce({self.child},{self.aggr}{dims})"


@dataclass(frozen=True, eq=False)
class TensorRename(Node):
    child: Node
    from_: tuple[str, ...]
    to: tuple[str, ...]

    def children(self) -> tuple[Node, ...]:
        return (self.child,)

    def __str__(self) -> str:
        return f"rename({self.child},({','.join(self.from_)}),({','.join(self.to)}))"


@dataclass(frozen=True, eq=False)
class TensorCreate(Node):
    """Tensor literal; each cell value is an expression."""

    type: ValueType
    cells: tuple[tuple[Address, Node], ...]

    def children(self) -> tuple[Node, ...]:
        return tuple(node for _, node in self.cells)

    def __str__(self) -> str:
        entries = []
        for address, node in self.cells:
            labels = ",".join(
                f"{dim.name}:{label_to_expr(label)}"
                for dim, label in zip(self.type.dimensions, address, strict=True)
            )
            entries.append(f"{{{labels}}}:{node}")
        return f"{self.type}:{{{','.join(entries)}}}"


@dataclass(frozen=True, eq=False)
class TensorLambda(Node):
    """Dense tensor generated from an expression over its dimension indices.

    Symbols in the body with id < number of dimensions are dimension
    indices; the rest refer to captured outer parameters listed in
    `bindings` (by outer id).
    """

    type: ValueType
    bindings: tuple[int, ...]
    body: Node

    def __str__(self) -> str:
        return f"{self.type}({self.body})"


@dataclass(frozen=True)
class Function:
    """A parsed expression together with its free parameter names."""

    root: Node
    params: tuple[str, ...]
    expression: str

    def __str__(self) -> str:
        return str(self.root)
