"""Value types for tensor expressions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum


class CellType(Enum):
    """Storage type of tensor cells."""

    DOUBLE = "double"
    FLOAT = "float"

    @staticmethod
    def unify(a: CellType, b: CellType) -> CellType:
        if a is CellType.FLOAT and b is CellType.FLOAT:
            return CellType.FLOAT
        return CellType.DOUBLE


@dataclass(frozen=True)
class Dimension:
    """A named tensor dimension.

    Indexed dimensions have a fixed size and integer labels in [0, size).
    Mapped dimensions (size is None) use arbitrary string labels.
    """

    name: str
    size: int | None = None

    @property
    def is_mapped(self) -> bool:
        return self.size is None

    @property
    def is_indexed(self) -> bool:
        return self.size is not None

    def __str__(self) -> str:
        if self.size is None:
            return f"{self.name}{{}}"
        return f"{self.name}[{self.size}]"


@dataclass(frozen=True)
class ValueType:
    """Static type of a value: error, double or tensor.

    Dimensions are always sorted by name. A tensor type without dimensions
    is normalized to double, and double always has DOUBLE cells.
    """

    cell_type: CellType = CellType.DOUBLE
    dimensions: tuple[Dimension, ...] = ()
    is_error: bool = False

    @staticmethod
    def error() -> ValueType:
        return ValueType(is_error=True)

    @staticmethod
    def double() -> ValueType:
        return ValueType()

    @staticmethod
    def tensor(dimensions: Iterable[Dimension], cell_type: CellType = CellType.DOUBLE) -> ValueType:
        dims = tuple(sorted(dimensions, key=lambda dim: dim.name))
        names = [dim.name for dim in dims]
        if len(set(names)) != len(names):
            return ValueType.error()
        if any(dim.size is not None and dim.size < 1 for dim in dims):
            return ValueType.error()
        if not dims:
            return ValueType.double()
        return ValueType(cell_type, dims)

    @staticmethod
    def from_spec(spec: str) -> ValueType:
        """Parse a type spec such as 'double' or 'tensor<float>(x[3],y{})'."""
        from evalexpr.eval.parser import parse_value_type

        return parse_value_type(spec)

    @property
    def is_double(self) -> bool:
        return not self.is_error and not self.dimensions

    @property
    def is_dense(self) -> bool:
        return not self.is_error and all(dim.is_indexed for dim in self.dimensions)

    @property
    def dense_shape(self) -> tuple[int, ...]:
        return tuple(dim.size for dim in self.dimensions if dim.size is not None)

    def dimension_names(self) -> list[str]:
        return [dim.name for dim in self.dimensions]

    def dimension_index(self, name: str) -> int | None:
        for idx, dim in enumerate(self.dimensions):
            if dim.name == name:
                return idx
        return None

    def to_spec(self) -> str:
        if self.is_error:
            return "error"
        if not self.dimensions:
            return "double"
        dims = ",".join(str(dim) for dim in self.dimensions)
        if self.cell_type is CellType.DOUBLE:
            return f"tensor({dims})"
        return f"tensor<{self.cell_type.value}>({dims})"

    def __str__(self) -> str:
        return self.to_spec()

    # -----------------------------------------------------------------
    # Result types of tensor operations. Each returns an error type when
    # the operation is not valid for its inputs.
    # -----------------------------------------------------------------

    def map(self) -> ValueType:
        return self

    def reduce(self, dimensions: Sequence[str]) -> ValueType:
        if self.is_error:
            return self
        if not dimensions:
            return ValueType.double()
        known = self.dimension_names()
        if any(name not in known for name in dimensions) or len(set(dimensions)) != len(dimensions):
            return ValueType.error()
        remaining = [dim for dim in self.dimensions if dim.name not in dimensions]
        return ValueType.tensor(remaining, self.cell_type)

    def rename(self, from_: Sequence[str], to: Sequence[str]) -> ValueType:
        if self.is_error:
            return self
        if not from_ or len(from_) != len(to) or len(set(from_)) != len(from_):
            return ValueType.error()
        known = self.dimension_names()
        if any(name not in known for name in from_):
            return ValueType.error()
        mapping = dict(zip(from_, to, strict=True))
        renamed = [Dimension(mapping.get(dim.name, dim.name), dim.size) for dim in self.dimensions]
        return ValueType.tensor(renamed, self.cell_type)

    @staticmethod
    def join(lhs: ValueType, rhs: ValueType) -> ValueType:
        if lhs.is_error or rhs.is_error:
            return ValueType.error()
        dims = {dim.name: dim for dim in lhs.dimensions}
        for dim in rhs.dimensions:
            other = dims.get(dim.name)
            if other is not None and other != dim:
                return ValueType.error()
            dims[dim.name] = dim
        if lhs.is_double:
            cell_type = rhs.cell_type
        elif rhs.is_double:
            cell_type = lhs.cell_type
        else:
            cell_type = CellType.unify(lhs.cell_type, rhs.cell_type)
        return ValueType.tensor(dims.values(), cell_type)

    @staticmethod
    def either(a: ValueType, b: ValueType) -> ValueType:
        if a.is_error or b.is_error or a != b:
            return ValueType.error()
        return a
