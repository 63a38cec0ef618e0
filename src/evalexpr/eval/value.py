"""Runtime values for tensor expressions."""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Mapping

import numpy as np

from evalexpr.eval.types import CellType, ValueType

Label = int | str
Address = tuple[Label, ...]


def number_to_expr(number: float) -> str:
    """Shortest text that parses back into the same double."""
    if math.isnan(number):
        return "(0/0)"
    if math.isinf(number):
        return "(1/0)" if number > 0 else "(-1/0)"
    if number == 0.0 and math.copysign(1.0, number) < 0:
        return "-0"
    if number.is_integer() and abs(number) < 2**53:
        return str(int(number))
    return repr(number)


def label_to_expr(label: Label) -> str:
    if isinstance(label, int):
        return str(label)
    escaped = label.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def dense_addresses(value_type: ValueType) -> Iterator[Address]:
    """All cell addresses of a dense type, in row-major order."""
    return itertools.product(*(range(size) for size in value_type.dense_shape))


def _round_cell(cell_type: CellType, number: float) -> float:
    if cell_type is CellType.FLOAT:
        return float(np.float32(number))
    return float(number)


class Value:
    """A typed value: the type plus a mapping from cell address to number.

    Addresses hold one label per dimension, in the (sorted) order of the
    type's dimensions. A double has exactly one cell at the empty address.
    """

    __slots__ = ("type", "cells")

    def __init__(self, value_type: ValueType, cells: dict[Address, float]) -> None:
        self.type = value_type
        self.cells = cells

    @classmethod
    def double(cls, number: float) -> Value:
        return cls(ValueType.double(), {(): float(number)})

    @classmethod
    def create(cls, value_type: ValueType, cells: Mapping[Address, float]) -> Value:
        """Build a value, rounding cells to the cell type.

        Dense types get every missing cell filled with 0.
        """
        if value_type.is_error:
            raise ValueError("cannot create a value of error type")
        if value_type.is_double:
            return cls.double(cells.get((), 0.0))
        cell_type = value_type.cell_type
        if value_type.is_dense:
            result = {
                address: _round_cell(cell_type, cells.get(address, 0.0))
                for address in dense_addresses(value_type)
            }
        else:
            result = {address: _round_cell(cell_type, number) for address, number in cells.items()}
        return cls(value_type, result)

    @classmethod
    def from_array(cls, value_type: ValueType, array: np.ndarray) -> Value:
        """Build a dense value from an array shaped like the type."""
        if value_type.is_double:
            return cls.double(float(array))
        dtype = np.float32 if value_type.cell_type is CellType.FLOAT else np.float64
        array = np.asarray(array).astype(dtype)
        cells = {address: float(array[address]) for address in dense_addresses(value_type)}
        return cls(value_type, cells)

    def to_array(self) -> np.ndarray:
        """Dense cells as an array (float64), shaped like the type."""
        if not self.type.is_dense:
            raise ValueError(f"not a dense value: {self.type}")
        array = np.zeros(self.type.dense_shape, dtype=np.float64)
        for address, number in self.cells.items():
            array[address] = number
        return array

    def as_double(self) -> float:
        if self.type.is_double:
            return self.cells.get((), 0.0)
        return math.fsum(self.cells.values())

    def sorted_cells(self) -> list[tuple[Address, float]]:
        return sorted(self.cells.items(), key=lambda item: item[0])

    def _address_text(self, address: Address, with_quotes: bool) -> str:
        parts = []
        for dim, label in zip(self.type.dimensions, address, strict=True):
            text = label_to_expr(label) if with_quotes else str(label)
            parts.append(f"{dim.name}:{text}")
        return "{" + ",".join(parts) + "}"

    def to_string(self) -> str:
        lines = [f"spec({self.type.to_spec()}) {{"]
        for address, number in self.sorted_cells():
            lines.append(f"  {self._address_text(address, False)}: {number:g}")
        lines.append("}")
        return "\n".join(lines)

    def to_expr(self) -> str:
        """Canonical expression text that evaluates back to this value."""
        if self.type.is_double:
            return number_to_expr(self.as_double())
        cells = ",".join(
            f"{self._address_text(address, True)}:{number_to_expr(number)}"
            for address, number in self.sorted_cells()
        )
        return f"{self.type.to_spec()}:{{{cells}}}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.type == other.type and self.cells == other.cells

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Value({self.to_expr()})"
