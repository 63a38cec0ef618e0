"""Source locations for error reporting."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Location:
    """Position of a token inside an expression (1-based)."""

    column: int
    line: int = 1

    @staticmethod
    def from_offset(source: str, offset: int) -> "Location":
        line = source.count("\n", 0, offset) + 1
        column = offset - (source.rfind("\n", 0, offset) + 1) + 1
        return Location(column, line)

    def __str__(self) -> str:
        if self.line > 1:
            return f"line {self.line}, column {self.column}"
        return f"column {self.column}"
