"""Session log recording for converting interactive sessions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class Expression:
    name: str | None
    text: str


CommandLogEntry = Comment | Expression


@dataclass
class SessionLog:
    """Ordered comment/expression operations of one session.

    Serialized form:
        {"f": [{"op": "c", "p": {"t": text}},
               {"op": "e", "p": {"n": name, "e": expr}}]}
    An unnamed expression has an empty name.
    """

    entries: list[CommandLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        ops: list[dict[str, Any]] = []
        for entry in self.entries:
            match entry:
                case Comment(text):
                    ops.append({"op": "c", "p": {"t": text}})
                case Expression(name, text):
                    ops.append({"op": "e", "p": {"n": name or "", "e": text}})
        return {"f": ops}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)

    @classmethod
    def from_json(cls, text: str) -> SessionLog:
        """Load a serialized log.

        Raises:
            ValueError: on malformed documents or unknown operations
        """
        doc = json.loads(text)
        entries: list[CommandLogEntry] = []
        for op in doc["f"]:
            payload = op["p"]
            match op["op"]:
                case "c":
                    entries.append(Comment(payload["t"]))
                case "e":
                    entries.append(Expression(payload["n"] or None, payload["e"]))
                case other:
                    raise ValueError(f"unknown session log operation: {other!r}")
        return cls(entries)

    def script_lines(self) -> list[str]:
        """Interactive commands that replay this log."""
        lines = []
        for entry in self.entries:
            match entry:
                case Comment(text):
                    lines.append(f"#{text}")
                case Expression(None, text):
                    lines.append(text)
                case Expression(name, text):
                    lines.append(f"def {name} {text}")
        return lines


class Collector:
    """Builds a SessionLog while enabled and remembers the first failure."""

    def __init__(self) -> None:
        self.log = SessionLog()
        self.enabled = False
        self.error: str | None = None

    def enable(self) -> None:
        self.enabled = True

    def fail(self, message: str) -> None:
        if self.error is None:
            self.error = message

    def comment(self, text: str) -> None:
        if self.enabled:
            self.log.entries.append(Comment(text))

    def expr(self, name: str | None, text: str) -> None:
        if self.enabled:
            self.log.entries.append(Expression(name or None, text))

    def to_json(self) -> str:
        return self.log.to_json()
