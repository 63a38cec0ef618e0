"""Backing scripts for the interactive driver."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from types import TracebackType
from typing import TextIO

from loguru import logger


class Script:
    """Raw lines from a script file or an in-memory list.

    A file-backed script keeps its file open until `close()` (or the end
    of a `with` block). With `script_only` set, the interactive driver
    stops when the script runs out instead of switching to live input.
    """

    def __init__(self, lines: Iterable[str] = (), *, handle: TextIO | None = None) -> None:
        self._handle = handle
        self._lines: Iterator[str] = iter(handle if handle is not None else lines)
        self.script_only = False

    @classmethod
    def empty(cls) -> Script:
        return cls()

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> Script:
        return cls(lines)

    @classmethod
    def from_file(cls, path: str | Path) -> Script:
        """Open a script file; an unreadable file gives an empty script."""
        try:
            handle = Path(path).open("r", encoding="utf-8")
        except OSError as exc:
            logger.warning("could not read script: {} ({})", path, exc.strerror or exc)
            return cls()
        logger.debug("script.open path={}", path)
        return cls(handle=handle)

    def read_line(self) -> str | None:
        """Next raw line without its line terminator, or None when exhausted."""
        try:
            line = next(self._lines)
        except StopIteration:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("script.read_failed error={}", exc)
            self._lines = iter(())
            return None
        return line.rstrip("\r\n")

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        self._lines = iter(())

    def __enter__(self) -> Script:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
