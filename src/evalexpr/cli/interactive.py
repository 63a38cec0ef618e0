"""Line based interactive evaluation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import typer
from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, History, InMemoryHistory

from evalexpr.cli.render import print_error, print_value
from evalexpr.config import ReplSettings
from evalexpr.core import Collector, Evaluator, Failure, Script, Success
from evalexpr.errors import BadFlag, ConversionError

COMMANDS: list[tuple[str, str]] = [
    ("exit", "exit the program"),
    ("help", "print available commands"),
    ("list", "list named values"),
    ("verbose (true|false)", "enable or disable verbose output"),
    ("def <name> <expr>", "evaluate expression, bind result to a name"),
    ("undef <name>", "remove a named value"),
    ("<expr>", "evaluate expression"),
]


def list_commands(prefix: str) -> list[str]:
    return [f"{prefix}'{command}' -> {description}" for command, description in COMMANDS]


def is_hash_bang(line: str) -> bool:
    return len(line) > 2 and line.startswith("#!")


def is_only_whitespace(line: str) -> bool:
    return not line.strip()


class LineReader:
    """Yields command lines, first from a script and then from live input.

    Hash-bang and whitespace-only lines are skipped. Script lines are echoed
    after the prompt and added to the live input history.
    """

    def __init__(
        self,
        script: Script,
        *,
        prompt: str = "> ",
        history: History | None = None,
        read_live: Callable[[str], str] | None = None,
    ) -> None:
        self.script = script
        self.prompt = prompt
        self.history = history if history is not None else InMemoryHistory()
        self._read_live = read_live
        self._session: PromptSession[str] | None = None
        self._script_done = False

    @classmethod
    def from_settings(cls, script: Script, settings: ReplSettings) -> LineReader:
        history_file = settings.resolve_history_file()
        if history_file is None:
            return cls(script, prompt=settings.prompt)
        history_file.parent.mkdir(parents=True, exist_ok=True)
        return cls(script, prompt=settings.prompt, history=FileHistory(str(history_file)))

    def _live_line(self) -> str:
        if self._read_live is not None:
            return self._read_live(self.prompt)
        if self._session is None:
            self._session = PromptSession(history=self.history)
        return self._session.prompt(self.prompt)

    def _raw_line(self) -> tuple[str, bool] | None:
        if not self._script_done:
            line = self.script.read_line()
            if line is not None:
                return line, True
            self._script_done = True
            logger.debug("repl.script_exhausted script_only={}", self.script.script_only)
        if self.script.script_only:
            return None
        while True:
            try:
                return self._live_line(), False
            except KeyboardInterrupt:
                continue
            except EOFError:
                return None

    def read_line(self) -> str | None:
        """Next command line, or None at the end of input."""
        while True:
            raw = self._raw_line()
            if raw is None:
                return None
            line, from_script = raw
            if is_hash_bang(line) or is_only_whitespace(line):
                continue
            if from_script:
                typer.echo(f"{self.prompt}{line}")
                self.history.append_string(line)
            return line


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class ListValues:
    pass


@dataclass(frozen=True)
class AddComment:
    text: str


@dataclass(frozen=True)
class SetVerbose:
    flag: str


@dataclass(frozen=True)
class Undef:
    name: str


@dataclass(frozen=True)
class Evaluate:
    name: str | None
    expr: str


Command = Exit | Help | ListValues | AddComment | SetVerbose | Undef | Evaluate


def parse_command(line: str) -> Command:
    if line == "exit":
        return Exit()
    if line == "help":
        return Help()
    if line == "list":
        return ListValues()
    if line.startswith("#"):
        return AddComment(line[1:])
    if line.startswith("verbose "):
        return SetVerbose(line[len("verbose ") :])
    if line.startswith("undef "):
        return Undef(line[len("undef ") :])
    if line.startswith("def "):
        name, _, expr = line[len("def ") :].partition(" ")
        return Evaluate(name, expr)
    return Evaluate(None, line)


def parse_flag(flag: str) -> bool:
    """Raises BadFlag for anything but 'true' or 'false'."""
    match flag:
        case "true":
            return True
        case "false":
            return False
        case _:
            raise BadFlag(flag)


class InteractiveDriver:
    """Dispatches command lines against an evaluator until exit or end of input."""

    def __init__(self, evaluator: Evaluator, reader: LineReader, collector: Collector | None = None) -> None:
        self.evaluator = evaluator
        self.reader = reader
        self.collector = collector if collector is not None else Collector()

    def run(self) -> int:
        while (line := self.reader.read_line()) is not None:
            if not self.handle(parse_command(line)):
                break
        logger.debug("repl.stop bindings={}", len(self.evaluator.env))
        return 0

    def handle(self, command: Command) -> bool:
        """Run one command; return False when the session should end."""
        match command:
            case Exit():
                return False
            case Help():
                typer.echo("\n".join(list_commands("  ")))
            case ListValues():
                for binding in self.evaluator.env:
                    typer.echo(f"  {binding.name}: {binding.type.to_spec()}")
            case AddComment(text):
                self.collector.comment(text)
            case SetVerbose(flag):
                self._set_verbose(flag)
            case Undef(name):
                self._undef(name)
            case Evaluate(name, expr):
                self._evaluate(name, expr)
        return True

    def _set_verbose(self, flag: str) -> None:
        try:
            verbose = parse_flag(flag)
        except BadFlag as exc:
            typer.echo(str(exc), err=True)
            return
        self.evaluator.verbose = verbose
        typer.echo(f"verbose set to {'true' if verbose else 'false'}")

    def _undef(self, name: str) -> None:
        if self.evaluator.env.remove(name):
            typer.echo(f"removed value '{name}'")
        else:
            typer.echo(f"value not found: '{name}'")
        self.collector.fail("undef operation not supported")

    def _evaluate(self, name: str | None, expr: str) -> None:
        if self.evaluator.verbose:
            trace = f"eval '{expr}'" if not name else f"eval '{expr}' -> '{name}'"
            typer.echo(trace, err=True)
        self.collector.expr(name, expr)
        match self.evaluator.evaluate(expr):
            case Success(value=value, profile=profile):
                print_value(value, name, profile)
                if name and self.evaluator.env.bind(name, value):
                    self.collector.fail("value redefinition not supported")
            case Failure(message):
                self.collector.fail("sub-expression evaluation failed")
                print_error(message)


def convert_script(evaluator: Evaluator, script: Script, settings: ReplSettings) -> str:
    """Run `script` alone with recording on and return the serialized session log.

    Raises:
        ConversionError: carrying the first unsupported operation or failure
    """
    collector = Collector()
    collector.enable()
    script.script_only = True
    reader = LineReader.from_settings(script, settings)
    InteractiveDriver(evaluator, reader, collector).run()
    if collector.error is not None:
        raise ConversionError(collector.error)
    return collector.to_json()
