"""Typer CLI entrypoint."""

from __future__ import annotations

import sys
from typing import Annotated

import typer
from loguru import logger

from evalexpr.cli.batch import MAX_EXPRESSIONS, run_batch
from evalexpr.cli.interactive import InteractiveDriver, LineReader, convert_script, list_commands
from evalexpr.cli.json_repl import JsonRepl
from evalexpr.config import ReplSettings, load_settings
from evalexpr.core import Evaluator, Script
from evalexpr.errors import ConversionError, EvalExprError, UsageError
from evalexpr.logging_utils import configure_logging

PROG = "evalexpr"

app = typer.Typer(name=PROG, help="Evaluate tensor expressions", add_completion=False)


def usage_text(prog: str = PROG) -> str:
    lines = [
        f"usage: {prog} [--verbose] <expr> [expr ...]",
        "  Evaluate a sequence of expressions. The first expression must be",
        "  self-contained (no external values). Later expressions may use the",
        "  results of earlier expressions. Expressions are automatically named",
        f"  using single letter symbols ('a' through 'z', at most {MAX_EXPRESSIONS}). Quote",
        "  expressions to make sure they become separate parameters. The --verbose",
        "  option may be specified to get more detailed information about how the",
        "  various expressions are optimized and executed.",
        "  --verbose is read as an option wherever it appears; arguments after '--'",
        "  are always taken as expressions.",
        "",
        f'example: {prog} "2+2" "a+2" "a+b"',
        "  (a=4, b=6, c=10)",
        "",
        f"advanced usage: {prog} interactive [<script-file> [convert]]",
        "  This runs the program in interactive mode. possible commands (line based):",
        *list_commands("    "),
        "  Lines from the script file are run before reading live input. With",
        "  'convert', only the script is run and the session is printed as json.",
        "",
        f"advanced usage: {prog} json-repl",
        "  This will put the program into a read-eval-print loop where it reads",
        "  json objects from stdin and writes json objects to stdout.",
        "  possible commands: (object based)",
        "    {expr:<expr>, ?name:<name>, ?verbose:true}",
        "    -> { result:<verbatim-expr> ?steps:[{class:string,symbol:string}] }",
        "      Evaluate an expression and return the result. If a name is specified,",
        "      the result will be bound to that name and will be available as a symbol",
        "      when doing future evaluations. Verbose output must be enabled for each",
        "      relevant command and will result in the 'steps' field being populated in",
        "      the response.",
        "  if any command fails, the response will be { error:string }",
    ]
    return "\n".join(lines)


def _interactive(settings: ReplSettings, script: Script) -> None:
    with script:
        reader = LineReader.from_settings(script, settings)
        InteractiveDriver(Evaluator(), reader).run()


def _convert(settings: ReplSettings, path: str) -> None:
    with Script.from_file(path) as script:
        typer.echo(convert_script(Evaluator(), script, settings))


@app.command(context_settings={"ignore_unknown_options": True})
def main(
    args: Annotated[list[str] | None, typer.Argument(help="Expressions, or a mode keyword.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Print per-step profiling to stderr.")] = False,
) -> None:
    """Evaluate expressions given on the command line, interactively or as JSON."""
    settings = load_settings()
    argv = list(args or [])
    profile = "interactive" if argv[:1] == ["interactive"] and len(argv) < 3 else "default"
    configure_logging(profile=profile, filter_spec=settings.log_filter)
    try:
        match argv:
            case ["interactive"]:
                _interactive(settings, Script.empty())
            case ["interactive", path]:
                _interactive(settings, Script.from_file(path))
            case ["interactive", path, "convert"]:
                _convert(settings, path)
            case ["json-repl"]:
                JsonRepl(Evaluator(), sys.stdin, sys.stdout).run()
            case _:
                run_batch(Evaluator(verbose=verbose), argv)
    except UsageError as exc:
        typer.echo(usage_text(), err=True)
        raise typer.Exit(exc.exit_code) from exc
    except ConversionError as exc:
        typer.echo(f"conversion failed: {exc}", err=True)
        raise typer.Exit(exc.exit_code) from exc
    except EvalExprError as exc:
        logger.debug("cli.failed error_type={} exit_code={}", type(exc).__name__, exc.exit_code)
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(exc.exit_code) from exc


if __name__ == "__main__":
    app()
