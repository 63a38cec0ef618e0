"""Text rendering of evaluation results."""

from __future__ import annotations

from collections.abc import Sequence

import typer

from evalexpr.eval import ProfileStep, Value


def format_value(value: Value) -> str:
    """`%.32g` for doubles, the general textual form for tensors."""
    if value.type.is_double:
        return "%.32g" % value.as_double()
    return value.to_string()


def format_profile(profile: Sequence[ProfileStep], name: str | None = None) -> list[str]:
    header = f"meta-data({name}):" if name else "meta-data:"
    lines = [header]
    for step in profile:
        lines.append(f"  class: {step.class_name}")
        lines.append(f"    symbol: {step.symbol}")
        lines.append(f"    count: {step.count}")
        lines.append(f"    time_us: {step.time_us:g}")
    return lines


def print_value(value: Value, name: str | None = None, profile: Sequence[ProfileStep] | None = None) -> None:
    """Print the profile (stderr) and then the optionally named value (stdout)."""
    if profile:
        typer.echo("\n".join(format_profile(profile, name)), err=True)
    prefix = f"{name}: " if name else ""
    typer.echo(f"{prefix}{format_value(value)}")


def print_error(message: str) -> None:
    typer.echo(f"error: {message}", err=True)
