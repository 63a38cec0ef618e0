"""Evaluation core shared by all front ends."""

from evalexpr.core.collector import Collector, Comment, CommandLogEntry, Expression, SessionLog
from evalexpr.core.environment import Binding, Environment
from evalexpr.core.evaluator import EvaluationOutcome, Evaluator, Failure, Success
from evalexpr.core.script import Script

__all__ = [
    "Binding",
    "Collector",
    "CommandLogEntry",
    "Comment",
    "Environment",
    "EvaluationOutcome",
    "Evaluator",
    "Expression",
    "Failure",
    "Script",
    "SessionLog",
    "Success",
]
