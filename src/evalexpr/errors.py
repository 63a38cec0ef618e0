"""Front-end error types.

Each error carries the process exit code the CLI reports for it.
"""


class EvalExprError(Exception):
    """Base class for recoverable front-end errors."""

    exit_code = 3


class UsageError(EvalExprError):
    """No expressions were given."""

    exit_code = 1

    def __init__(self) -> None:
        super().__init__("no expressions given")


class ArityOverflow(EvalExprError):
    """More expressions than there are single-letter names."""

    exit_code = 2

    def __init__(self, count: int, max_count: int) -> None:
        super().__init__(f"too many expressions: {count} (max is {max_count})")
        self.count = count
        self.max_count = max_count


class EvaluationFailed(EvalExprError):
    """An expression did not parse or type check."""


class ProtocolDecodeError(EvalExprError):
    """The JSON request stream is malformed."""


class ConversionError(EvalExprError):
    """A session could not be converted into a session log."""


class BadFlag(EvalExprError):
    """A verbose toggle that is neither 'true' nor 'false'."""

    def __init__(self, flag: str) -> None:
        super().__init__(f"bad flag specifier: '{flag}', must be 'true' or 'false'")
        self.flag = flag


class InvariantViolation(Exception):
    """The compiler or executor broke its contract. Never caught."""
