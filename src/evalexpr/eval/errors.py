"""Error types for the expression compiler."""

from evalexpr.utils.location import Location


class ParseError(Exception):
    """Error while tokenizing or parsing an expression."""

    location: Location | None

    def __init__(self, message: str, location: Location | None = None):
        if location is not None:
            super().__init__(f"at {location}: {message}")
        else:
            super().__init__(message)
        self.message = message
        self.location = location


class LexerError(ParseError):
    """Unexpected character in the expression text."""
