"""
Exceptions raised while loading element sets and best tracks.
"""

from typing import Optional


class ParseError(ValueError):
    """Raised when an element set or best-track record has a malformed field."""

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
