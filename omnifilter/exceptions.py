"""
Exception classes for omnifilter.

Every error raised while translating a filter derives from ``FilterError``
and comes from the shape of the input, never from I/O. Callers turn these
into a "bad request" style response; ``to_dict()`` gives an API-friendly
payload for that.
"""

from difflib import get_close_matches
from typing import Any, Dict, Iterable, Optional


class FilterError(ValueError):
    """Base exception for all filter translation errors."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class UnsupportedOperatorError(FilterError):
    """
    Raised for an operator key outside the supported set, or when a
    backend cannot express an operator (e.g. no token was supplied for it).
    """

    def __init__(self,
                 operator: str,
                 backend: Optional[str] = None,
                 known_operators: Optional[Iterable[str]] = None):
        self.operator = operator
        self.backend = backend
        self.suggestions = get_close_matches(
            operator, list(known_operators or []), n=3, cutoff=0.6
        )

        if backend:
            message = f"Operator {operator} is not supported by {backend}"
        else:
            message = f"Unknown operator: {operator}"
        if self.suggestions:
            message += f" (did you mean {', '.join(self.suggestions)}?)"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["operator"] = self.operator
        if self.suggestions:
            payload["suggestions"] = self.suggestions
        return payload


class InvalidOperandShapeError(FilterError):
    """Raised when an operator receives an operand of the wrong shape."""

    def __init__(self, operator: str, message: str):
        self.operator = operator
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["operator"] = self.operator
        return payload


class InvalidFilterShapeError(FilterError):
    """Raised when a filter document or field value is malformed."""
    pass


class FilterDepthError(InvalidFilterShapeError):
    """Raised when a filter nests deeper than the configured maximum."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Filter nesting exceeds maximum depth of {max_depth}")
