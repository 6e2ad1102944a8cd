"""Exceptions raised by the zmanim engine.

An event that does not occur (polar day or night, a twilight depth the sun
never reaches) is not an error: it is reported as ``None`` and never raised.
"""


class InvalidArgumentError(ValueError):
    """Raised when a caller passes input outside the domain of an operation."""


class UnsupportedOperationError(NotImplementedError):
    """Raised by methods kept for API parity that are intentionally unimplemented."""
