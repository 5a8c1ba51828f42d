"""Exception types raised by degviz."""


class DegvizError(Exception):
    """Base class for all degviz errors."""


class InvalidInputError(DegvizError, ValueError):
    """Raised when a caller passes arguments the engine cannot accept."""


class InvariantViolationError(DegvizError, RuntimeError):
    """Raised when an internal data invariant does not hold."""


class ResultsFormatError(DegvizError, ValueError):
    """Raised when a DE results table is missing required columns."""
