"""Exception types raised by the transform pipeline.

None of these are recoverable per sample: a malformed configuration or a
missing codec recurs on every sample, so callers are expected to abort the
batch rather than skip the offending item.
"""

__all__ = [
    "InternalError",
    "InvalidConfigError",
    "PreconditionError",
    "TransformError",
    "UnsupportedOperationError",
]


class TransformError(Exception):
    """Base class for every pipeline failure."""


class InvalidConfigError(TransformError):
    """Contradictory or out-of-range configuration for the given sample.

    Deliberately not a ``ValueError`` so that pydantic validators let it
    propagate instead of folding it into a ``ValidationError``.
    """


class UnsupportedOperationError(TransformError):
    """Encoded sample supplied without a usable image codec."""


class InternalError(TransformError):
    """An invariant that should be unreachable was violated."""


class PreconditionError(TransformError):
    """An operation was invoked before its prerequisites were set up."""
