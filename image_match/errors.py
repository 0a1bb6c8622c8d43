"""
Exception types raised by the retrieval engine.

Per-candidate failures (DecodeError, NotFoundError) are recovered by the
engine: the candidate is skipped and traversal continues. Systemic failures
(ShapeMismatchError, InvalidModeError) abort the retrieval call.
"""


class RetrievalError(Exception):
    """Base class for all image_match errors."""


class DecodeError(RetrievalError):
    """Image is missing, empty, or too small for the requested descriptor."""


class NotFoundError(RetrievalError, KeyError):
    """No stored embedding exists for an identifier."""

    def __str__(self):
        # KeyError quotes its message; keep the plain text.
        return Exception.__str__(self)


class ShapeMismatchError(RetrievalError, ValueError):
    """Two descriptors being compared do not have the same shape."""


class InvalidModeError(RetrievalError, ValueError):
    """Unknown retrieval mode, or a mode used without what it requires."""
