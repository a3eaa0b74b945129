"""
Exception hierarchy for cosmovpa.

All errors raised by the toolbox derive from ``CosmoError`` so callers can
catch them in one place. Input validation errors also derive from
``ValueError``.
"""


class CosmoError(Exception):
    """Base class for all cosmovpa errors."""
    pass


class InvalidOrientation(CosmoError, ValueError):
    """Raised when an orientation code or affine orientation is invalid."""
    pass


class AmbiguousOrientation(InvalidOrientation):
    """Raised when an affine has no unique dominant world axis per voxel axis."""
    pass


class InvalidInput(CosmoError, ValueError):
    """Raised when values or datasets have the wrong type or shape."""
    pass


class DimensionMismatch(CosmoError, ValueError):
    """Raised when two inputs disagree on the number of features or samples."""
    pass


class InvalidNeighborhood(CosmoError, ValueError):
    """Raised when a neighborhood relation is malformed."""
    pass


class ClassifierError(CosmoError):
    """Raised when a classifier cannot be trained."""
    pass


class ChannelTypeError(CosmoError):
    """Raised when MEEG channel types cannot be identified."""
    pass
