"""
Utility functions for cosmovpa.

Provides:
    orientation: Orientation codes and lossless reorientation of volumetric datasets
    align: Permutations between two sets of attributes
"""

from cosmovpa.utils.align import align
from cosmovpa.utils.orientation import (
    all_orientations,
    fmri_orientation,
    orientation_from_affine,
    reorient,
    validate_orientation,
)

__all__ = [
    "align",
    "all_orientations",
    "fmri_orientation",
    "orientation_from_affine",
    "reorient",
    "validate_orientation",
]
