"""
Orientation inspection and reorientation of volumetric datasets.

Orientation codes are three letters, one per voxel axis, naming the
anatomical direction towards which the voxel index increases along that
axis ('R' means the index grows towards the right). This is the axis-code
convention of nibabel, which performs the orientation algebra here.

Reorientation only changes how voxels are indexed: the voxel indices in the
feature attributes, the volume dimensions and the affine are rewritten so
that every feature keeps its world coordinate. Samples and feature order
are left untouched, so reorienting back restores the original dataset.
"""

import itertools
import logging
from typing import Optional, Tuple

import numpy as np
from nibabel.orientations import axcodes2ornt, inv_ornt_aff, ornt_transform

from cosmovpa.datasets.base import Dataset
from cosmovpa.datasets.fmri import VOXEL_ATTRS, get_volume, voxel_indices
from cosmovpa.errors import AmbiguousOrientation, InvalidOrientation

logger = logging.getLogger(__name__)

# (negative, positive) direction labels for world axes x, y, z
AXIS_LABELS = (('L', 'R'), ('P', 'A'), ('I', 'S'))

DEFAULT_TOLERANCE = 1e-3

_LETTER_TO_AXIS = {
    letter: (axis, sign)
    for axis, pair in enumerate(AXIS_LABELS)
    for sign, letter in enumerate(pair)
}


def all_orientations() -> Tuple[str, ...]:
    """Return the 48 valid orientation codes.

    Codes are ordered by axis permutation (lexicographic), then by the
    direction of each axis with the first voxel axis varying fastest.
    """
    codes = []
    for order in itertools.permutations(range(3)):
        for signs in itertools.product((0, 1), repeat=3):
            code = ''.join(
                AXIS_LABELS[world_axis][signs[2 - dim]]
                for dim, world_axis in enumerate(order)
            )
            codes.append(code)
    return tuple(codes)


def validate_orientation(code) -> str:
    """Return ``code`` in upper case, or raise InvalidOrientation.

    Parameters
    ----------
    code : str
        Three-letter orientation code, e.g. 'RAS' or 'lpi'.

    Raises
    ------
    InvalidOrientation
        If the code is not a string of three letters from {L,R,P,A,I,S}
        using each axis pair exactly once.
    """
    if not isinstance(code, str):
        raise InvalidOrientation(f"Orientation must be a string, got {type(code).__name__}")
    if len(code) != 3:
        raise InvalidOrientation(f"Orientation must have 3 letters, got {code!r}")

    code = code.upper()
    unknown = [letter for letter in code if letter not in _LETTER_TO_AXIS]
    if unknown:
        raise InvalidOrientation(
            f"Orientation {code!r} has letters outside L,R,P,A,I,S: {unknown}"
        )

    axes = sorted(_LETTER_TO_AXIS[letter][0] for letter in code)
    if axes != [0, 1, 2]:
        raise InvalidOrientation(
            f"Orientation {code!r} must use each of LR, PA and IS exactly once"
        )
    return code


def orientation_from_affine(affine, tolerance: Optional[float] = None) -> str:
    """Derive the orientation code of a voxel-to-world affine.

    Each voxel axis is assigned the world axis with the largest absolute
    direction cosine; the sign of that cosine gives the letter.

    Parameters
    ----------
    affine : array-like
        4x4 affine.
    tolerance : float, optional
        Minimum gap between the largest and second-largest absolute
        direction cosine of a voxel axis (default 1e-3).

    Raises
    ------
    InvalidOrientation
        If the affine is not 4x4, not finite or singular.
    AmbiguousOrientation
        If a voxel axis has no unique dominant world axis, or two voxel
        axes share one.
    """
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCE

    affine = np.asarray(affine, dtype=float)
    if affine.shape != (4, 4):
        raise InvalidOrientation(f"Affine must be 4x4, got shape {affine.shape}")
    if not np.all(np.isfinite(affine)):
        raise InvalidOrientation("Affine contains non-finite values")

    rzs = affine[:3, :3]
    zooms = np.linalg.norm(rzs, axis=0)
    if np.any(zooms == 0) or abs(np.linalg.det(rzs)) < np.finfo(float).eps * np.prod(zooms):
        raise InvalidOrientation("Affine is singular")
    cosines = rzs / zooms

    letters = []
    used = set()
    for dim in range(3):
        magnitudes = np.abs(cosines[:, dim])
        ranked = np.argsort(magnitudes)[::-1]
        best, second = ranked[0], ranked[1]
        if magnitudes[best] - magnitudes[second] < tolerance:
            raise AmbiguousOrientation(
                f"Voxel axis {dim} has no dominant world axis "
                f"(direction cosines {np.round(cosines[:, dim], 6).tolist()})"
            )
        if best in used:
            raise AmbiguousOrientation(
                f"Voxel axis {dim} maps to world axis {best}, which is already used"
            )
        used.add(best)
        positive = cosines[best, dim] > 0
        letters.append(AXIS_LABELS[best][int(positive)])

    return ''.join(letters)


def fmri_orientation(ds: Dataset, tolerance: Optional[float] = None) -> str:
    """Return the orientation code of a volumetric dataset."""
    affine, _ = get_volume(ds)
    return orientation_from_affine(affine, tolerance)


def orientation_transform(current: str, target: str) -> np.ndarray:
    """Decompose the change from ``current`` to ``target`` orientation.

    Returns
    -------
    ndarray, shape (3, 2)
        Row ``d`` holds ``(new_axis, flip)`` for voxel axis ``d`` of the
        current orientation; ``flip`` is -1 when the axis is reversed.
    """
    current = validate_orientation(current)
    target = validate_orientation(target)
    start = axcodes2ornt(tuple(current), labels=AXIS_LABELS)
    end = axcodes2ornt(tuple(target), labels=AXIS_LABELS)
    return ornt_transform(start, end)


def reorient(ds: Dataset, target: str, tolerance: Optional[float] = None) -> Dataset:
    """Return a copy of ``ds`` indexed in the ``target`` orientation.

    Parameters
    ----------
    ds : Dataset
        Volumetric dataset with ``a['vol']`` and voxel index attributes.
    target : str
        Target orientation code.
    tolerance : float, optional
        Passed to :func:`orientation_from_affine` for the current affine.

    Returns
    -------
    Dataset
        Dataset whose voxel indices, volume dims and affine describe the
        same world positions in the target orientation.

    Raises
    ------
    InvalidOrientation
        If ``target`` is not a valid code or the current affine has no
        well-defined orientation.
    InvalidInput
        If ``ds`` is not a volumetric dataset.
    """
    target = validate_orientation(target)
    affine, dim = get_volume(ds)
    current = orientation_from_affine(affine, tolerance)

    result = ds.copy()
    if current == target:
        return result

    transform = orientation_transform(current, target)
    ijk = voxel_indices(ds)

    new_ijk = np.empty_like(ijk)
    new_dim = [0, 0, 0]
    for axis, (new_axis, flip) in enumerate(transform):
        new_axis = int(new_axis)
        values = ijk[:, axis]
        if flip < 0:
            values = dim[axis] - 1 - values
        new_ijk[:, new_axis] = values
        new_dim[new_axis] = dim[axis]

    new_affine = affine.dot(inv_ornt_aff(transform, dim))

    for column, name in enumerate(VOXEL_ATTRS):
        result.fa[name] = new_ijk[:, column].astype(ds.fa[name].dtype)
    result.a['vol'] = dict(ds.a['vol'], mat=new_affine, dim=tuple(new_dim))

    logger.debug("Reoriented dataset from %s to %s (dims %s -> %s)",
                 current, target, dim, tuple(new_dim))
    return result
