"""
Volumetric (fMRI) datasets.

Conversion between nibabel images / voxel arrays and flat datasets, plus
voxel <-> world coordinate helpers. Voxel indices are 0-based throughout.
"""

import logging
from typing import Optional, Sequence, Tuple

import nibabel as nib
import numpy as np
from nibabel.affines import apply_affine
from nibabel.spatialimages import SpatialImage

from cosmovpa.datasets.base import Dataset
from cosmovpa.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)

VOXEL_ATTRS = ('i', 'j', 'k')


def get_volume(ds: Dataset) -> Tuple[np.ndarray, Tuple[int, int, int]]:
    """Return (affine, dim) of a volumetric dataset.

    Raises
    ------
    InvalidInput
        If the dataset has no volume geometry or voxel-index attributes.
    """
    vol = ds.a.get('vol')
    if not isinstance(vol, dict) or 'mat' not in vol or 'dim' not in vol:
        raise InvalidInput("Dataset has no volume attribute a['vol'] with 'mat' and 'dim'")
    missing = [name for name in VOXEL_ATTRS if name not in ds.fa]
    if missing:
        raise InvalidInput(f"Dataset is missing voxel feature attributes: {missing}")

    affine = np.asarray(vol['mat'], dtype=float)
    if affine.shape != (4, 4):
        raise InvalidInput(f"Volume affine must be 4x4, got shape {affine.shape}")
    dim = tuple(int(d) for d in vol['dim'])
    if len(dim) != 3:
        raise InvalidInput(f"Volume dim must have 3 elements, got {dim}")
    return affine, dim


def voxel_indices(ds: Dataset) -> np.ndarray:
    """Return an (nfeatures, 3) integer array of voxel indices."""
    get_volume(ds)
    return np.column_stack([ds.fa[name] for name in VOXEL_ATTRS]).astype(int)


def fmri_dataset(
    image,
    affine: Optional[np.ndarray] = None,
    mask=None,
    targets: Optional[Sequence] = None,
    chunks: Optional[Sequence] = None,
) -> Dataset:
    """Build a dataset from a nibabel image or a voxel array.

    Parameters
    ----------
    image : nibabel spatial image or ndarray
        3-D (single sample) or 4-D (samples along the last axis) data.
    affine : ndarray, optional
        4x4 voxel-to-world affine; required when ``image`` is an array.
    mask : nibabel image or ndarray, optional
        3-D mask; nonzero voxels become features. Defaults to all voxels.
    targets, chunks : sequence, optional
        Sample attributes.

    Returns
    -------
    Dataset
    """
    if isinstance(image, SpatialImage):
        data = np.asanyarray(image.dataobj)
        if affine is None:
            affine = image.affine
    else:
        data = np.asarray(image)
        if affine is None:
            raise InvalidInput("affine is required when image is an array")

    affine = np.asarray(affine, dtype=float)
    if affine.shape != (4, 4):
        raise InvalidInput(f"affine must be 4x4, got shape {affine.shape}")

    if data.ndim == 3:
        data = data[..., np.newaxis]
    if data.ndim != 4:
        raise InvalidInput(f"Image data must be 3-D or 4-D, got {data.ndim} dimensions")

    dim = data.shape[:3]
    if mask is None:
        mask_data = np.ones(dim, dtype=bool)
    else:
        if isinstance(mask, SpatialImage):
            mask_data = np.asanyarray(mask.dataobj)
        else:
            mask_data = np.asarray(mask)
        if mask_data.shape != dim:
            raise DimensionMismatch(
                f"Mask shape {mask_data.shape} does not match volume shape {dim}"
            )
        mask_data = mask_data != 0

    # C-order feature enumeration keeps i slowest and k fastest
    i, j, k = np.nonzero(mask_data)
    samples = data[i, j, k, :].T

    sa = {}
    if targets is not None:
        sa['targets'] = targets
    if chunks is not None:
        sa['chunks'] = chunks

    ds = Dataset(
        samples,
        sa=sa,
        fa={'i': i, 'j': j, 'k': k},
        a={'vol': {'mat': affine.copy(), 'dim': tuple(int(d) for d in dim)}},
    )
    logger.debug("fMRI dataset: %d samples, %d voxels in %s volume",
                 ds.nsamples, ds.nfeatures, dim)
    return ds


def unflatten(ds: Dataset) -> np.ndarray:
    """Return the samples as a 4-D array (ni, nj, nk, nsamples)."""
    _, dim = get_volume(ds)
    ijk = voxel_indices(ds)
    data = np.zeros(dim + (ds.nsamples,), dtype=ds.samples.dtype)
    data[ijk[:, 0], ijk[:, 1], ijk[:, 2], :] = ds.samples.T
    return data


def map2fmri(ds: Dataset) -> nib.Nifti1Image:
    """Return a 4-D NIfTI image holding one volume per sample."""
    affine, _ = get_volume(ds)
    data = unflatten(ds)
    if data.dtype == bool:
        data = data.astype(np.uint8)
    return nib.Nifti1Image(data, affine)


def voxel_to_world(ds: Dataset, ijk) -> np.ndarray:
    """Map an (n, 3) array of voxel indices to (n, 3) world coordinates."""
    affine, _ = get_volume(ds)
    ijk = np.atleast_2d(np.asarray(ijk, dtype=float))
    return apply_affine(affine, ijk)


def world_to_voxel(ds: Dataset, xyz) -> np.ndarray:
    """Map an (n, 3) array of world coordinates to (rounded) voxel indices."""
    affine, _ = get_volume(ds)
    xyz = np.atleast_2d(np.asarray(xyz, dtype=float))
    ijk = apply_affine(np.linalg.inv(affine), xyz)
    return np.rint(ijk).astype(int)


def feature_index(ds: Dataset, ijk) -> np.ndarray:
    """Return the feature index of each voxel triple in ``ijk``.

    Raises
    ------
    InvalidInput
        If a triple is not present exactly once in the dataset.
    """
    features = voxel_indices(ds)
    ijk = np.atleast_2d(np.asarray(ijk)).astype(int)
    lookup = {}
    for index, triple in enumerate(map(tuple, features)):
        lookup.setdefault(triple, []).append(index)

    result = np.empty(len(ijk), dtype=int)
    for m, triple in enumerate(map(tuple, ijk)):
        hits = lookup.get(triple, [])
        if len(hits) != 1:
            raise InvalidInput(
                f"Voxel {triple} found {len(hits)} times, expected exactly once"
            )
        result[m] = hits[0]
    return result
