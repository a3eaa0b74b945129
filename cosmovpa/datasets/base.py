"""
Dataset container.

A dataset holds a 2-D samples array of shape (nsamples, nfeatures) together
with per-sample attributes (``sa``), per-feature attributes (``fa``) and
dataset-level attributes (``a``). fMRI datasets carry voxel indices in
``fa['i']``, ``fa['j']``, ``fa['k']`` and the volume geometry in
``a['vol']``; MEEG datasets describe their feature dimensions in
``a['fdim']``.
"""

import copy
import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from cosmovpa.errors import InvalidInput

logger = logging.getLogger(__name__)


class Dataset:
    """Samples matrix with sample, feature and dataset attributes."""

    def __init__(
        self,
        samples,
        sa: Optional[Dict[str, Any]] = None,
        fa: Optional[Dict[str, Any]] = None,
        a: Optional[Dict[str, Any]] = None,
    ):
        samples = np.asarray(samples)
        if samples.ndim == 1:
            samples = samples[np.newaxis, :]
        if samples.ndim != 2:
            raise InvalidInput(
                f"samples must be a 2-D array, got {samples.ndim} dimensions"
            )

        self.samples = samples
        self.sa = {k: np.asarray(v) for k, v in (sa or {}).items()}
        self.fa = {k: np.asarray(v) for k, v in (fa or {}).items()}
        self.a = dict(a or {})
        self.check()

    @property
    def nsamples(self) -> int:
        return self.samples.shape[0]

    @property
    def nfeatures(self) -> int:
        return self.samples.shape[1]

    @property
    def shape(self):
        return self.samples.shape

    def __len__(self) -> int:
        return self.nsamples

    def __repr__(self) -> str:
        return (
            f"Dataset(nsamples={self.nsamples}, nfeatures={self.nfeatures}, "
            f"sa={sorted(self.sa)}, fa={sorted(self.fa)}, a={sorted(self.a)})"
        )

    def check(self) -> None:
        """Raise InvalidInput if attribute lengths disagree with samples."""
        for name, values in self.sa.items():
            if len(values) != self.nsamples:
                raise InvalidInput(
                    f"Sample attribute '{name}' has {len(values)} values, "
                    f"expected {self.nsamples}"
                )
        for name, values in self.fa.items():
            if len(values) != self.nfeatures:
                raise InvalidInput(
                    f"Feature attribute '{name}' has {len(values)} values, "
                    f"expected {self.nfeatures}"
                )

    def copy(self, deep: bool = True) -> 'Dataset':
        if deep:
            return Dataset(
                self.samples.copy(),
                sa={k: v.copy() for k, v in self.sa.items()},
                fa={k: v.copy() for k, v in self.fa.items()},
                a=copy.deepcopy(self.a),
            )
        return Dataset(self.samples, sa=self.sa, fa=self.fa, a=self.a)

    def slice(self, indices: Union[Sequence[int], np.ndarray], axis: int = 0) -> 'Dataset':
        """Select samples (axis=0) or features (axis=1).

        Parameters
        ----------
        indices : array-like
            Integer indices or a boolean mask.
        axis : int
            0 to slice samples, 1 to slice features.

        Returns
        -------
        Dataset
            New dataset; dataset attributes are copied unchanged.
        """
        if axis not in (0, 1):
            raise InvalidInput(f"axis must be 0 or 1, got {axis!r}")

        n = self.samples.shape[axis]
        idx = np.asarray(indices)
        if idx.dtype == bool:
            if idx.shape != (n,):
                raise InvalidInput(
                    f"Boolean mask has shape {idx.shape}, expected ({n},)"
                )
            idx = np.flatnonzero(idx)
        elif idx.size == 0:
            idx = idx.astype(int)
        elif not np.issubdtype(idx.dtype, np.integer):
            raise InvalidInput("indices must be integers or a boolean mask")
        if idx.size and (idx.min() < -n or idx.max() >= n):
            raise InvalidInput(f"indices out of range for axis of size {n}")

        samples = np.take(self.samples, idx, axis=axis)
        if axis == 0:
            sa = {k: v[idx] for k, v in self.sa.items()}
            fa = {k: v.copy() for k, v in self.fa.items()}
        else:
            sa = {k: v.copy() for k, v in self.sa.items()}
            fa = {k: v[idx] for k, v in self.fa.items()}

        return Dataset(samples, sa=sa, fa=fa, a=copy.deepcopy(self.a))


def as_samples(ds_or_array) -> np.ndarray:
    """Return the samples array of a dataset, or the array itself."""
    if isinstance(ds_or_array, Dataset):
        return ds_or_array.samples
    return np.asarray(ds_or_array)
