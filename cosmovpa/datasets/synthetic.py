"""
Deterministic synthetic datasets for examples and tests.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from cosmovpa.datasets.base import Dataset
from cosmovpa.errors import InvalidInput

logger = logging.getLogger(__name__)

FMRI_SIZES = {
    'tiny': (2, 1, 1),
    'small': (3, 2, 1),
    'normal': (3, 2, 5),
    'big': (11, 12, 13),
}

# (number of channels, number of time points)
MEEG_SIZES = {
    'tiny': (1, 2),
    'small': (2, 3),
    'normal': (3, 5),
    'big': (10, 7),
}

VOXEL_SIZE = 2.0


def _sample_attributes(ntargets: int, nchunks: int):
    targets = np.tile(np.arange(1, ntargets + 1), nchunks)
    chunks = np.repeat(np.arange(1, nchunks + 1), ntargets)
    return {'targets': targets, 'chunks': chunks}


def _samples(sa, nfeatures: int, ntargets: int, rng: np.random.Generator) -> np.ndarray:
    patterns = rng.standard_normal((ntargets, nfeatures))
    noise = rng.standard_normal((len(sa['targets']), nfeatures))
    return patterns[sa['targets'] - 1] + noise


def synthetic_dataset(
    type: str = 'fmri',
    size: str = 'normal',
    ntargets: int = 2,
    nchunks: int = 3,
    seed: int = 1,
    channels: Optional[Sequence[str]] = None,
) -> Dataset:
    """Generate a small dataset with a target-dependent signal.

    Parameters
    ----------
    type : str
        'fmri' (voxel features) or 'meeg' (channel x time features).
    size : str
        One of 'tiny', 'small', 'normal', 'big'.
    ntargets : int
        Number of conditions; ``sa['targets']`` runs 1..ntargets.
    nchunks : int
        Number of independent chunks; ``sa['chunks']`` runs 1..nchunks.
    seed : int
        Seed for ``numpy.random.default_rng``.
    channels : sequence of str, optional
        Channel labels for MEEG data; overrides the channel count of ``size``.

    Returns
    -------
    Dataset
        fMRI datasets have a diagonal affine with 2 mm voxels (RAS).
    """
    if ntargets < 1 or nchunks < 1:
        raise InvalidInput("ntargets and nchunks must be positive")

    rng = np.random.default_rng(seed)
    sa = _sample_attributes(ntargets, nchunks)

    if type == 'fmri':
        if size not in FMRI_SIZES:
            raise InvalidInput(f"Unknown size {size!r}; use one of {sorted(FMRI_SIZES)}")
        dim = FMRI_SIZES[size]
        i, j, k = np.nonzero(np.ones(dim, dtype=bool))

        affine = np.diag([VOXEL_SIZE, VOXEL_SIZE, VOXEL_SIZE, 1.0])
        affine[:3, 3] = -VOXEL_SIZE * (np.asarray(dim) - 1) / 2.0

        samples = _samples(sa, len(i), ntargets, rng)
        return Dataset(
            samples,
            sa=sa,
            fa={'i': i, 'j': j, 'k': k},
            a={'vol': {'mat': affine, 'dim': dim}},
        )

    if type == 'meeg':
        if size not in MEEG_SIZES:
            raise InvalidInput(f"Unknown size {size!r}; use one of {sorted(MEEG_SIZES)}")
        nchan, ntime = MEEG_SIZES[size]
        if channels is None:
            channels = [f"EEG{c + 1:03d}" for c in range(nchan)]
        channels = list(channels)
        times = np.round(-0.2 + 0.05 * np.arange(ntime), 6)

        chan = np.repeat(np.arange(len(channels)), ntime)
        time = np.tile(np.arange(ntime), len(channels))

        samples = _samples(sa, len(chan), ntargets, rng)
        return Dataset(
            samples,
            sa=sa,
            fa={'chan': chan, 'time': time},
            a={'fdim': {'labels': ['chan', 'time'], 'values': [channels, times]}},
        )

    raise InvalidInput(f"Unknown dataset type {type!r}; use 'fmri' or 'meeg'")
