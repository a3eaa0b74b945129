"""
Neighborhood relations between features.

A neighborhood maps every feature index to the feature indices adjacent to
it. Three interchangeable representations are supported:

    list:   sequence of length nfeatures; element f holds f's neighbors
    matrix: (nfeatures, max_neighbors) integer array padded with -1
    sparse: scipy.sparse (nfeatures, nfeatures) adjacency matrix

A dense boolean square array is also accepted as an adjacency matrix.
"""

import itertools
import logging
from enum import Enum
from typing import List, Union

import numpy as np
from scipy import sparse

from cosmovpa.config import VALID_CONNECTIVITY
from cosmovpa.datasets.base import Dataset
from cosmovpa.datasets.fmri import get_volume, voxel_indices
from cosmovpa.errors import InvalidInput, InvalidNeighborhood

logger = logging.getLogger(__name__)

PADDING = -1

# Feature dimensions along which neighboring values are adjacent
CONTINUOUS_DIMS = ('time', 'freq')


class NeighborhoodFormat(Enum):
    LIST = 'list'
    MATRIX = 'matrix'
    SPARSE = 'sparse'

    @classmethod
    def parse(cls, value) -> 'NeighborhoodFormat':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = [f.value for f in cls]
            raise InvalidInput(f"Unknown neighborhood format {value!r}; use one of {valid}")


def _check_indices(indices: np.ndarray, nfeatures: int, owner: int) -> np.ndarray:
    if indices.size == 0:
        return np.zeros(0, dtype=int)
    if not np.issubdtype(indices.dtype, np.integer):
        raise InvalidNeighborhood(
            f"Neighbors of feature {owner} must be integers, got dtype {indices.dtype}"
        )
    if indices.ndim != 1:
        raise InvalidNeighborhood(f"Neighbors of feature {owner} must be a flat sequence")
    if indices.min() < 0 or indices.max() >= nfeatures:
        raise InvalidNeighborhood(
            f"Neighbors of feature {owner} out of range [0, {nfeatures}): "
            f"{indices.tolist()}"
        )
    return indices.astype(int)


def _from_sparse(adjacency) -> List[np.ndarray]:
    if adjacency.ndim != 2 or adjacency.shape[0] != adjacency.shape[1]:
        raise InvalidNeighborhood(
            f"Adjacency matrix must be square, got shape {adjacency.shape}"
        )
    csr = sparse.csr_matrix(adjacency)
    csr.eliminate_zeros()
    csr.sort_indices()
    return [csr.indices[csr.indptr[f]:csr.indptr[f + 1]].astype(int)
            for f in range(csr.shape[0])]


def _from_matrix(matrix: np.ndarray) -> List[np.ndarray]:
    if not np.issubdtype(matrix.dtype, np.integer):
        raise InvalidNeighborhood(
            f"Neighborhood matrix must hold integers, got dtype {matrix.dtype}"
        )
    nfeatures = matrix.shape[0]
    if matrix.size and matrix.min() < PADDING:
        raise InvalidNeighborhood(
            f"Neighborhood matrix entries must be >= {PADDING} (padding)"
        )
    return [_check_indices(row[row != PADDING], nfeatures, f)
            for f, row in enumerate(matrix)]


def as_neighbor_lists(nbrhood) -> List[np.ndarray]:
    """Validate a neighborhood and return it in list form.

    Raises
    ------
    InvalidNeighborhood
        If the neighborhood has an unsupported type, a negative or
        out-of-range index, or a non-square adjacency matrix.
    """
    if sparse.issparse(nbrhood):
        return _from_sparse(nbrhood)

    if nbrhood is None or isinstance(nbrhood, (str, bytes, dict)) or np.isscalar(nbrhood):
        raise InvalidNeighborhood(
            f"Neighborhood must be a list, matrix or adjacency matrix, got {nbrhood!r}"
        )

    if isinstance(nbrhood, np.ndarray) and nbrhood.dtype != object:
        if nbrhood.ndim == 2:
            if nbrhood.dtype == bool:
                return _from_sparse(sparse.csr_matrix(nbrhood))
            return _from_matrix(nbrhood)
        if nbrhood.size == 0:
            return []
        raise InvalidNeighborhood(
            f"Neighborhood array must be 2-D, got {nbrhood.ndim} dimensions"
        )

    try:
        rows = list(nbrhood)
    except TypeError:
        raise InvalidNeighborhood(
            f"Neighborhood must be a list, matrix or adjacency matrix, got {type(nbrhood).__name__}"
        )

    nfeatures = len(rows)
    neighbors = []
    for f, row in enumerate(rows):
        if np.isscalar(row) or isinstance(row, (str, bytes)):
            raise InvalidNeighborhood(f"Neighbors of feature {f} must be a sequence, got {row!r}")
        neighbors.append(_check_indices(np.asarray(row), nfeatures, f))
    return neighbors


def convert_neighborhood(nbrhood, fmt: Union[str, NeighborhoodFormat] = 'list'):
    """Convert a neighborhood to the ``list``, ``matrix`` or ``sparse`` form.

    Parameters
    ----------
    nbrhood : list, ndarray or scipy.sparse matrix
        Neighborhood in any supported form.
    fmt : str or NeighborhoodFormat
        Output format.

    Returns
    -------
    list of ndarray, ndarray or scipy.sparse.csr_matrix
    """
    fmt = NeighborhoodFormat.parse(fmt)
    neighbors = as_neighbor_lists(nbrhood)
    nfeatures = len(neighbors)

    if fmt is NeighborhoodFormat.LIST:
        return neighbors

    if fmt is NeighborhoodFormat.MATRIX:
        width = max((len(n) for n in neighbors), default=0)
        matrix = np.full((nfeatures, width), PADDING, dtype=int)
        for f, nbrs in enumerate(neighbors):
            matrix[f, :len(nbrs)] = nbrs
        return matrix

    rows = np.repeat(np.arange(nfeatures), [len(n) for n in neighbors])
    cols = np.concatenate(neighbors) if nfeatures else np.zeros(0, dtype=int)
    data = np.ones(len(rows), dtype=bool)
    return sparse.csr_matrix((data, (rows, cols)), shape=(nfeatures, nfeatures))


def _connectivity_offsets(connectivity: int) -> np.ndarray:
    max_steps = {6: 1, 18: 2, 26: 3}[connectivity]
    offsets = [offset for offset in itertools.product((-1, 0, 1), repeat=3)
               if sum(abs(o) for o in offset) <= max_steps]
    return np.array(offsets, dtype=int)


def _volume_adjacency(ds: Dataset, connectivity: int) -> sparse.csr_matrix:
    _, dim = get_volume(ds)
    ijk = voxel_indices(ds)
    nfeatures = len(ijk)

    if np.any(ijk < 0) or np.any(ijk >= np.asarray(dim)):
        raise InvalidInput(f"Voxel indices fall outside volume of size {dim}")

    lookup = np.full(dim, PADDING, dtype=int)
    lookup[ijk[:, 0], ijk[:, 1], ijk[:, 2]] = np.arange(nfeatures)
    if np.count_nonzero(lookup != PADDING) != nfeatures:
        raise InvalidInput("Dataset has duplicate voxel indices")

    sources, targets = [], []
    for offset in _connectivity_offsets(connectivity):
        shifted = ijk + offset
        inside = np.all((shifted >= 0) & (shifted < np.asarray(dim)), axis=1)
        found = np.full(nfeatures, PADDING, dtype=int)
        found[inside] = lookup[shifted[inside, 0], shifted[inside, 1], shifted[inside, 2]]
        hit = found != PADDING
        sources.append(np.flatnonzero(hit))
        targets.append(found[hit])

    rows = np.concatenate(sources)
    cols = np.concatenate(targets)
    return sparse.csr_matrix(
        (np.ones(len(rows), dtype=bool), (rows, cols)), shape=(nfeatures, nfeatures)
    )


def _fdim_adjacency(ds: Dataset) -> sparse.csr_matrix:
    labels = ds.a['fdim']['labels']
    missing = [label for label in labels if label not in ds.fa]
    if missing:
        raise InvalidInput(f"Dataset is missing feature attributes for dimensions {missing}")

    # features are adjacent when discrete dims match and continuous dims differ by <= 1
    keys = [tuple(int(ds.fa[label][f]) for label in labels) for f in range(ds.nfeatures)]
    lookup = {key: f for f, key in enumerate(keys)}
    continuous = [d for d, label in enumerate(labels) if label in CONTINUOUS_DIMS]
    steps = list(itertools.product((-1, 0, 1), repeat=len(continuous)))

    rows, cols = [], []
    for f, key in enumerate(keys):
        for step in steps:
            neighbor = list(key)
            for d, delta in zip(continuous, step):
                neighbor[d] += delta
            g = lookup.get(tuple(neighbor))
            if g is not None:
                rows.append(f)
                cols.append(g)

    return sparse.csr_matrix(
        (np.ones(len(rows), dtype=bool), (rows, cols)), shape=(ds.nfeatures, ds.nfeatures)
    )


def cluster_neighborhood(ds: Dataset, connectivity: int = 26) -> List[np.ndarray]:
    """Build the neighborhood used for clustering the features of ``ds``.

    Every feature is its own neighbor.

    Parameters
    ----------
    ds : Dataset
        Volumetric dataset (``a['vol']`` plus voxel indices) or a dataset
        with ``a['fdim']`` feature dimensions.
    connectivity : int
        For volumetric data: 6 (shared faces), 18 (faces and edges) or 26
        (faces, edges and corners). For ``fdim`` datasets features are
        adjacent when they match on all dimensions except ``time``/``freq``,
        which may differ by one step.

    Returns
    -------
    list of ndarray
        Neighborhood in list form.
    """
    if 'vol' in ds.a:
        if connectivity not in VALID_CONNECTIVITY:
            raise InvalidInput(
                f"connectivity must be one of {VALID_CONNECTIVITY}, got {connectivity!r}"
            )
        adjacency = _volume_adjacency(ds, connectivity)
    elif 'fdim' in ds.a:
        adjacency = _fdim_adjacency(ds)
    else:
        raise InvalidInput("Dataset has neither a['vol'] nor a['fdim'] to define neighbors")

    neighbors = _from_sparse(adjacency)
    logger.debug("Cluster neighborhood: %d features, %.1f neighbors on average",
                 len(neighbors), np.mean([len(n) for n in neighbors]) if neighbors else 0.0)
    return neighbors
