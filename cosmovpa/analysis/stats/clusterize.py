"""
Connected-component clustering of feature values over a neighborhood.

Features with value zero (or False) are inactive. Active features that
share the same value and are linked through the neighborhood form a
cluster. Links are undirected: a single listing of g among f's neighbors
(or f among g's) connects f and g.
"""

import logging
from typing import List

import networkx as nx
import numpy as np

from cosmovpa.analysis.stats.neighborhood import as_neighbor_lists
from cosmovpa.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)


def _as_values(sample, allow_rows: bool) -> np.ndarray:
    if isinstance(sample, (str, bytes)):
        raise InvalidInput(f"Values must be numeric, got {type(sample).__name__}")

    values = np.asarray(sample)
    if values.dtype.kind not in 'biuf':
        raise InvalidInput(f"Values must be numeric or boolean, got dtype {values.dtype}")
    if values.ndim == 0:
        raise InvalidInput("Values must be a vector, got a scalar")
    if values.ndim > 2:
        raise InvalidInput(f"Values must be a vector or matrix, got {values.ndim} dimensions")
    if values.ndim == 2 and values.shape[0] != 1 and not allow_rows:
        raise InvalidInput(
            f"Values must be a single row, got shape {values.shape}; "
            "use clusterize_rows for multiple rows"
        )
    if values.dtype.kind == 'f' and not np.all(np.isfinite(values)):
        raise InvalidInput("Values contain NaN or Inf")
    return values


def _check_lengths(nvalues: int, neighbors: List[np.ndarray]) -> None:
    if nvalues != len(neighbors):
        raise DimensionMismatch(
            f"Values have {nvalues} features but the neighborhood has {len(neighbors)}"
        )


def _clusterize_vector(values: np.ndarray, neighbors: List[np.ndarray]) -> List[np.ndarray]:
    active = np.flatnonzero(values)

    graph = nx.Graph()
    graph.add_nodes_from(int(f) for f in active)
    for f in active:
        nbrs = neighbors[f]
        linked = nbrs[(nbrs != f) & (values[nbrs] == values[f])]
        graph.add_edges_from((int(f), int(g)) for g in linked)

    clusters = [np.array(sorted(component), dtype=int)
                for component in nx.connected_components(graph)]
    clusters.sort(key=lambda c: (values[c[0]], c[0]))
    return clusters


def clusterize(sample, nbrhood) -> List[np.ndarray]:
    """Find clusters of connected features that share a nonzero value.

    Parameters
    ----------
    sample : array-like, shape (nfeatures,) or (1, nfeatures)
        Numeric or boolean values; zero marks inactive features.
    nbrhood : list, ndarray or scipy.sparse matrix
        Neighborhood relation (see ``cosmovpa.analysis.stats.neighborhood``).

    Returns
    -------
    list of ndarray
        One array of feature indices (ascending) per cluster. Clusters are
        ordered by value, then by their smallest feature index.

    Raises
    ------
    InvalidInput
        If ``sample`` is not a finite numeric vector or single row.
    InvalidNeighborhood
        If ``nbrhood`` is malformed.
    DimensionMismatch
        If the neighborhood does not cover exactly the features of ``sample``.
    """
    values = _as_values(sample, allow_rows=False).ravel()
    neighbors = as_neighbor_lists(nbrhood)
    _check_lengths(len(values), neighbors)

    clusters = _clusterize_vector(values, neighbors)
    logger.debug("Found %d clusters among %d active features",
                 len(clusters), np.count_nonzero(values))
    return clusters


def clusterize_rows(samples, nbrhood) -> List[List[np.ndarray]]:
    """Apply :func:`clusterize` to every row of ``samples`` independently.

    Returns
    -------
    list
        One cluster list per row.
    """
    values = _as_values(samples, allow_rows=True)
    if values.ndim == 1:
        values = values[np.newaxis, :]
    neighbors = as_neighbor_lists(nbrhood)
    _check_lengths(values.shape[1], neighbors)

    return [_clusterize_vector(row, neighbors) for row in values]
