"""
Alignment of two sets of attributes.

``align(x, y)`` finds the permutation that reorders ``x`` into ``y``. Both
sides may be a single vector, a list of equal-length vectors compared
jointly (e.g. targets and chunks), or a dict of vectors with the same keys.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Tuple

import numpy as np

from cosmovpa.datasets.base import Dataset
from cosmovpa.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)


class _NaN:
    """Hashable stand-in so that NaN matches NaN."""

    def __repr__(self):
        return 'nan'


_NAN = _NaN()


def _key(value) -> Any:
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return _NAN
    if isinstance(value, np.generic):
        return value.item()
    return value


def _is_vector(value) -> bool:
    return isinstance(value, (list, tuple, np.ndarray))


def _columns(x) -> Tuple[str, Any, List[list]]:
    if isinstance(x, Dataset):
        raise InvalidInput("Cannot align datasets directly; align their attributes instead")

    if isinstance(x, Mapping):
        keys = sorted(x)
        columns = [x[key] for key in keys]
        kind = 'mapping'
    elif isinstance(x, (list, tuple)) and x and all(_is_vector(item) for item in x):
        keys = len(x)
        columns = list(x)
        kind = 'columns'
    elif _is_vector(x):
        keys = None
        columns = [x]
        kind = 'vector'
    else:
        raise InvalidInput(f"Cannot align input of type {type(x).__name__}")

    result = []
    for column in columns:
        if not _is_vector(column):
            raise InvalidInput(f"Expected a vector, got {type(column).__name__}")
        column = np.asarray(column)
        if column.ndim != 1:
            raise InvalidInput(f"Expected a vector, got shape {column.shape}")
        result.append([_key(v) for v in column])

    lengths = {len(column) for column in result}
    if len(lengths) > 1:
        raise DimensionMismatch(f"Vectors to align have different lengths: {sorted(lengths)}")
    return kind, keys, result


def _rows(columns: List[list], side: str) -> List[tuple]:
    rows = list(zip(*columns)) if columns else []
    if len(set(rows)) != len(rows):
        raise InvalidInput(f"Values in {side} are not unique")
    return rows


def align(x, y) -> Tuple[np.ndarray, np.ndarray]:
    """Find permutations between two sets of unique values.

    Parameters
    ----------
    x, y : vector, list of vectors or dict of vectors
        Inputs of the same kind, length and keys.

    Returns
    -------
    mp : ndarray of int
        Indices such that ``x[mp]`` equals ``y``.
    pm : ndarray of int
        Indices such that ``y[pm]`` equals ``x``.

    Raises
    ------
    InvalidInput
        If the inputs are of different kinds or keys, contain repeated
        values (rows), or ``y`` holds values not present in ``x``.
    DimensionMismatch
        If vector lengths differ.
    """
    kind_x, keys_x, columns_x = _columns(x)
    kind_y, keys_y, columns_y = _columns(y)

    if kind_x != kind_y or keys_x != keys_y:
        raise InvalidInput(f"Cannot align {kind_x} input with {kind_y} input (or keys differ)")

    n_x = len(columns_x[0]) if columns_x else 0
    n_y = len(columns_y[0]) if columns_y else 0
    if n_x != n_y:
        raise DimensionMismatch(f"Inputs have different lengths: {n_x} and {n_y}")

    rows_x = _rows(columns_x, 'x')
    rows_y = _rows(columns_y, 'y')

    position = {row: index for index, row in enumerate(rows_x)}
    missing = [row for row in rows_y if row not in position]
    if missing:
        raise InvalidInput(f"Values {missing[:3]} in y are not present in x")

    mp = np.array([position[row] for row in rows_y], dtype=int)
    pm = np.empty_like(mp)
    pm[mp] = np.arange(len(mp))
    return mp, pm
