#!/usr/bin/env python3
"""
Unit tests for attribute alignment.
"""

import numpy as np
import pytest

from cosmovpa.datasets import synthetic_dataset
from cosmovpa.errors import DimensionMismatch, InvalidInput
from cosmovpa.utils import align


class TestAlign:
    def test_vectors(self):
        x = np.array([1, 4, 3])
        y = np.array([4, 3, 1])
        mp, pm = align(x, y)

        np.testing.assert_array_equal(x[mp], y)
        np.testing.assert_array_equal(y[pm], x)

    def test_strings(self):
        x = ['b', 'c', 'a']
        y = ['a', 'b', 'c']
        mp, pm = align(x, y)
        assert [x[i] for i in mp] == y
        assert [y[i] for i in pm] == x

    def test_nan_matches_nan(self):
        x = np.array([np.nan, 2.0, 1.0])
        y = np.array([1.0, np.nan, 2.0])
        mp, _ = align(x, y)
        np.testing.assert_array_equal(mp, [2, 0, 1])

    def test_multiple_columns(self):
        x = [np.array([1, 1, 2, 2]), np.array([1, 2, 1, 2])]
        y = [np.array([2, 1, 2, 1]), np.array([2, 1, 1, 2])]
        mp, pm = align(x, y)
        for xc, yc in zip(x, y):
            np.testing.assert_array_equal(xc[mp], yc)
            np.testing.assert_array_equal(yc[pm], xc)

    def test_dicts(self):
        ds = synthetic_dataset(ntargets=3, nchunks=2)
        rng = np.random.default_rng(5)
        perm = rng.permutation(ds.nsamples)
        x = {'targets': ds.sa['targets'], 'chunks': ds.sa['chunks']}
        y = {key: value[perm] for key, value in x.items()}

        mp, pm = align(x, y)
        np.testing.assert_array_equal(mp, perm)
        np.testing.assert_array_equal(x['targets'][mp], y['targets'])
        np.testing.assert_array_equal(y['chunks'][pm], x['chunks'])

    def test_empty(self):
        mp, pm = align([], [])
        assert len(mp) == 0
        assert len(pm) == 0


class TestAlignErrors:
    def test_non_unique(self):
        with pytest.raises(InvalidInput, match="unique"):
            align([1, 1, 2], [1, 2, 1])

    def test_missing_value(self):
        with pytest.raises(InvalidInput, match="not present"):
            align([1, 2, 3], [1, 2, 4])

    def test_length_mismatch(self):
        with pytest.raises(DimensionMismatch):
            align([1, 2, 3], [1, 2])

    def test_column_length_mismatch(self):
        with pytest.raises(DimensionMismatch):
            align([np.array([1, 2]), np.array([1, 2, 3])],
                  [np.array([1, 2]), np.array([1, 2])])

    def test_kind_mismatch(self):
        with pytest.raises(InvalidInput):
            align({'a': [1, 2]}, [1, 2])

    def test_key_mismatch(self):
        with pytest.raises(InvalidInput):
            align({'a': [1, 2]}, {'b': [1, 2]})

    def test_dataset_rejected(self):
        ds = synthetic_dataset()
        with pytest.raises(InvalidInput, match="datasets"):
            align(ds, ds)

    def test_matrix_rejected(self):
        with pytest.raises(InvalidInput):
            align(np.zeros((2, 2)), np.zeros((2, 2)))
