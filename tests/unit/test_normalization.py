#!/usr/bin/env python3
"""
Unit tests for sample normalization.
"""

import logging

import numpy as np
import pytest

from cosmovpa.analysis.normalization import (
    NormalizationMethod,
    NormalizationParams,
    normalize,
)
from cosmovpa.datasets import Dataset
from cosmovpa.errors import DimensionMismatch, InvalidInput


@pytest.fixture
def samples():
    """5x3 samples: columns 2..10, 12..20, 22..30 in steps of 2."""
    return np.arange(1, 16).reshape(3, 5).T * 2


class TestEstimate:
    def test_demean_features(self, samples):
        result, params = normalize(samples, 'demean')
        expected = np.repeat([[-4], [-2], [0], [2], [4]], 3, axis=1)
        np.testing.assert_allclose(result, expected)
        np.testing.assert_allclose(params.mu, [[6, 16, 26]])

    def test_demean_samples(self, samples):
        result, _ = normalize(samples, 'demean', axis=1)
        np.testing.assert_allclose(result, np.tile([-10, 0, 10], (5, 1)))

    def test_zscore_features(self, samples):
        result, params = normalize(samples, 'zscore')
        column = np.array([-2, -1, 0, 1, 2]) / np.sqrt(2.5)
        np.testing.assert_allclose(result, np.tile(column[:, None], (1, 3)))
        np.testing.assert_allclose(result[0, 0], -1.2649, atol=1e-4)
        np.testing.assert_allclose(params.sigma, np.full((1, 3), np.sqrt(10)))

    def test_zscore_samples(self, samples):
        result, params = normalize(samples, 'zscore', axis=1)
        np.testing.assert_allclose(result, np.tile([-1, 0, 1], (5, 1)))
        assert params.axis == 1
        assert params.sigma.shape == (5, 1)

    def test_scale_unit(self, samples):
        result, params = normalize(samples, 'scale_unit')
        column = np.array([-1, -0.5, 0, 0.5, 1])
        np.testing.assert_allclose(result, np.tile(column[:, None], (1, 3)))
        np.testing.assert_allclose(params.min, [[2, 12, 22]])
        np.testing.assert_allclose(params.max, [[10, 20, 30]])

    def test_method_enum_and_case(self, samples):
        a, _ = normalize(samples, NormalizationMethod.ZSCORE)
        b, _ = normalize(samples, 'ZScore')
        np.testing.assert_allclose(a, b)


class TestApplyParams:
    def test_scale_unit_train_test(self, samples):
        train, test = samples[[0, 2, 3]], samples[[1, 4]]
        train_norm, params = normalize(train, 'scale_unit')
        test_norm, test_params = normalize(test, params)

        np.testing.assert_allclose(train_norm, np.tile([[-1], [1 / 3], [1]], (1, 3)))
        np.testing.assert_allclose(test_norm, np.tile([[-1 / 3], [5 / 3]], (1, 3)))
        np.testing.assert_allclose(params.min, [[2, 12, 22]])
        np.testing.assert_allclose(params.max, [[8, 18, 28]])
        np.testing.assert_allclose(test_params.min, params.min)

    def test_params_are_not_reestimated(self, samples):
        _, params = normalize(samples[:2], 'demean')
        result, _ = normalize(samples, params)
        np.testing.assert_allclose(result[:, 0], [-1, 1, 3, 5, 7])

    def test_axis_mismatch(self, samples):
        _, params = normalize(samples, 'zscore', axis=0)
        with pytest.raises(InvalidInput, match="axis"):
            normalize(samples, params, axis=1)

    def test_feature_count_mismatch(self, samples):
        _, params = normalize(samples, 'demean')
        with pytest.raises(DimensionMismatch):
            normalize(np.ones((2, 4)), params)

    def test_params_validation(self):
        with pytest.raises(InvalidInput, match="missing"):
            NormalizationParams(NormalizationMethod.ZSCORE, mu=np.zeros((1, 3)))
        with pytest.raises(InvalidInput):
            NormalizationParams(NormalizationMethod.NONE)


class TestNormalizeMisc:
    def test_none_returns_input(self, samples):
        result, params = normalize(samples, 'none')
        assert result is samples
        assert params is None

    def test_none_as_python_none(self, samples):
        result, params = normalize(samples, None)
        assert result is samples
        assert params is None

    def test_unknown_method(self, samples):
        with pytest.raises(InvalidInput, match="Unsupported"):
            normalize(samples, 'foo')

    def test_invalid_axis(self, samples):
        with pytest.raises(InvalidInput):
            normalize(samples, 'demean', axis=2)

    def test_dataset_in_dataset_out(self, samples):
        ds = Dataset(samples, sa={'targets': [1, 2, 1, 2, 1]}, fa={'f': [0, 1, 2]})
        result, _ = normalize(ds, 'demean')

        assert isinstance(result, Dataset)
        np.testing.assert_array_equal(result.sa['targets'], ds.sa['targets'])
        np.testing.assert_array_equal(result.fa['f'], ds.fa['f'])
        np.testing.assert_array_equal(ds.samples, samples)

    def test_nonfinite_callback(self, samples):
        samples = samples.astype(float)
        samples[:, 1] = 3.0
        counts = []
        _, params = normalize(samples, 'zscore', on_nonfinite=counts.append)

        assert counts == [5]
        assert params.n_nonfinite == 5

    def test_nonfinite_logged(self, samples, caplog):
        samples = samples.astype(float)
        samples[:, 2] = 3.0
        with caplog.at_level(logging.WARNING, logger='cosmovpa.analysis.normalization'):
            normalize(samples, 'scale_unit')
        assert "NaN or Inf" in caplog.text

    def test_single_sample_zscore_uses_only_sink(self, recwarn):
        counts = []
        _, params = normalize(np.array([[1.0, 2.0]]), 'zscore', on_nonfinite=counts.append)

        assert counts == [2]
        assert params.n_nonfinite == 2
        assert not [w for w in recwarn if issubclass(w.category, RuntimeWarning)]

    def test_finite_result_has_no_count(self, samples):
        counts = []
        _, params = normalize(samples, 'zscore', on_nonfinite=counts.append)
        assert counts == []
        assert params.n_nonfinite == 0


class TestAxisSuffix:
    def test_suffix_two_is_per_sample(self, samples):
        suffixed, params = normalize(samples, 'zscore2')
        explicit, _ = normalize(samples, 'zscore', axis=1)
        np.testing.assert_allclose(suffixed, explicit)
        assert params.axis == 1

    def test_suffix_one_is_per_feature(self, samples):
        suffixed, params = normalize(samples, 'demean1')
        explicit, _ = normalize(samples, 'demean')
        np.testing.assert_allclose(suffixed, explicit)
        assert params.axis == 0

    def test_suffix_matching_axis(self, samples):
        _, params = normalize(samples, 'scale_unit2', axis=1)
        assert params.axis == 1

    def test_suffix_conflicts_with_axis(self, samples):
        with pytest.raises(InvalidInput, match="implies axis"):
            normalize(samples, 'zscore2', axis=0)

    @pytest.mark.parametrize("method", ['none1', 'zscore3', 'foo2'])
    def test_invalid_suffixed_names(self, samples, method):
        with pytest.raises(InvalidInput):
            normalize(samples, method)
