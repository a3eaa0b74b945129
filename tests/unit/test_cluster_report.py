#!/usr/bin/env python3
"""
Unit tests for cluster tables and reports.
"""

import numpy as np
import pandas as pd
import pytest

from cosmovpa.analysis.stats import cluster_table, clusterize, generate_cluster_report
from cosmovpa.config import load_config
from cosmovpa.datasets import feature_index, fmri_dataset, synthetic_dataset
from cosmovpa.errors import DimensionMismatch, InvalidInput


@pytest.fixture
def stat_ds():
    """5x5x5 volume with a 3-voxel and a 2-voxel blob of positive values."""
    affine = np.diag([2.0, 2.0, 2.0, 1.0])
    affine[:3, 3] = [-10, -20, -30]
    ds = fmri_dataset(np.zeros((5, 5, 5)), affine=affine)

    big = feature_index(ds, [[1, 1, 1], [1, 1, 2], [1, 1, 3]])
    small = feature_index(ds, [[4, 4, 0], [4, 4, 1]])
    ds.samples[0, big] = [2.0, 5.0, 3.0]
    ds.samples[0, small] = [4.0, 1.5]
    return ds


class TestClusterTable:
    def test_without_dataset(self):
        sample = np.array([1, 1, 0, 2])
        clusters = clusterize(sample, [[0, 1], [0, 1], [2], [3]])
        df = cluster_table(sample, clusters)

        assert list(df['size']) == [2, 1]
        assert list(df['value']) == [1, 2]
        assert 'peak_x_mm' not in df.columns

    def test_empty(self):
        df = cluster_table(np.zeros(3), [])
        assert isinstance(df, pd.DataFrame)
        assert df.empty

    def test_min_cluster_size(self):
        sample = np.array([1, 1, 0, 1])
        clusters = clusterize(sample, [[0, 1], [0, 1], [2], [3]])
        df = cluster_table(sample, clusters, min_cluster_size=2)
        assert len(df) == 1
        assert df.loc[0, 'cluster_id'] == 1

    def test_stat_length_mismatch(self):
        with pytest.raises(DimensionMismatch):
            cluster_table(np.ones(3), [np.array([0, 1, 2])], stat=np.ones(4))

    def test_dataset_length_mismatch(self, stat_ds):
        with pytest.raises(DimensionMismatch):
            cluster_table(np.ones(3), [np.array([0, 1, 2])], ds=stat_ds)


class TestGenerateClusterReport:
    def test_clusters_ranked_by_size(self, stat_ds):
        df = generate_cluster_report(stat_ds, threshold=1.0)

        assert len(df) == 2
        assert list(df['size']) == [3, 2]
        assert list(df['peak_stat']) == [5.0, 4.0]

    def test_peak_coordinates(self, stat_ds):
        df = generate_cluster_report(stat_ds, threshold=1.0)
        first = df.iloc[0]

        assert (first['peak_i'], first['peak_j'], first['peak_k']) == (1, 1, 2)
        assert first['peak_x_mm'] == pytest.approx(-8.0)
        assert first['peak_y_mm'] == pytest.approx(-18.0)
        assert first['peak_z_mm'] == pytest.approx(-26.0)
        assert first['cog_z_mm'] == pytest.approx(-26.0)
        assert first['mean_stat'] == pytest.approx(10.0 / 3)

    def test_threshold_splits_blob(self, stat_ds):
        df = generate_cluster_report(stat_ds, threshold=2.5)
        # voxels 5.0 and 3.0 stay connected; 4.0 forms its own cluster
        assert list(df['size']) == [2, 1]

    def test_connectivity_from_argument(self, stat_ds):
        ds = stat_ds.copy()
        idx = feature_index(ds, [[2, 2, 4]])
        ds.samples[0, idx] = 9.0

        df26 = generate_cluster_report(ds, threshold=1.0, connectivity=26)
        df6 = generate_cluster_report(ds, threshold=1.0, connectivity=6)
        assert len(df26) == 2
        assert len(df6) == 3

    def test_config_min_cluster_size(self, stat_ds):
        config = load_config()
        config['cluster_report']['min_cluster_size'] = 3
        df = generate_cluster_report(stat_ds, threshold=1.0, config=config)
        assert list(df['size']) == [3]

    def test_csv_output(self, stat_ds, tmp_path):
        output = tmp_path / 'reports' / 'clusters.csv'
        df = generate_cluster_report(stat_ds, threshold=1.0, output_file=output)

        assert output.exists()
        loaded = pd.read_csv(output)
        assert list(loaded.columns) == list(df.columns)
        assert len(loaded) == 2

    def test_meeg_dataset(self):
        ds = synthetic_dataset(type='meeg', size='normal')
        df = generate_cluster_report(ds, threshold=0.0)
        assert 'peak_i' not in df.columns
        assert df['size'].sum() == np.count_nonzero(ds.samples[0] > 0)

    def test_sample_index_out_of_range(self, stat_ds):
        with pytest.raises(InvalidInput, match="sample_index"):
            generate_cluster_report(stat_ds, sample_index=3)
