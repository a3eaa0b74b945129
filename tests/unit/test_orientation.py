#!/usr/bin/env python3
"""
Unit tests for orientation handling of volumetric datasets.

Tests:
- Enumeration and validation of orientation codes
- Orientation derived from affines (including ambiguous ones)
- Reorientation to every valid code and back
"""

import numpy as np
import pytest

from cosmovpa.datasets import (
    feature_index,
    synthetic_dataset,
    voxel_to_world,
    world_to_voxel,
)
from cosmovpa.datasets.fmri import voxel_indices
from cosmovpa.errors import AmbiguousOrientation, InvalidInput, InvalidOrientation
from cosmovpa.utils.orientation import (
    all_orientations,
    fmri_orientation,
    orientation_from_affine,
    orientation_transform,
    reorient,
    validate_orientation,
)


@pytest.fixture
def volume_ds():
    """Single-sample volumetric dataset with a shifted origin."""
    ds = synthetic_dataset(size='big', ntargets=1, nchunks=1)
    ds.a['vol']['mat'][:3, 3] -= 20
    return ds


def _rotation_z(degrees: float) -> np.ndarray:
    theta = np.deg2rad(degrees)
    affine = np.eye(4)
    affine[:2, :2] = [[np.cos(theta), -np.sin(theta)],
                      [np.sin(theta), np.cos(theta)]]
    return affine


class TestAllOrientations:
    def test_count(self):
        assert len(all_orientations()) == 48

    def test_unique(self):
        assert len(set(all_orientations())) == 48

    def test_all_valid(self):
        for code in all_orientations():
            assert validate_orientation(code) == code

    def test_contains_common_codes(self):
        codes = all_orientations()
        for code in ('RAS', 'LPI', 'LAS', 'RPI', 'SAR', 'PIL'):
            assert code in codes


class TestValidateOrientation:
    def test_lowercase_is_normalized(self):
        assert validate_orientation('ras') == 'RAS'

    @pytest.mark.parametrize("code", ['XYZ', 'RRS', 'RLA', 'RA', 'RASL', ''])
    def test_invalid_codes(self, code):
        with pytest.raises(InvalidOrientation):
            validate_orientation(code)

    def test_non_string(self):
        with pytest.raises(InvalidOrientation, match="string"):
            validate_orientation(123)


class TestOrientationFromAffine:
    def test_identity_is_ras(self):
        assert orientation_from_affine(np.eye(4)) == 'RAS'

    def test_flipped_x(self):
        affine = np.diag([-2.0, 2.0, 2.0, 1.0])
        assert orientation_from_affine(affine) == 'LAS'

    def test_permuted_axes(self):
        affine = np.array([
            [0, 0, 2, 0],
            [2, 0, 0, 0],
            [0, -2, 0, 0],
            [0, 0, 0, 1],
        ], dtype=float)
        assert orientation_from_affine(affine) == 'AIR'

    def test_small_rotation_keeps_orientation(self):
        assert orientation_from_affine(_rotation_z(10)) == 'RAS'

    def test_ambiguous_axis_raises(self):
        with pytest.raises(AmbiguousOrientation):
            orientation_from_affine(_rotation_z(45))

    def test_ambiguous_is_invalid_orientation(self):
        assert issubclass(AmbiguousOrientation, InvalidOrientation)

    def test_singular_affine(self):
        affine = np.eye(4)
        affine[2, 2] = 0
        with pytest.raises(InvalidOrientation, match="singular"):
            orientation_from_affine(affine)

    def test_wrong_shape(self):
        with pytest.raises(InvalidOrientation, match="4x4"):
            orientation_from_affine(np.eye(3))


class TestOrientationTransform:
    def test_identity(self):
        transform = orientation_transform('RAS', 'RAS')
        np.testing.assert_array_equal(transform, [[0, 1], [1, 1], [2, 1]])

    def test_flip_and_permute(self):
        transform = orientation_transform('RAS', 'SAL')
        np.testing.assert_array_equal(transform, [[2, -1], [1, 1], [0, 1]])


class TestReorient:
    def test_synthetic_is_ras(self, volume_ds):
        assert fmri_orientation(volume_ds) == 'RAS'

    @pytest.mark.parametrize("target", all_orientations())
    def test_orientation_matches_target(self, volume_ds, target):
        ds_ro = reorient(volume_ds, target)
        assert fmri_orientation(ds_ro) == target

    @pytest.mark.parametrize("target", all_orientations())
    def test_round_trip(self, volume_ds, target):
        orig = fmri_orientation(volume_ds)
        ds2 = reorient(reorient(volume_ds, target), orig)

        np.testing.assert_array_equal(ds2.samples, volume_ds.samples)
        np.testing.assert_allclose(ds2.a['vol']['mat'], volume_ds.a['vol']['mat'],
                                   atol=1e-5)
        assert ds2.a['vol']['dim'] == volume_ds.a['vol']['dim']
        for name in ('i', 'j', 'k'):
            np.testing.assert_array_equal(ds2.fa[name], volume_ds.fa[name])

    @pytest.mark.parametrize("target", ['LPI', 'SAR', 'AIL', 'RAS'])
    def test_world_coordinates_preserved(self, volume_ds, target):
        ds_ro = reorient(volume_ds, target)
        xyz = voxel_to_world(volume_ds, voxel_indices(volume_ds))
        xyz_ro = voxel_to_world(ds_ro, voxel_indices(ds_ro))
        np.testing.assert_allclose(xyz_ro, xyz, atol=1e-5)

    @pytest.mark.parametrize("target", ['LPI', 'PSL', 'IRA'])
    def test_values_at_world_points(self, volume_ds, target):
        rng = np.random.default_rng(0)
        features = rng.choice(volume_ds.nfeatures, size=10, replace=False)
        ijk = voxel_indices(volume_ds)[features]
        xyz = voxel_to_world(volume_ds, ijk)

        ds_ro = reorient(volume_ds, target)
        idx_ro = feature_index(ds_ro, world_to_voxel(ds_ro, xyz))

        np.testing.assert_allclose(
            volume_ds.samples[:, features], ds_ro.samples[:, idx_ro], atol=1e-5
        )

    def test_permuted_dims(self, volume_ds):
        ds_ro = reorient(volume_ds, 'SAR')
        assert volume_ds.a['vol']['dim'] == (11, 12, 13)
        assert ds_ro.a['vol']['dim'] == (13, 12, 11)

    def test_flip_reverses_indices(self, volume_ds):
        ds_ro = reorient(volume_ds, 'LAS')
        np.testing.assert_array_equal(ds_ro.fa['i'], 10 - volume_ds.fa['i'])
        np.testing.assert_array_equal(ds_ro.fa['j'], volume_ds.fa['j'])

    def test_input_not_modified(self, volume_ds):
        mat = volume_ds.a['vol']['mat'].copy()
        i = volume_ds.fa['i'].copy()
        reorient(volume_ds, 'LPI')
        np.testing.assert_array_equal(volume_ds.a['vol']['mat'], mat)
        np.testing.assert_array_equal(volume_ds.fa['i'], i)

    def test_same_orientation_returns_copy(self, volume_ds):
        ds_ro = reorient(volume_ds, 'ras')
        assert ds_ro is not volume_ds
        np.testing.assert_array_equal(ds_ro.a['vol']['mat'], volume_ds.a['vol']['mat'])

    def test_invalid_target(self, volume_ds):
        with pytest.raises(InvalidOrientation):
            reorient(volume_ds, 'XYZ')

    def test_non_volumetric_dataset(self):
        ds = synthetic_dataset(type='meeg')
        with pytest.raises(InvalidInput):
            reorient(ds, 'LPI')
