"""
Dataset containers.

Public API:
    Dataset: Samples matrix with sample, feature and dataset attributes.
    fmri_dataset: Build a volumetric dataset from a nibabel image or array.
    map2fmri: Convert a volumetric dataset back to a NIfTI image.
    synthetic_dataset: Deterministic fMRI or MEEG example data.
"""

from cosmovpa.datasets.base import Dataset
from cosmovpa.datasets.fmri import (
    feature_index,
    fmri_dataset,
    map2fmri,
    unflatten,
    voxel_to_world,
    world_to_voxel,
)
from cosmovpa.datasets.synthetic import synthetic_dataset

__all__ = [
    "Dataset",
    "fmri_dataset",
    "map2fmri",
    "unflatten",
    "voxel_to_world",
    "world_to_voxel",
    "feature_index",
    "synthetic_dataset",
]
