"""
cosmovpa: multivariate pattern analysis for fMRI and MEEG datasets.

Dataset containers, orientation handling of volumetric data, neighborhoods
and clustering, normalization, SVM classification and MEEG channel-type
inference.
"""

__version__ = '0.1.0'

from cosmovpa.datasets import Dataset, fmri_dataset, map2fmri, synthetic_dataset
from cosmovpa.errors import (
    AmbiguousOrientation,
    ChannelTypeError,
    ClassifierError,
    CosmoError,
    DimensionMismatch,
    InvalidInput,
    InvalidNeighborhood,
    InvalidOrientation,
)
