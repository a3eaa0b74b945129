#!/usr/bin/env python3
"""
Cluster Extraction and Reporting

Summarises the clusters found by ``clusterize`` in a table ranked by size,
with peak statistics and, for volumetric datasets, peak and center-of-gravity
coordinates in voxel and world (mm) space.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from cosmovpa.analysis.stats.clusterize import clusterize
from cosmovpa.analysis.stats.neighborhood import cluster_neighborhood
from cosmovpa.config import get_config_value, load_config
from cosmovpa.datasets.base import Dataset
from cosmovpa.datasets.fmri import voxel_indices, voxel_to_world
from cosmovpa.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)


def cluster_table(
    sample,
    clusters: List[np.ndarray],
    ds: Optional[Dataset] = None,
    stat=None,
    min_cluster_size: int = 1
) -> pd.DataFrame:
    """
    Tabulate clusters with their size and peak statistic.

    Args:
        sample: Per-feature values the clusters were computed from
        clusters: Output of ``clusterize``
        ds: Dataset the features belong to; volumetric datasets add
            voxel and mm coordinates of the peak and center of gravity
        stat: Per-feature statistic used for the peak (default: sample)
        min_cluster_size: Minimum cluster size in features

    Returns:
        DataFrame with one row per cluster, largest first
    """
    values = np.asarray(sample).ravel()
    stat = values.astype(float) if stat is None else np.asarray(stat, dtype=float).ravel()
    if stat.shape != values.shape:
        raise DimensionMismatch(
            f"stat has {stat.size} values but sample has {values.size}"
        )
    if ds is not None and ds.nfeatures != values.size:
        raise DimensionMismatch(
            f"Dataset has {ds.nfeatures} features but sample has {values.size}"
        )

    volumetric = ds is not None and 'vol' in ds.a
    ijk = voxel_indices(ds) if volumetric else None

    rows = []
    for cluster_id, members in enumerate(clusters, start=1):
        members = np.asarray(members, dtype=int)
        if len(members) < min_cluster_size:
            continue

        cluster_stats = stat[members]
        peak = int(members[np.argmax(np.abs(cluster_stats))])

        row: Dict[str, Any] = {
            'cluster_id': cluster_id,
            'value': values[members[0]].item(),
            'size': len(members),
            'peak_feature': peak,
            'peak_stat': float(stat[peak]),
            'mean_stat': float(np.mean(cluster_stats)),
        }

        if volumetric:
            peak_mm = voxel_to_world(ds, ijk[peak])[0]
            cog_mm = voxel_to_world(ds, ijk[members].mean(axis=0))[0]
            row.update({
                'peak_i': int(ijk[peak, 0]),
                'peak_j': int(ijk[peak, 1]),
                'peak_k': int(ijk[peak, 2]),
                'peak_x_mm': float(peak_mm[0]),
                'peak_y_mm': float(peak_mm[1]),
                'peak_z_mm': float(peak_mm[2]),
                'cog_x_mm': float(cog_mm[0]),
                'cog_y_mm': float(cog_mm[1]),
                'cog_z_mm': float(cog_mm[2]),
            })

        rows.append(row)

    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.sort_values(['size', 'cluster_id'], ascending=[False, True])
        df = df.reset_index(drop=True)

    logger.info(f"Tabulated {len(df)} clusters (min size={min_cluster_size})")
    return df


def generate_cluster_report(
    ds: Dataset,
    sample_index: int = 0,
    threshold: Optional[float] = None,
    connectivity: Optional[int] = None,
    min_cluster_size: Optional[int] = None,
    output_file: Optional[Union[str, Path]] = None,
    config: Optional[Dict[str, Any]] = None
) -> pd.DataFrame:
    """
    Cluster one sample of a dataset and tabulate the result.

    Args:
        ds: Volumetric or MEEG dataset
        sample_index: Row of ``ds.samples`` to cluster
        threshold: If set, features with value > threshold are active and
            the sample values are used as the peak statistic; otherwise the
            values themselves are cluster labels
        connectivity: Voxel connectivity (default from config)
        min_cluster_size: Minimum cluster size (default from config)
        output_file: Optional CSV path for the table
        config: Configuration dict (default: packaged defaults)

    Returns:
        DataFrame from ``cluster_table``
    """
    if config is None:
        config = load_config()
    if connectivity is None:
        connectivity = get_config_value(config, 'neighborhood.connectivity', 26)
    if min_cluster_size is None:
        min_cluster_size = get_config_value(config, 'cluster_report.min_cluster_size', 1)

    if not -ds.nsamples <= sample_index < ds.nsamples:
        raise InvalidInput(
            f"sample_index {sample_index} out of range for {ds.nsamples} samples"
        )

    values = ds.samples[sample_index]
    stat = None
    if threshold is not None:
        stat = values
        values = values > threshold
        logger.info(f"{int(values.sum())} of {values.size} features above {threshold}")

    nbrhood = cluster_neighborhood(ds, connectivity=connectivity)
    clusters = clusterize(values, nbrhood)
    df = cluster_table(values, clusters, ds=ds, stat=stat,
                       min_cluster_size=min_cluster_size)

    if output_file is not None:
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_file, index=False)
        logger.info(f"Saved cluster table: {output_file}")

    return df
