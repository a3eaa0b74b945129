"""
Spatial Clustering Utilities

Provides:
    neighborhood: Neighborhood relations and conversion between their forms
    clusterize: Connected-component clustering over a neighborhood
    cluster_report: Cluster tables with peak statistics and coordinates
"""

from cosmovpa.analysis.stats.cluster_report import cluster_table, generate_cluster_report
from cosmovpa.analysis.stats.clusterize import clusterize, clusterize_rows
from cosmovpa.analysis.stats.neighborhood import (
    NeighborhoodFormat,
    cluster_neighborhood,
    convert_neighborhood,
)

__all__ = [
    "NeighborhoodFormat",
    "cluster_neighborhood",
    "convert_neighborhood",
    "clusterize",
    "clusterize_rows",
    "cluster_table",
    "generate_cluster_report",
]
