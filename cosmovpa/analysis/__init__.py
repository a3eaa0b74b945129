"""
cosmovpa Analysis Module

Submodules:
    normalization: Demeaning, z-scoring and unit scaling with reusable parameters
    classification: Two-class SVM and cross-validation over chunks
    stats: Neighborhoods, clustering and cluster reports
"""
