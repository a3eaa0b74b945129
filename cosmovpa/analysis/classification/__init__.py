"""
Classification Module.

Two-class SVM classification (scikit-learn SVC behind named options) and
leave-one-chunk-out cross-validation with optional per-fold normalization.
"""

from cosmovpa.analysis.classification.classifiers import SVMOptions, classify_svm_2class
from cosmovpa.analysis.classification.crossvalidation import crossvalidate, nfold_partitions

__all__ = [
    "SVMOptions",
    "classify_svm_2class",
    "nfold_partitions",
    "crossvalidate",
]
