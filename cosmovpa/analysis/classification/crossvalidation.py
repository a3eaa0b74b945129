"""
Cross-validated classification over independent chunks.

Each fold trains on all chunks but one and tests on the held-out chunk.
Normalization, when requested, is estimated on the training samples of each
fold and applied to its test samples.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.model_selection import LeaveOneGroupOut

from cosmovpa.analysis.classification.classifiers import classify_svm_2class
from cosmovpa.analysis.normalization import normalize
from cosmovpa.datasets.base import Dataset
from cosmovpa.errors import InvalidInput

logger = logging.getLogger(__name__)

Partition = Tuple[np.ndarray, np.ndarray]


def nfold_partitions(ds: Dataset) -> List[Partition]:
    """Leave-one-chunk-out partitions as (train_indices, test_indices)."""
    if 'chunks' not in ds.sa:
        raise InvalidInput("Dataset has no 'chunks' sample attribute")
    chunks = ds.sa['chunks']
    if len(np.unique(chunks)) < 2:
        raise InvalidInput("At least two chunks are required for cross-validation")

    logo = LeaveOneGroupOut()
    return [(train, test) for train, test in logo.split(ds.samples, groups=chunks)]


def crossvalidate(
    ds: Dataset,
    classifier: Callable = classify_svm_2class,
    partitions: Optional[Sequence[Partition]] = None,
    normalization=None,
    options=None,
) -> dict:
    """Run a classifier over cross-validation folds.

    Parameters
    ----------
    ds : Dataset
        Dataset with a ``targets`` sample attribute (and ``chunks`` when
        ``partitions`` is not given).
    classifier : callable
        ``classifier(samples_train, targets_train, samples_test[, options])``
        returning predicted targets.
    partitions : sequence of (train, test) index arrays, optional
        Defaults to :func:`nfold_partitions`.
    normalization : str, NormalizationMethod, optional
        Normalization estimated per training fold.
    options : optional
        Passed to the classifier as fourth argument when given.

    Returns
    -------
    dict with keys:
        predictions : ndarray, predicted target per sample (last fold wins);
            object array with None for untested samples if there are any
        tested : ndarray of bool, samples that were in some test set
        accuracy : float, fraction correct over all test predictions
        fold_accuracies : list of float
    """
    if 'targets' not in ds.sa:
        raise InvalidInput("Dataset has no 'targets' sample attribute")
    if partitions is None:
        partitions = nfold_partitions(ds)
    if len(partitions) == 0:
        raise InvalidInput("No partitions to cross-validate")

    targets = ds.sa['targets']
    # samples outside every test set keep None
    predictions = np.full(ds.nsamples, None, dtype=object)
    tested = np.zeros(ds.nsamples, dtype=bool)
    n_correct = 0
    n_total = 0
    fold_accuracies = []

    for fold, (train_idx, test_idx) in enumerate(partitions):
        train_idx = np.asarray(train_idx, dtype=int)
        test_idx = np.asarray(test_idx, dtype=int)
        if np.intersect1d(train_idx, test_idx).size:
            raise InvalidInput(f"Fold {fold} has samples in both train and test sets")

        train = ds.slice(train_idx)
        test = ds.slice(test_idx)
        if normalization is not None:
            train, params = normalize(train, normalization)
            if params is not None:
                test, _ = normalize(test, params)

        args = (train.samples, train.sa['targets'], test.samples)
        predicted = classifier(*args) if options is None else classifier(*args, options)
        predicted = np.asarray(predicted).ravel()

        correct = predicted == targets[test_idx]
        predictions[test_idx] = predicted
        tested[test_idx] = True
        n_correct += int(np.sum(correct))
        n_total += len(test_idx)
        fold_accuracies.append(float(np.mean(correct)) if len(test_idx) else float('nan'))

        logger.debug("Fold %d: accuracy=%.3f (n_test=%d)",
                     fold, fold_accuracies[-1], len(test_idx))

    if tested.all():
        predictions = predictions.astype(targets.dtype)
    accuracy = n_correct / n_total if n_total else float('nan')
    logger.info("Cross-validation accuracy: %.3f over %d folds", accuracy, len(partitions))

    return {
        "predictions": predictions,
        "tested": tested,
        "accuracy": float(accuracy),
        "fold_accuracies": fold_accuracies,
    }
