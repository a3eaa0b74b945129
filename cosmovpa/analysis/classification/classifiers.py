"""
Two-class support vector machine classifier.

Wraps scikit-learn's SVC behind a fixed set of named options (kernel,
box constraint, KKT tolerance, ...). Options are collected in an
``SVMOptions`` record, validated on construction, and can be read from the
``classification.svm`` section of the configuration.
"""

import dataclasses
import logging
import warnings
from typing import Any, Dict, Optional, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC

from cosmovpa.config import get_config_value
from cosmovpa.errors import ClassifierError, DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)

KERNELS = ('linear', 'rbf', 'polynomial', 'mlp')

NO_CONVERGENCE_MESSAGE = (
    "SVM training did not converge. Your options are:\n"
    " 1) increase 'boxconstraint'\n"
    " 2) increase 'tolkkt'\n"
    " 3) increase 'max_iter' (or set it to -1 for no limit)\n"
    " 4) use a different classifier\n"
    "If you do not have a strong preference for either option, "
    "you are advised to try option (4)"
)


def _not_int(value) -> bool:
    return isinstance(value, bool) or not isinstance(value, int)


@dataclasses.dataclass(frozen=True)
class SVMOptions:
    """Options for :func:`classify_svm_2class`.

    Attributes
    ----------
    kernel_function : str
        'linear', 'rbf' (Gaussian), 'polynomial' or 'mlp' (sigmoid).
    rbf_sigma : float
        Width of the Gaussian kernel.
    polyorder : int
        Order of the polynomial kernel ``(1 + u.v) ** polyorder``.
    mlp_params : tuple of float
        ``(p1, p2)`` of the sigmoid kernel ``tanh(p1 * u.v + p2)``;
        p1 must be positive and p2 negative.
    boxconstraint : float
        Soft-margin box constraint (C).
    tolkkt : float
        Tolerance of the Karush-Kuhn-Tucker stopping criterion.
    kernelcachelimit : float
        Kernel cache size in MB.
    autoscale : bool
        Standardize features using the training data before fitting.
    max_iter : int
        Iteration limit of the solver; -1 for no limit.
    """
    kernel_function: str = 'linear'
    rbf_sigma: float = 1.0
    polyorder: int = 3
    mlp_params: Tuple[float, float] = (1.0, -1.0)
    boxconstraint: float = 1.0
    tolkkt: float = 1e-3
    kernelcachelimit: float = 200
    autoscale: bool = True
    max_iter: int = -1

    def __post_init__(self):
        if self.kernel_function not in KERNELS:
            raise InvalidInput(
                f"kernel_function must be one of {KERNELS}, got {self.kernel_function!r}"
            )
        for name in ('rbf_sigma', 'boxconstraint', 'tolkkt', 'kernelcachelimit'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise InvalidInput(f"{name} must be a positive number, got {value!r}")
        if _not_int(self.polyorder) or self.polyorder < 1:
            raise InvalidInput(f"polyorder must be a positive integer, got {self.polyorder!r}")
        if len(self.mlp_params) != 2 or self.mlp_params[0] <= 0 or self.mlp_params[1] >= 0:
            raise InvalidInput(
                f"mlp_params must be (p1 > 0, p2 < 0), got {self.mlp_params!r}"
            )
        if _not_int(self.max_iter) or (self.max_iter < 1 and self.max_iter != -1):
            raise InvalidInput(f"max_iter must be positive or -1, got {self.max_iter!r}")
        if not isinstance(self.autoscale, bool):
            raise InvalidInput(f"autoscale must be True or False, got {self.autoscale!r}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SVMOptions':
        """Build options from ``classification.svm``; unknown keys are ignored."""
        section = get_config_value(config, 'classification.svm', {}) or {}
        known = {field.name for field in dataclasses.fields(cls)}
        kwargs = {key: value for key, value in section.items() if key in known}
        if 'mlp_params' in kwargs:
            kwargs['mlp_params'] = tuple(kwargs['mlp_params'])
        ignored = sorted(set(section) - known)
        if ignored:
            logger.debug("Ignoring unsupported SVM options: %s", ignored)
        return cls(**kwargs)

    def build_estimator(self):
        """Return an unfitted scikit-learn estimator for these options."""
        kwargs = {
            'C': float(self.boxconstraint),
            'tol': float(self.tolkkt),
            'cache_size': float(self.kernelcachelimit),
            'max_iter': self.max_iter,
        }
        if self.kernel_function == 'linear':
            svc = SVC(kernel='linear', **kwargs)
        elif self.kernel_function == 'rbf':
            svc = SVC(kernel='rbf', gamma=1.0 / (2.0 * self.rbf_sigma ** 2), **kwargs)
        elif self.kernel_function == 'polynomial':
            svc = SVC(kernel='poly', degree=self.polyorder, gamma=1.0, coef0=1.0, **kwargs)
        else:
            p1, p2 = self.mlp_params
            svc = SVC(kernel='sigmoid', gamma=float(p1), coef0=float(p2), **kwargs)

        if self.autoscale:
            return make_pipeline(StandardScaler(), svc)
        return svc


def classify_svm_2class(
    samples_train,
    targets_train,
    samples_test,
    options: Optional[SVMOptions] = None,
) -> np.ndarray:
    """Train a two-class SVM and predict the classes of test samples.

    Parameters
    ----------
    samples_train : array-like, shape (ntrain, nfeatures)
    targets_train : array-like, shape (ntrain,)
        Exactly two distinct classes.
    samples_test : array-like, shape (ntest, nfeatures)
    options : SVMOptions, optional

    Returns
    -------
    ndarray, shape (ntest,)
        Predicted classes.

    Raises
    ------
    DimensionMismatch
        If the sample and target sizes disagree.
    InvalidInput
        If the training targets do not contain exactly two classes.
    ClassifierError
        If training does not converge.
    """
    if options is None:
        options = SVMOptions()

    samples_train = np.asarray(samples_train, dtype=float)
    samples_test = np.asarray(samples_test, dtype=float)
    targets_train = np.asarray(targets_train).ravel()

    if samples_train.ndim != 2 or samples_test.ndim != 2:
        raise InvalidInput("samples_train and samples_test must be 2-D")

    ntrain, nfeatures = samples_train.shape
    ntest, nfeatures_test = samples_test.shape
    if nfeatures != nfeatures_test or len(targets_train) != ntrain:
        raise DimensionMismatch(
            f"illegal input size: train {samples_train.shape}, "
            f"targets {targets_train.shape}, test {samples_test.shape}"
        )

    if nfeatures == 0:
        # nothing to learn from: predict the first training class everywhere
        return np.repeat(targets_train[:1], ntest)

    classes = np.unique(targets_train)
    if len(classes) != 2:
        raise InvalidInput(
            f"classify_svm_2class requires 2 classes, found {len(classes)}. "
            "Consider using a multi-class classifier instead"
        )

    estimator = options.build_estimator()
    with warnings.catch_warnings():
        warnings.simplefilter('error', ConvergenceWarning)
        try:
            estimator.fit(samples_train, targets_train)
        except ConvergenceWarning as e:
            raise ClassifierError(NO_CONVERGENCE_MESSAGE) from e

    return estimator.predict(samples_test)
