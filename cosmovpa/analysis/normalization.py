"""
Normalization of samples with reusable parameters.

Parameters estimated on one dataset (e.g. a training set) can be applied to
another (e.g. the matching test set):

    >>> train_norm, params = normalize(train, 'zscore')
    >>> test_norm, _ = normalize(test, params)

``axis=0`` (default) computes statistics per feature across samples;
``axis=1`` computes them per sample across features. A trailing 1 or 2 on the
method name ('demean1', 'zscore2') selects the same axes.
"""

import dataclasses
import logging
import warnings
from enum import Enum
from typing import Callable, Optional, Tuple, Union

import numpy as np

from cosmovpa.datasets.base import Dataset, as_samples
from cosmovpa.errors import DimensionMismatch, InvalidInput

logger = logging.getLogger(__name__)


class NormalizationMethod(Enum):
    NONE = 'none'
    DEMEAN = 'demean'
    ZSCORE = 'zscore'
    SCALE_UNIT = 'scale_unit'

    @classmethod
    def parse(cls, value) -> 'NormalizationMethod':
        """Return the method for an enum member, a name or None ('none')."""
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        valid = [m.value for m in cls]
        raise InvalidInput(f"Unsupported normalization {value!r}; use one of {valid}")

    @classmethod
    def parse_with_axis(cls, value) -> Tuple['NormalizationMethod', Optional[int]]:
        """Parse a method name that may end in a 1-based axis suffix.

        'zscore1' normalizes across samples (axis 0) and 'zscore2' across
        features (axis 1). Names without a suffix return ``axis=None``.
        """
        if isinstance(value, str) and value[-1:] in ('1', '2'):
            method = cls.parse(value[:-1])
            if method is cls.NONE:
                raise InvalidInput(f"Unsupported normalization {value!r}")
            return method, int(value[-1]) - 1
        return cls.parse(value), None


@dataclasses.dataclass(frozen=True)
class NormalizationParams:
    """Estimated normalization parameters.

    Statistics keep the reduced axis (shape ``(1, n)`` for axis 0 and
    ``(n, 1)`` for axis 1) so they broadcast against the samples.
    """
    method: NormalizationMethod
    axis: int = 0
    mu: Optional[np.ndarray] = None
    sigma: Optional[np.ndarray] = None
    min: Optional[np.ndarray] = None
    max: Optional[np.ndarray] = None
    n_nonfinite: int = 0

    def __post_init__(self):
        if self.axis not in (0, 1):
            raise InvalidInput(f"axis must be 0 or 1, got {self.axis!r}")
        if self.method is NormalizationMethod.NONE:
            raise InvalidInput("NormalizationParams cannot hold method 'none'")

        required = {
            NormalizationMethod.DEMEAN: ('mu',),
            NormalizationMethod.ZSCORE: ('mu', 'sigma'),
            NormalizationMethod.SCALE_UNIT: ('min', 'max'),
        }[self.method]
        missing = [name for name in required if getattr(self, name) is None]
        if missing:
            raise InvalidInput(f"{self.method.value} parameters missing: {missing}")


def _check_shape(samples: np.ndarray, params: NormalizationParams) -> None:
    other = 1 - params.axis
    for name in ('mu', 'sigma', 'min', 'max'):
        stat = getattr(params, name)
        if stat is not None and stat.shape[other] != samples.shape[other]:
            raise DimensionMismatch(
                f"Parameter '{name}' has {stat.shape[other]} entries along axis "
                f"{other}, samples have {samples.shape[other]}"
            )


def _estimate(samples: np.ndarray, method: NormalizationMethod, axis: int) -> NormalizationParams:
    if method is NormalizationMethod.DEMEAN:
        return NormalizationParams(method, axis,
                                   mu=samples.mean(axis=axis, keepdims=True))
    if method is NormalizationMethod.ZSCORE:
        # a single observation leaves no degrees of freedom; NaN is counted later
        with warnings.catch_warnings(), np.errstate(divide='ignore', invalid='ignore'):
            warnings.simplefilter('ignore', RuntimeWarning)
            sigma = samples.std(axis=axis, ddof=1, keepdims=True)
        return NormalizationParams(method, axis,
                                   mu=samples.mean(axis=axis, keepdims=True),
                                   sigma=sigma)
    if method is NormalizationMethod.SCALE_UNIT:
        return NormalizationParams(method, axis,
                                   min=samples.min(axis=axis, keepdims=True),
                                   max=samples.max(axis=axis, keepdims=True))
    raise InvalidInput(f"Cannot estimate parameters for {method.value!r}")


def _apply(samples: np.ndarray, params: NormalizationParams) -> np.ndarray:
    with np.errstate(divide='ignore', invalid='ignore'):
        if params.method is NormalizationMethod.DEMEAN:
            return samples - params.mu
        if params.method is NormalizationMethod.ZSCORE:
            return (samples - params.mu) / params.sigma
        if params.method is NormalizationMethod.SCALE_UNIT:
            return (samples - params.min) / (params.max - params.min) * 2 - 1
    raise InvalidInput(f"Cannot apply parameters for {params.method.value!r}")


def normalize(
    ds: Union[Dataset, np.ndarray],
    method: Union[str, NormalizationMethod, NormalizationParams, None],
    axis: Optional[int] = None,
    on_nonfinite: Optional[Callable[[int], None]] = None,
) -> Tuple[Union[Dataset, np.ndarray], Optional[NormalizationParams]]:
    """Normalize samples, estimating parameters or applying given ones.

    Parameters
    ----------
    ds : Dataset or array-like
        Dataset, or 2-D array of shape (nsamples, nfeatures).
    method : str, NormalizationMethod or NormalizationParams
        'demean', 'zscore' (sample standard deviation), 'scale_unit'
        (range mapped to [-1, 1]) or 'none'; or parameters returned by an
        earlier call, which are then applied without re-estimation.
        Method names may end in 1 or 2 to select axis 0 or 1, e.g.
        'zscore1' or 'demean2'.
    axis : int, optional
        0 (per feature, default) or 1 (per sample). When applying
        parameters it must match their axis if given.
    on_nonfinite : callable, optional
        Called with the number of NaN/Inf values in the result, when there
        are any. Without it the count is logged as a warning.

    Returns
    -------
    normalized : Dataset or ndarray
        Same type as the input; dataset attributes are preserved.
    params : NormalizationParams or None
        Parameters used (None for 'none').
    """
    if isinstance(method, NormalizationParams):
        params = method
        if axis is not None and axis != params.axis:
            raise InvalidInput(
                f"axis specified as {axis}, but parameters were estimated along {params.axis}"
            )
        estimate = False
    else:
        norm_method, suffix_axis = NormalizationMethod.parse_with_axis(method)
        if norm_method is NormalizationMethod.NONE:
            return ds, None
        if suffix_axis is not None and axis is not None and axis != suffix_axis:
            raise InvalidInput(
                f"axis specified as {axis}, but method {method!r} implies axis {suffix_axis}"
            )
        axis = suffix_axis if axis is None else axis
        axis = 0 if axis is None else axis
        if axis not in (0, 1):
            raise InvalidInput(f"axis must be 0 or 1, got {axis!r}")
        estimate = True

    samples = as_samples(ds)
    if samples.ndim != 2:
        raise InvalidInput(f"samples must be 2-D, got {samples.ndim} dimensions")
    if samples.dtype.kind not in 'biuf':
        raise InvalidInput(f"samples must be numeric, got dtype {samples.dtype}")
    samples = samples.astype(float)

    if estimate:
        params = _estimate(samples, norm_method, axis)
    else:
        _check_shape(samples, params)

    normalized = _apply(samples, params)

    n_nonfinite = int(np.count_nonzero(~np.isfinite(normalized)))
    params = dataclasses.replace(params, n_nonfinite=n_nonfinite)
    if n_nonfinite:
        if on_nonfinite is not None:
            on_nonfinite(n_nonfinite)
        else:
            logger.warning("%d samples are NaN or Inf after normalization", n_nonfinite)

    if isinstance(ds, Dataset):
        result = ds.copy()
        result.samples = normalized
        return result, params
    return normalized, params
