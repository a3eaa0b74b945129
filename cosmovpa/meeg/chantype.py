"""
Channel-type inference for MEEG datasets.

Channel labels are compared with the label sets of known sensor types
(e.g. planar gradiometers and magnetometers of one acquisition system).
The best-matching sensor type per channel type decides which channels get
that type. Sensor type definitions are supplied by the caller.
"""

import dataclasses
import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from cosmovpa.config import get_config_value
from cosmovpa.datasets.base import Dataset
from cosmovpa.errors import ChannelTypeError, InvalidInput

logger = logging.getLogger(__name__)

UNKNOWN = 'unknown'


@dataclasses.dataclass(frozen=True)
class SensorType:
    """A set of channel labels from one acquisition system.

    Attributes
    ----------
    name : str
        Key of the sensor type, e.g. 'neuromag306alt_planar'.
    sens : str
        Acquisition type the labels belong to.
    type : str
        Channel type assigned to matching channels, e.g. 'meg_planar'.
    labels : tuple of str
        Channel labels of this sensor type.
    """
    name: str
    sens: str
    type: str
    labels: Tuple[str, ...]

    def __post_init__(self):
        if not self.labels:
            raise InvalidInput(f"Sensor type {self.name!r} has no labels")
        object.__setattr__(self, 'labels', tuple(str(label) for label in self.labels))


@dataclasses.dataclass(frozen=True)
class ChantypeOptions:
    """Minimum match quality for each criterion, tried in order.

    label_threshold: fraction of dataset channels found in the sensor type
    layout_threshold: fraction of sensor type labels found in the dataset
    both_threshold: mean of the two fractions
    """
    label_threshold: float = 0.25
    layout_threshold: float = 0.3
    both_threshold: float = 0.4

    def __post_init__(self):
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if not isinstance(value, (int, float)) or not 0 < value <= 1:
                raise InvalidInput(f"{field.name} must be in (0, 1], got {value!r}")

    @property
    def thresholds(self) -> Tuple[float, float, float]:
        return (self.label_threshold, self.layout_threshold, self.both_threshold)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ChantypeOptions':
        section = get_config_value(config, 'meeg.chantype', {}) or {}
        known = {field.name for field in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in section.items() if key in known})


def _as_sensor_types(senstypes) -> List[SensorType]:
    if isinstance(senstypes, Mapping):
        items = []
        for name, value in senstypes.items():
            if isinstance(value, SensorType):
                items.append(value)
            elif isinstance(value, Mapping):
                items.append(SensorType(
                    name=name,
                    sens=value.get('sens', name),
                    type=value['type'],
                    labels=tuple(value.get('labels', value.get('label', ()))),
                ))
            else:
                raise InvalidInput(f"Sensor type {name!r} must be a SensorType or mapping")
    else:
        items = list(senstypes)
        if not all(isinstance(item, SensorType) for item in items):
            raise InvalidInput("senstypes must be a mapping or a sequence of SensorType")

    if not items:
        raise InvalidInput("No sensor types given")
    return items


def get_channel_labels(ds: Union[Dataset, Sequence[str]]) -> List[str]:
    """Return the channel labels of an MEEG dataset, or the labels themselves."""
    if isinstance(ds, Dataset):
        fdim = ds.a.get('fdim')
        if not isinstance(fdim, Mapping) or 'chan' not in fdim.get('labels', ()):
            raise InvalidInput("Dataset has no 'chan' feature dimension in a['fdim']")
        index = list(fdim['labels']).index('chan')
        return [str(label) for label in fdim['values'][index]]

    if isinstance(ds, str):
        raise InvalidInput("Channel labels must be a sequence of strings, not a string")
    labels = list(ds)
    if not all(isinstance(label, str) for label in labels):
        raise InvalidInput("Channel labels must all be strings")
    return labels


def compute_overlap(labels: Sequence[str], senstypes: Sequence[SensorType]) -> np.ndarray:
    """Overlap quality between channel labels and each sensor type.

    Returns
    -------
    ndarray, shape (n_senstypes, 2)
        Column 0: overlap / number of channel labels.
        Column 1: overlap / number of sensor type labels.
    """
    present = set(labels)
    quality = np.zeros((len(senstypes), 2))
    if not labels:
        return quality
    for row, senstype in enumerate(senstypes):
        counts = Counter(senstype.labels)
        overlap = sum(count for label, count in counts.items() if label in present)
        quality[row] = (overlap / len(labels), overlap / len(senstype.labels))
    return quality


def _best_candidates(quality: np.ndarray, options: ChantypeOptions) -> Tuple[np.ndarray, np.ndarray]:
    criteria = np.column_stack([quality, quality.mean(axis=1)])
    for column, threshold in enumerate(options.thresholds):
        keep = np.flatnonzero(criteria[:, column] > threshold)
        if keep.size:
            return keep, criteria[:, column]
    raise ChannelTypeError("Could not identify channel type")


def meeg_chantype(
    ds: Union[Dataset, Sequence[str]],
    senstypes: Union[Mapping[str, Any], Sequence[SensorType]],
    options: Optional[ChantypeOptions] = None,
) -> Tuple[List[str], Dict[str, str]]:
    """Return the channel type of each channel.

    Parameters
    ----------
    ds : Dataset or sequence of str
        MEEG dataset with a 'chan' feature dimension, or channel labels.
    senstypes : mapping or sequence of SensorType
        Known sensor types; mapping values may be SensorType instances or
        dicts with 'type', 'labels' and optionally 'sens'.
    options : ChantypeOptions, optional

    Returns
    -------
    chantypes : list of str
        Channel type per channel, 'unknown' for unmatched channels.
    senstype_mapping : dict
        Channel type -> name of the sensor type that defined it.

    Raises
    ------
    ChannelTypeError
        If no sensor type matches well enough.
    """
    if options is None:
        options = ChantypeOptions()

    labels = get_channel_labels(ds)
    types = _as_sensor_types(senstypes)

    quality = compute_overlap(labels, types)
    keep, keep_quality = _best_candidates(quality, options)

    chantypes = [UNKNOWN] * len(labels)
    senstype_mapping: Dict[str, str] = {}
    for chantype in sorted({types[k].type for k in keep}):
        candidates = [k for k in keep if types[k].type == chantype]
        best = candidates[int(np.argmax(keep_quality[candidates]))]

        members = set(types[best].labels)
        for index, label in enumerate(labels):
            if label in members:
                chantypes[index] = chantype
        senstype_mapping[chantype] = types[best].name

    n_unknown = chantypes.count(UNKNOWN)
    logger.info("Channel types: %s (%d unknown of %d)",
                senstype_mapping, n_unknown, len(labels))
    return chantypes, senstype_mapping
