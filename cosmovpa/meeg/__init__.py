"""
MEEG utilities.

Public API:
    meeg_chantype: Infer channel types from channel labels.
    SensorType: Label set of one sensor type.
    ChantypeOptions: Match quality thresholds.
"""

from cosmovpa.meeg.chantype import ChantypeOptions, SensorType, meeg_chantype

__all__ = ["meeg_chantype", "SensorType", "ChantypeOptions"]
