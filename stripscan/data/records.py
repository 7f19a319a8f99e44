"""
Reference and history record containers.

Records arrive from external stores (remote tables, CSV exports) as loosely
typed mappings. This module turns them into frozen dataclasses with explicit
numeric types so the rules never deal with raw rows.

This module provides:
    - ReferenceRecord: One historical CTG case used for classification matching
    - HistoryRecord: One of the requesting user's previous baseline values
    - UCI_COLUMN_ALIASES: UCI cardiotocography abbreviations -> field names

Example:
    >>> row = {'mean_short_term_variability': 0.4, 'pattern_class': 2, 'fetal_state': 1}
    >>> record = ReferenceRecord.from_mapping(row)
    >>> record.is_normal
    True
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import pandas as pd


# UCI Cardiotocography dataset column abbreviations
UCI_COLUMN_ALIASES: Dict[str, str] = {
    'LB': 'baseline_value',
    'AC': 'accelerations',
    'FM': 'fetal_movement',
    'UC': 'uterine_contractions',
    'DL': 'light_decelerations',
    'DS': 'severe_decelerations',
    'DP': 'prolongued_decelerations',
    'ASTV': 'abnormal_short_term_variability',
    'MSTV': 'mean_short_term_variability',
    'ALTV': 'abnormal_long_term_variability',
    'MLTV': 'mean_long_term_variability',
    'CLASS': 'pattern_class',
    'NSP': 'fetal_state',
}

_INTEGER_FIELDS = ('pattern_class', 'fetal_state')


@dataclass(frozen=True)
class ReferenceRecord:
    """
    Container for a single reference CTG case.

    Missing values are kept as None (numeric fields) so that matching can
    decide how to treat them.

    Attributes:
        baseline_value: Baseline FHR in bpm.
        accelerations: Accelerations count.
        fetal_movement: Fetal movement count.
        uterine_contractions: Uterine contractions count.
        light_decelerations: Light decelerations count.
        severe_decelerations: Severe decelerations count.
        prolongued_decelerations: Prolonged decelerations count.
        abnormal_short_term_variability: Abnormal STV flag/percentage.
        mean_short_term_variability: Mean STV value.
        abnormal_long_term_variability: Abnormal LTV flag/percentage.
        mean_long_term_variability: Mean LTV value.
        pattern_class: Pattern class code (1-10).
        fetal_state: Fetal state code (1 = normal, >1 = abnormal).
    """

    baseline_value: Optional[float] = None
    accelerations: Optional[float] = None
    fetal_movement: Optional[float] = None
    uterine_contractions: Optional[float] = None
    light_decelerations: Optional[float] = None
    severe_decelerations: Optional[float] = None
    prolongued_decelerations: Optional[float] = None
    abnormal_short_term_variability: Optional[float] = None
    mean_short_term_variability: Optional[float] = None
    abnormal_long_term_variability: Optional[float] = None
    mean_long_term_variability: Optional[float] = None
    pattern_class: Optional[int] = None
    fetal_state: Optional[int] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "ReferenceRecord":
        """
        Build a record from a row mapping.

        Accepts the snake_case column names of the reference table as well as
        the UCI abbreviations (``LB``, ``MSTV``, ``NSP``, ...). Unknown keys
        are ignored; unparseable values become None.

        Args:
            row: Mapping of column name to raw value.

        Returns:
            ReferenceRecord with typed fields.
        """
        values: Dict[str, Any] = {}
        known = {f.name for f in fields(cls)}

        for key, raw in row.items():
            name = UCI_COLUMN_ALIASES.get(str(key).strip().upper(), str(key).strip().lower())
            if name not in known:
                continue
            if name in _INTEGER_FIELDS:
                values[name] = _to_int(raw)
            else:
                values[name] = _to_float(raw)

        return cls(**values)

    @property
    def is_normal(self) -> bool:
        """True when the fetal state code marks a normal case."""
        return self.fetal_state == 1

    @property
    def is_abnormal(self) -> bool:
        """True when the fetal state code is greater than 1."""
        return self.fetal_state is not None and self.fetal_state > 1

    def __repr__(self) -> str:
        return (
            f"ReferenceRecord(mstv={self.mean_short_term_variability}, "
            f"class={self.pattern_class}, state={self.fetal_state})"
        )


@dataclass(frozen=True)
class HistoryRecord:
    """
    A previous analysis baseline for the requesting user.

    Attributes:
        baseline_value: Baseline value stored by a previous analysis (bpm).
        created_at: Creation timestamp, if the store provides one.
    """

    baseline_value: Optional[float]
    created_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "HistoryRecord":
        """Build a history record from a ``baseline_value``/``created_at`` row."""
        return cls(
            baseline_value=_to_float(row.get('baseline_value')),
            created_at=_to_datetime(row.get('created_at')),
        )


def _to_float(value: Any) -> Optional[float]:
    """Convert to float; None/NaN/unparseable values become None."""
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


def _to_int(value: Any) -> Optional[int]:
    """Convert to int via float (handles '2.0'); non-finite values become None."""
    result = _to_float(value)
    if result is None or not math.isfinite(result):
        return None
    return int(result)


def _to_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings and timestamps; unparseable values become None."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = pd.to_datetime(value, utc=True)
    except (TypeError, ValueError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


__all__ = [
    'ReferenceRecord',
    'HistoryRecord',
    'UCI_COLUMN_ALIASES',
]
