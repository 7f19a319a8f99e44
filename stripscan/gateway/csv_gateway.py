"""
Local CSV reference gateway.

Serves reference cases from a CSV export of the UCI Cardiotocography dataset
(or of the ``ctg_reference_data`` table), and optionally user history from a
second CSV. Useful offline and in tests.

Reference CSV columns (either naming works):
    LB, AC, FM, UC, DL, DS, DP, ASTV, MSTV, ALTV, MLTV, CLASS, NSP
    baseline_value, accelerations, ..., pattern_class, fetal_state

History CSV columns:
    user_id, baseline_value, created_at

Files are read on every call; nothing is cached between analyses.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from stripscan.config import CLASSIFIER, GATEWAY, RATE
from stripscan.data.records import HistoryRecord, ReferenceRecord
from stripscan.gateway.base import GatewayError, ReferenceGateway

logger = logging.getLogger(__name__)


class CSVReferenceGateway(ReferenceGateway):
    """
    Gateway reading reference cases and history from CSV files.

    Args:
        reference_path: Reference CSV path.
        history_path: History CSV path (optional).
        user_id: Identity reported by ``get_current_user`` (optional).
        user_column: History column holding the owner's id.
    """

    def __init__(
        self,
        reference_path: Union[str, Path],
        history_path: Optional[Union[str, Path]] = None,
        user_id: Optional[str] = None,
        user_column: str = GATEWAY.HISTORY_USER_COLUMN,
    ) -> None:
        self.reference_path = Path(reference_path)
        self.history_path = Path(history_path) if history_path else None
        self.user_id = user_id
        self.user_column = user_column

    def fetch_reference_sample(self, limit: int = CLASSIFIER.REFERENCE_LIMIT) -> List[ReferenceRecord]:
        df = self._read_csv(self.reference_path).head(limit)
        records = [ReferenceRecord.from_mapping(row) for row in df.to_dict(orient='records')]
        logger.info(f"Loaded {len(records)} reference records from {self.reference_path.name}")
        return records

    def get_current_user(self) -> Optional[str]:
        return self.user_id

    def fetch_recent_history(self, user_id: str, limit: int = RATE.HISTORY_LIMIT) -> List[HistoryRecord]:
        if self.history_path is None:
            return []

        df = self._read_csv(self.history_path)
        if 'baseline_value' not in df.columns:
            raise GatewayError(f"History file {self.history_path} has no 'baseline_value' column")

        if self.user_column in df.columns:
            df = df[df[self.user_column].astype(str) == str(user_id)]

        if 'created_at' in df.columns:
            df = df.assign(created_at=pd.to_datetime(df['created_at'], utc=True, errors='coerce'))
            df = df.sort_values('created_at', ascending=False, na_position='last', kind='mergesort')

        return [HistoryRecord.from_mapping(row) for row in df.head(limit).to_dict(orient='records')]

    @staticmethod
    def _read_csv(path: Path) -> pd.DataFrame:
        """
        Read a CSV file.

        Raises:
            GatewayError: If the file is missing or cannot be parsed.
        """
        if not path.exists():
            raise GatewayError(f"CSV file not found: {path}")
        try:
            return pd.read_csv(path)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise GatewayError(f"Could not parse {path}: {e}") from e
