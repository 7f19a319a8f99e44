"""
Supabase reference gateway.

Reads reference cases and user history from a Supabase project:
    - ``ctg_reference_data``: reference CTG cases (UCI cardiotocography columns)
    - ``ctg_data``: previous analyses, one ``baseline_value`` per row

Example:
    >>> gateway = SupabaseGateway.from_credentials(url, key)
    >>> references = gateway.fetch_reference_sample(limit=100)
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from supabase import Client, ClientOptions, create_client

from stripscan.config import CLASSIFIER, GATEWAY, RATE
from stripscan.data.records import HistoryRecord, ReferenceRecord
from stripscan.gateway.base import GatewayConfigurationError, GatewayError, ReferenceGateway

logger = logging.getLogger(__name__)


class SupabaseGateway(ReferenceGateway):
    """
    Gateway backed by a Supabase client.

    Args:
        client: Configured ``supabase.Client``.
        user_id: Fixed user id; when None the id comes from the client's
            authenticated session.
        reference_table: Reference cases table name.
        history_table: History table name.
        user_column: History column holding the owner's id.
    """

    def __init__(
        self,
        client: Client,
        user_id: Optional[str] = None,
        reference_table: str = GATEWAY.REFERENCE_TABLE,
        history_table: str = GATEWAY.HISTORY_TABLE,
        user_column: str = GATEWAY.HISTORY_USER_COLUMN,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.reference_table = reference_table
        self.history_table = history_table
        self.user_column = user_column

    @classmethod
    def from_credentials(
        cls,
        url: str,
        key: str,
        user_id: Optional[str] = None,
        timeout: float = GATEWAY.DEFAULT_TIMEOUT_SECONDS,
    ) -> "SupabaseGateway":
        """
        Create a gateway from project URL and key.

        Args:
            url: Supabase project URL.
            key: Anon or service key.
            user_id: Fixed user id (optional).
            timeout: Per-request timeout of table queries, in seconds.

        Raises:
            GatewayConfigurationError: If the client cannot be created.
        """
        try:
            client = create_client(url, key, options=ClientOptions(postgrest_client_timeout=timeout))
        except Exception as e:
            raise GatewayConfigurationError(f"Could not create Supabase client: {e}") from e
        logger.info(f"Supabase gateway initialized for {url}")
        return cls(client, user_id=user_id)

    def fetch_reference_sample(self, limit: int = CLASSIFIER.REFERENCE_LIMIT) -> List[ReferenceRecord]:
        response = self.client.table(self.reference_table).select('*').limit(limit).execute()
        rows = self._rows(response, self.reference_table)
        logger.info(f"Fetched {len(rows)} reference records")
        return [ReferenceRecord.from_mapping(row) for row in rows[:limit]]

    def get_current_user(self) -> Optional[str]:
        if self.user_id:
            return self.user_id

        response = self.client.auth.get_user()
        user = getattr(response, 'user', None) if response is not None else None
        if user is None:
            return None
        return str(user.id)

    def fetch_recent_history(self, user_id: str, limit: int = RATE.HISTORY_LIMIT) -> List[HistoryRecord]:
        response = (
            self.client.table(self.history_table)
            .select('baseline_value, created_at')
            .eq(self.user_column, user_id)
            .order('created_at', desc=True)
            .limit(limit)
            .execute()
        )
        rows = self._rows(response, self.history_table)
        logger.debug(f"Fetched {len(rows)} history records for user {user_id}")
        return [HistoryRecord.from_mapping(row) for row in rows[:limit]]

    @staticmethod
    def _rows(response: Any, table: str) -> List[dict]:
        """Extract the row list from a query response."""
        data = getattr(response, 'data', None)
        if data is None:
            return []
        if not isinstance(data, list):
            raise GatewayError(f"Unexpected response payload from '{table}': {type(data).__name__}")
        return data
