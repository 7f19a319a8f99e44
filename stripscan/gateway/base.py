"""
Reference Data Gateway interface.

The analysis pipeline reads two collections from an external store: a bounded
sample of reference CTG cases and the requesting user's recent history. The
store is best-effort: every failure (network error, missing credentials,
timeout) must look exactly like "no data" to the rules.

This module provides:
    - ReferenceGateway: Abstract read-only gateway contract
    - NullGateway: Gateway with no data and no identity
    - GatewayResult: Value-or-error container returned by ``safe_read``
    - safe_read: Run one gateway call, collapsing failures to a default
    - GatewaySettings: Environment-driven gateway configuration
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

from dotenv import load_dotenv

from stripscan.config import CLASSIFIER, GATEWAY, RATE
from stripscan.data.records import HistoryRecord, ReferenceRecord
from stripscan.errors import StripScanError

# Configure module logger
logger = logging.getLogger(__name__)

T = TypeVar('T')


class GatewayError(StripScanError):
    """Raised by gateway implementations when a read fails."""
    pass


class GatewayConfigurationError(GatewayError):
    """Raised when a gateway cannot be built from the given settings."""
    pass


@dataclass(frozen=True)
class GatewayResult(Generic[T]):
    """
    Outcome of a single gateway read.

    Attributes:
        value: Data read, or the empty default if the read failed.
        error: Description of the failure, None on success.
    """

    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True if the read succeeded."""
        return self.error is None


def safe_read(description: str, read: Callable[[], T], default: T) -> GatewayResult[T]:
    """
    Run a gateway read, turning any exception into an empty result.

    No retries are performed.

    Args:
        description: Short name of the read for log messages.
        read: Zero-argument callable performing the read.
        default: Value to return on failure (e.g. ``[]`` or ``None``).

    Returns:
        GatewayResult with the read value, or ``default`` and an error string.
    """
    try:
        value = read()
    except Exception as e:
        logger.warning(f"Gateway read '{description}' failed, continuing without data: {e}")
        return GatewayResult(value=default, error=f"{type(e).__name__}: {e}")

    if value is None and default is not None:
        return GatewayResult(value=default)
    return GatewayResult(value=value)


class ReferenceGateway(ABC):
    """
    Read-only access to reference cases, user identity and user history.

    Implementations may raise on failure; callers go through ``safe_read``.
    """

    @abstractmethod
    def fetch_reference_sample(self, limit: int = CLASSIFIER.REFERENCE_LIMIT) -> List[ReferenceRecord]:
        """Fetch at most ``limit`` reference records."""

    @abstractmethod
    def get_current_user(self) -> Optional[str]:
        """Return the authenticated user's id, or None."""

    @abstractmethod
    def fetch_recent_history(self, user_id: str, limit: int = RATE.HISTORY_LIMIT) -> List[HistoryRecord]:
        """Fetch the user's ``limit`` most recent history records, newest first."""

    @property
    def enabled(self) -> bool:
        """False for gateways that can never return data."""
        return True


class NullGateway(ReferenceGateway):
    """Gateway used when no reference store is configured."""

    def fetch_reference_sample(self, limit: int = CLASSIFIER.REFERENCE_LIMIT) -> List[ReferenceRecord]:
        return []

    def get_current_user(self) -> Optional[str]:
        return None

    def fetch_recent_history(self, user_id: str, limit: int = RATE.HISTORY_LIMIT) -> List[HistoryRecord]:
        return []

    @property
    def enabled(self) -> bool:
        return False


@dataclass(frozen=True)
class GatewaySettings:
    """
    Gateway configuration.

    Attributes:
        supabase_url: Remote store URL.
        supabase_key: Remote store anon/service key.
        reference_csv: Path to a local reference CSV export.
        history_csv: Path to a local history CSV.
        user_id: Fixed user id (local history, or server-side remote use).
        timeout_seconds: Upper bound on waiting for gateway reads.
    """

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    reference_csv: Optional[str] = None
    history_csv: Optional[str] = None
    user_id: Optional[str] = None
    timeout_seconds: float = GATEWAY.DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Validate the timeout."""
        if not self.timeout_seconds > 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")

    @property
    def supabase_enabled(self) -> bool:
        """True when both remote URL and key are set."""
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "GatewaySettings":
        """
        Read settings from the environment (and a ``.env`` file if present).

        Args:
            dotenv: Load a ``.env`` file first (default: True).

        Returns:
            GatewaySettings instance.
        """
        if dotenv:
            load_dotenv()

        key = next((os.getenv(name) for name in GATEWAY.ENV_SUPABASE_KEYS if os.getenv(name)), None)

        return cls(
            supabase_url=os.getenv(GATEWAY.ENV_SUPABASE_URL) or None,
            supabase_key=key,
            reference_csv=os.getenv(GATEWAY.ENV_REFERENCE_CSV) or None,
            history_csv=os.getenv(GATEWAY.ENV_HISTORY_CSV) or None,
            user_id=os.getenv(GATEWAY.ENV_USER_ID) or None,
            timeout_seconds=_parse_timeout(os.getenv(GATEWAY.ENV_TIMEOUT)),
        )


def _parse_timeout(raw: Optional[str]) -> float:
    """Parse a timeout from the environment, falling back to the default."""
    if not raw:
        return GATEWAY.DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        value = -1.0
    if not 0 < value < float('inf'):
        logger.warning(
            f"Invalid {GATEWAY.ENV_TIMEOUT}={raw!r}, using {GATEWAY.DEFAULT_TIMEOUT_SECONDS}s"
        )
        return GATEWAY.DEFAULT_TIMEOUT_SECONDS
    return value
