"""
Reference Data Gateway package for StripScan.

Modules:
    base: Gateway contract, failure-collapsing reads, settings
    supabase_gateway: Supabase-backed gateway
    csv_gateway: Local CSV-backed gateway

Usage:
    >>> from stripscan.gateway import GatewaySettings, create_gateway
    >>> gateway = create_gateway(GatewaySettings.from_env())
"""

from __future__ import annotations

import logging
from typing import Optional

from .base import (
    GatewayConfigurationError,
    GatewayError,
    GatewayResult,
    GatewaySettings,
    NullGateway,
    ReferenceGateway,
    safe_read,
)
from .csv_gateway import CSVReferenceGateway

logger = logging.getLogger(__name__)


def create_gateway(settings: Optional[GatewaySettings] = None) -> ReferenceGateway:
    """
    Build the gateway described by ``settings``.

    Supabase credentials take precedence over a reference CSV. With neither,
    or if the remote client cannot be created, a ``NullGateway`` is returned
    and the pipeline runs on its fallback thresholds.

    Args:
        settings: Gateway settings (default: read from the environment).

    Returns:
        ReferenceGateway instance.
    """
    if settings is None:
        settings = GatewaySettings.from_env()

    if settings.supabase_enabled:
        from .supabase_gateway import SupabaseGateway

        try:
            return SupabaseGateway.from_credentials(
                settings.supabase_url,
                settings.supabase_key,
                user_id=settings.user_id,
                timeout=settings.timeout_seconds,
            )
        except GatewayConfigurationError as e:
            logger.warning(f"Reference store disabled: {e}")
            return NullGateway()

    if settings.reference_csv:
        return CSVReferenceGateway(
            settings.reference_csv,
            history_path=settings.history_csv,
            user_id=settings.user_id,
        )

    logger.info("No reference store configured; using fallback thresholds only")
    return NullGateway()


__all__ = [
    "ReferenceGateway",
    "NullGateway",
    "CSVReferenceGateway",
    "GatewayResult",
    "GatewaySettings",
    "GatewayError",
    "GatewayConfigurationError",
    "safe_read",
    "create_gateway",
]
