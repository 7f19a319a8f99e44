"""
Base exception for StripScan.

Each module defines its own exception subclasses (``ImageLoaderError``,
``EdgeExtractionError``, ``GatewayError``); they all derive from
``StripScanError`` so callers can catch the whole family at once.
"""


class StripScanError(Exception):
    """Base exception for all StripScan errors."""
    pass


__all__ = ['StripScanError']
