"""REST-backed provider for the forensic case-link system of record."""

from .api_provider import ForensicApiProvider

__all__ = ["ForensicApiProvider"]
