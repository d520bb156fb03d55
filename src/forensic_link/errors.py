"""Error taxonomy shared by the query engine, the graph assembler and the providers.

The style resolver never raises; everything else fails fast with one of these.
"""

from __future__ import annotations


class ForensicLinkError(Exception):
    """Base class for all forensic-link errors."""

    status_code: int = 500


class InvalidArgument(ForensicLinkError, ValueError):
    """Malformed filter value, pagination index or traversal depth."""

    status_code = 400


class NotFound(ForensicLinkError, LookupError):
    """The requested case, person or link does not exist."""

    status_code = 404

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class ProviderFailure(ForensicLinkError, RuntimeError):
    """The external data source failed or timed out.

    Raised unchanged to the caller; the core never retries.
    """

    status_code = 502
