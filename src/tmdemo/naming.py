"""Resource naming helpers."""

from __future__ import annotations

import random

# Upper bound (exclusive) of the numeric suffix appended to generated names
RANDOM_SUFFIX_LIMIT = 9999

ENDPOINT_NAME_PREFIX = "endpoint-"


def create_random_name(prefix: str) -> str:
    """Append a random numeric suffix to a name prefix.

    Example: "rgNEMV_" -> "rgNEMV_4821".
    """
    return f"{prefix}{random.randrange(RANDOM_SUFFIX_LIMIT)}"


def endpoint_name(priority: int) -> str:
    """Name of the Traffic Manager endpoint registered with the given priority."""
    return f"{ENDPOINT_NAME_PREFIX}{priority}"
