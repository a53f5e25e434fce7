"""Cache group names and key helpers shared by every flow that touches the cache."""
from __future__ import annotations

OBJECTS_BY_ID = "objects-by-id"
LIST_RESULTS = "list-results"
PENDING_UPLOADS = "pending-uploads"
EXISTENCE_CHECKS = "existence-checks"

ALL_GROUPS = (OBJECTS_BY_ID, LIST_RESULTS, PENDING_UPLOADS, EXISTENCE_CHECKS)


def list_fingerprint(limit: int) -> str:
    """Key for one list query; extend with filters if listing grows any."""
    return f"list:{limit}"
