# ==============================================================================
# QUERY SPEC - Backend-neutral Read Description
# ==============================================================================
# Repositories describe what to read; adapters translate to SQL or MongoDB
# ==============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

ASCENDING = 1
DESCENDING = -1


@dataclass
class QuerySpec:
    """
    Read query understood by every adapter.

    Attributes:
        filters: Exact-match field values (scalars only)
        ranges: Inclusive ``(lower, upper)`` bounds per field; either side may be None
        search_term: Case-insensitive literal substring
        search_fields: Fields any of which may contain ``search_term``
        sort: ``(field, ASCENDING | DESCENDING)`` pairs, applied in order
        exclude_ids: Record ids to leave out
        skip: Offset
        limit: Page size, None for no limit

    Example:
        >>> QuerySpec(
        ...     filters={"user_id": uid, "type": "expense"},
        ...     search_term="coffee",
        ...     search_fields=("description", "category"),
        ...     sort=[("date", DESCENDING), ("id", DESCENDING)],
        ...     limit=10,
        ... )
    """

    filters: Dict[str, Any] = field(default_factory=dict)
    ranges: Dict[str, Tuple[Optional[Any], Optional[Any]]] = field(default_factory=dict)
    search_term: Optional[str] = None
    search_fields: Sequence[str] = ()
    sort: List[Tuple[str, int]] = field(default_factory=list)
    exclude_ids: Sequence[str] = ()
    skip: int = 0
    limit: Optional[int] = None
