"""Facet precedence ordering."""

from typing import Any, Dict, List, MutableMapping

PRIORITY_RANK = {"High": 1, "Medium": 2, "Low": 3}
UNKNOWN_PRIORITY_RANK = 4


def _get(facet: Any, key: str, default=None):
    if isinstance(facet, MutableMapping):
        return facet.get(key, default)
    return getattr(facet, key, default)


def _set(facet: Any, key: str, value) -> None:
    if isinstance(facet, MutableMapping):
        facet[key] = value
    else:
        setattr(facet, key, value)


def priority_rank(priority) -> int:
    value = getattr(priority, "value", priority)
    return PRIORITY_RANK.get(value, UNKNOWN_PRIORITY_RANK)


def facet_sort_key(facet: Any):
    """High before Medium before Low, then confidence desc, then filling desc."""
    return (
        priority_rank(_get(facet, "priority")),
        -(_get(facet, "confidence_score") or 0),
        -(_get(facet, "filling_percentage") or 0),
    )


def rank_facets(facets: List[Any]) -> List[Any]:
    """Sort facets by precedence and assign a contiguous 1-based sort_order."""
    ranked = sorted(facets, key=facet_sort_key)
    for index, facet in enumerate(ranked, start=1):
        _set(facet, "sort_order", index)
    return ranked


def trim_to_limit(facets: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    """Keep the best ``limit`` facets by precedence."""
    if limit <= 0 or len(facets) <= limit:
        return facets
    return sorted(facets, key=facet_sort_key)[:limit]
