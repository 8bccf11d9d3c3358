"""
Priority Merge

Combines partial records from several sources. Sources are applied from the
lowest to the highest priority so the highest-priority value is written last.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_ORDER = ['official', 'menu', 'social', 'third-party']


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def merge_with_priority(sources: Iterable[Mapping[str, Any]],
                        priority_order: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Merge source records by priority.

    Args:
        sources: Items of the form {"priority": label, "data": {...}}
        priority_order: Labels from highest to lowest priority; unknown labels
            rank below every listed label

    Returns:
        Merged record. Empty values never overwrite a value from a
        lower-priority source.
    """
    order = priority_order or DEFAULT_PRIORITY_ORDER
    rank = {label: len(order) - index for index, label in enumerate(order)}

    indexed = list(enumerate(sources))
    # Stable: equal priorities keep input order
    indexed.sort(key=lambda item: (rank.get(item[1].get('priority'), 0), item[0]))

    merged: Dict[str, Any] = {}
    for _, source in indexed:
        label = source.get('priority')
        if label not in rank:
            logger.debug(f"Unknown source priority '{label}', treating as lowest")
        for key, value in (source.get('data') or {}).items():
            if _is_empty(value):
                continue
            merged[key] = value
    return merged
