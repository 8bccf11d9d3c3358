"""
JSON Lines codec for knowledge items.
"""

import json
import logging
from typing import Iterable, List, Tuple

from restaurant_kb.core.models import KnowledgeItem

logger = logging.getLogger(__name__)


def dump_jsonl(items: Iterable[KnowledgeItem]) -> str:
    """Serialize items, one JSON object per line, with a trailing newline"""
    lines = [json.dumps(item.to_dict(), ensure_ascii=False) for item in items]
    return "\n".join(lines) + "\n" if lines else ""


def parse_jsonl(text: str) -> Tuple[List[KnowledgeItem], List[str]]:
    """
    Parse a knowledge JSONL document.

    Corrupt lines do not stop parsing; each one is reported in the error list
    as ``"line N: reason"``.

    Returns:
        Tuple of (items, errors)
    """
    items: List[KnowledgeItem] = []
    errors: List[str] = []

    for number, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            items.append(KnowledgeItem.from_dict(data))
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            errors.append(f"line {number}: {e}")
            logger.warning(f"Skipping corrupt knowledge line {number}: {e}")

    return items, errors
