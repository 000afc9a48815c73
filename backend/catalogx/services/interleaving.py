"""Interleave promoted placements into an organic result page.

Every 5th slot (index 4, 9, 14, ...) is promoted while promoted items remain.
Organic items that are also promoted are dropped so a product never shows
twice. When organic runs out the remaining promoted items are appended; when
promoted runs out the rest of organic follows unchanged. Promoted order is
the caller's (tier ranking), never re-sorted here.

Pure: no I/O, works on anything exposing an ``id`` (objects or mappings).
"""

from typing import Any, List, Sequence, TypeVar

T = TypeVar("T")

PROMOTED_INTERVAL = 5


def _item_id(item: Any) -> Any:
    if isinstance(item, dict):
        return item["id"]
    return item.id


def interleave(organic: Sequence[T], promoted: Sequence[T]) -> List[T]:
    """Merge promoted items into organic results.

    Returns a new list of length len(deduplicated organic) + len(promoted).
    """
    if not promoted:
        return list(organic)

    promoted_ids = {_item_id(item) for item in promoted}
    remaining_organic = [item for item in organic if _item_id(item) not in promoted_ids]

    result: List[T] = []
    organic_idx = 0
    promoted_idx = 0
    total_slots = len(remaining_organic) + len(promoted)

    for slot in range(total_slots):
        promoted_slot = (slot + 1) % PROMOTED_INTERVAL == 0 and promoted_idx < len(promoted)
        if promoted_slot or organic_idx >= len(remaining_organic):
            result.append(promoted[promoted_idx])
            promoted_idx += 1
        else:
            result.append(remaining_organic[organic_idx])
            organic_idx += 1

    return result
