"""Generation offsets for relationship categories."""

from models import OverflowGroup, RelationshipEdge

OVERFLOW = "overflow"

GENERATION_BY_CATEGORY = {
    "grandparents": -2,
    "parents": -1,
    "siblings": 0,
    "spouse": 0,
    "children": 1,
    "grandchildren": 2,
}

MAIN_CATEGORIES = list(GENERATION_BY_CATEGORY)


def assign_generation(category: str) -> int | str:
    """Return the generation offset for a category, or OVERFLOW for anything else."""
    return GENERATION_BY_CATEGORY.get(category, OVERFLOW)


def group_by_generation(
    relationships: list[RelationshipEdge],
) -> tuple[dict[int, list[RelationshipEdge]], list[OverflowGroup]]:
    """
    Split relationships into generation rows and overflow groups.

    Returns:
        (rows, overflow) where rows maps generation -> relationships in input
        order and overflow holds one group per non-grid category, in the order
        the categories were first seen.
    """
    rows: dict[int, list[RelationshipEdge]] = {}
    overflow: dict[str, OverflowGroup] = {}

    for rel in relationships:
        generation = assign_generation(rel.category)
        if generation == OVERFLOW:
            overflow.setdefault(rel.category, OverflowGroup(rel.category, [])).relationships.append(rel)
            continue
        rows.setdefault(generation, []).append(rel)

    return rows, list(overflow.values())
