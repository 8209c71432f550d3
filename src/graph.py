"""NetworkX graph building and kinship classification relative to a root person."""

import logging

import networkx as nx

from config import (
    BUS_NODE_HEIGHT,
    BUS_NODE_WIDTH,
    PAIR_NODE_HEIGHT,
    PAIR_NODE_WIDTH,
    PERSON_NODE_HEIGHT,
    PERSON_NODE_WIDTH,
)
from models import FamilyUnit, Person, RelationshipEdge

logger = logging.getLogger(__name__)

PARENT_OF = "PARENT_OF"
SPOUSE_OF = "SPOUSE_OF"

CATEGORY_ORDER = [
    "grandparents",
    "parents",
    "siblings",
    "spouse",
    "children",
    "grandchildren",
    "in-laws",
    "extended",
    "other",
]

# (male, female, unknown)
LABELS = {
    "grandparents": ("Grandfather", "Grandmother", "Grandparent"),
    "parents": ("Father", "Mother", "Parent"),
    "siblings": ("Brother", "Sister", "Sibling"),
    "spouse": ("Husband", "Wife", "Spouse"),
    "children": ("Son", "Daughter", "Child"),
    "grandchildren": ("Grandson", "Granddaughter", "Grandchild"),
    "parent-in-law": ("Father-in-law", "Mother-in-law", "Parent-in-law"),
    "sibling-in-law": ("Brother-in-law", "Sister-in-law", "Sibling-in-law"),
    "child-in-law": ("Son-in-law", "Daughter-in-law", "Child-in-law"),
    "great-grandparent": ("Great-grandfather", "Great-grandmother", "Great-grandparent"),
    "aunt-uncle": ("Uncle", "Aunt", "Aunt/Uncle"),
    "cousin": ("Cousin", "Cousin", "Cousin"),
    "niece-nephew": ("Nephew", "Niece", "Nibling"),
    "extended": ("Relative", "Relative", "Relative"),
    "other": ("Connection", "Connection", "Connection"),
}


def person_node_id(person_id: int) -> str:
    return f"person_{person_id}"


def pair_node_id(family_unit_id: int) -> str:
    return f"fu_pair_{family_unit_id}"


def bus_node_id(family_unit_id: int) -> str:
    return f"fu_bus_{family_unit_id}"


def build_graph(persons: list[Person], family_units: list[FamilyUnit]) -> nx.DiGraph:
    """Build a NetworkX directed graph from person and family unit records.

    PARENT_OF edges point from parent to child. SPOUSE_OF edges are added in
    both directions between the partners of a two-partner unit. Partners or
    children that reference unknown persons are dropped.
    """
    G = nx.DiGraph()

    # Add nodes (persons)
    for p in persons:
        G.add_node(p.id, gender=p.gender, is_deceased=p.is_deceased, person_name=p.name)

    # Add edges (relationships)
    for unit in family_units:
        partners = [pid for pid in dict.fromkeys(unit.partners) if pid in G]
        if len(partners) != len(unit.partners):
            logger.debug("Family unit %s references unknown partners; dropped", unit.id)

        if len(partners) == 2:
            a, b = partners
            G.add_edge(a, b, relationship_type=SPOUSE_OF, family_unit_id=unit.id)
            G.add_edge(b, a, relationship_type=SPOUSE_OF, family_unit_id=unit.id)

        for child in unit.children:
            if child.person_id not in G:
                logger.debug("Family unit %s references unknown child %s; dropped", unit.id, child.person_id)
                continue
            for parent in partners:
                if parent == child.person_id:
                    continue
                G.add_edge(
                    parent,
                    child.person_id,
                    relationship_type=PARENT_OF,
                    lineage_type=child.lineage_type,
                    family_unit_id=unit.id,
                )

    return G


def parents_of(G: nx.DiGraph, person_id: int) -> list[int]:
    return sorted(
        p for p in G.predecessors(person_id) if G.edges[p, person_id].get("relationship_type") == PARENT_OF
    )


def children_of(G: nx.DiGraph, person_id: int) -> list[int]:
    return sorted(
        c for c in G.successors(person_id) if G.edges[person_id, c].get("relationship_type") == PARENT_OF
    )


def spouses_of(G: nx.DiGraph, person_id: int) -> list[int]:
    return sorted(
        s for s in G.successors(person_id) if G.edges[person_id, s].get("relationship_type") == SPOUSE_OF
    )


def _label(G: nx.DiGraph, person_id: int, key: str) -> str:
    male, female, unknown = LABELS[key]
    gender = G.nodes[person_id].get("gender")
    if gender == "MALE":
        return male
    if gender == "FEMALE":
        return female
    return unknown


def classify_relationships(G: nx.DiGraph, root_id: int) -> list[RelationshipEdge]:
    """
    Classify every person connected to the root into one relationship category.

    Categories are tried closest first (spouse, parents, children, siblings,
    grandparents, grandchildren, in-laws, extended, other) and a person keeps
    the first category that matches. `from_id` names the person through whom
    the relationship runs (the parent of a grandparent link, the child of a
    grandchild link), or the root.

    Args:
        G: Graph built by `build_graph`
        root_id: The person the categories are relative to

    Returns:
        Relationship edges sorted by category order, then person id. Empty when
        the root is not in the graph.
    """
    if root_id not in G:
        return []

    assigned: dict[int, RelationshipEdge] = {}

    def assign(person_id: int, category: str, label_key: str | None = None, via: int | None = None):
        if person_id == root_id or person_id in assigned:
            return
        assigned[person_id] = RelationshipEdge(
            to_id=person_id,
            category=category,
            label=_label(G, person_id, label_key or category),
            from_id=via if via is not None else root_id,
        )

    parents = parents_of(G, root_id)
    spouses = spouses_of(G, root_id)
    children = children_of(G, root_id)
    siblings = sorted({c for p in parents for c in children_of(G, p)} - {root_id})

    for s in spouses:
        assign(s, "spouse")
    for p in parents:
        assign(p, "parents")
    for c in children:
        assign(c, "children")
    for s in siblings:
        assign(s, "siblings")
    for p in parents:
        for gp in parents_of(G, p):
            assign(gp, "grandparents", via=p)
    for c in children:
        for gc in children_of(G, c):
            assign(gc, "grandchildren", via=c)

    # In-laws
    for s in spouses:
        for sp in parents_of(G, s):
            assign(sp, "in-laws", "parent-in-law", via=s)
        for sp in parents_of(G, s):
            for ss in children_of(G, sp):
                assign(ss, "in-laws", "sibling-in-law", via=s)
    for s in siblings:
        for ss in spouses_of(G, s):
            assign(ss, "in-laws", "sibling-in-law", via=s)
    for c in children:
        for cs in spouses_of(G, c):
            assign(cs, "in-laws", "child-in-law", via=c)

    # Named extended relatives
    grandparents = sorted({gp for p in parents for gp in parents_of(G, p)})
    for gp in grandparents:
        for ggp in parents_of(G, gp):
            assign(ggp, "extended", "great-grandparent", via=gp)
    aunts_uncles = sorted({c for gp in grandparents for c in children_of(G, gp)} - set(parents))
    for au in aunts_uncles:
        assign(au, "extended", "aunt-uncle")
    for au in aunts_uncles:
        for cousin in children_of(G, au):
            assign(cousin, "extended", "cousin", via=au)
    for s in siblings:
        for nibling in children_of(G, s):
            assign(nibling, "extended", "niece-nephew", via=s)

    # Blood relatives: anyone descending from one of the root's ancestors
    lineage = nx.DiGraph(
        [(u, v) for u, v, d in G.edges(data=True) if d.get("relationship_type") == PARENT_OF]
    )
    if root_id in lineage:
        ancestors = nx.ancestors(lineage, root_id)
        blood = set(ancestors)
        for a in ancestors:
            blood.update(nx.descendants(lineage, a))
        blood.update(nx.descendants(lineage, root_id))
        for person_id in sorted(blood):
            assign(person_id, "extended")

    for person_id in sorted(nx.node_connected_component(G.to_undirected(as_view=True), root_id)):
        assign(person_id, "other")

    return sorted(
        assigned.values(), key=lambda r: (CATEGORY_ORDER.index(r.category), r.to_id)
    )


def build_union_layout_graph(persons: list[Person], family_units: list[FamilyUnit]) -> nx.DiGraph:
    """
    Build a layout graph using the union-node model for hierarchical placement.

    Every family unit becomes a "pair" node joining its partners and a "bus"
    node from which its children hang:
    - person --marriage--> pair
    - pair --trunk--> bus
    - bus --child--> person

    Partners are ordered male, female, unknown, then by id; children by birth
    order, then id. Units and links referencing unknown persons are dropped.

    Args:
        persons: Person records
        family_units: Family unit records

    Returns:
        A DiGraph whose nodes carry node_type, width, height and family_unit_id
    """
    H = nx.DiGraph()
    genders = {p.id: p.gender for p in persons}

    for p in persons:
        H.add_node(
            person_node_id(p.id),
            node_type="person",
            person_id=p.id,
            width=PERSON_NODE_WIDTH,
            height=PERSON_NODE_HEIGHT,
        )

    for unit in sorted(family_units, key=lambda u: u.id):
        partners = [pid for pid in dict.fromkeys(unit.partners) if pid in genders]
        partners.sort(key=lambda pid: (_gender_rank(genders[pid]), pid))
        children = sorted(
            (c for c in unit.children if c.person_id in genders),
            key=lambda c: (c.birth_order or 0, c.person_id),
        )
        if not partners and not children:
            continue

        pair_id = pair_node_id(unit.id)
        bus_id = bus_node_id(unit.id)
        H.add_node(
            pair_id,
            node_type="pair",
            family_unit_id=unit.id,
            partners=tuple(partners),
            width=PAIR_NODE_WIDTH,
            height=PAIR_NODE_HEIGHT,
        )
        H.add_node(
            bus_id,
            node_type="bus",
            family_unit_id=unit.id,
            width=BUS_NODE_WIDTH,
            height=BUS_NODE_HEIGHT,
        )

        for index, pid in enumerate(partners):
            H.add_edge(person_node_id(pid), pair_id, edge_kind="marriage", family_unit_id=unit.id, lane=index)
        H.add_edge(pair_id, bus_id, edge_kind="trunk", family_unit_id=unit.id, lane=0)
        for index, child in enumerate(children):
            H.add_edge(
                bus_id,
                person_node_id(child.person_id),
                edge_kind="child",
                family_unit_id=unit.id,
                lane=index,
                lineage_type=child.lineage_type,
            )

    return H


def _gender_rank(gender: str | None) -> int:
    if gender == "MALE":
        return 0
    if gender == "FEMALE":
        return 1
    return 2
