"""Consistency checks for family tree data."""

import networkx as nx

from graph import PARENT_OF, build_graph
from models import FamilyUnit, Person


def validate_graph(G: nx.DiGraph) -> list[str]:
    """
    Validate the family tree graph for:
    - Cycles in parent-child relationships

    Returns a list of warning messages.
    """
    warnings: list[str] = []

    # Subgraph with only PARENT_OF edges for cycle detection
    parent_edges = [(u, v) for u, v, d in G.edges(data=True) if d.get("relationship_type") == PARENT_OF]
    parent_graph = nx.DiGraph(parent_edges)

    try:
        cycle = nx.find_cycle(parent_graph, orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    return warnings


def validate_tree(persons: list[Person], family_units: list[FamilyUnit]) -> list[str]:
    """
    Validate raw person and family unit records.

    Checks for:
    - Duplicate person ids
    - Family units referencing unknown persons
    - Units with more than two partners, or a person partnered with themselves
    - A person listed as a child of their own unit
    - Cycles in parent-child relationships

    None of these stop layout; offending links are dropped downstream.

    Returns a list of warning messages.
    """
    warnings: list[str] = []
    known: set[int] = set()
    for p in persons:
        if p.id in known:
            warnings.append(f"Duplicate person id: {p.id}")
        known.add(p.id)

    for unit in family_units:
        unknown = [pid for pid in unit.partners if pid not in known]
        unknown += [c.person_id for c in unit.children if c.person_id not in known]
        if unknown:
            warnings.append(f"Family unit {unit.id} references unknown persons: {sorted(set(unknown))}")

        if len(unit.partners) > 2:
            warnings.append(f"Family unit {unit.id} has {len(unit.partners)} partners")
        if len(unit.partners) != len(set(unit.partners)):
            warnings.append(f"Family unit {unit.id} partners a person with themselves")

        for child in unit.children:
            if child.person_id in unit.partners:
                warnings.append(f"Person {child.person_id} is a child in their own family unit {unit.id}")

    warnings.extend(validate_graph(build_graph(persons, family_units)))
    return warnings
