"""Data classes for family tree entities and layout geometry."""

from dataclasses import dataclass, field


@dataclass
class Person:
    id: int
    gender: str | None = None  # MALE, FEMALE or None
    is_deceased: bool = False
    name: str | None = None


@dataclass
class ChildLink:
    person_id: int
    lineage_type: str = "BIOLOGICAL"  # BIOLOGICAL, ADOPTED, STEP, FOSTER, GUARDIAN
    birth_order: int | None = None


@dataclass
class FamilyUnit:
    id: int
    partners: list[int]
    children: list[ChildLink] = field(default_factory=list)
    marriage_type: str | None = None
    status: str | None = None


@dataclass
class RelationshipEdge:
    to_id: int
    category: str
    label: str = ""
    from_id: int | None = None


@dataclass
class TreeInput:
    root_id: int
    persons: list[Person]
    family_units: list[FamilyUnit] = field(default_factory=list)
    # None means "derive from the family units"
    relationships: list[RelationshipEdge] | None = None


# ============================================================================
# Geometry
# ============================================================================


@dataclass(frozen=True)
class RoutePoint:
    x: float
    y: float


@dataclass(frozen=True)
class NodeBounds:
    x: float
    y: float
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class ObstacleRect:
    owner_id: str
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Channel:
    orientation: str  # "horizontal" or "vertical"
    coordinate: float
    range_min: float
    range_max: float


@dataclass(frozen=True)
class BridgePoint:
    segment_index: int
    x: float
    y: float


# ============================================================================
# Layout output
# ============================================================================


@dataclass(frozen=True)
class LayoutNode:
    person_id: int
    x: float
    y: float
    width: float
    height: float
    generation: int
    is_root: bool = False
    couple_with: int | None = None
    size: str = "normal"  # "normal" or "compact"
    label: str | None = None

    @property
    def bounds(self) -> NodeBounds:
        return NodeBounds(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class JunctionNode:
    """Pair or bus pseudo node of a family unit (hierarchical placement only)."""

    id: str
    family_unit_id: int
    variant: str  # "pair" or "bus"
    x: float
    y: float
    width: float
    height: float

    @property
    def bounds(self) -> NodeBounds:
        return NodeBounds(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class LayoutEdge:
    from_id: int | str
    to_id: int | str
    type: str  # parent-child, spouse, sibling
    kind: str  # marriage, trunk, child
    route_points: tuple[RoutePoint, ...] = ()
    crossing_bridges: tuple[BridgePoint, ...] = ()
    junctions: tuple[BridgePoint, ...] = ()
    family_unit_id: int | None = None


@dataclass
class OverflowGroup:
    category: str
    relationships: list[RelationshipEdge]


@dataclass
class TreeLayout:
    nodes: list[LayoutNode] = field(default_factory=list)
    edges: list[LayoutEdge] = field(default_factory=list)
    junction_nodes: list[JunctionNode] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    overflow: list[OverflowGroup] = field(default_factory=list)

    @property
    def root_node(self) -> LayoutNode | None:
        return next((n for n in self.nodes if n.is_root), None)

    def to_dict(self) -> dict:
        """Serialize to the camelCase shape consumed by the renderer."""
        return {
            "nodes": [
                {
                    "id": n.person_id,
                    "x": n.x,
                    "y": n.y,
                    "width": n.width,
                    "height": n.height,
                    "generation": n.generation,
                    "isRoot": n.is_root,
                    "coupleWith": n.couple_with,
                    "size": n.size,
                    "label": n.label,
                }
                for n in self.nodes
            ],
            "junctionNodes": [
                {
                    "id": j.id,
                    "familyUnitId": j.family_unit_id,
                    "variant": j.variant,
                    "x": j.x,
                    "y": j.y,
                    "width": j.width,
                    "height": j.height,
                }
                for j in self.junction_nodes
            ],
            "edges": [
                {
                    "fromId": e.from_id,
                    "toId": e.to_id,
                    "type": e.type,
                    "kind": e.kind,
                    "familyUnitId": e.family_unit_id,
                    "routePoints": [{"x": p.x, "y": p.y} for p in e.route_points],
                    "crossingBridges": [
                        {"segmentIndex": b.segment_index, "x": b.x, "y": b.y}
                        for b in e.crossing_bridges
                    ],
                    "junctions": [
                        {"segmentIndex": j.segment_index, "x": j.x, "y": j.y}
                        for j in e.junctions
                    ],
                }
                for e in self.edges
            ],
            "width": self.width,
            "height": self.height,
            "overflow": [
                {
                    "category": g.category,
                    "relationships": [
                        {"toId": r.to_id, "category": r.category, "label": r.label, "fromId": r.from_id}
                        for r in g.relationships
                    ],
                }
                for g in self.overflow
            ],
        }
