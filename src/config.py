"""Layout constants and engine configuration."""

from dataclasses import dataclass

# Person cards (row placement)
CARD_WIDTH = 176.0
CARD_HEIGHT = 160.0
CARD_WIDTH_COMPACT = 144.0
CARD_HEIGHT_COMPACT = 136.0
H_GAP = 24.0
V_GAP = 100.0
COUPLE_GAP = 16.0

# Hierarchical placement nodes
PERSON_NODE_WIDTH = 200.0
PERSON_NODE_HEIGHT = 140.0
PAIR_NODE_WIDTH = 40.0
PAIR_NODE_HEIGHT = 20.0
BUS_NODE_WIDTH = 14.0
BUS_NODE_HEIGHT = 14.0

# Grid used when hierarchical placement fails
GRID_COLUMNS = 4
GRID_H_GAP = 80.0
GRID_V_GAP = 120.0

# Obstacles and channels
PERSON_MARGIN = 8.0
PAIR_BUS_MARGIN = 4.0
CHANNEL_GAP = 20.0
OUTER_CHANNEL_OFFSET = 40.0
CHANNEL_RANGE_PADDING = 50.0
EPSILON = 0.5

# Crossing markers
BRIDGE_RADIUS = 6.0
BRIDGE_MIN_SPACING = 16.0
JUNCTION_MIN_SPACING = 12.0
CROSSING_SWEEP_MAX_PASSES = 8
CHILD_LAYER_TOLERANCE = 72.0

PADDING = 60.0

PLACEMENT_ROWS = "rows"
PLACEMENT_HIERARCHICAL = "hierarchical"


@dataclass(frozen=True)
class LayoutConfig:
    """Tunable layout parameters; the defaults reproduce the standard chart."""

    placement: str = PLACEMENT_ROWS
    card_width: float = CARD_WIDTH
    card_height: float = CARD_HEIGHT
    card_width_compact: float = CARD_WIDTH_COMPACT
    card_height_compact: float = CARD_HEIGHT_COMPACT
    h_gap: float = H_GAP
    v_gap: float = V_GAP
    couple_gap: float = COUPLE_GAP
    person_margin: float = PERSON_MARGIN
    pair_bus_margin: float = PAIR_BUS_MARGIN
    channel_gap: float = CHANNEL_GAP
    padding: float = PADDING
    graphviz_prog: str = "dot"

    def card_size(self, generation: int) -> tuple[float, float]:
        """Card (width, height) for a generation; generations +/-2 use compact cards."""
        if abs(generation) == 2:
            return (self.card_width_compact, self.card_height_compact)
        return (self.card_width, self.card_height)

    def is_compact(self, generation: int) -> bool:
        return abs(generation) == 2
