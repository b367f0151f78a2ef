import math
from dataclasses import dataclass, asdict, fields

from PyQt6.QtCore import QPointF

# Grid and component geometry (component local coordinates)
DEFAULT_GRID_SPACING = 20
COMPONENT_PORT_Y_OFFSET = DEFAULT_GRID_SPACING
COMPONENT_WIDTH = DEFAULT_GRID_SPACING * 8
COMPONENT_LEFT_X = DEFAULT_GRID_SPACING * -4
COMPONENT_RIGHT_X = COMPONENT_LEFT_X + COMPONENT_WIDTH
COMPONENT_TOP_Y = 0

PORT_LINE_LENGTH = DEFAULT_GRID_SPACING
PORT_HIT_RADIUS = 5.0
PORT_DISCONNECT_MOVE_OFFSET = 25

WIRE_HANDLE_HALF_SIZE = 6.0
WIRE_HIT_TOLERANCE = 3.0

# Stacking order
COMPONENT_Z = 0.0
WIRE_SELECTED_Z = 100.0
WIRE_DESELECTED_Z = -100.0
TEXT_Z = 1000.0

# Interaction defaults
MOUSEMOVE_DELAY_PIXELS = 5
DEFAULT_PASTE_OFFSET = 20
SHORT_WIRE_LENGTH_LIMIT = 20

# Text notes
EMPTY_TEXT_STRING = "Empty Text"
DEFAULT_TEXT_FONT = "Sans Serif,10,-1,5,400,0,0,0,0,0"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_COMPONENT_FILL = "#ffffff"

# Wire colors as stored in project files
WIRE_COLOR_FULL_CONNECTED = "#00ff00"
WIRE_COLOR_DISCONNECTED = "#ff0000"

MOVING_PORTS_BANNER = "** MOVING PORTS (ESC to exit) **"
UNCONFIGURED_PORT_PREFIX = "UNCONFIGURED - "


def round_to(value: float, multiple: int) -> int:
    """Round an integer-truncated value to the nearest multiple, halves away from zero."""
    value = int(value)
    if multiple == 0:
        return value
    quotient = value / multiple
    rounded = math.floor(abs(quotient) + 0.5)
    return int(math.copysign(rounded, quotient) * multiple)


@dataclass
class Preferences:
    return_to_select_after_component: bool = True
    return_to_select_after_wire: bool = True
    return_to_select_after_text: bool = True
    auto_delete_short_wires: bool = True
    display_grid: bool = False
    snap_to_grid: bool = True
    grid_size: int = DEFAULT_GRID_SPACING
    short_wire_length: float = SHORT_WIRE_LENGTH_LIMIT
    move_delay_pixels: int = MOUSEMOVE_DELAY_PIXELS
    paste_offset: int = DEFAULT_PASTE_OFFSET

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(d):
        known = {f.name for f in fields(Preferences)}
        return Preferences(**{k: v for k, v in d.items() if k in known})

    def snap(self, point: QPointF) -> QPointF:
        """Return the point snapped to the grid, or unchanged when snapping is off."""
        if not self.snap_to_grid:
            return QPointF(point)
        return QPointF(round_to(point.x(), self.grid_size),
                       round_to(point.y(), self.grid_size))
