"""
Grid layout

Widgets sit on a fixed-width grid measured in integer cells. New widgets are
placed at the first free rectangle in row-major order (top to bottom, left to
right), which keeps placement deterministic for identical boards.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

DEFAULT_COLUMNS = 12
DEFAULT_WIDTH = 4
DEFAULT_HEIGHT = 4


class Placement(NamedTuple):
    x: int
    y: int
    w: int
    h: int

    def overlaps(self, other: "Placement") -> bool:
        return (
            self.x < other.x + other.w
            and other.x < self.x + self.w
            and self.y < other.y + other.h
            and other.y < self.y + self.h
        )

    def to_dict(self) -> Dict[str, int]:
        return self._asdict()


def _rect(item: Any) -> Placement:
    # accepts stored dicts, pydantic models or Placement tuples
    if isinstance(item, dict):
        get = item.get
    else:
        get = lambda key, default=None: getattr(item, key, default)  # noqa: E731
    return Placement(
        int(get("x", 0) or 0),
        int(get("y", 0) or 0),
        int(get("w", DEFAULT_WIDTH) or DEFAULT_WIDTH),
        int(get("h", DEFAULT_HEIGHT) or DEFAULT_HEIGHT),
    )


def find_placement(existing: Iterable[Any], total_columns: int, new_w: int, new_h: int) -> Placement:
    """Return the first free ``new_w`` x ``new_h`` rectangle on the board.

    ``existing`` is trusted to be non-overlapping and in bounds. When no gap
    is found the widget goes below everything else.
    """
    new_w = max(1, min(new_w, total_columns))
    new_h = max(1, new_h)

    occupied: Set[Tuple[int, int]] = set()
    bottom = 0
    for item in existing:
        rect = _rect(item)
        for row in range(rect.y, rect.y + rect.h):
            for col in range(rect.x, rect.x + rect.w):
                occupied.add((row, col))
        bottom = max(bottom, rect.y + rect.h)

    def is_free(x: int, y: int) -> bool:
        return all(
            (row, col) not in occupied
            for row in range(y, y + new_h)
            for col in range(x, x + new_w)
        )

    for y in range(bottom + new_h):
        for x in range(total_columns - new_w + 1):
            if is_free(x, y):
                return Placement(x, y, new_w, new_h)

    return Placement(0, bottom, new_w, new_h)


# ---------- Templates ----------

def _slots(*rects: Tuple[int, int, int, int]) -> List[Dict[str, int]]:
    return [Placement(*r).to_dict() for r in rects]


LAYOUT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "single-column",
        "name": "Single Column",
        "description": "Perfect for focused dashboards with one main metric per row",
        "columns": 12,
        "rowHeight": 100,
        "slots": _slots((0, 0, 12, 4), (0, 4, 12, 4), (0, 8, 12, 4), (0, 12, 12, 4)),
    },
    {
        "id": "two-column",
        "name": "Two Column",
        "description": "Balanced layout with two charts side by side",
        "columns": 12,
        "rowHeight": 100,
        "slots": _slots((0, 0, 6, 4), (6, 0, 6, 4), (0, 4, 6, 4), (6, 4, 6, 4)),
    },
    {
        "id": "three-column",
        "name": "Three Column",
        "description": "Compact layout with three charts per row",
        "columns": 12,
        "rowHeight": 100,
        "slots": _slots((0, 0, 4, 4), (4, 0, 4, 4), (8, 0, 4, 4), (0, 4, 6, 4), (6, 4, 6, 4)),
    },
    {
        "id": "hero-layout",
        "name": "Hero Layout",
        "description": "Prominent main chart with supporting metrics below",
        "columns": 12,
        "rowHeight": 100,
        "slots": _slots((0, 0, 12, 6), (0, 6, 4, 4), (4, 6, 4, 4), (8, 6, 4, 4)),
    },
    {
        "id": "grid-layout",
        "name": "Grid Layout",
        "description": "Flexible grid with equal-sized chart blocks",
        "columns": 12,
        "rowHeight": 100,
        "slots": _slots(
            (0, 0, 6, 4), (6, 0, 6, 4), (0, 4, 6, 4), (6, 4, 6, 4), (0, 8, 6, 4), (6, 8, 6, 4)
        ),
    },
]


def get_template(template_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not template_id:
        return None
    for template in LAYOUT_TEMPLATES:
        if template["id"] == template_id:
            return template
    return None


def place_widget(
    existing: List[Any],
    total_columns: int,
    w: Optional[int] = None,
    h: Optional[int] = None,
    template: Optional[Dict[str, Any]] = None,
) -> Placement:
    """Pick the rectangle for a new widget on a dashboard.

    Dashboards built from a template fill the template's slots in order: the
    slot's size is used, and its position too when it is still free.
    """
    slot = None
    if template is not None and len(existing) < len(template["slots"]):
        slot = _rect(template["slots"][len(existing)])

    if slot is not None:
        if w is None and h is None:
            if slot.x + slot.w <= total_columns and not any(slot.overlaps(_rect(i)) for i in existing):
                return slot
        w = slot.w if w is None else w
        h = slot.h if h is None else h

    return find_placement(
        existing,
        total_columns,
        DEFAULT_WIDTH if w is None else w,
        DEFAULT_HEIGHT if h is None else h,
    )
