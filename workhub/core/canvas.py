"""Whiteboard canvas merging.

Auto-save and update requests send a partial canvas. Shape arrays are
merged by id: shapes already on the canvas are kept as they are, and
incoming shapes are appended only when their id is new (or they have no
id). There is no conflict resolution between concurrent editors.
"""

from datetime import datetime
from typing import Any, Optional

SHAPE_KEYS = ("shapes", "elements")


def _shapes(canvas: dict) -> list:
    # ``shapes`` wins whenever it is set, even to an empty list
    for key in SHAPE_KEYS:
        if canvas.get(key) is not None:
            return list(canvas[key])
    return []


def _shape_id(shape: Any) -> Optional[Any]:
    if isinstance(shape, dict):
        return shape.get("id")
    return None


def merge_shapes(existing: list, incoming: list) -> list:
    """Append incoming shapes whose id is not already present."""
    merged = list(existing)
    seen = {_shape_id(shape) for shape in merged}
    seen.discard(None)

    for shape in incoming:
        shape_id = _shape_id(shape)
        if shape_id is None:
            merged.append(shape)
        elif shape_id not in seen:
            merged.append(shape)
            seen.add(shape_id)

    return merged


def merge_canvas(
    existing: Any,
    incoming: Any,
    *,
    modified_by: Any = None,
    modified_at: Optional[datetime] = None,
) -> Any:
    """
    Merge an incoming canvas payload into the stored canvas.

    Non-dict payloads replace the canvas outright. Dict payloads are merged
    shallowly over the stored canvas and stamped with ``lastModifiedBy`` and
    ``lastModifiedAt``; when they carry a non-null ``shapes`` or ``elements``
    the merged shape list is written under both keys. ``shapes`` is read
    before ``elements`` on both sides.
    """
    if not isinstance(incoming, dict):
        return incoming

    base = existing if isinstance(existing, dict) else {}
    stamp = {
        "lastModifiedBy": str(modified_by) if modified_by is not None else None,
        "lastModifiedAt": (modified_at or datetime.utcnow()).isoformat(),
    }

    if any(incoming.get(key) is not None for key in SHAPE_KEYS):
        shapes = merge_shapes(_shapes(base), _shapes(incoming))
        return {**base, **incoming, "shapes": shapes, "elements": list(shapes), **stamp}

    return {**base, **incoming, **stamp}
