from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from ilotplan.geometry.primitives import Bounds, Point, bounds_of, polygon_centroid, shoelace_area


# (keywords, room type), checked in order against the upper-cased layer name
_LAYER_ROOM_TYPES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("OFFICE",), "office"),
    (("MEETING", "CONFERENCE"), "meeting"),
    (("STORAGE", "STORE"), "storage"),
    (("CORRIDOR", "HALLWAY"), "corridor"),
    (("RESTROOM", "WC", "TOILET"), "restroom"),
    (("KITCHEN", "BREAK"), "break_room"),
)

# (upper bound exclusive, room type)
_AREA_BANDS: Tuple[Tuple[float, str], ...] = (
    (5.0, "small_office"),
    (15.0, "office"),
    (30.0, "large_office"),
)


@dataclass(frozen=True)
class Room:
    id: str
    polygon: Tuple[Point, ...]
    area: float
    centroid: Point
    bbox: Bounds
    layer: str
    type: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "polygon": [list(p) for p in self.polygon],
            "area": self.area,
            "centroid": list(self.centroid),
            "bbox": self.bbox.to_dict(),
            "layer": self.layer,
            "type": self.type,
        }


def infer_room_type(layer: str, area: float) -> str:
    upper = (layer or "").upper()
    for keywords, room_type in _LAYER_ROOM_TYPES:
        if any(k in upper for k in keywords):
            return room_type
    for limit, room_type in _AREA_BANDS:
        if area < limit:
            return room_type
    return "open_space"


def extract_rooms(
    polygons: Iterable[Tuple[Sequence[Point], str]],
    min_area: float = 1.0,
) -> List[Room]:
    """Turn closed ``(vertices, layer)`` rings into rooms; rings not exceeding ``min_area`` are ignored."""
    rooms: List[Room] = []
    for vertices, layer in polygons:
        if len(vertices) < 3:
            continue
        area = shoelace_area(vertices)
        if area <= min_area:
            continue
        ring = tuple((float(x), float(y)) for x, y in vertices)
        rooms.append(
            Room(
                id=f"room_{len(rooms) + 1}",
                polygon=ring,
                area=area,
                centroid=polygon_centroid(ring),
                bbox=bounds_of(ring),
                layer=layer,
                type=infer_room_type(layer, area),
            )
        )
    return rooms


__all__ = ["Room", "infer_room_type", "extract_rooms"]
