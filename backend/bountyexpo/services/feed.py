"""
Bounty Feed - filtering, sorting and grouping for the browse/map views

Pure functions over bounty-like objects (ORM rows, dataclasses, anything
exposing id/title/description/amount/is_for_honor/work_type/location).

Distances are in miles. Without coordinates on both sides the distance is a
deterministic placeholder derived from the location string, so the same
location always lands at the same spot in the list.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

MOCK_DISTANCE_MAX_MILES = 15
EARTH_RADIUS_MILES = 3958.8
UNKNOWN_LOCATION = "Unknown"

_COORDINATES = re.compile(r"^(-?\d+\.?\d*),\s*(-?\d+\.?\d*)$")

Coordinates = Tuple[float, float]


class FeedCategory:
    """Feed chip identifiers. Anything else is treated as a keyword."""
    ALL = "all"
    HIGH_PAYING = "highpaying"
    REMOTE = "remote"
    FOR_HONOR = "forhonor"
    LOCAL = "local"

    # Older clients send "forkids" for the For Honor chip
    ALIASES = {"forkids": FOR_HONOR}

    @classmethod
    def normalize(cls, category: Optional[str]) -> str:
        if not category:
            return cls.ALL
        category = category.strip().lower()
        return cls.ALIASES.get(category, category)


@dataclass
class FeedItem:
    bounty: Any
    distance: Optional[float]


def _value(field: Any) -> Any:
    """Enum members compare by value"""
    return getattr(field, "value", field)


def _utf16_code_units(text: str) -> List[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def mock_distance(location: Optional[str], max_miles: int = MOCK_DISTANCE_MAX_MILES) -> Optional[int]:
    """
    Placeholder distance for a free-text location.

    Sums the UTF-16 code units of the string and folds the sum by the string
    length, giving a value in [1, max_miles]. Empty or missing locations have
    no distance.
    """
    if not location:
        return None
    units = _utf16_code_units(location)
    seed = len(units)
    total = sum(units)
    return 1 + ((total % seed) % max_miles)


def parse_coordinates(location: Optional[str]) -> Optional[Coordinates]:
    """Parse "lat,lng" locations; anything else returns None"""
    if not location:
        return None
    match = _COORDINATES.match(location.strip())
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def haversine_miles(origin: Coordinates, target: Coordinates) -> float:
    lat1, lng1 = map(math.radians, origin)
    lat2, lng2 = map(math.radians, target)
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(a))


def distance_for(
    location: Optional[str],
    origin: Optional[Coordinates] = None,
    max_miles: int = MOCK_DISTANCE_MAX_MILES,
) -> Optional[float]:
    """Real distance when both ends have coordinates, placeholder otherwise"""
    if not location:
        return None
    if origin is not None:
        target = parse_coordinates(location)
        if target is not None:
            return round(haversine_miles(origin, target), 1)
    return mock_distance(location, max_miles)


def _matches_category(bounty: Any, category: str) -> bool:
    if category in (FeedCategory.ALL, FeedCategory.LOCAL):
        return True
    if category == FeedCategory.FOR_HONOR:
        return bool(bounty.is_for_honor)
    if category == FeedCategory.REMOTE:
        return _value(bounty.work_type) == "online"
    if category == FeedCategory.HIGH_PAYING:
        return not bounty.is_for_honor and (bounty.amount or 0) > 0
    keyword = category.replace("_", " ")
    text = f"{bounty.title} {bounty.description or ''}".lower()
    return keyword in text


def filter_feed(
    bounties: Iterable[Any],
    category: Optional[str] = None,
    max_distance: Optional[float] = None,
    origin: Optional[Coordinates] = None,
    exclude_ids: Iterable[str] = (),
    distances: Optional[Dict[str, Optional[float]]] = None,
    max_miles: int = MOCK_DISTANCE_MAX_MILES,
) -> List[Any]:
    """
    Apply the feed filters in order: applied-to exclusion, category, distance.

    The distance filter only applies when the viewer's position is known.
    Online bounties and bounties without a distance always pass it.
    """
    category = FeedCategory.normalize(category)
    excluded = {str(i) for i in exclude_ids}

    result = [b for b in bounties if str(b.id) not in excluded]
    result = [b for b in result if _matches_category(b, category)]

    if max_distance is not None and origin is not None:
        if distances is None:
            distances = {str(b.id): distance_for(b.location, origin, max_miles) for b in result}
        kept = []
        for b in result:
            if _value(b.work_type) == "online":
                kept.append(b)
                continue
            distance = distances.get(str(b.id))
            if distance is None or distance <= max_distance:
                kept.append(b)
        result = kept

    return result


def sort_feed(
    bounties: Sequence[Any],
    category: Optional[str] = None,
    distances: Optional[Dict[str, Optional[float]]] = None,
    origin: Optional[Coordinates] = None,
    max_miles: int = MOCK_DISTANCE_MAX_MILES,
) -> List[Any]:
    """High Paying sorts by amount (largest first); everything else by proximity, unknown last"""
    category = FeedCategory.normalize(category)

    if category == FeedCategory.HIGH_PAYING:
        return sorted(bounties, key=lambda b: b.amount or 0, reverse=True)

    if distances is None:
        distances = {str(b.id): distance_for(b.location, origin, max_miles) for b in bounties}

    def proximity(b: Any) -> Tuple[int, float]:
        distance = distances.get(str(b.id))
        if distance is None:
            return (1, 0.0)
        return (0, distance)

    return sorted(bounties, key=proximity)


def build_feed(
    bounties: Sequence[Any],
    category: Optional[str] = None,
    max_distance: Optional[float] = None,
    origin: Optional[Coordinates] = None,
    exclude_ids: Iterable[str] = (),
    max_miles: int = MOCK_DISTANCE_MAX_MILES,
) -> List[FeedItem]:
    """Filter then sort, computing each distance once"""
    distances = {str(b.id): distance_for(b.location, origin, max_miles) for b in bounties}
    filtered = filter_feed(
        bounties,
        category=category,
        max_distance=max_distance,
        origin=origin,
        exclude_ids=exclude_ids,
        distances=distances,
        max_miles=max_miles,
    )
    ordered = sort_feed(filtered, category=category, distances=distances)
    return [FeedItem(bounty=b, distance=distances.get(str(b.id))) for b in ordered]


def group_by_location(bounties: Iterable[Any]) -> Dict[str, List[Any]]:
    """Group bounties by location string in first-seen order; missing location -> "Unknown" """
    groups: Dict[str, List[Any]] = {}
    for bounty in bounties:
        key = bounty.location or UNKNOWN_LOCATION
        groups.setdefault(key, []).append(bounty)
    return groups
