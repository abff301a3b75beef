"""
Great-circle distance and a grid index for bounded station searches.
"""

import math
from typing import Dict, Generic, Iterable, Iterator, List, Tuple, TypeVar

T = TypeVar("T")

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = math.pi * EARTH_RADIUS_KM / 180.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in kilometres between two points."""
    rlat1, rlon1, rlat2, rlon2 = map(math.radians, (lat1, lon1, lat2, lon2))
    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


class GridIndex(Generic[T]):
    """
    Immutable equal-angle grid over (latitude, longitude) points.

    Points are bucketed into ``cell_deg`` sized cells. ``candidates`` returns
    every item in the cells overlapping a bounding box that encloses the
    search circle, so callers must still apply an exact distance check.
    The box wraps across the antimeridian and widens to all longitudes when
    it touches a pole.
    """

    def __init__(self, points: Iterable[Tuple[float, float, T]], cell_deg: float = 1.0):
        if cell_deg <= 0 or 180.0 % cell_deg:
            raise ValueError(f"cell_deg must evenly divide 180, got {cell_deg}")
        self.cell_deg = cell_deg
        self._rows = int(round(180.0 / cell_deg))
        self._cols = int(round(360.0 / cell_deg))
        self._cells: Dict[int, Dict[int, List[T]]] = {}
        self._size = 0
        for lat, lon, item in points:
            row, col = self._cell(lat, lon)
            self._cells.setdefault(row, {}).setdefault(col, []).append(item)
            self._size += 1

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[T]:
        for row in self._cells.values():
            for bucket in row.values():
                yield from bucket

    def _row(self, lat: float) -> int:
        return min(self._rows - 1, max(0, int(math.floor((lat + 90.0) / self.cell_deg))))

    def _col(self, lon: float) -> int:
        return int(math.floor((lon + 180.0) / self.cell_deg)) % self._cols

    def _cell(self, lat: float, lon: float) -> Tuple[int, int]:
        return self._row(lat), self._col(lon)

    def candidates(self, lat: float, lon: float, radius_km: float) -> List[T]:
        """Items whose cell intersects the bounding box of the search circle."""
        if radius_km < 0:
            return []

        lat_delta = radius_km / KM_PER_DEGREE
        south = lat - lat_delta
        north = lat + lat_delta
        rows = range(self._row(south), self._row(north) + 1)

        cols = None
        if south > -90.0 and north < 90.0:
            # Widest longitude extent of a spherical cap centred at lat
            ratio = math.sin(radius_km / EARTH_RADIUS_KM) / math.cos(math.radians(lat))
            lon_delta = math.degrees(math.asin(ratio)) if ratio < 1.0 else 180.0
            if lon_delta < 180.0:
                first = int(math.floor((lon - lon_delta + 180.0) / self.cell_deg))
                last = int(math.floor((lon + lon_delta + 180.0) / self.cell_deg))
                if last - first + 1 < self._cols:
                    cols = {c % self._cols for c in range(first, last + 1)}

        found: List[T] = []
        for row in rows:
            row_cells = self._cells.get(row)
            if not row_cells:
                continue
            if cols is None:
                for bucket in row_cells.values():
                    found.extend(bucket)
            else:
                for col in cols:
                    bucket = row_cells.get(col)
                    if bucket:
                        found.extend(bucket)
        return found
