"""Human-readable location context (address, city, landmark, road) for a GPS fix."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from ..geospatial import nearest_point
from .catalog import CITY_CENTRES, LANDMARKS, ROADS, ROUTE_CORRIDORS, Landmark, Road

LANDMARK_ADDRESS_RADIUS_KM = 1.0
LANDMARK_CITY_RADIUS_KM = 5.0
DEFAULT_CITY = "Colombo"


@dataclass(frozen=True, slots=True)
class LocationContext:
    address: str
    city: str
    nearest_landmark: str
    road_name: str


class LocationContextProvider:
    def __init__(
        self,
        rng: random.Random | None = None,
        *,
        landmarks: Sequence[Landmark] = LANDMARKS,
        roads: Sequence[Road] = ROADS,
    ) -> None:
        self.rng = rng or random.Random()
        self.landmarks = tuple(landmarks)
        self.roads = tuple(roads)

    def nearest_landmark(self, latitude: float, longitude: float) -> tuple[Optional[Landmark], float]:
        closest = nearest_point(
            latitude, longitude, ((landmark, landmark.latitude, landmark.longitude) for landmark in self.landmarks)
        )
        return closest if closest is not None else (None, float("inf"))

    def _random_road(self) -> str:
        return self.rng.choice(self.roads).name

    def address(self, latitude: float, longitude: float) -> str:
        return self._address(*self.nearest_landmark(latitude, longitude))

    def _address(self, landmark: Optional[Landmark], distance: float) -> str:
        house_number = self.rng.randint(1, 999)
        if landmark is not None and distance < LANDMARK_ADDRESS_RADIUS_KM:
            street = f"{landmark.name} Road"
        else:
            street = self._random_road()
        return f"{house_number}, {street}"

    def city(self, latitude: float, longitude: float) -> str:
        return self._city(latitude, longitude, *self.nearest_landmark(latitude, longitude))

    def _city(self, latitude: float, longitude: float, landmark: Optional[Landmark], distance: float) -> str:
        if landmark is not None and distance < LANDMARK_CITY_RADIUS_KM:
            return landmark.city
        closest = nearest_point(latitude, longitude, ((name, lat, lon) for name, (lat, lon) in CITY_CENTRES.items()))
        return closest[0] if closest else DEFAULT_CITY

    def road_name(self, route_name: str) -> str:
        for fragment, road in ROUTE_CORRIDORS:
            if fragment in route_name:
                return road
        return self._random_road()

    def describe(self, latitude: float, longitude: float, route_name: str) -> LocationContext:
        landmark, distance = self.nearest_landmark(latitude, longitude)
        return LocationContext(
            address=self._address(landmark, distance),
            city=self._city(latitude, longitude, landmark, distance),
            nearest_landmark=landmark.name if landmark else "",
            road_name=self.road_name(route_name),
        )
