"""Static Sri Lankan landmark, road and city catalogs used for reverse geocoding."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Landmark:
    name: str
    latitude: float
    longitude: float
    city: str
    province: str


@dataclass(frozen=True, slots=True)
class Road:
    name: str
    road_type: str


LANDMARKS: tuple[Landmark, ...] = (
    Landmark("Galle Face Green", 6.9271, 79.8612, "Colombo", "Western"),
    Landmark("Colombo Fort Railway Station", 6.9344, 79.8428, "Colombo", "Western"),
    Landmark("Gangaramaya Temple", 6.9161, 79.8561, "Colombo", "Western"),
    Landmark("National Museum", 6.9005, 79.8612, "Colombo", "Western"),
    Landmark("Viharamahadevi Park", 6.9123, 79.8607, "Colombo", "Western"),
    Landmark("Temple of the Sacred Tooth Relic", 7.2906, 80.6337, "Kandy", "Central"),
    Landmark("Kandy Lake", 7.2916, 80.6340, "Kandy", "Central"),
    Landmark("Royal Botanical Gardens", 7.2599, 80.5977, "Peradeniya", "Central"),
    Landmark("University of Peradeniya", 7.2547, 80.5956, "Peradeniya", "Central"),
    Landmark("Galle Dutch Fort", 6.0535, 80.2210, "Galle", "Southern"),
    Landmark("Galle Lighthouse", 6.0205, 80.2174, "Galle", "Southern"),
    Landmark("Unawatuna Beach", 6.0108, 80.2492, "Unawatuna", "Southern"),
    Landmark("Sri Maha Bodhi", 8.3444, 80.3962, "Anuradhapura", "North Central"),
    Landmark("Ruwanwelisaya", 8.3497, 80.3961, "Anuradhapura", "North Central"),
    Landmark("Jetavanaramaya", 8.3525, 80.4037, "Anuradhapura", "North Central"),
    Landmark("Sigiriya Rock Fortress", 7.9570, 80.7603, "Sigiriya", "Central"),
    Landmark("Dambulla Cave Temple", 7.8731, 80.6511, "Dambulla", "Central"),
    Landmark("Adam's Peak", 6.8095, 80.4989, "Hatton", "Central"),
    Landmark("Nuwara Eliya Golf Club", 6.9497, 80.7891, "Nuwara Eliya", "Central"),
)

ROADS: tuple[Road, ...] = (
    Road("Southern Expressway (E01)", "expressway"),
    Road("Colombo-Katunayake Expressway (E03)", "expressway"),
    Road("Outer Circular Highway (E02)", "expressway"),
    Road("Colombo-Kandy Road (A1)", "main_road"),
    Road("Colombo-Galle Road (A2)", "main_road"),
    Road("Colombo-Ratnapura Road (A4)", "main_road"),
    Road("Kandy-Jaffna Road (A9)", "main_road"),
    Road("Colombo-Trincomalee Road (A6)", "main_road"),
    Road("Kandy-Batticaloa Road (A5)", "main_road"),
    Road("Galle-Matara Road (B2)", "secondary_road"),
    Road("Kandy-Nuwara Eliya Road (B13)", "secondary_road"),
    Road("Negombo-Chilaw Road (B3)", "secondary_road"),
    Road("Galle Face Terrace", "local_road"),
    Road("Marine Drive", "local_road"),
    Road("Peradeniya Road", "local_road"),
    Road("Maradana Road", "local_road"),
    Road("Bauddhaloka Mawatha", "local_road"),
    Road("Duplication Road", "local_road"),
)

CITY_CENTRES: dict[str, tuple[float, float]] = {
    "Colombo": (6.9271, 79.8612),
    "Kandy": (7.2906, 80.6337),
    "Galle": (6.0535, 80.2210),
    "Matara": (5.9549, 80.5550),
    "Anuradhapura": (8.3114, 80.4037),
    "Trincomalee": (8.5874, 81.2152),
    "Batticaloa": (7.7102, 81.6924),
    "Jaffna": (9.6615, 80.0255),
    "Negombo": (7.2087, 79.8358),
    "Kalutara": (6.5854, 79.9607),
    "Nuwara Eliya": (6.9497, 80.7891),
}

# Route name fragment -> trunk road the service runs on, first match wins.
ROUTE_CORRIDORS: tuple[tuple[str, str], ...] = (
    ("Colombo - Kandy", "Colombo-Kandy Road (A1)"),
    ("Colombo - Galle", "Colombo-Galle Road (A2)"),
    ("Colombo - Matara", "Galle-Matara Road (B2)"),
    ("Colombo - Anuradhapura", "Colombo-Puttalam Road (A3)"),
    ("Kandy - Jaffna", "Kandy-Jaffna Road (A9)"),
    ("Colombo - Trincomalee", "Colombo-Trincomalee Road (A6)"),
    ("Kandy - Nuwara Eliya", "Kandy-Nuwara Eliya Road (B13)"),
)
