"""Match a free-text district/city to a courier city id."""
from typing import Any

# The courier models the three valley districts as a single city.
_VALLEY_DISTRICTS = ("kathmandu", "lalitpur", "bhaktapur")
_VALLEY_CITY_NAME = "Kathmandu Valley"


def match_city(cities: list[dict[str, Any]], district: str, city: str) -> dict[str, Any] | None:
    """Valley aliasing first, then exact name match, then substring match."""
    clean_district = district.strip().lower()
    clean_city = city.strip().lower()

    if clean_district in _VALLEY_DISTRICTS or clean_city in _VALLEY_DISTRICTS:
        for c in cities:
            if c.get("city_name") == _VALLEY_CITY_NAME:
                return c

    for c in cities:
        name = str(c.get("city_name", "")).lower()
        if name in (clean_city, clean_district):
            return c

    for c in cities:
        name = str(c.get("city_name", "")).lower()
        if (clean_city and clean_city in name) or (clean_district and clean_district in name):
            return c
    return None
