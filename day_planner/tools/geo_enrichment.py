import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

import httpx

from day_planner import config
from day_planner.schemas import Coordinates, Stop

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False

# City centres used when no geocoding key is configured or the lookup fails.
CITY_CENTERS: Dict[str, Tuple[float, float]] = {
    "paris": (48.8566, 2.3522),
    "london": (51.5074, -0.1278),
    "rome": (41.9028, 12.4964),
    "barcelona": (41.3851, 2.1734),
    "madrid": (40.4168, -3.7038),
    "berlin": (52.5200, 13.4050),
    "amsterdam": (52.3676, 4.9041),
    "vienna": (48.2082, 16.3738),
    "prague": (50.0755, 14.4378),
    "lisbon": (38.7223, -9.1393),
    "istanbul": (41.0082, 28.9784),
    "new york": (40.7128, -74.0060),
    "los angeles": (34.0522, -118.2437),
    "san francisco": (37.7749, -122.4194),
    "chicago": (41.8781, -87.6298),
    "toronto": (43.6532, -79.3832),
    "mexico city": (19.4326, -99.1332),
    "tokyo": (35.6762, 139.6503),
    "kyoto": (35.0116, 135.7681),
    "seoul": (37.5665, 126.9780),
    "singapore": (1.3521, 103.8198),
    "bangkok": (13.7563, 100.5018),
    "dubai": (25.2048, 55.2708),
    "mumbai": (19.0760, 72.8777),
    "sydney": (-33.8688, 151.2093),
    "cape town": (-33.9249, 18.4241),
    "buenos aires": (-34.6037, -58.3816),
}


def lookup_city(query: str) -> Optional[Coordinates]:
    """Match the first comma-separated part of ``query`` ("Paris, France" -> "paris")."""
    city = query.lower().split(",")[0].strip()
    coords = CITY_CENTERS.get(city)
    if coords is None:
        return None
    return Coordinates(lat=coords[0], lng=coords[1])


class GeoEnricher:
    """
    Resolves free-text place queries to coordinates. Callers use it to fill in
    stops before optimizing; the scheduling core never calls out itself.
    """
    GEOCODE_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, *, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else config.GOOGLE_MAPS_API_KEY
        self.timeout = timeout if timeout is not None else config.GEOCODE_TIMEOUT

    async def geocode(self, query: str) -> Optional[Coordinates]:
        query = (query or "").strip()
        if not query:
            return None
        if self.api_key:
            coords = await self._remote_geocode(query)
            if coords is not None:
                return coords
        return lookup_city(query)

    async def _remote_geocode(self, query: str) -> Optional[Coordinates]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.GEOCODE_ENDPOINT,
                    params={"address": query, "key": self.api_key},
                )
                response.raise_for_status()
                data = response.json()
        except Exception:
            logger.warning("Geocoding failed for %r", query, exc_info=True)
            return None

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            logger.info("No geocoding match for %r (status %s)", query, data.get("status"))
            return None
        location = (results[0].get("geometry") or {}).get("location") or {}
        if "lat" not in location or "lng" not in location:
            return None
        return Coordinates(lat=float(location["lat"]), lng=float(location["lng"]))

    async def enrich_stops(self, stops: Iterable[Stop], location_hint: Optional[str] = None) -> List[Stop]:
        """Fill coordinates for stops that have none; stops with coordinates pass through."""
        stops = list(stops)
        pending = [s for s in stops if not s.has_coordinates]
        if not pending:
            return stops

        queries = [_query_for(s, location_hint) for s in pending]
        found = await asyncio.gather(*[self.geocode(q) for q in queries])
        resolved = {
            stop.id: coords for stop, coords in zip(pending, found) if coords is not None
        }
        logger.info("Geocoded %d of %d stops missing coordinates", len(resolved), len(pending))

        enriched: List[Stop] = []
        for stop in stops:
            coords = resolved.get(stop.id)
            if coords is None:
                enriched.append(stop)
            else:
                enriched.append(stop.model_copy(update={"latitude": coords.lat, "longitude": coords.lng}))
        return enriched


def _query_for(stop: Stop, location_hint: Optional[str]) -> str:
    parts = [p for p in (stop.name, stop.address or location_hint) if p]
    return ", ".join(parts)
