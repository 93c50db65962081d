import asyncio
import math
from urllib.parse import quote
from typing import Any, Dict, List, Optional, Tuple

from ..config import CONFIG
from ..context import ToolContext
from ..errors import ProviderError
from ..registry import ToolDefinition
from ..schemas import FindPlaceParams, TextSearchParams
from ..upstream import fetch_json, require_key


METERS_PER_DEGREE = 111_320.0


async def google_geocode(ctx: ToolContext, address: str) -> Dict[str, Any]:
    params = {"address": address, "key": require_key("google-maps", CONFIG.google_maps_api_key)}
    return await fetch_json(ctx.http, "google-maps", "geocode", f"{CONFIG.google_maps_base}/geocode/json", params=params)


async def mapbox_reverse(ctx: ToolContext, lat: float, lng: float) -> Dict[str, Any]:
    params = {
        "longitude": lng,
        "latitude": lat,
        "access_token": require_key("mapbox", CONFIG.mapbox_access_token),
    }
    return await fetch_json(ctx.http, "mapbox", "reverse", f"{CONFIG.mapbox_base}/search/geocode/v6/reverse", params=params)


def _google_features(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    if data.get("status") != "OK":
        return []
    features = []
    for result in data.get("results") or []:
        location = result["geometry"]["location"]
        formatted = result.get("formatted_address", "")
        types = result.get("types") or []
        features.append(
            {
                "id": result.get("place_id"),
                "name": formatted.split(",")[0],
                "formatted_address": formatted,
                "geometry": {"type": "Point", "coordinates": [location["lng"], location["lat"]]},
                "feature_type": types[0] if types else None,
                "address_components": result.get("address_components") or [],
                "viewport": result["geometry"].get("viewport"),
                "place_id": result.get("place_id"),
                "source": "google",
            }
        )
    return features


def _mapbox_features(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    features = []
    for feature in data.get("features") or []:
        props = feature.get("properties") or {}
        features.append(
            {
                "id": feature.get("id"),
                "name": props.get("name_preferred") or props.get("name"),
                "formatted_address": props.get("full_address"),
                "geometry": feature.get("geometry"),
                "feature_type": props.get("feature_type"),
                "context": props.get("context"),
                "coordinates": props.get("coordinates"),
                "bbox": props.get("bbox"),
                "source": "mapbox",
            }
        )
    return features


async def find_place(params: FindPlaceParams, ctx: ToolContext) -> Dict[str, Any]:
    lat, lng = params.coordinates
    google_data, mapbox_data = await asyncio.gather(
        google_geocode(ctx, params.query),
        mapbox_reverse(ctx, lat, lng),
    )
    try:
        features = _google_features(google_data) + _mapbox_features(mapbox_data)
    except (KeyError, TypeError) as e:
        raise ProviderError("geocoding", f"unexpected payload shape: {e}") from e
    return {
        "features": features,
        "google_attribution": "Powered by Google Maps Platform",
        "mapbox_attribution": "Powered by Mapbox",
    }


def parse_lat_lng(location: str) -> Optional[Tuple[float, float]]:
    try:
        lat_str, lng_str = location.split(",")
        return float(lat_str), float(lng_str)
    except ValueError:
        return None


async def text_search(params: TextSearchParams, ctx: ToolContext) -> Dict[str, Any]:
    query: Dict[str, Any] = {
        "types": "poi",
        "access_token": require_key("mapbox", CONFIG.mapbox_access_token),
    }
    center = parse_lat_lng(params.location) if params.location else None
    if center is not None:
        query["proximity"] = f"{center[1]},{center[0]}"

    url = f"{CONFIG.mapbox_base}/geocoding/v5/mapbox.places/{quote(params.query, safe='')}.json"
    data = await fetch_json(ctx.http, "mapbox", "places", url, params=query)
    features = [f for f in data.get("features") or [] if f.get("center")]

    if center is not None and params.radius:
        # Planar distance in degrees, good enough for a city-sized radius
        center_lat, center_lng = center
        radius_deg = params.radius / METERS_PER_DEGREE
        features = [
            f for f in features
            if math.hypot(f["center"][0] - center_lng, f["center"][1] - center_lat) <= radius_deg
        ]

    return {
        "results": [
            {
                "name": f.get("text"),
                "formatted_address": f.get("place_name"),
                "geometry": {"location": {"lat": f["center"][1], "lng": f["center"][0]}},
            }
            for f in features
        ]
    }


FIND_PLACE = ToolDefinition(
    name="find_place",
    description="Find a place using Google Maps API for forward geocoding and Mapbox for reverse geocoding.",
    parameters=FindPlaceParams,
    execute=find_place,
)

TEXT_SEARCH = ToolDefinition(
    name="text_search",
    description="Perform a text-based search for places using Mapbox API.",
    parameters=TextSearchParams,
    execute=text_search,
)
