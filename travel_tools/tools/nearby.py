"""Nearby places: TripAdvisor listings enriched with details, photos and open/closed status."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_DOWN
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ValidationError

from ..config import CONFIG
from ..context import ToolContext, load_zone
from ..errors import ProviderError
from ..registry import ToolDefinition
from ..schemas import NearbySearchParams
from ..upstream import fetch_json, require_key
from .geo import google_geocode


class PeriodPoint(BaseModel):
    day: int  # 0 = Sunday
    time: str  # HHMM


class OpeningPeriod(BaseModel):
    open: PeriodPoint
    close: Optional[PeriodPoint] = None


@dataclass(frozen=True)
class OpenStatus:
    is_closed: bool
    next_open_close: Optional[str]
    next_day: int


def sunday_based_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def compute_open_status(periods: Sequence[OpeningPeriod], local_now: datetime) -> OpenStatus:
    """Decide whether a place is open at ``local_now``.

    Periods are scanned in (day, open time) order and the first match wins.
    A period whose close time is below its open time runs past midnight.
    When nothing is open, the first later period gives the next opening.
    """
    current_day = sunday_based_weekday(local_now)
    current_time = local_now.hour * 100 + local_now.minute

    ordered = sorted(periods, key=lambda p: (p.open.day, int(p.open.time)))
    for period in ordered:
        open_time = int(period.open.time)
        close_label = period.close.time if period.close else "2359"
        close_time = int(close_label)
        period_day = period.open.day

        if close_time < open_time:
            # Still open from the overnight stretch
            if current_day == period_day and current_time < close_time:
                return OpenStatus(is_closed=False, next_open_close=close_label, next_day=current_day)
            # Opened today, closes tomorrow
            if current_day == period_day and current_time >= open_time:
                return OpenStatus(is_closed=False, next_open_close=close_label, next_day=(period_day + 1) % 7)
        elif current_day == period_day and open_time <= current_time < close_time:
            return OpenStatus(is_closed=False, next_open_close=close_label, next_day=current_day)

        if period_day > current_day or (period_day == current_day and open_time > current_time):
            return OpenStatus(is_closed=True, next_open_close=period.open.time, next_day=period_day)

    return OpenStatus(is_closed=True, next_open_close=None, next_day=current_day)


def parse_periods(raw_periods: Any) -> List[OpeningPeriod]:
    periods: List[OpeningPeriod] = []
    for raw in raw_periods or []:
        try:
            period = OpeningPeriod.model_validate(raw)
            int(period.open.time)
            if period.close:
                int(period.close.time)
        except (ValidationError, ValueError):
            continue
        periods.append(period)
    return periods


def truncate_coordinate(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.000001"), rounding=ROUND_DOWN))


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _tripadvisor_headers() -> Dict[str, str]:
    if not CONFIG.tripadvisor_referer:
        return {}
    return {"origin": CONFIG.tripadvisor_referer, "referer": CONFIG.tripadvisor_referer}


async def _resolve_center(ctx: ToolContext, params: NearbySearchParams) -> tuple[float, float]:
    try:
        geocoding = await google_geocode(ctx, params.location)
    except ProviderError as e:
        logging.warning("Geocoding %r failed, using provided coordinates: %s", params.location, e)
        return params.latitude, params.longitude
    results = geocoding.get("results") or []
    location = ((results[0].get("geometry") or {}).get("location") or {}) if results else {}
    if "lat" in location and "lng" in location:
        return truncate_coordinate(location["lat"]), truncate_coordinate(location["lng"])
    return params.latitude, params.longitude


async def _place_photos(ctx: ToolContext, location_id: str, key: str) -> List[Dict[str, Any]]:
    try:
        data = await fetch_json(
            ctx.http,
            "tripadvisor",
            "photos",
            f"{CONFIG.tripadvisor_base}/location/{location_id}/photos",
            params={"language": "en", "key": key},
            headers=_tripadvisor_headers(),
        )
    except ProviderError as e:
        logging.info("Photo fetch failed for %s: %s", location_id, e)
        return []
    photos = []
    for photo in data.get("data") or []:
        images = photo.get("images") or {}
        entry = {
            size: (images.get(size) or {}).get("url")
            for size in ("thumbnail", "small", "medium", "large", "original")
        }
        entry["caption"] = photo.get("caption")
        if entry["medium"]:
            photos.append(entry)
    return photos


async def _place_timezone(ctx: ToolContext, lat: float, lng: float) -> str:
    try:
        params = {
            "location": f"{lat},{lng}",
            "timestamp": int(ctx.request.now.timestamp()),
            "key": require_key("google-maps", CONFIG.google_maps_api_key),
        }
        data = await fetch_json(ctx.http, "google-maps", "timezone", f"{CONFIG.google_maps_base}/timezone/json", params=params)
    except ProviderError as e:
        logging.info("Timezone lookup failed for %s,%s: %s", lat, lng, e)
        return "UTC"
    zone_id = data.get("timeZoneId")
    return zone_id if load_zone(zone_id) is not None else "UTC"


async def _describe_place(
    ctx: ToolContext,
    place: Dict[str, Any],
    params: NearbySearchParams,
    center: tuple[float, float],
    key: str,
) -> Optional[Dict[str, Any]]:
    name = place.get("name")
    location_id = place.get("location_id")
    if not location_id:
        logging.info("Skipping place %r: no location_id", name)
        return None

    try:
        details = await fetch_json(
            ctx.http,
            "tripadvisor",
            "details",
            f"{CONFIG.tripadvisor_base}/location/{location_id}/details",
            params={"language": "en", "currency": "USD", "key": key},
            headers=_tripadvisor_headers(),
        )
    except ProviderError as e:
        logging.info("Failed to fetch details for %r: %s", name, e)
        return None

    lat = _to_float(details.get("latitude") or place.get("latitude"), center[0])
    lng = _to_float(details.get("longitude") or place.get("longitude"), center[1])
    photos, zone_name = await asyncio.gather(
        _place_photos(ctx, location_id, key),
        _place_timezone(ctx, lat, lng),
    )

    hours = details.get("hours") or {}
    local_now = ctx.request.now.astimezone(load_zone(zone_name) or timezone.utc)
    status = compute_open_status(parse_periods(hours.get("periods")), local_now)
    cuisine = details.get("cuisine") or []

    return {
        "name": name or "Unnamed Place",
        "location": {"lat": lat, "lng": lng},
        "timezone": zone_name,
        "place_id": location_id,
        "vicinity": (place.get("address_obj") or {}).get("address_string", ""),
        "distance": _to_float(place.get("distance")),
        "bearing": place.get("bearing") or "",
        "type": params.type,
        "rating": _to_float(details.get("rating")),
        "price_level": details.get("price_level") or "",
        "cuisine": cuisine[0].get("name", "") if cuisine else "",
        "description": details.get("description") or "",
        "phone": details.get("phone") or "",
        "website": details.get("website") or "",
        "reviews_count": _to_int(details.get("num_reviews")),
        "is_closed": status.is_closed,
        "hours": hours.get("weekday_text") or [],
        "next_open_close": status.next_open_close,
        "next_day": status.next_day,
        "periods": hours.get("periods") or [],
        "photos": photos,
        "source": (details.get("source") or {}).get("name") or "TripAdvisor",
    }


async def nearby_search(params: NearbySearchParams, ctx: ToolContext) -> Dict[str, Any]:
    key = require_key("tripadvisor", CONFIG.tripadvisor_api_key)
    center = await _resolve_center(ctx, params)
    center_payload = {"lat": center[0], "lng": center[1]}

    nearby = await fetch_json(
        ctx.http,
        "tripadvisor",
        "nearby_search",
        f"{CONFIG.tripadvisor_base}/location/nearby_search",
        params={
            "latLong": f"{center[0]},{center[1]}",
            "category": params.type,
            "radius": params.radius,
            "language": "en",
            "key": key,
        },
        headers=_tripadvisor_headers(),
    )
    places = nearby.get("data") or []
    if not places:
        logging.info("No nearby places found around %s", center_payload)
        return {"results": [], "center": center_payload}

    detailed = await asyncio.gather(*(_describe_place(ctx, place, params, center, key) for place in places))
    results = sorted((p for p in detailed if p is not None), key=lambda p: p["distance"])
    return {"results": results, "center": center_payload}


NEARBY_SEARCH = ToolDefinition(
    name="nearby_search",
    description="Search for nearby places, such as restaurants or hotels based on the details given.",
    parameters=NearbySearchParams,
    execute=nearby_search,
)
