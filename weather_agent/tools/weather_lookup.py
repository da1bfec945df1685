"""Weather lookups exposed to the model as tools.

Backed by the OpenWeather geocoding, current weather and 5 day / 3 hour
forecast endpoints. Each lookup posts an informative update on the turn's
streaming response so the user sees progress while the model waits.
"""

import asyncio
import json
import logging
import time
from collections import Counter, OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Callable, Dict, List, Optional

import aiohttp
from pydantic import Field

from ..config import AgentSettings
from ..errors import MissingDependencyError, WeatherLookupError, require
from ..logs import log_event

UNIT_LABELS = {
    "imperial": ("°F", "mph"),
    "metric": ("°C", "m/s"),
    "standard": ("K", "m/s"),
}


def _labels(units: str):
    return UNIT_LABELS.get(units, UNIT_LABELS["standard"])


def _description(entry: Dict[str, Any]) -> str:
    weather = entry.get("weather") or []
    if weather and isinstance(weather[0], dict):
        return weather[0].get("description") or ""
    return ""


def place_label(location: str, state: Optional[str] = None) -> str:
    location = (location or "").strip()
    state = (state or "").strip()
    return f"{location}, {state}" if state else location


def summarize_current(payload: Dict[str, Any], units: str = "imperial") -> str:
    temp_unit, speed_unit = _labels(units)
    main = payload.get("main") or {}
    wind = payload.get("wind") or {}
    summary = {
        "location": payload.get("name"),
        "description": _description(payload),
        "temperature": main.get("temp"),
        "low": main.get("temp_min"),
        "high": main.get("temp_max"),
        "humidity_percent": main.get("humidity"),
        "wind_speed": wind.get("speed"),
        "temperature_unit": temp_unit,
        "wind_speed_unit": speed_unit,
    }
    return json.dumps(summary, ensure_ascii=False)


def summarize_forecast(payload: Dict[str, Any], units: str = "imperial", days: int = 5) -> str:
    """Collapse 3-hourly forecast entries into one record per local calendar day."""
    temp_unit, _ = _labels(units)
    city = payload.get("city") or {}
    offset = timedelta(seconds=int(city.get("timezone") or 0))
    tz = timezone(offset)

    buckets: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for entry in payload.get("list") or []:
        stamp = entry.get("dt")
        if stamp is None:
            continue
        day = datetime.fromtimestamp(int(stamp), tz=tz).date().isoformat()
        if day not in buckets:
            if len(buckets) >= days:
                break
            buckets[day] = {"lows": [], "highs": [], "descriptions": Counter()}
        main = entry.get("main") or {}
        bucket = buckets[day]
        if main.get("temp_min") is not None:
            bucket["lows"].append(main["temp_min"])
        if main.get("temp_max") is not None:
            bucket["highs"].append(main["temp_max"])
        desc = _description(entry)
        if desc:
            bucket["descriptions"][desc] += 1

    forecast: List[Dict[str, Any]] = []
    for day, bucket in buckets.items():
        common = bucket["descriptions"].most_common(1)
        forecast.append({
            "date": day,
            "low": min(bucket["lows"]) if bucket["lows"] else None,
            "high": max(bucket["highs"]) if bucket["highs"] else None,
            "description": common[0][0] if common else "",
        })

    return json.dumps(
        {"location": city.get("name"), "temperature_unit": temp_unit, "days": forecast},
        ensure_ascii=False,
    )


class WeatherLookupTool:
    def __init__(self, context, settings: AgentSettings, session_factory: Callable[..., Any] = aiohttp.ClientSession):
        require(context, "context")
        require(settings, "settings")
        if not settings.openweather_api_key:
            raise MissingDependencyError("OPENWEATHER_API_KEY")
        self._context = context
        self._settings = settings
        self._session_factory = session_factory

    def _notify(self, place: str):
        streaming = getattr(self._context, "streaming_response", None)
        if streaming is not None:
            streaming.queue_informative_update(f"Looking up the weather in {place}")

    async def _get_json(self, session, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self._settings.openweather_base_url}{path}"
        query = {**params, "appid": self._settings.openweather_api_key}
        async with session.get(url, params=query) as resp:
            if resp.status >= 400:
                raise WeatherLookupError(f"{path} returned HTTP {resp.status}", status=resp.status)
            return await resp.json()

    async def _lookup(self, location: str, state: Optional[str], path: str, summarize: Callable[[Any], str]) -> str:
        place = place_label(location, state)
        self._notify(place)
        query = f"{location.strip()},{state.strip()},US" if state and state.strip() else location.strip()

        start = time.monotonic()
        timeout = aiohttp.ClientTimeout(total=self._settings.weather_http_timeout)
        try:
            async with self._session_factory(timeout=timeout) as session:
                matches = await self._get_json(session, "/geo/1.0/direct", {"q": query, "limit": 1})
                if not matches:
                    log_event(logging.INFO, "weather_lookup", path=path, place=place, resolved=False)
                    return f"Unable to resolve location: {place}"
                top = matches[0]
                payload = await self._get_json(
                    session,
                    path,
                    {"lat": top.get("lat"), "lon": top.get("lon"), "units": self._settings.openweather_units},
                )
        except WeatherLookupError as e:
            log_event(logging.WARNING, "weather_lookup_failed", path=path, place=place, status=e.status)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log_event(logging.WARNING, "weather_lookup_failed", path=path, place=place, error=type(e).__name__)
            raise WeatherLookupError(f"weather service unavailable: {type(e).__name__}") from e

        log_event(
            logging.INFO,
            "weather_lookup",
            path=path,
            place=place,
            resolved=True,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return summarize(payload)

    async def get_current_weather_for_location(
        self,
        location: Annotated[str, Field(description="The city name to look up.")],
        state: Annotated[Optional[str], Field(description="Full US state name, when the city is in the US.")] = None,
    ) -> str:
        """Get the current weather for a location."""
        units = self._settings.openweather_units
        return await self._lookup(location, state, "/data/2.5/weather", lambda p: summarize_current(p, units))

    async def get_weather_forecast_for_location(
        self,
        location: Annotated[str, Field(description="The city name to look up.")],
        state: Annotated[Optional[str], Field(description="Full US state name, when the city is in the US.")] = None,
    ) -> str:
        """Get the 5 day weather forecast for a location."""
        units = self._settings.openweather_units
        return await self._lookup(location, state, "/data/2.5/forecast", lambda p: summarize_forecast(p, units))
