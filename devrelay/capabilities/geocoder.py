"""Geocoder client: forwards free-text addresses to an external HTTP endpoint.

The endpoint receives POST {"address": ...} and replies with JSON. Replies are
normalized from the common shapes:
- {"success"|"valid": bool, "formatted_address"|"formattedAddress": str,
   "latitude"|"lat": float, "longitude"|"lng"|"lon": float,
   "location": {"lat", "lng"}, "error"|"message"|"reason": str}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from devrelay.infra.errors import GeocoderError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GeocodeResult:
    valid: bool
    formatted_address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    reason: str | None = None


class Geocoder(ABC):
    """Address validation capability."""

    @abstractmethod
    async def geocode(self, address: str) -> GeocodeResult:
        """Validate an address. Raises GeocoderError when the service is unreachable."""
        ...


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_geocode_reply(data: Any) -> GeocodeResult:
    """Normalize a geocoder JSON body into a GeocodeResult."""
    if not isinstance(data, dict):
        raise GeocoderError(f"Unexpected geocoder reply: {type(data).__name__}")

    location = data.get("location") if isinstance(data.get("location"), dict) else {}
    latitude = _first(data, "latitude", "lat")
    if latitude is None:
        latitude = _first(location, "lat", "latitude")
    longitude = _first(data, "longitude", "lng", "lon")
    if longitude is None:
        longitude = _first(location, "lng", "lon", "longitude")
    formatted = _first(data, "formatted_address", "formattedAddress", "address")
    reason = _first(data, "error", "message", "reason")

    flag = _first(data, "success", "valid")
    if flag is None:
        valid = formatted is not None and reason is None
    else:
        valid = bool(flag)

    return GeocodeResult(
        valid=valid,
        formatted_address=str(formatted) if formatted is not None else None,
        latitude=_as_float(latitude),
        longitude=_as_float(longitude),
        reason=str(reason) if reason is not None else None,
    )


class HttpGeocoder(Geocoder):
    """Geocoder backed by an HTTP JSON endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._transport = transport

    async def geocode(self, address: str) -> GeocodeResult:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._url, json={"address": address})
        except httpx.HTTPError as e:
            logger.warning("geocoder_request_failed", url=self._url, error=str(e))
            raise GeocoderError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e

        if response.status_code >= 500:
            logger.warning("geocoder_server_error", url=self._url, status=response.status_code)
            raise GeocoderError(f"geocoder returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise GeocoderError("geocoder returned a non-JSON reply") from e

        result = parse_geocode_reply(data)
        if response.status_code >= 400 and result.valid:
            result = GeocodeResult(
                valid=False, reason=result.reason or f"HTTP {response.status_code}"
            )
        logger.info("geocoder_replied", status=response.status_code, valid=result.valid)
        return result
