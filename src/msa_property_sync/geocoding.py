from __future__ import annotations

from typing import Any, Optional, Protocol

import requests

from .errors import GeocodingError, GeocodingUnavailable
from .logs import get_logger
from .normalize import normalize_county_name
from .settings import DEFAULT_GEOCODER_URL


logger = get_logger("geocoding")


class CountyGeocoder(Protocol):
    def resolve_county(self, longitude: float, latitude: float) -> str:
        raise NotImplementedError


class CensusGeocoder:
    """County lookup from coordinates through the US Census geographies API.

    Raises GeocodingUnavailable when the service cannot be reached and
    GeocodingError when it answers without a county. No default is ever
    substituted; the caller decides what a miss means.
    """

    def __init__(
        self,
        url: str = DEFAULT_GEOCODER_URL,
        timeout_s: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    def resolve_county(self, longitude: float, latitude: float) -> str:
        params = {
            "x": longitude,
            "y": latitude,
            "benchmark": "Public_AR_Current",
            "vintage": "Current_Current",
            "format": "json",
        }
        try:
            resp = self._session.get(self.url, params=params, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise GeocodingUnavailable(
                f"geocoder request failed for ({longitude}, {latitude}): {exc}"
            ) from exc
        if resp.status_code != 200:
            raise GeocodingUnavailable(
                f"geocoder returned HTTP {resp.status_code} for ({longitude}, {latitude})"
            )
        try:
            payload: Any = resp.json()
        except ValueError as exc:
            raise GeocodingError("geocoder returned malformed JSON") from exc

        county = _county_from_payload(payload)
        if not county:
            raise GeocodingError(f"no county found for ({longitude}, {latitude})")
        logger.debug("geocoded (%s, %s) -> %s", longitude, latitude, county)
        return county


def _county_from_payload(payload: Any) -> Optional[str]:
    try:
        counties = payload["result"]["geographies"]["Counties"]
        name = counties[0]["BASENAME"]
    except (KeyError, IndexError, TypeError):
        return None
    return normalize_county_name(name)
