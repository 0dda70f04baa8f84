"""
@file geocoding.py
@brief Place-name search through the Nominatim geocoder

@details
Returns the first US match for a free-text query. Any network, HTTP or
payload error is logged and reported as "no result"; there are no retries.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

## @brief Zoom level the map jumps to for a geocoded place
RESULT_ZOOM = 12

## @brief HTTP session for geocoder requests
_session = None


def get_session():
    """Get or create the shared HTTP session."""
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({'User-Agent': 'Road Dashboard Geocoder'})
    return _session


@dataclass
class GeocodeResult:
    lat: float
    lon: float
    display_name: str = ""
    zoom: int = RESULT_ZOOM


def geocode(query: str, url: Optional[str] = None, timeout: float = 10) -> Optional[GeocodeResult]:
    """
    @brief Resolve a place name to coordinates

    @param query Free-text place name
    @param url Geocoder endpoint [default: $GEOCODER_URL or Nominatim]
    @return GeocodeResult, or None when nothing matched or the request failed
    """
    if not query or not query.strip():
        return None

    url = url or os.getenv("GEOCODER_URL", NOMINATIM_URL)
    params = {"format": "json", "q": query.strip(), "limit": 1, "countrycodes": "us"}

    try:
        response = get_session().get(url, params=params, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"✗ Geocoding request failed for {query!r}: {e}")
        return None
    except ValueError as e:
        logger.error(f"✗ Geocoder returned invalid JSON for {query!r}: {e}")
        return None

    if not data:
        logger.info(f"No geocoding result for {query!r}")
        return None

    try:
        first = data[0]
        return GeocodeResult(
            lat=float(first["lat"]),
            lon=float(first["lon"]),
            display_name=first.get("display_name", ""),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"✗ Unexpected geocoder payload for {query!r}: {e}")
        return None
