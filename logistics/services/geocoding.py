"""
LOGISTICS - Geocoding resolver

Maps a free-text address or a Google Maps link to coordinates.

Resolution order:
    1. Map link  -> coordinates embedded in the URL (@lat,lng / q= / !3d!4d)
    2. Map link  -> place name in the URL -> Geocoding API
    3. Free text -> Geocoding API (", Lima, Perú" appended when missing)
    4. Anything that fails -> DEFAULT_COORDINATES

Results outside the Lima bounding box are rejected. Resolution never
raises: a bad address must not block order creation.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, unquote, urlparse

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


# Lima city centre
DEFAULT_COORDINATES = Coordinates(latitude=-12.080772, longitude=-76.980565)

LIMA_BOUNDS = {
    'min_lat': -12.999999,
    'max_lat': -11.0,
    'min_lng': -77.999999,
    'max_lng': -76.0,
}

URL_PREFIXES = ('http://', 'https://', 'www.')
URL_DOMAIN_HINTS = ('.com', '.org', '.net', '.gob', '.edu', '.pe', '.maps')

AT_PATTERN = re.compile(r'@(-1[1-2]\.\d+),(-7[6-7]\.\d+)')
LAT_PATTERN = re.compile(r'(-1[1-2]\.\d+)')
LNG_PATTERN = re.compile(r'(-7[6-7]\.\d+)')
LAT_3D_PATTERN = re.compile(r'!3d(-1[1-2]\.\d+)')
LNG_4D_PATTERN = re.compile(r'!4d(-7[6-7]\.\d+)')
PLACE_PATTERN = re.compile(r'/place/(.*?)(?:/data=|/@|$)')
MAPS_QUERY_PATTERN = re.compile(r'/maps\?q=(.*?)(?:&|$)')


def within_lima(latitude: float, longitude: float) -> bool:
    return (
        LIMA_BOUNDS['min_lat'] <= latitude <= LIMA_BOUNDS['max_lat']
        and LIMA_BOUNDS['min_lng'] <= longitude <= LIMA_BOUNDS['max_lng']
    )


def is_map_link(text: str) -> bool:
    value = (text or '').strip()
    if not value:
        return False
    if value.startswith(URL_PREFIXES):
        return True
    return any(hint in value for hint in URL_DOMAIN_HINTS)


def extract_coordinates_from_url(url: str) -> Optional[Coordinates]:
    if not url:
        return None
    decoded = unquote(url)

    match = AT_PATTERN.search(decoded)
    if match:
        return Coordinates(float(match.group(1)), float(match.group(2)))

    query = parse_qs(urlparse(url).query).get('q')
    if query:
        parts = query[0].split(',')
        if len(parts) == 2:
            try:
                lat, lng = float(parts[0]), float(parts[1])
            except ValueError:
                lat = lng = None
            if lat is not None and within_lima(lat, lng):
                return Coordinates(lat, lng)

    for lat_text in LAT_PATTERN.findall(decoded):
        for lng_text in LNG_PATTERN.findall(decoded):
            lat, lng = float(lat_text), float(lng_text)
            if within_lima(lat, lng):
                return Coordinates(lat, lng)

    lat_match = LAT_3D_PATTERN.search(decoded)
    lng_match = LNG_4D_PATTERN.search(decoded)
    if lat_match and lng_match:
        return Coordinates(float(lat_match.group(1)), float(lng_match.group(1)))

    return None


def extract_place_name(url: str) -> Optional[str]:
    if not url:
        return None
    decoded = unquote(url)
    for pattern in (PLACE_PATTERN, MAPS_QUERY_PATTERN):
        match = pattern.search(decoded)
        if match:
            return match.group(1).replace('+', ' ')
    return None


class GeocodingResolver:
    """
    Address -> Coordinates, backed by the Google Geocoding API.

    With no GEOCODING_API_KEY configured only the URL extraction runs
    and free-text addresses resolve to DEFAULT_COORDINATES.
    """

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_url = api_url or settings.GEOCODING_API_URL
        self.api_key = settings.GEOCODING_API_KEY if api_key is None else api_key
        self.timeout = timeout or settings.GEOCODING_TIMEOUT

    def resolve(self, address: Optional[str]) -> Coordinates:
        if not address or not address.strip():
            return DEFAULT_COORDINATES

        if is_map_link(address):
            coords = extract_coordinates_from_url(address)
            if coords is None:
                place = extract_place_name(address)
                coords = self.geocode(place) if place else None
        else:
            coords = self.geocode(address)

        if coords is None:
            logger.info(f"[GEOCODING] Using default coordinates for '{address[:60]}'")
            return DEFAULT_COORDINATES
        return coords

    def geocode(self, address: str) -> Optional[Coordinates]:
        if not self.api_key:
            return None

        query = address
        lowered = address.lower()
        if 'lima' not in lowered and 'perú' not in lowered and 'peru' not in lowered:
            query += ', Lima, Perú'

        try:
            response = requests.get(
                self.api_url,
                params={'address': query, 'key': self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[GEOCODING] Request failed: {e}")
            return None

        results = data.get('results') or []
        if data.get('status') == 'OK' and results:
            location = results[0].get('geometry', {}).get('location', {})
            lat, lng = location.get('lat'), location.get('lng')
            if lat is not None and lng is not None and within_lima(lat, lng):
                return Coordinates(lat, lng)

        logger.warning(f"[GEOCODING] No valid result for '{query}': {data.get('status')}")
        return None
