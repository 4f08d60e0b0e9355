"""
geocoder.py
This code turns a free text address into coordinates using the public
OpenStreetMap Nominatim search API.

"Not found" and every kind of failure (HTTP error, bad JSON, no connection)
come back as None; callers decide whether that blocks what they are doing.
"""
import json
import logging

import requests

from helpconnect import config

logger = logging.getLogger(__name__)


def geocode_address(address, url=None):
    """
    Look up an address and return {"lat": float, "lon": float}, or None if it
    could not be found.
    """

    if not address or not address.strip():
        return None

    url = url or config.GEOCODER_URL

    try:
        # Nominatim requires an identifying User-Agent
        response = requests.get(
            url,
            params={"format": "json", "q": address},
            headers={"User-Agent": config.GEOCODER_USER_AGENT},
            timeout=config.GEOCODER_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()

    except requests.exceptions.HTTPError as httpError:
        code = httpError.response.status_code if httpError.response is not None else None

        # Handle HTTP errors
        if code == 429:
            logger.error(f"Error 429: Geocoding rate limit reached for {address!r}. \nError: {httpError}")
        elif code is not None and code >= 500:
            logger.error(f"Error {code}: The geocoding server is not working. \nError: {httpError}")
        else:
            logger.error(f"Unknown HTTP Error {code}: Unable to geocode {address!r}. \nError: {httpError}")
        return None

    except json.JSONDecodeError as jsonError:
        logger.error(f"The geocoding response is not valid JSON. \nError: {jsonError}")
        return None

    except requests.exceptions.RequestException as requestError:
        # requests' own JSONDecodeError is also a RequestException
        logger.error(f"Something went wrong with the geocoding connection. \nError: {requestError}")
        return None

    if not isinstance(data, list) or not data:
        logger.info(f"No coordinates found for {address!r}")
        return None

    first = data[0]
    try:
        coordinates = {"lat": float(first["lat"]), "lon": float(first["lon"])}
    except (KeyError, TypeError, ValueError) as error:
        logger.error(f"Unexpected geocoding result for {address!r}: {first} ({error})")
        return None

    logger.info(f"Geocoded {address!r} to {coordinates}")
    return coordinates
