"""
Tests for the geocoder. requests.get is mocked so no real lookups are made.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from helpconnect.write_service.ingestion.geocoder import geocode_address

GET = "helpconnect.write_service.ingestion.geocoder.requests.get"


def response_with(data):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = data
    return response


def test_first_result_is_used():
    with patch(GET) as mock_get:
        mock_get.return_value = response_with([
            {"lat": "38.6270", "lon": "-90.1994", "display_name": "St. Louis"},
            {"lat": "0", "lon": "0"},
        ])
        coordinates = geocode_address("St. Louis, MO")

    assert coordinates == {"lat": 38.627, "lon": -90.1994}
    _, kwargs = mock_get.call_args
    assert kwargs["params"] == {"format": "json", "q": "St. Louis, MO"}
    assert kwargs["headers"]["User-Agent"]


def test_no_results_means_not_found():
    with patch(GET, return_value=response_with([])):
        assert geocode_address("Nowhere at all") is None


def test_blank_address_is_not_looked_up():
    with patch(GET) as mock_get:
        assert geocode_address("   ") is None
        assert geocode_address(None) is None
    mock_get.assert_not_called()


@pytest.mark.parametrize("status_code", [404, 429, 500])
def test_http_errors_mean_not_found(status_code):
    error_response = MagicMock(status_code=status_code)
    response = MagicMock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=error_response)

    with patch(GET, return_value=response):
        assert geocode_address("St. Louis, MO") is None


def test_connection_errors_mean_not_found():
    with patch(GET, side_effect=requests.exceptions.ConnectionError("offline")):
        assert geocode_address("St. Louis, MO") is None


def test_invalid_json_means_not_found():
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)

    with patch(GET, return_value=response):
        assert geocode_address("St. Louis, MO") is None


def test_malformed_result_means_not_found():
    with patch(GET, return_value=response_with([{"display_name": "no coordinates"}])):
        assert geocode_address("St. Louis, MO") is None


@pytest.mark.integration
def test_real_lookup():
    """This test checks a real address against the public geocoding API."""
    result = geocode_address("Gateway Arch, St. Louis, MO")
    assert result is not None
    assert 38 < result["lat"] < 39
