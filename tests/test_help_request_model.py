"""
Tests for the HelpRequest entity: location privacy and point handling.
"""

from conftest import make_request
from helpconnect.models import format_point, parse_point


def test_point_round_trip():
    point = format_point(38.6399, -90.2455)
    assert point == "POINT(-90.2455 38.6399)"
    assert parse_point(point) == (38.6399, -90.2455)


def test_parse_point_rejects_garbage():
    assert parse_point(None) is None
    assert parse_point("") is None
    assert parse_point("38.6, -90.2") is None


def test_hidden_location_is_left_out_for_other_viewers():
    request = make_request(location_hidden=True)
    public = request.to_public_dict("someone-else")

    assert "location" not in public
    assert "geo_location" not in public
    assert public["coordinates"] is None
    assert request.display_location("someone-else") is None
    assert request.display_location(None) is None


def test_owner_still_sees_their_hidden_location():
    request = make_request(location_hidden=True)
    own_view = request.to_public_dict("owner-1")

    assert own_view["location"] == "4100 Lindell Blvd, St. Louis, MO"
    assert own_view["is_owner"] is True
    assert own_view["coordinates"] == {"lat": 38.6399, "lon": -90.2455}


def test_visible_location_has_labels_and_coordinates():
    public = make_request(urgency_level="high", status="in_progress").to_public_dict()

    assert public["location"] == "4100 Lindell Blvd, St. Louis, MO"
    assert public["urgency_label"] == "High - Immediate assistance needed"
    assert public["status_label"] == "In Progress"
    assert public["is_owner"] is False


def test_no_location_means_nothing_to_display():
    request = make_request(location=None, geo_location=None)
    assert request.display_location("owner-1") is None
    assert request.to_public_dict("owner-1")["coordinates"] is None
