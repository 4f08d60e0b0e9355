"""
Tests for the live feed: snapshot + insert/update/delete events + local mutations.
"""

import pytest

from conftest import make_record, make_request
from helpconnect.read_service.feed.synchronizer import FeedSynchronizer, INVALID_INSERT_ERROR


@pytest.fixture
def feed():
    return FeedSynchronizer(strict_inserts=True)


def ids(requests):
    return [r.id for r in requests]


def test_initialize_replaces_everything(feed):
    feed.initialize([make_request(id="a"), make_request(id="b")])
    feed.initialize([make_request(id="c")])

    assert ids(feed.requests) == ["c"]


def test_update_event_replaces_in_place():
    """Snapshot [a(open)] + update a -> completed gives one request a, completed."""
    feed = FeedSynchronizer()
    feed.initialize([make_request(id="a", status="open")])

    assert feed.on_update_event(make_record(id="a", status="completed"))

    assert len(feed) == 1
    assert feed.requests[0].id == "a"
    assert feed.requests[0].status == "completed"


def test_update_keeps_position(feed):
    feed.initialize([make_request(id="a"), make_request(id="b"), make_request(id="c")])
    feed.on_update_event(make_record(id="b", title="Changed"))

    assert ids(feed.requests) == ["a", "b", "c"]
    assert feed.get("b").title == "Changed"


def test_insert_events_go_to_the_front(feed):
    feed.initialize([make_request(id="a")])
    feed.on_insert_event(make_record(id="b"))
    feed.on_insert_event(make_record(id="c"))

    assert ids(feed.requests) == ["c", "b", "a"]


def test_invalid_insert_sets_feed_error(feed):
    """An insert missing urgency_level leaves the list alone and sets the error."""
    feed.initialize([make_request(id="a")])
    record = make_record(id="b")
    del record["urgency_level"]

    assert not feed.on_insert_event(record)
    assert len(feed) == 1
    assert feed.error == INVALID_INSERT_ERROR


def test_invalid_insert_after_close_leaves_no_error(feed):
    feed.close()
    assert not feed.on_insert_event({"id": "broken"})
    assert feed.error is None


def test_feed_drops_oldest_beyond_max_size():
    feed = FeedSynchronizer(max_size=2)
    feed.initialize([make_request(id="a")])
    feed.on_insert_event(make_record(id="b"))
    feed.on_insert_event(make_record(id="c"))

    assert ids(feed.requests) == ["c", "b"]


def test_report_error_and_clear(feed):
    feed.report_error("Live updates are unavailable")
    assert feed.error == "Live updates are unavailable"

    feed.clear_error()
    assert feed.error is None


def test_invalid_insert_is_dropped_when_not_strict():
    feed = FeedSynchronizer(strict_inserts=False)
    assert not feed.on_insert_event(make_record(status="nope"))
    assert feed.error is None
    assert len(feed) == 0


def test_invalid_update_is_ignored(feed):
    feed.initialize([make_request(id="a", status="open")])

    assert not feed.on_update_event(make_record(id="a", status="bogus"))
    assert feed.error is None
    assert feed.requests[0].status == "open"


def test_update_for_unknown_id_adds_nothing(feed):
    feed.initialize([make_request(id="a")])
    assert not feed.on_update_event(make_record(id="zzz"))
    assert ids(feed.requests) == ["a"]


def test_delete_event_removes_by_id(feed):
    feed.initialize([make_request(id="a"), make_request(id="b")])
    assert feed.on_delete_event({"id": "a"})
    assert ids(feed.requests) == ["b"]


def test_delete_of_unknown_id_is_a_no_op(feed):
    snapshot = [make_request(id="a"), make_request(id="b")]
    feed.initialize(snapshot)

    assert not feed.on_delete_event({"id": "missing"})
    assert feed.requests == snapshot


def test_delete_without_string_id_is_ignored(feed):
    feed.initialize([make_request(id="a")])
    assert not feed.on_delete_event({"id": 7})
    assert not feed.on_delete_event({})
    assert len(feed) == 1


def test_same_update_twice_is_idempotent(feed):
    feed.initialize([make_request(id="a"), make_request(id="b")])
    update = make_record(id="a", urgency_level="high", updated_at="2026-10-02T09:00:00+00:00")

    feed.on_update_event(update)
    once = feed.requests
    feed.on_update_event(update)

    assert feed.requests == once


def test_event_sequence_keeps_one_entry_per_live_id(feed):
    feed.handle_event({"eventType": "INSERT", "new": make_record(id="a")})
    feed.handle_event({"eventType": "INSERT", "new": make_record(id="b")})
    feed.handle_event({"eventType": "UPDATE", "new": make_record(id="a", title="first edit")})
    feed.handle_event({"eventType": "INSERT", "new": make_record(id="c")})
    feed.handle_event({"eventType": "DELETE", "old": {"id": "b"}})
    feed.handle_event({"eventType": "UPDATE", "new": make_record(id="a", title="second edit")})

    assert ids(feed.requests) == ["c", "a"]
    assert feed.get("a").title == "second edit"


def test_repeated_insert_does_not_duplicate(feed):
    feed.on_insert_event(make_record(id="a"))
    feed.on_insert_event(make_record(id="a", title="again"))

    assert ids(feed.requests) == ["a"]
    assert feed.get("a").title == "again"


def test_unknown_event_type_is_ignored(feed):
    assert not feed.handle_event({"eventType": "TRUNCATE"})
    assert not feed.handle_event("not a payload")
    assert feed.error is None


def test_status_filter_preserves_order(feed):
    feed.initialize([
        make_request(id="a", status="open"),
        make_request(id="b", status="completed"),
        make_request(id="c", status="open"),
        make_request(id="d", status="cancelled"),
    ])

    assert feed.set_status_filter("open")
    assert ids(feed.visible_requests()) == ["a", "c"]
    # The stored feed is untouched
    assert len(feed) == 4

    assert feed.set_status_filter("all")
    assert ids(feed.visible_requests()) == ["a", "b", "c", "d"]


def test_invalid_status_filter_keeps_current_one(feed):
    feed.set_status_filter("completed")
    assert not feed.set_status_filter("finished")
    assert feed.status_filter == "completed"


def test_local_mutation_replaces_request(feed):
    original = make_request(id="a", status="open")
    feed.initialize([make_request(id="z"), original])

    updated = original.with_changes(status="in_progress", updated_at="2026-10-02T10:00:00+00:00")
    assert feed.apply_local_mutation(updated)
    # The echo from the live channel carries the same fields
    feed.on_update_event(updated.to_dict())

    assert ids(feed.requests) == ["z", "a"]
    assert feed.get("a") == updated


def test_invalid_local_mutation_is_refused(feed):
    original = make_request(id="a")
    feed.initialize([original])

    assert not feed.apply_local_mutation(original.with_changes(status="done"))
    assert feed.get("a") == original


def test_closed_feed_ignores_everything(feed):
    feed.initialize([make_request(id="a")])
    feed.close()

    feed.on_insert_event(make_record(id="b"))
    feed.on_update_event(make_record(id="a", status="completed"))
    feed.on_delete_event({"id": "a"})
    feed.apply_local_mutation(make_request(id="a", status="cancelled"))

    assert ids(feed.requests) == ["a"]
    assert feed.requests[0].status == "open"
