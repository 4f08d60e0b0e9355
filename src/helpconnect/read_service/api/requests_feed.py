from flask import Blueprint, request, jsonify

from helpconnect import config
from helpconnect.errors import RemoteWriteError
from helpconnect.models import ALL_STATUSES, STATUS_VALUES


def _viewer_id():
    return request.headers.get("X-User-Id") or None


def _status_filter():
    """Return the ?status= value, or None if it is not a status we know."""
    status = request.args.get("status", ALL_STATUSES)
    if status != ALL_STATUSES and status not in STATUS_VALUES:
        return None
    return status


def create_requests_feed_blueprint(store, get_feed):
    """
    Factory that creates the help requests blueprint.

    store:    RequestStore used for snapshot reads
    get_feed: callable returning the live FeedSynchronizer

    Endpoints:
        GET /api/requests          newest requests from the store
        GET /api/requests/<id>     one request
        GET /api/feed              the live feed

    Query Parameters:
        status (str, optional): "all" (default) or one request status.
        limit (int, optional): snapshot size. Default = FEED_SNAPSHOT_LIMIT, max = FEED_MAX_LIMIT.

    Locations the viewer (X-User-Id header) is not allowed to see are left out.
    """
    bp = Blueprint("requests_feed", __name__, url_prefix="/api")

    @bp.route("/requests", methods=["GET"])
    def list_requests():
        status = _status_filter()
        if status is None:
            return jsonify({"error": "Invalid status filter"}), 400

        try:
            limit = int(request.args.get("limit", config.FEED_SNAPSHOT_LIMIT))
        except ValueError:
            limit = config.FEED_SNAPSHOT_LIMIT

        if limit < 1:
            limit = 1
        if limit > config.FEED_MAX_LIMIT:
            limit = config.FEED_MAX_LIMIT

        try:
            rows = store.fetch_recent(limit=limit, status=None if status == ALL_STATUSES else status)
        except RemoteWriteError as e:
            return jsonify({"error": str(e)}), 502

        viewer = _viewer_id()
        return jsonify({
            "status": status,
            "limit": limit,
            "total": len(rows),
            "results": [r.to_public_dict(viewer) for r in rows],
        }), 200

    @bp.route("/requests/<request_id>", methods=["GET"])
    def get_request(request_id):
        try:
            found = store.get(request_id)
        except RemoteWriteError as e:
            return jsonify({"error": str(e)}), 502
        if found is None:
            return jsonify({"error": "Help request not found"}), 404
        return jsonify(found.to_public_dict(_viewer_id())), 200

    @bp.route("/feed", methods=["GET"])
    def live_feed():
        status = _status_filter()
        if status is None:
            return jsonify({"error": "Invalid status filter"}), 400

        try:
            feed = get_feed()
        except RemoteWriteError as e:
            return jsonify({"error": str(e)}), 502
        if feed.error:
            return jsonify({"error": feed.error}), 503

        viewer = _viewer_id()
        results = [r.to_public_dict(viewer) for r in feed.visible_requests(status)]
        return jsonify({
            "status": status,
            "total": len(results),
            "results": results,
        }), 200

    return bp
