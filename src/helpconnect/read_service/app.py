"""
app.py: Main Flask application for the READ side of HelpConnect.

This service answers every "show me help requests" question:
- Snapshot reads straight from the store (newest first, capped).
- The live feed: a FeedSynchronizer started from a snapshot and kept current
  by the Kafka change events the write service publishes.
- Open API (Swagger) documentation.

Run with: python -m helpconnect.read_service.app (starts on port 5001).
Set FEED_LIVE_UPDATES=true to start the Kafka listener next to Flask.
"""

import logging
import os
import threading

from flask import Flask, jsonify
from flask_cors import CORS
from flask_swagger_ui import get_swaggerui_blueprint

from helpconnect import config
from helpconnect.read_service.api.requests_feed import create_requests_feed_blueprint
from helpconnect.read_service.consumers.feed_consumer import run_feed_subscription
from helpconnect.read_service.feed.synchronizer import FeedSynchronizer
from helpconnect.write_service.db.store import RequestStore

logger = logging.getLogger(__name__)

# Swagger UI configuration
SWAGGER_URL = '/swagger'  # URL for Swagger UI (e.g., http://localhost:5001/swagger)
API_URL = '/swagger.json'

SWAGGER_CONFIG = {
    'app_name': "HelpConnect - Read Service",
    'deepLinking': True,
    'defaultModelsExpandDepth': -1,
}

_REQUEST_EXAMPLE = {
    "id": "5b0c3f7e-1a2b-4c3d-9e8f-0a1b2c3d4e5f",
    "user_id": "user-123",
    "title": "Need a ride to the pharmacy",
    "description": "My car is in the shop and I need to pick up a prescription.",
    "category": "Transportation",
    "urgency_level": "high",
    "urgency_label": "High - Immediate assistance needed",
    "status": "open",
    "status_label": "Open",
    "location": "1200 Market St, St. Louis, MO",
    "geo_location": "POINT(-90.1994 38.6270)",
    "coordinates": {"lat": 38.627, "lon": -90.1994},
    "location_hidden": False,
    "is_owner": False,
    "created_at": "2026-10-01T14:03:00+00:00",
    "updated_at": "2026-10-01T14:03:00+00:00",
}

_STATUS_PARAM = {
    "name": "status",
    "in": "query",
    "required": False,
    "schema": {"type": "string", "enum": ["all", "open", "in_progress", "completed", "cancelled"]},
}

SWAGGER_SPEC = {
    "openapi": "3.0.0",
    "info": {"title": "HelpConnect Read Service", "version": "1.0.0"},
    "paths": {
        "/health": {
            "get": {
                "summary": "Health check",
                "responses": {"200": {"description": "OK"}}
            }
        },
        "/api/requests": {
            "get": {
                "summary": "Most recent help requests",
                "tags": ["Help Requests"],
                "description": "Newest first. Locations hidden by their owner are left out for other viewers (send X-User-Id to identify yourself).",
                "parameters": [
                    _STATUS_PARAM,
                    {"name": "limit", "in": "query", "required": False, "schema": {"type": "integer"}},
                ],
                "responses": {
                    "200": {
                        "description": "A page of help requests",
                        "content": {"application/json": {"example": {
                            "status": "all", "limit": 20, "total": 1, "results": [_REQUEST_EXAMPLE]
                        }}}
                    },
                    "400": {"description": "Invalid status filter"}
                }
            }
        },
        "/api/requests/{request_id}": {
            "get": {
                "summary": "One help request",
                "tags": ["Help Requests"],
                "parameters": [{"name": "request_id", "in": "path", "required": True, "schema": {"type": "string"}}],
                "responses": {
                    "200": {"description": "The request", "content": {"application/json": {"example": _REQUEST_EXAMPLE}}},
                    "404": {"description": "Not found"}
                }
            }
        },
        "/api/feed": {
            "get": {
                "summary": "The live help request feed",
                "tags": ["Help Requests"],
                "description": "The feed kept current by change events. New requests appear first.",
                "parameters": [_STATUS_PARAM],
                "responses": {
                    "200": {"description": "Feed contents"},
                    "503": {"description": "The feed received invalid data or lost its live updates"}
                }
            }
        }
    }
}


def create_app(store=None, start_live_updates=False):
    """Build the read service around a RequestStore."""
    store = store or RequestStore()

    app = Flask(__name__)
    CORS(app)
    app.logger.setLevel("INFO")

    feed = FeedSynchronizer()
    feed_ready = threading.Event()
    feed_lock = threading.Lock()

    def get_feed():
        """
        The shared feed. With live updates it is loaded from the store once and then
        kept current by change events; without them every read re-fetches the snapshot.
        """
        if not start_live_updates or not feed_ready.is_set():
            with feed_lock:
                if not start_live_updates or not feed_ready.is_set():
                    feed.initialize(store.fetch_recent())
                    feed_ready.set()
        return feed

    app.extensions["helpconnect_feed"] = get_feed

    app.register_blueprint(create_requests_feed_blueprint(store, get_feed))
    app.register_blueprint(get_swaggerui_blueprint(SWAGGER_URL, API_URL, config=SWAGGER_CONFIG))

    @app.route('/health', methods=['GET'])
    def health():
        """
        Health check for read_service: Verifies the database connection.
        Returns: {"status": "ok", "database": true}
        """
        try:
            store.ping()
            database_status = True
        except Exception as e:
            app.logger.error(f"Database health check failed: {e}")
            database_status = False

        return jsonify({
            "status": "ok" if database_status else "error",
            "service": "read_service",
            "database": database_status
        })

    @app.route('/swagger.json', methods=['GET'])
    def swagger_spec():
        """Open API spec for read_service endpoints."""
        return jsonify(SWAGGER_SPEC)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500

    if start_live_updates:
        def listen():
            run_feed_subscription(get_feed())

        threading.Thread(target=listen, name="feed-subscription", daemon=True).start()
        logger.info("Started live feed subscription thread")

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app = create_app(start_live_updates=config.FEED_LIVE_UPDATES)

    # Run the Flask app (debug mode = True for development only).
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    app.run(host='0.0.0.0', port=5001, debug=debug_mode)
