"""
app.py: Flask application for the WRITE side of HelpConnect.

Every change to a help request goes through here:
- POST  /api/requests                  create a request (status starts as open)
- PUT   /api/requests/<id>             edit a request (owner only)
- PATCH /api/requests/<id>/status      change status (owner only)
- PATCH /api/requests/<id>/urgency     change urgency (owner only)

Each committed write is published to Kafka so open feeds (read service) update live.
Who is acting comes from the X-User-Id header; signing in is handled elsewhere.

Run with: python -m helpconnect.write_service.app (starts on port 5000).
"""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_restful import Api, Resource

from helpconnect.errors import RemoteWriteError
from helpconnect.write_service.db.session import create_tables
from helpconnect.write_service.db.store import RequestStore
from helpconnect.write_service.processing.change_publisher import ChangePublisher
from helpconnect.write_service.processing.mutation_gateway import MutationGateway
from helpconnect.write_service.processing.request_forms import RequestFormProcessor

# This is the Python app for the WRITE service
app = Flask(__name__)
api = Api(app)
CORS(app)
app.logger.setLevel("INFO")

publisher = ChangePublisher()
store = RequestStore(on_change=publisher.publish_change)


def acting_user_id():
    return request.headers.get("X-User-Id") or None


def _request_body():
    # Accept both HTML form posts and JSON bodies
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}
    return request.form


def _unauthenticated():
    return {"error": "Authentication required"}, 401


def _load_request(request_id):
    """Return (help_request, None) or (None, error_response)."""
    try:
        current = store.get(request_id)
    except RemoteWriteError as e:
        app.logger.error(f"Could not load help request {request_id}: {e}")
        return None, ({"error": str(e)}, 502)
    if current is None:
        return None, ({"error": "Help request not found"}, 404)
    return current, None


class HelpRequestList(Resource):
    def post(self):
        user_id = acting_user_id()
        if user_id is None:
            return _unauthenticated()

        result = RequestFormProcessor(store).submit_new(_request_body(), user_id)
        if not result.ok:
            code = 502 if result.remote_failure else 400
            return {"error": result.error, "field": result.field}, code

        app.logger.info(f"Help request {result.request.id} created by {user_id}")
        return {"request": result.request.to_dict()}, 201


class HelpRequestItem(Resource):
    def put(self, request_id):
        user_id = acting_user_id()
        if user_id is None:
            return _unauthenticated()

        current, error = _load_request(request_id)
        if error:
            return error
        if not current.is_owner(user_id):
            return {"error": "You do not have permission to edit this request."}, 403

        result = RequestFormProcessor(store).submit_edit(current, _request_body(), user_id)
        if not result.ok:
            code = 502 if result.remote_failure else 400
            return {"error": result.error, "field": result.field}, code

        return {"request": result.request.to_dict()}, 200


class _FieldChange(Resource):
    """Shared PATCH handling for the status and urgency controls."""

    body_field = None
    # MutationGateway method that applies the new value
    gateway_method = None

    def patch(self, request_id):
        user_id = acting_user_id()
        if user_id is None:
            return _unauthenticated()

        current, error = _load_request(request_id)
        if error:
            return error

        body = request.get_json(silent=True) or {}
        if not isinstance(body, dict) or self.body_field not in body:
            return {"error": f"Missing field: {self.body_field}"}, 400

        gateway = MutationGateway(current, store)
        # A non-owner gets the unchanged request back; nothing is written
        if not gateway.is_owner(user_id):
            return {"updated": False, "request": current.to_dict()}, 200

        updated = getattr(gateway, self.gateway_method)(body[self.body_field], user_id)
        if gateway.error:
            code = 502 if gateway.remote_failure else 400
            return {"updated": False, "error": gateway.error, "request": gateway.request.to_dict()}, code

        return {"updated": updated, "request": gateway.request.to_dict()}, 200


class HelpRequestStatus(_FieldChange):
    body_field = "status"
    gateway_method = "change_status"


class HelpRequestUrgency(_FieldChange):
    body_field = "urgency_level"
    gateway_method = "change_urgency"


api.add_resource(HelpRequestList, "/api/requests")
api.add_resource(HelpRequestItem, "/api/requests/<string:request_id>")
api.add_resource(HelpRequestStatus, "/api/requests/<string:request_id>/status")
api.add_resource(HelpRequestUrgency, "/api/requests/<string:request_id>/urgency")


@app.route('/health')
def health():
    """Endpoint for checking health of this app (if basic endpoint works or not)."""
    logging.info("Health is okay.")
    return jsonify({'status': 'ok', 'service': 'write_service'})


if __name__ == '__main__':
    """Called when this app is started."""
    logging.basicConfig(level=logging.INFO)
    create_tables()
    logging.info("The write service Python app has started.")
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    app.run(host='0.0.0.0', port=5000, debug=debug_mode)
